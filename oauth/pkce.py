"""PKCE (Proof Key for Code Exchange) generation"""

import base64
import hashlib
import secrets

from .models import PKCESession


def compute_challenge(verifier: str) -> str:
    """base64url(SHA-256(verifier)) without padding"""
    challenge_bytes = hashlib.sha256(verifier.encode('utf-8')).digest()
    return base64.urlsafe_b64encode(challenge_bytes).decode('utf-8').rstrip('=')


def generate_pkce_session() -> PKCESession:
    """Generate a fresh verifier/challenge/state triple

    RFC 7636 PKCE standard:
    - Verifier: 43-128 characters, base64url encoded (32 bytes -> 43 chars)
    - Challenge: SHA-256 hash of verifier, base64url encoded

    Returns:
        PKCESession: New, unsettled session
    """
    verifier = secrets.token_urlsafe(32)
    return PKCESession(
        verifier=verifier,
        challenge=compute_challenge(verifier),
        state=secrets.token_hex(32),
    )
