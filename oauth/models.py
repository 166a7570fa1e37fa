"""Data models for the OAuth login and refresh flows"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class PKCESession:
    """PKCE material for one login attempt

    Attributes:
        verifier: Random secret, base64url encoded (32 bytes of entropy)
        challenge: base64url(SHA-256(verifier)), sent in the authorize request
        state: Random anti-CSRF nonce
        settled: True once the login attempt has resolved or been rejected
    """
    verifier: str
    challenge: str
    state: str
    settled: bool = False


@dataclass
class TokenSet:
    """Tokens returned by the token endpoint"""
    access_token: str
    refresh_token: Optional[str] = None
    expires_in: Optional[int] = None
    scope: Optional[str] = None


@dataclass
class RefreshResult:
    """Outcome of a refresh_token grant"""
    success: bool
    access_token: Optional[str] = None
    error: Optional[str] = None
