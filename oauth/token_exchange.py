"""OAuth authorization code exchange"""

import logging
from typing import Optional

import httpx

from settings import CLIENT_ID, REDIRECT_URI, REQUEST_TIMEOUT, TOKEN_URL, USER_AGENT
from .errors import LoginError
from .models import PKCESession, TokenSet

logger = logging.getLogger(__name__)


async def exchange_code(
    code: str,
    session: PKCESession,
    token_url: str = TOKEN_URL,
    redirect_uri: str = REDIRECT_URI,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> TokenSet:
    """Exchange authorization code for tokens

    Args:
        code: Authorization code captured from the redirect
        session: PKCE session the code was issued for
        token_url: Token endpoint
        redirect_uri: Redirect URI used in the authorize request
        transport: Optional httpx transport (tests)

    Returns:
        TokenSet with the issued tokens

    Raises:
        LoginError: exchange_failed on transport, decode or server errors
    """
    payload = {
        "grant_type": "authorization_code",
        "client_id": CLIENT_ID,
        "code": code,
        "redirect_uri": redirect_uri,
        "code_verifier": session.verifier,
        "state": session.state,
    }

    try:
        async with httpx.AsyncClient(transport=transport, timeout=REQUEST_TIMEOUT) as client:
            response = await client.post(
                token_url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "User-Agent": USER_AGENT,
                    "Referer": "https://claude.ai/",
                    "Origin": "https://claude.ai",
                },
            )
    except httpx.HTTPError as e:
        logger.error(f"Token exchange request failed: {e}")
        raise LoginError("exchange_failed", f"Token exchange failed: {e}") from e

    try:
        token_data = response.json()
    except ValueError as e:
        raise LoginError(
            "exchange_failed",
            f"Failed to parse token response: {response.text[:200]}",
        ) from e

    if not isinstance(token_data, dict):
        raise LoginError("exchange_failed", f"Failed to parse token response: {response.text[:200]}")

    if token_data.get("error"):
        message = token_data.get("error_description") or token_data["error"]
        logger.error(f"Token exchange rejected with status {response.status_code}: {message}")
        raise LoginError("exchange_failed", message)

    if not token_data.get("access_token"):
        logger.error(f"Token exchange returned status {response.status_code} without an access token")
        raise LoginError("exchange_failed", f"Token exchange failed (HTTP {response.status_code})")

    logger.info("OAuth tokens obtained from authorization code")
    return TokenSet(
        access_token=token_data["access_token"],
        refresh_token=token_data.get("refresh_token"),
        expires_in=token_data.get("expires_in"),
        scope=token_data.get("scope"),
    )
