"""OAuth token refresh functionality"""

import logging
import time
from typing import Callable, Optional

import httpx

from settings import CLIENT_ID, REFRESH_TOKEN_URL, REQUEST_TIMEOUT
from utils.storage import CredentialStore, CredentialStoreError
from .models import RefreshResult

logger = logging.getLogger(__name__)


def _parse_expires_in(value) -> Optional[int]:
    """Lifetime in seconds, or None when absent or not a number"""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring invalid expires_in in token refresh response: {value!r}")
        return None


class TokenRefresher:
    """Exchanges a refresh token for a new access token and stores it"""

    def __init__(
        self,
        storage: CredentialStore,
        token_url: str = REFRESH_TOKEN_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.token_url = token_url
        self.transport = transport
        self.clock = clock

    async def refresh(self, refresh_token: str) -> RefreshResult:
        """Refresh the access token

        The credentials file is only written after the server has issued a
        new access token; every failure leaves it untouched.

        Args:
            refresh_token: Refresh token from the stored record

        Returns:
            RefreshResult with the new access token, or the failure reason
        """
        if not refresh_token:
            logger.warning("No refresh token available for refresh")
            return RefreshResult(success=False, error="No refresh token available")

        logger.info("Attempting to refresh OAuth tokens...")
        data = {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
            "client_id": CLIENT_ID,
        }

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=REQUEST_TIMEOUT) as client:
                response = await client.post(
                    self.token_url,
                    data=data,
                    headers={"Content-Type": "application/x-www-form-urlencoded"},
                )
            payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Token refresh request failed: {e}")
            return RefreshResult(success=False, error=str(e))
        except ValueError as e:
            # JSONDecodeError or UnicodeDecodeError
            logger.error(f"Failed to parse token refresh response: {e}")
            return RefreshResult(success=False, error=f"Invalid token response: {e}")

        if not isinstance(payload, dict) or not payload.get("access_token"):
            error = None
            if isinstance(payload, dict):
                error = payload.get("error_description") or payload.get("error")
            error = error or f"Token refresh failed (HTTP {response.status_code})"
            logger.error(f"Token refresh failed with status {response.status_code}: {error}")
            return RefreshResult(success=False, error=error)

        expires_at = None
        expires_in = _parse_expires_in(payload.get("expires_in"))
        if expires_in:
            expires_at = int(self.clock() * 1000) + expires_in * 1000

        try:
            self.storage.update_tokens(
                access_token=payload["access_token"],
                refresh_token=payload.get("refresh_token"),
                expires_at=expires_at,
            )
        except (CredentialStoreError, OSError) as e:
            logger.error(f"Failed to store refreshed tokens: {e}")
            return RefreshResult(success=False, error=str(e))

        logger.info("Successfully refreshed OAuth tokens")
        return RefreshResult(success=True, access_token=payload["access_token"])
