"""The three operations exposed to the UI: login, logout, refresh"""

import asyncio
import logging
from typing import Any, Callable, Dict, Optional

import httpx

from settings import REFRESH_INTERVAL
from oauth import AuthorizationFlow, BrowserSurface, LoginError, SystemBrowserSurface
from usage import LocalActivityAggregator, UsageFetcher, get_mock_snapshot
from utils.storage import CredentialStore

logger = logging.getLogger(__name__)


class PulseService:
    """Facade the tray or HTTP bridge talks to

    Every public method returns a tagged result and never raises.
    """

    def __init__(
        self,
        storage: Optional[CredentialStore] = None,
        fetcher: Optional[UsageFetcher] = None,
        activity: Optional[LocalActivityAggregator] = None,
        surface_factory: Callable[[], BrowserSurface] = SystemBrowserSurface,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        mock: bool = False,
        debug: bool = False,
    ):
        self.storage = storage or CredentialStore()
        self.activity = activity or (fetcher.activity if fetcher else LocalActivityAggregator())
        self.fetcher = fetcher or UsageFetcher(self.storage, activity=self.activity, transport=transport)
        self.surface_factory = surface_factory
        self.transport = transport
        self.mock = mock
        self.debug = debug

        self.login_in_progress = False
        self.last_data: Optional[Dict[str, Any]] = None

    def create_flow(self) -> AuthorizationFlow:
        return AuthorizationFlow(self.storage, self.surface_factory, transport=self.transport)

    async def login(self) -> Dict[str, Any]:
        """Run the interactive login, then fetch fresh usage

        Returns:
            {"success": True, "data": snapshot} or {"success": False, "error": message}
        """
        if self.login_in_progress:
            return {"success": False, "error": "Login already in progress"}

        self.login_in_progress = True
        try:
            await self.create_flow().run()
            data = await self.refresh()
            return {"success": True, "data": data}
        except LoginError as e:
            logger.info(f"Login failed ({e.kind}): {e.message}")
            return {"success": False, "error": e.message}
        except Exception as e:
            logger.exception("Unexpected error during login")
            return {"success": False, "error": str(e)}
        finally:
            self.login_in_progress = False

    def logout(self) -> Dict[str, Any]:
        """Forget stored credentials; safe to call repeatedly"""
        try:
            self.storage.clear()
        except OSError as e:
            logger.error(f"Failed to clear credentials: {e}")
            return {"success": False, "error": str(e)}
        finally:
            self.activity.invalidate()
        return {"success": True}

    async def refresh(self) -> Dict[str, Any]:
        """Fetch a new snapshot (or the mock one) as a plain dict"""
        try:
            if self.mock:
                local_stats = await asyncio.to_thread(self.activity.today)
                result = get_mock_snapshot(local_stats=local_stats)
            else:
                result = await self.fetcher.fetch()
            data = result.to_dict()
        except Exception as e:
            logger.exception("Unexpected error during refresh")
            data = {
                "error": True,
                "errorType": "unexpected",
                "errorMessage": f"Unexpected error: {e}",
            }
        self.last_data = data
        return data

    def get_settings(self) -> Dict[str, Any]:
        return {"refreshInterval": REFRESH_INTERVAL * 1000, "debug": self.debug}
