"""Usage API fetch and normalization"""

import asyncio
import datetime
import logging
import time
from typing import Any, Callable, Dict, Optional

import httpx

from settings import ANTHROPIC_BETA, ANTHROPIC_VERSION, REQUEST_TIMEOUT, USAGE_API_URL
from oauth.models import RefreshResult
from oauth.token_refresh import TokenRefresher
from utils.storage import CredentialRecord, CredentialStore, CredentialStoreError
from .activity import LocalActivityAggregator
from .models import ActivityStats, OverageWindow, UsageError, UsageResult, UsageSnapshot, UtilizationWindow
from .normalize import (
    build_raw_fields,
    derive_overall_status,
    format_credits,
    iso_to_epoch,
    next_month_start,
    percent_to_ratio,
)

logger = logging.getLogger(__name__)


def credential_error_message(error: CredentialStoreError) -> str:
    if error.kind == "credentials_not_found":
        return "No credentials found. Please login to continue."
    return f"Error reading credentials: {error.message}"


class UsageFetcher:
    """Builds a UsageSnapshot from the usage API and local activity

    fetch() never raises; every failure becomes a UsageError.
    """

    def __init__(
        self,
        storage: CredentialStore,
        refresher: Optional[TokenRefresher] = None,
        activity: Optional[LocalActivityAggregator] = None,
        usage_url: str = USAGE_API_URL,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self.refresher = refresher or TokenRefresher(storage, transport=transport, clock=clock)
        self.activity = activity or LocalActivityAggregator(clock=clock)
        self.usage_url = usage_url
        self.transport = transport
        self.clock = clock

    async def fetch(self) -> UsageResult:
        """Fetch current usage

        Returns:
            UsageSnapshot on success, UsageError otherwise
        """
        try:
            return await self._fetch()
        except Exception as e:
            logger.exception("Unexpected error while fetching usage")
            return UsageError(error_type="unexpected", error_message=f"Unexpected error: {e}")

    async def _fetch(self) -> UsageResult:
        try:
            creds = self.storage.read()
        except CredentialStoreError as e:
            logger.debug(f"Cannot read credentials: {e.kind}")
            return UsageError(error_type=e.kind, error_message=credential_error_message(e))

        if not creds.access_token:
            return UsageError(
                error_type="no_token",
                error_message="No access token found. Please login to continue.",
            )

        token = await self._resolve_token(creds)

        try:
            async with httpx.AsyncClient(transport=self.transport, timeout=REQUEST_TIMEOUT) as client:
                response = await client.get(
                    self.usage_url,
                    headers={
                        "Authorization": f"Bearer {token}",
                        "anthropic-version": ANTHROPIC_VERSION,
                        "anthropic-beta": ANTHROPIC_BETA,
                    },
                )
        except httpx.HTTPError as e:
            logger.warning(f"Usage request failed: {e}")
            return UsageError(error_type="network_error", error_message=f"Network error: {e}")

        if response.status_code == 401:
            return UsageError(error_type="auth_expired", error_message="Session expired. Please login again.")

        if response.status_code != 200:
            logger.warning(f"Usage API returned HTTP {response.status_code}")
            return UsageError(
                error_type="api_error",
                error_message=f"API error (HTTP {response.status_code}). Please try again later.",
            )

        try:
            usage_data = response.json()
        except ValueError as e:
            logger.warning(f"Usage API returned invalid JSON: {e}")
            return UsageError(error_type="api_error", error_message="API error (invalid response). Please try again later.")
        if not isinstance(usage_data, dict):
            return UsageError(error_type="api_error", error_message="API error (invalid response). Please try again later.")

        local_stats = await self._local_stats()
        return self.build_snapshot(usage_data, creds, local_stats)

    async def _resolve_token(self, creds: CredentialRecord) -> str:
        """Access token to use, refreshing first when it has expired"""
        now_ms = int(self.clock() * 1000)
        if creds.is_expired(now_ms) and creds.refresh_token:
            logger.info("Access token expired, refreshing before usage request")
            try:
                result = await self.refresher.refresh(creds.refresh_token)
            except Exception as e:
                logger.exception("Token refresh raised, using stored token")
                result = RefreshResult(success=False, error=str(e))
            if result.success:
                return result.access_token
            # Fall through with the stored token; the API decides if it is still valid
            logger.warning(f"Token refresh failed, using stored token: {result.error}")
        return creds.access_token

    async def _local_stats(self) -> Optional[ActivityStats]:
        try:
            return await asyncio.to_thread(self.activity.today)
        except Exception as e:
            logger.debug(f"Local stats failed: {e}")
            return None

    def build_snapshot(
        self,
        usage_data: Dict[str, Any],
        creds: CredentialRecord,
        local_stats: Optional[ActivityStats] = None,
    ) -> UsageSnapshot:
        """Normalize a usage API body into the display model"""
        five_hour = usage_data.get("five_hour") or {}
        seven_day = usage_data.get("seven_day") or {}
        seven_day_sonnet = usage_data.get("seven_day_sonnet") or {}
        extra_usage = usage_data.get("extra_usage") or {}

        if extra_usage.get("is_enabled"):
            now = datetime.datetime.fromtimestamp(self.clock(), tz=datetime.timezone.utc)
            overage = OverageWindow(
                utilization=percent_to_ratio(extra_usage.get("utilization")),
                spent=format_credits(extra_usage.get("used_credits")),
                limit=format_credits(extra_usage.get("monthly_limit")),
                reset=next_month_start(now),
            )
        else:
            overage = OverageWindow()

        return UsageSnapshot(
            timestamp=int(self.clock() * 1000),
            all_headers=build_raw_fields(usage_data),
            session=UtilizationWindow(
                utilization=percent_to_ratio(five_hour.get("utilization")),
                reset=iso_to_epoch(five_hour.get("resets_at")),
            ),
            weekly=UtilizationWindow(
                utilization=percent_to_ratio(seven_day.get("utilization")),
                reset=iso_to_epoch(seven_day.get("resets_at")),
            ),
            weekly_sonnet=UtilizationWindow(
                utilization=percent_to_ratio(seven_day_sonnet.get("utilization")),
                reset=iso_to_epoch(seven_day_sonnet.get("resets_at")),
            ),
            overage=overage,
            overall_status=derive_overall_status(usage_data),
            subscription_type=creds.subscription_type or "unknown",
            rate_limit_tier=creds.rate_limit_tier or "unknown",
            local_stats=local_stats,
        )
