"""Fixed sample snapshot for --mock mode"""

import datetime
import time
from typing import Callable, Optional

from .models import ActivityStats, OverallStatus, OverageWindow, UsageSnapshot, UtilizationWindow
from .normalize import next_month_start


def get_mock_snapshot(
    local_stats: Optional[ActivityStats] = None,
    clock: Callable[[], float] = time.time,
) -> UsageSnapshot:
    """Realistic snapshot: 21% session, 68% weekly, overage partly spent"""
    now = datetime.datetime.fromtimestamp(clock(), tz=datetime.timezone.utc)
    session_reset = now.replace(hour=9, minute=0, second=0, microsecond=0)
    if session_reset <= now:
        session_reset += datetime.timedelta(days=1)
    weekly_reset = now + datetime.timedelta(days=3)
    sonnet_reset = now + datetime.timedelta(days=2)
    overage_reset = next_month_start(now)

    session_epoch = int(session_reset.timestamp())
    weekly_epoch = int(weekly_reset.timestamp())
    sonnet_epoch = int(sonnet_reset.timestamp())

    return UsageSnapshot(
        timestamp=int(clock() * 1000),
        all_headers={
            "five_hour.utilization": "21%",
            "five_hour.resets_at": session_reset.isoformat(),
            "seven_day.utilization": "68%",
            "seven_day.resets_at": weekly_reset.isoformat(),
            "seven_day_sonnet.utilization": "2%",
            "seven_day_sonnet.resets_at": sonnet_reset.isoformat(),
            "extra_usage.is_enabled": "true",
            "extra_usage.utilization": "31%",
            "extra_usage.used_credits": "1582",
            "extra_usage.monthly_limit": "5000",
        },
        session=UtilizationWindow(utilization=0.21, reset=session_epoch),
        weekly=UtilizationWindow(utilization=0.68, reset=weekly_epoch),
        weekly_sonnet=UtilizationWindow(utilization=0.02, reset=sonnet_epoch),
        overage=OverageWindow(utilization=0.31, spent="15.82", limit="50.00", reset=overage_reset),
        overall_status=OverallStatus.ACTIVE,
        subscription_type="max",
        rate_limit_tier="default_claude_max_5x",
        local_stats=local_stats,
    )
