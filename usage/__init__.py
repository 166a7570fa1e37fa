"""Usage data acquisition for Claude Pulse

Fetches quota utilization from the usage API, merges local Claude Code
activity and produces the display model consumed by the UI.
"""

from .activity import LocalActivityAggregator
from .fetcher import UsageFetcher
from .mock import get_mock_snapshot
from .models import (
    ActivityStats,
    OverallStatus,
    OverageWindow,
    UsageError,
    UsageResult,
    UsageSnapshot,
    UtilizationWindow,
)

__all__ = [
    "ActivityStats",
    "LocalActivityAggregator",
    "OverallStatus",
    "OverageWindow",
    "UsageError",
    "UsageFetcher",
    "UsageResult",
    "UsageSnapshot",
    "UtilizationWindow",
    "get_mock_snapshot",
]
