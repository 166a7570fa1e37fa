"""
Pydantic models for the usage display model handed to the UI.
"""
from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class PulseModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class OverallStatus(str, Enum):
    ACTIVE = "active"
    WARNING = "warning"
    RATE_LIMITED = "rate_limited"


class UtilizationWindow(PulseModel):
    """One quota window"""
    utilization: float = 0.0  # ratio 0-1
    reset: Optional[int] = None  # epoch seconds


class OverageWindow(UtilizationWindow):
    """Monthly spend-based window"""
    spent: Optional[str] = None
    limit: Optional[str] = None


class ActivityStats(PulseModel):
    """Local Claude Code activity for one day"""
    activity_date: str
    today_messages: int = 0
    today_sessions: int = 0
    today_tool_calls: int = 0


class UsageSnapshot(PulseModel):
    """Successful fetch result"""
    error: Literal[False] = False
    timestamp: int  # epoch millis
    all_headers: Dict[str, str] = {}
    session: UtilizationWindow
    weekly: UtilizationWindow
    weekly_sonnet: UtilizationWindow
    overage: OverageWindow
    overall_status: OverallStatus
    subscription_type: str = "unknown"
    rate_limit_tier: str = "unknown"
    local_stats: Optional[ActivityStats] = None


class UsageError(PulseModel):
    """Terminal failure report"""
    error: Literal[True] = True
    error_type: str
    error_message: str


UsageResult = Union[UsageSnapshot, UsageError]
