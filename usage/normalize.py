"""Conversions from the raw usage API body to the display model"""

import datetime
from typing import Any, Dict, Optional

from .models import OverallStatus

WARNING_PERCENT = 80
RATE_LIMITED_PERCENT = 100


def percent_to_ratio(value: Any) -> float:
    """Convert a 0-100 percentage to a 0-1 ratio (missing -> 0)"""
    return float(value or 0) / 100


def iso_to_epoch(value: Any) -> Optional[int]:
    """Convert an ISO-8601 timestamp to epoch seconds

    Returns:
        Epoch seconds, or None if the value is missing or unparseable
    """
    if not value or not isinstance(value, str):
        return None
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        parsed = datetime.datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return int(parsed.timestamp())


def next_month_start(now: datetime.datetime) -> int:
    """First instant of the next calendar month in UTC, as epoch seconds"""
    now = now.astimezone(datetime.timezone.utc)
    if now.month == 12:
        start = datetime.datetime(now.year + 1, 1, 1, tzinfo=datetime.timezone.utc)
    else:
        start = datetime.datetime(now.year, now.month + 1, 1, tzinfo=datetime.timezone.utc)
    return int(start.timestamp())


def derive_overall_status(usage_data: Dict[str, Any]) -> OverallStatus:
    """Classify overall status from the raw 0-100 session and weekly values"""
    max_util = max(
        (usage_data.get("five_hour") or {}).get("utilization") or 0,
        (usage_data.get("seven_day") or {}).get("utilization") or 0,
    )
    if max_util >= RATE_LIMITED_PERCENT:
        return OverallStatus.RATE_LIMITED
    if max_util >= WARNING_PERCENT:
        return OverallStatus.WARNING
    return OverallStatus.ACTIVE


def format_credits(value: Any) -> Optional[str]:
    """Credits are reported in cents; format as a two-decimal amount"""
    if value is None:
        return None
    return f"{float(value) / 100:.2f}"


def build_raw_fields(usage_data: Dict[str, Any]) -> Dict[str, str]:
    """Flatten the raw body into name -> string pairs for diagnostics"""
    raw: Dict[str, str] = {}
    for key in ("five_hour", "seven_day", "seven_day_sonnet"):
        window = usage_data.get(key) or {}
        if window.get("utilization") is not None:
            raw[f"{key}.utilization"] = f"{window['utilization']}%"
            raw[f"{key}.resets_at"] = window.get("resets_at") or ""

    extra = usage_data.get("extra_usage") or {}
    if extra.get("is_enabled") is not None:
        raw["extra_usage.is_enabled"] = str(extra["is_enabled"]).lower()
        raw["extra_usage.utilization"] = f"{extra.get('utilization') or 0}%"
        raw["extra_usage.used_credits"] = str(extra.get("used_credits") or 0)
        raw["extra_usage.monthly_limit"] = str(extra.get("monthly_limit") or 0)
    return raw
