"""Today's local Claude Code activity

Sources, in order:
1. the precomputed daily activity cache (stats-cache.json)
2. a scan of today's session logs (*.jsonl), memoized for LIVE_STATS_TTL
3. the most recent cached day, even if stale
"""

import datetime
import json
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from settings import LIVE_STATS_TTL, PROJECTS_DIR, STATS_CACHE_FILE
from utils.memo import TimedMemo
from .models import ActivityStats

logger = logging.getLogger(__name__)


def _stats_from_cache_entry(entry: Dict[str, Any]) -> ActivityStats:
    return ActivityStats(
        activity_date=entry["date"],
        today_messages=entry.get("messageCount") or 0,
        today_sessions=entry.get("sessionCount") or 0,
        today_tool_calls=entry.get("toolCallCount") or 0,
    )


class LocalActivityAggregator:
    """Derives today's message, session and tool-call counts"""

    def __init__(
        self,
        stats_cache_file: Optional[str] = None,
        projects_dir: Optional[str] = None,
        memo: Optional[TimedMemo] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.stats_cache_path = Path(stats_cache_file if stats_cache_file else STATS_CACHE_FILE)
        self.projects_path = Path(projects_dir if projects_dir else PROJECTS_DIR)
        self.clock = clock
        self.memo = memo if memo is not None else TimedMemo(LIVE_STATS_TTL, clock=clock)

    def _today(self) -> str:
        now = datetime.datetime.fromtimestamp(self.clock(), tz=datetime.timezone.utc)
        return now.date().isoformat()

    def today(self) -> Optional[ActivityStats]:
        """Today's activity, a stale day as fallback, or None when nothing is known"""
        try:
            return self._resolve(self._today())
        except Exception as e:
            logger.debug(f"Local activity stats unavailable: {e}")
            return None

    def _resolve(self, today: str) -> Optional[ActivityStats]:
        daily = self._load_daily_activity()

        for entry in daily:
            if entry.get("date") == today:
                return _stats_from_cache_entry(entry)

        live = self.memo.get()
        if live is None or live.activity_date != today:
            live = self.scan_session_logs(today)
            if live is not None:
                self.memo.put(live)
        if live is not None:
            return live

        dated = [entry for entry in daily if isinstance(entry.get("date"), str)]
        if dated:
            latest = max(dated, key=lambda entry: entry["date"])
            return _stats_from_cache_entry(latest)

        return None

    def _load_daily_activity(self) -> List[Dict[str, Any]]:
        if not self.stats_cache_path.exists():
            return []
        try:
            stats = json.loads(self.stats_cache_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read stats cache {self.stats_cache_path}: {e}")
            return []
        if not isinstance(stats, dict):
            return []
        daily = stats.get("dailyActivity") or []
        return [entry for entry in daily if isinstance(entry, dict)]

    def _todays_log_files(self, today: str) -> List[Path]:
        files = []
        for path in self.projects_path.rglob("*.jsonl"):
            try:
                mtime = path.stat().st_mtime
            except OSError:
                continue
            mdate = datetime.datetime.fromtimestamp(mtime, tz=datetime.timezone.utc).date().isoformat()
            if mdate == today:
                files.append(path)
        return files

    def scan_session_logs(self, today: str) -> Optional[ActivityStats]:
        """Count today's records across session logs modified today

        Returns:
            ActivityStats, or None if the directory is missing or nothing was found
        """
        if not self.projects_path.is_dir():
            return None

        messages = 0
        tool_calls = 0
        session_ids = set()

        for path in self._todays_log_files(today):
            try:
                lines = path.read_text(encoding="utf-8", errors="replace").splitlines()
            except OSError as e:
                logger.debug(f"Skipping unreadable session log {path}: {e}")
                continue

            for line in lines:
                if not line.strip() or today not in line:
                    continue
                try:
                    record = json.loads(line)
                except json.JSONDecodeError:
                    continue
                if not isinstance(record, dict):
                    continue
                timestamp = record.get("timestamp")
                if not isinstance(timestamp, str) or not timestamp.startswith(today):
                    continue

                if record.get("sessionId"):
                    session_ids.add(record["sessionId"])

                if record.get("type") == "user":
                    messages += 1
                elif record.get("type") == "assistant":
                    message = record.get("message")
                    content = message.get("content") if isinstance(message, dict) else None
                    if isinstance(content, list):
                        tool_calls += sum(
                            1 for block in content
                            if isinstance(block, dict) and block.get("type") == "tool_use"
                        )

        if messages == 0 and tool_calls == 0 and not session_ids:
            return None

        return ActivityStats(
            activity_date=today,
            today_messages=messages,
            today_sessions=len(session_ids),
            today_tool_calls=tool_calls,
        )

    def invalidate(self):
        """Drop the memoized scan result"""
        self.memo.clear()
