"""
TRVL - Analytics Event Log.

File-backed analytics sink for development and audits.

Features:
- One JSONL file per session (easy to parse, tail -f friendly)
- Smart truncation of large property values
- Implements the onboarding AnalyticsSink contract: emit(event, properties)

Usage:
    from trvl.observability.event_log import EventLog

    log = EventLog(log_dir=Path("analytics_logs"))
    log.emit("onboarding_started", {"user_id": "u-1", "is_returning": False})
    log.close()

Log format (JSONL):
    {"ts": "2026-01-01T17:30:00+00:00", "event": "onboarding_started", "properties": {...}}
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


# =============================================================================
# Configuration
# =============================================================================

DEFAULT_LOG_DIR = Path("analytics_logs")

# Max string length before truncation
MAX_STRING_LEN = 200

# Max list items to show
MAX_LIST_ITEMS = 10

# Max dict keys to show
MAX_DICT_KEYS = 20


# =============================================================================
# Smart Truncation
# =============================================================================


def _truncate_value(value: Any, depth: int = 0) -> Any:
    """
    Smart truncation of values for logging.

    - Strings > MAX_STRING_LEN get truncated with "..."
    - Lists > MAX_LIST_ITEMS show first N + count
    - Dicts > MAX_DICT_KEYS show first N keys + count
    - Nested structures respect depth limit
    """
    if depth > 3:
        return "<nested>"

    if value is None:
        return None

    if isinstance(value, str):
        if len(value) > MAX_STRING_LEN:
            return value[:MAX_STRING_LEN] + f"... ({len(value)} chars)"
        return value

    if isinstance(value, (int, float, bool)):
        return value

    if isinstance(value, (list, tuple)):
        if len(value) <= MAX_LIST_ITEMS:
            return [_truncate_value(v, depth + 1) for v in value]
        truncated = [_truncate_value(v, depth + 1) for v in value[:MAX_LIST_ITEMS]]
        return truncated + [f"... +{len(value) - MAX_LIST_ITEMS} more"]

    if isinstance(value, dict):
        result = {}
        for k in list(value.keys())[:MAX_DICT_KEYS]:
            result[k] = _truncate_value(value[k], depth + 1)
        if len(value) > MAX_DICT_KEYS:
            result["_truncated"] = f"+{len(value) - MAX_DICT_KEYS} keys"
        return result

    if isinstance(value, datetime):
        return value.isoformat()

    # Enums and other objects
    if hasattr(value, "value") and isinstance(value.value, str):
        return value.value
    if hasattr(value, "model_dump"):
        return _truncate_value(value.model_dump(), depth)

    return str(value)[:MAX_STRING_LEN]


# =============================================================================
# Event Log
# =============================================================================


class EventLog:
    """
    Per-session analytics log that writes JSONL to a file.

    Disabled instances accept events and drop them.
    """

    def __init__(
        self,
        log_dir: Path | None = None,
        session_id: str | None = None,
        enabled: bool = True,
    ):
        self.enabled = enabled
        self.event_count = 0

        if not enabled:
            self.log_file = None
            self.log_path = None
            return

        log_dir = log_dir or DEFAULT_LOG_DIR
        log_dir.mkdir(parents=True, exist_ok=True)

        if session_id is None:
            session_id = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")

        self.session_id = session_id
        self.log_path = log_dir / f"events_{session_id}.jsonl"
        self.log_file = open(self.log_path, "a", encoding="utf-8")

    def emit(self, event: str, properties: dict[str, Any]) -> None:
        """Append one analytics event."""
        if not self.enabled or self.log_file is None:
            return

        entry = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "event": event,
            "properties": _truncate_value(properties),
        }
        self.log_file.write(json.dumps(entry, default=str) + "\n")
        self.log_file.flush()
        self.event_count += 1

    def close(self) -> str | None:
        """Close the log file. Returns log path."""
        if self.log_file:
            self.log_file.close()
            self.log_file = None
            return str(self.log_path)
        return None
