"""Bounded log of session lifecycle events, served at /startup/log."""
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List

MAX_EVENTS = 500


class SessionEventLog:
    def __init__(self, maxlen: int = MAX_EVENTS):
        self._events: Deque[Dict[str, Any]] = deque(maxlen=maxlen)

    def record(self, kind: str, message: str, **details) -> Dict[str, Any]:
        event = {"ts": datetime.now(timezone.utc).isoformat(), "kind": kind, "message": message}
        if details:
            event["details"] = details
        self._events.append(event)
        return event

    def recent(self, limit: int = 100) -> List[Dict[str, Any]]:
        if limit <= 0:
            return []
        return list(self._events)[-limit:]

    def clear(self):
        self._events.clear()


session_events = SessionEventLog()

__all__ = ["SessionEventLog", "session_events"]
