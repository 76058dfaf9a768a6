"""Toast notifications shown by the admin panel."""
from datetime import datetime, timezone
from itertools import count
from typing import List, Optional
import time

DEFAULT_TYPE = "info"
DEFAULT_DURATION_MS = 5000

_ICONS = {
    "success": "CheckCircle",
    "error": "AlertCircle",
    "warning": "AlertTriangle",
}
_STYLES = {
    "success": "bg-green-50 border-green-200 text-green-800",
    "error": "bg-red-50 border-red-200 text-red-800",
    "warning": "bg-yellow-50 border-yellow-200 text-yellow-800",
}


def notify(message: str, title: Optional[str] = None, type: str = DEFAULT_TYPE,
           duration: Optional[int] = None) -> dict:
    payload = {"type": type, "title": title, "message": message}
    if duration is not None:
        payload["duration"] = duration
    return payload


def icon_for(type: Optional[str]) -> str:
    return _ICONS.get(type, "Info")


def styles_for(type: Optional[str]) -> str:
    return _STYLES.get(type, "bg-blue-50 border-blue-200 text-blue-800")


class NotificationManager:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._ids = count(1)
        self.notifications: List[dict] = []

    def add(self, notification: dict) -> dict:
        item = {
            "id": next(self._ids),
            "type": notification.get("type") or DEFAULT_TYPE,
            "title": notification.get("title"),
            "message": notification.get("message"),
            "duration": notification.get("duration") or DEFAULT_DURATION_MS,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "created": self._clock(),
        }
        self.notifications.append(item)
        return item

    def remove(self, notification_id: int):
        self.notifications = [n for n in self.notifications if n["id"] != notification_id]

    def expire(self, now: Optional[float] = None) -> List[dict]:
        """Drop notifications whose duration has elapsed; a negative duration never expires."""
        now = self._clock() if now is None else now
        expired = [
            n for n in self.notifications
            if n["duration"] > 0 and (now - n["created"]) * 1000 >= n["duration"]
        ]
        for n in expired:
            self.remove(n["id"])
        return expired
