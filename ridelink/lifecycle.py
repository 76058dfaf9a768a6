"""Ride lifecycle: pending -> driver_assigned -> in_progress -> completed.

``cancelled`` is reachable from every non-terminal state. Every applied
change bumps ``version`` so that listeners can discard out-of-order updates.
"""
from datetime import datetime, timezone
from typing import Optional
import copy

from . import models


class InvalidStatus(ValueError):
    def __init__(self, status):
        super().__init__(f"unknown ride status: {status!r}")
        self.status = status


class InvalidTransition(ValueError):
    def __init__(self, current: str, requested: str):
        super().__init__(f"cannot move ride from {current} to {requested}")
        self.current = current
        self.requested = requested


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_status(status: str) -> str:
    if not isinstance(status, str):
        raise InvalidStatus(status)
    key = status.strip().lower()
    if key in models.RIDE_TRANSITIONS:
        return key
    if key in models.RIDE_STATUS_ALIASES:
        return models.RIDE_STATUS_ALIASES[key]
    raise InvalidStatus(status)


def is_terminal(status: str) -> bool:
    try:
        return normalize_status(status) in models.TERMINAL_RIDE_STATUSES
    except InvalidStatus:
        return False


def can_transition(current: str, new: str) -> bool:
    try:
        cur = normalize_status(current)
        nxt = normalize_status(new)
    except InvalidStatus:
        return False
    return nxt in models.RIDE_TRANSITIONS[cur]


def apply_transition(ride: dict, new_status: str, *, at: Optional[str] = None, location=None, **extra) -> dict:
    """Return a copy of `ride` moved to `new_status`.

    Re-applying the current status returns the ride untouched.
    """
    current = normalize_status(ride.get("status", models.RIDE_PENDING))
    target = normalize_status(new_status)
    if target == current:
        return ride
    if target not in models.RIDE_TRANSITIONS[current]:
        raise InvalidTransition(current, target)

    stamp = at or _now_iso()
    updated = copy.deepcopy(ride)
    updated.update(extra)
    updated["status"] = target
    ts_field = models.RIDE_STATUS_TIMESTAMPS.get(target)
    if ts_field:
        updated[ts_field] = stamp
    timeline = list(updated.get("timeline") or [])
    timeline.append({"status": target, "timestamp": stamp, "location": location})
    updated["timeline"] = timeline
    updated["version"] = int(updated.get("version") or 0) + 1
    updated["updated_at"] = stamp
    return updated


def record_pickup_step(ride: dict, step: str, *, at: Optional[str] = None, location=None) -> dict:
    """Log ``driver_arriving``/``driver_arrived`` on an assigned ride without changing its status."""
    if step not in models.RIDE_PICKUP_STEPS:
        raise InvalidStatus(step)
    current = normalize_status(ride.get("status", models.RIDE_PENDING))
    if current != models.RIDE_DRIVER_ASSIGNED:
        raise InvalidTransition(current, step)
    timeline = list(ride.get("timeline") or [])
    if timeline and timeline[-1].get("status") == step:
        return ride

    stamp = at or _now_iso()
    updated = copy.deepcopy(ride)
    ts_field = models.RIDE_PICKUP_STEPS[step]
    if ts_field:
        updated[ts_field] = stamp
    timeline.append({"status": step, "timestamp": stamp, "location": location})
    updated["timeline"] = timeline
    updated["version"] = int(updated.get("version") or 0) + 1
    updated["updated_at"] = stamp
    return updated


def _parse_ts(value) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def is_stale(current: dict, incoming: dict) -> bool:
    """True when `incoming` is older than what the listener already holds."""
    cur_v = current.get("version")
    new_v = incoming.get("version")
    if cur_v is not None and new_v is not None:
        return int(new_v) < int(cur_v)
    cur_ts = _parse_ts(current.get("updated_at"))
    new_ts = _parse_ts(incoming.get("updated_at"))
    if cur_ts is not None and new_ts is not None:
        return new_ts < cur_ts
    return False
