"""Client view state fed by socket events.

Each container holds what one screen renders and exposes a ``bind`` that
subscribes its handlers on a :class:`~ridelink.socket_client.SocketService`.
List updates are keyed by ``id`` and drop payloads older than what is held.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional
import logging
import random

from . import events, lifecycle, models
from . import storage as keys

logger = logging.getLogger(__name__)

RECENT_RIDES_LIMIT = 10
DEFAULT_DRIVER_LOCATION = {"lat": 33.6844, "lng": 73.0479}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def merge_by_id(items: Iterable[dict], incoming: dict) -> List[dict]:
    """Replace the entry with ``incoming["id"]``; unknown ids and stale payloads leave the list as is."""
    items = list(items)
    for i, item in enumerate(items):
        if item.get("id") == incoming.get("id"):
            if lifecycle.is_stale(item, incoming):
                logger.debug("stale_update_ignored: id=%s", incoming.get("id"))
                return items
            items[i] = incoming
            return items
    return items


def upsert_by_id(items: Iterable[dict], incoming: dict) -> List[dict]:
    """Like merge_by_id, but an unknown id is prepended."""
    items = list(items)
    if any(item.get("id") == incoming.get("id") for item in items):
        return merge_by_id(items, incoming)
    return [incoming] + items


def patch_by_id(items: Iterable[dict], id, **fields) -> List[dict]:
    return [{**item, **fields} if item.get("id") == id else item for item in items]


def remove_by_id(items: Iterable[dict], id) -> List[dict]:
    return [item for item in items if item.get("id") != id]


class RideBoard:
    """Admin ride management list."""

    def __init__(self, rides: Optional[List[dict]] = None):
        self.rides: List[dict] = list(rides or [])
        self.selected: Optional[dict] = None

    def select(self, ride_id: str):
        self.selected = next((r for r in self.rides if r.get("id") == ride_id), None)

    def on_ride_created(self, ride: dict):
        self.rides = [ride] + remove_by_id(self.rides, ride.get("id"))

    def on_ride_updated(self, ride: dict):
        self.rides = merge_by_id(self.rides, ride)
        if self.selected and self.selected.get("id") == ride.get("id") \
                and not lifecycle.is_stale(self.selected, ride):
            self.selected = ride

    def on_driver_location(self, data: dict):
        driver_id = data.get("driver_id")
        self.rides = [
            {**r, "driver_location": data.get("location")} if r.get("driver_id") == driver_id else r
            for r in self.rides
        ]

    def bind(self, socket):
        socket.on(events.RIDE_CREATED, self.on_ride_created)
        socket.on(events.RIDE_UPDATED, self.on_ride_updated)
        socket.on(events.DRIVER_LOCATION_UPDATE, self.on_driver_location)
        return self


class DashboardState:
    def __init__(self, stats: Optional[dict] = None, recent_rides: Optional[List[dict]] = None):
        self.stats = dict(stats or {})
        self.recent_rides: List[dict] = list(recent_rides or [])

    def on_stats_update(self, stats: dict):
        self.stats = {**self.stats, **(stats or {})}

    def on_new_ride(self, ride: dict):
        self.recent_rides = ([ride] + remove_by_id(self.recent_rides, ride.get("id")))[:RECENT_RIDES_LIMIT]

    def on_ride_status_update(self, ride: dict):
        self.recent_rides = merge_by_id(self.recent_rides, ride)

    def bind(self, socket):
        socket.on(events.STATS_UPDATE, self.on_stats_update)
        socket.on(events.NEW_RIDE, self.on_new_ride)
        socket.on(events.RIDE_STATUS_UPDATE, self.on_ride_status_update)
        return self


class DriverBoard:
    """Admin driver management list."""

    def __init__(self, drivers: Optional[List[dict]] = None):
        self.drivers: List[dict] = list(drivers or [])

    def on_driver_status_update(self, data: dict):
        fields = {"status": data.get("status")}
        if data.get("location") is not None:
            fields["location"] = data["location"]
        self.drivers = patch_by_id(self.drivers, data.get("driver_id") or data.get("id"), **fields)

    def bind(self, socket):
        socket.on(events.DRIVER_STATUS_UPDATE, self.on_driver_status_update)
        return self


class DriverRideState:
    """Driver app: incoming requests, the ride in progress and finished rides."""

    def __init__(self, driver_id: Optional[str] = None):
        self.driver_id = driver_id
        self.pending_requests: List[dict] = []
        self.active_ride: Optional[dict] = None
        self.history: List[dict] = []

    def add_pending_request(self, ride: dict):
        if not any(r.get("id") == ride.get("id") for r in self.pending_requests):
            self.pending_requests.append(ride)

    def remove_pending_request(self, ride_id: str):
        self.pending_requests = remove_by_id(self.pending_requests, ride_id)

    def accept_ride(self, ride: dict) -> dict:
        self.remove_pending_request(ride.get("id"))
        now = _now_iso()
        self.active_ride = lifecycle.apply_transition(
            ride, models.RIDE_DRIVER_ASSIGNED, at=now, accepted_at=now, driver_id=self.driver_id,
        )
        logger.info("ride_accepted: ride=%s", ride.get("id"))
        return self.active_ride

    def decline_ride(self, ride_id: str):
        self.remove_pending_request(ride_id)
        logger.info("ride_declined: ride=%s", ride_id)

    def _is_active(self, ride_id: str) -> bool:
        return self.active_ride is not None and self.active_ride.get("id") == ride_id

    def _finish(self, ride: dict) -> dict:
        self.history = [ride] + remove_by_id(self.history, ride.get("id"))
        self.active_ride = None
        return ride

    def start_ride(self, ride_id: str) -> Optional[dict]:
        if not self._is_active(ride_id):
            return None
        self.active_ride = lifecycle.apply_transition(self.active_ride, models.RIDE_IN_PROGRESS)
        return self.active_ride

    def complete_ride(self, ride_id: str, **completion) -> Optional[dict]:
        if not self._is_active(ride_id):
            return None
        return self._finish(lifecycle.apply_transition(self.active_ride, models.RIDE_COMPLETED, **completion))

    def cancel_ride(self, ride_id: str, reason: str = "") -> Optional[dict]:
        if not self._is_active(ride_id):
            return None
        return self._finish(lifecycle.apply_transition(
            self.active_ride, models.RIDE_CANCELLED, cancellation_reason=reason,
        ))

    def update_ride_status(self, ride_id: str, status: str, **fields) -> Optional[dict]:
        if not self._is_active(ride_id):
            return None
        ride = lifecycle.apply_transition(self.active_ride, status, **fields)
        if lifecycle.is_terminal(ride["status"]):
            return self._finish(ride)
        self.active_ride = ride
        return ride

    def on_new_request(self, data: dict):
        ride = {k: v for k, v in data.items() if k != "rideId"}
        ride.setdefault("id", data.get("rideId"))
        ride.setdefault("status", models.RIDE_PENDING)
        self.add_pending_request(ride)

    def on_cancelled_by_customer(self, data: dict):
        ride_id = data.get("rideId") or data.get("id")
        self.remove_pending_request(ride_id)
        if self._is_active(ride_id):
            self.cancel_ride(ride_id, data.get("reason") or "Cancelled by customer")

    def on_ride_status(self, data: dict):
        ride = data.get("ride") or {"id": data.get("rideId"), "status": data.get("status"), "version": data.get("version")}
        if self._is_active(ride.get("id")) and not lifecycle.is_stale(self.active_ride, ride):
            if lifecycle.is_terminal(ride["status"]):
                self._finish(ride)
            else:
                self.active_ride = ride

    def bind(self, socket):
        socket.on(events.RIDE_NEW_REQUEST, self.on_new_request)
        socket.on(events.RIDE_CANCELLED_BY_CUSTOMER, self.on_cancelled_by_customer)
        socket.on(events.RIDE_STATUS, self.on_ride_status)
        return self


class BookingState:
    """Customer app booking flow; bookings are local until the platform confirms them."""

    def __init__(self):
        self.current_booking: Optional[dict] = None
        self.history: List[dict] = []
        self.active_ride: Optional[dict] = None

    def create_booking(self, **booking) -> dict:
        booking = {
            "id": "PR" + str(random.randint(0, 9999)),
            **booking,
            "status": models.RIDE_PENDING,
            "created_at": _now_iso(),
        }
        self.current_booking = booking
        self.history = [booking] + self.history
        return booking

    def update_booking_status(self, booking_id: str, status: str):
        status = lifecycle.normalize_status(status)
        if self.current_booking and self.current_booking.get("id") == booking_id:
            self.current_booking = {**self.current_booking, "status": status}
        self.history = patch_by_id(self.history, booking_id, status=status)

    def start_ride(self, booking: dict):
        self.active_ride = booking
        self.update_booking_status(booking["id"], models.RIDE_IN_PROGRESS)

    def complete_ride(self, booking_id: str):
        self.active_ride = None
        self.update_booking_status(booking_id, models.RIDE_COMPLETED)
        self.current_booking = None

    def cancel_booking(self, booking_id: str):
        if self.current_booking and self.current_booking.get("id") == booking_id:
            self.current_booking = None
        self.update_booking_status(booking_id, models.RIDE_CANCELLED)
        self.active_ride = None


class DriverProfileState:
    def __init__(self, storage, driver: Optional[dict] = None):
        self.storage = storage
        self.driver = driver if driver is not None else storage.get_json(keys.DRIVER_DATA, {})
        self.location = dict(DEFAULT_DRIVER_LOCATION)
        self.is_online = False

    def update_driver(self, **updates) -> dict:
        self.driver = {**(self.driver or {}), **updates}
        self.storage.set_json(keys.DRIVER_DATA, self.driver)
        return self.driver

    def update_status(self, status: str) -> dict:
        self.is_online = status == models.DRIVER_ONLINE
        logger.info("driver_status_changed: status=%s", status)
        return self.update_driver(status=status)

    def update_location(self, location: dict):
        self.location = dict(location)
