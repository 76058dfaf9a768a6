"""Event names shared by the websocket namespaces, and the room based fan-out hub."""
from typing import Dict, Iterable, Set
import logging

logger = logging.getLogger(__name__)

# rooms
ADMIN_ROOM = "admins"
DRIVERS_ROOM = "drivers"
CUSTOMERS_ROOM = "customers"


def driver_room(driver_id) -> str:
    return f"driver:{driver_id}"


def customer_room(customer_id) -> str:
    return f"customer:{customer_id}"


def ride_room(ride_id) -> str:
    return f"ride:{ride_id}"


# admin namespace, outbound
STATS_UPDATE = "stats_update"
NEW_RIDE = "new_ride"
RIDE_CREATED = "ride_created"
RIDE_UPDATED = "ride_updated"
RIDE_STATUS_UPDATE = "ride_status_update"
DRIVER_STATUS_UPDATE = "driver_status_update"
DRIVER_LOCATION_UPDATE = "driver_location_update"
DRIVER_ONLINE = "driver_online"
DRIVER_OFFLINE = "driver_offline"
EMERGENCY_ALERT = "emergency_alert"
SYSTEM_ALERT = "system_alert"
APP_SETTINGS_UPDATED = "app_settings_updated"
ROOM_JOINED = "room_joined"
ERROR = "error"

# admin namespace, inbound
JOIN_ADMIN_ROOM = "join_admin_room"
ADMIN_BROADCAST_DRIVERS = "admin_broadcast_drivers"
ADMIN_BROADCAST_CUSTOMERS = "admin_broadcast_customers"
ADMIN_NOTIFY_DRIVER = "admin_notify_driver"
ADMIN_NOTIFY_CUSTOMER = "admin_notify_customer"
ADMIN_FORCE_DRIVER_OFFLINE = "admin_force_driver_offline"
ADMIN_CANCEL_RIDE = "admin_cancel_ride"
ADMIN_REQUEST_DRIVER_LOCATION = "admin_request_driver_location"
ADMIN_EMERGENCY_BROADCAST = "admin_emergency_broadcast"
ADMIN_MAINTENANCE_NOTIFICATION = "admin_maintenance_notification"
ADMIN_UPDATE_APP_SETTINGS = "admin_update_app_settings"
ADMIN_MONITOR_RIDE = "admin_monitor_ride"
ADMIN_STOP_MONITOR_RIDE = "admin_stop_monitor_ride"

# driver namespace
DRIVER_JOIN_ROOM = "driver:join-room"
DRIVER_LEAVE_ROOM = "driver:leave-room"
DRIVER_LOCATION = "driver:location-update"
DRIVER_STATUS = "driver:status-update"
RIDE_STATUS = "ride:status-update"
RIDE_NEW_REQUEST = "ride:new-request"
RIDE_CANCELLED_BY_CUSTOMER = "ride:cancelled-by-customer"
ADMIN_NOTIFICATION = "admin:notification"

# customer namespace
REQUEST_RIDE = "request_ride"
CANCEL_RIDE = "cancel_ride"
RIDE_REQUESTED = "ride_requested"
DRIVER_ASSIGNED = "driver_assigned"
RIDE_STARTED = "ride_started"
RIDE_COMPLETED = "ride_completed"
RIDE_CANCELLED = "ride_cancelled"
NOTIFICATION = "notification"

# customer-facing event for each ride status
CUSTOMER_STATUS_EVENTS = {
    "driver_assigned": DRIVER_ASSIGNED,
    "in_progress": RIDE_STARTED,
    "completed": RIDE_COMPLETED,
    "cancelled": RIDE_CANCELLED,
}


class EventHub:
    """Fan-out of `{"event", "data"}` frames to named rooms of websockets.

    A socket whose send fails is dropped from every room; the publisher
    never sees the failure.
    """

    def __init__(self):
        self.rooms: Dict[str, Set] = {}

    def join(self, room: str, ws):
        self.rooms.setdefault(room, set()).add(ws)

    def leave(self, room: str, ws):
        members = self.rooms.get(room)
        if members is None:
            return
        members.discard(ws)
        if not members:
            del self.rooms[room]

    def disconnect(self, ws):
        for room in list(self.rooms):
            self.leave(room, ws)

    def members(self, room: str) -> Set:
        return set(self.rooms.get(room, ()))

    def clear(self):
        self.rooms.clear()

    async def publish(self, room: str, event: str, data) -> int:
        return await self.publish_many([room], event, data)

    async def publish_many(self, rooms: Iterable[str], event: str, data) -> int:
        """Send one frame to every socket in `rooms`, each socket at most once."""
        rooms = list(rooms)
        targets = set()
        for room in rooms:
            targets |= self.members(room)
        sent = 0
        for ws in targets:
            try:
                await ws.send_json({"event": event, "data": data})
                sent += 1
            except Exception as e:
                logger.warning("publish_failed: event=%s error=%s", event, e)
                self.disconnect(ws)
        logger.debug("publish: event=%s rooms=%s sent=%d", event, list(rooms), sent)
        return sent


hub = EventHub()
