"""Client side of the realtime channel.

``SocketService`` keeps a listener registry and speaks ``{"event", "data"}``
frames over any transport that has ``send_json`` and ``receive_json``
(a Starlette test websocket session works as-is).
"""
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
import logging

from .config import settings
from . import events

logger = logging.getLogger(__name__)

ADMIN = "admin"
DRIVER = "driver"
CUSTOMER = "customer"

Listener = Callable[[Any], None]


class SocketService:
    def __init__(self, namespace: str = ADMIN, transport=None, driver_id: Optional[str] = None):
        self.namespace = namespace
        self.driver_id = driver_id
        self.transport = None
        self.connected = False
        self.reconnect_attempts = 0
        self.max_reconnect_attempts = settings.SOCKET_RECONNECT_ATTEMPTS
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        if transport is not None:
            self.attach(transport)

    # ------------------------------------------------------------ listeners

    def on(self, event: str, listener: Listener):
        self._listeners[event].append(listener)
        return listener

    def off(self, event: str, listener: Optional[Listener] = None):
        if listener is None:
            self._listeners.pop(event, None)
        elif listener in self._listeners.get(event, []):
            self._listeners[event].remove(listener)

    def dispatch(self, event: str, data=None) -> int:
        """Call every listener for ``event``; returns how many ran without raising."""
        ran = 0
        for listener in list(self._listeners.get(event, [])):
            try:
                listener(data)
                ran += 1
            except Exception:
                logger.exception("socket_listener_failed: event=%s", event)
        return ran

    # ------------------------------------------------------------ connection

    def attach(self, transport):
        self.transport = transport
        self.connected = True
        self.reconnect_attempts = 0
        logger.info("socket_connected: namespace=%s", self.namespace)
        if self.namespace == ADMIN:
            self.emit(events.JOIN_ADMIN_ROOM)
        elif self.namespace == DRIVER and self.driver_id:
            self.join_driver_room(self.driver_id)
        self.dispatch("connect")

    def detach(self, reason: str = "client disconnect"):
        if not self.connected:
            return
        self.connected = False
        self.transport = None
        logger.info("socket_disconnected: namespace=%s reason=%s", self.namespace, reason)
        self.dispatch("disconnect", reason)

    def connection_failed(self, error=None) -> bool:
        """Record a failed connect; returns False once attempts are exhausted."""
        self.connected = False
        self.reconnect_attempts += 1
        logger.warning("socket_connect_error: namespace=%s attempt=%s error=%s",
                       self.namespace, self.reconnect_attempts, error)
        if self.reconnect_attempts >= self.max_reconnect_attempts:
            self.dispatch("reconnect_failed", self.reconnect_attempts)
            return False
        return True

    def emit(self, event: str, data=None) -> bool:
        if not self.connected or self.transport is None:
            return False
        self.transport.send_json({"event": event, "data": data if data is not None else {}})
        return True

    def pump(self):
        """Read one frame and dispatch it; returns ``(event, data)``."""
        frame = self.transport.receive_json()
        event = frame.get("event")
        data = frame.get("data")
        self.dispatch(event, data)
        return event, data

    # ------------------------------------------------------------ admin actions

    def broadcast_to_drivers(self, message: str, title: Optional[str] = None, type: str = "info"):
        return self.emit(events.ADMIN_BROADCAST_DRIVERS, {"message": message, "title": title, "type": type})

    def broadcast_to_customers(self, message: str, title: Optional[str] = None, type: str = "info"):
        return self.emit(events.ADMIN_BROADCAST_CUSTOMERS, {"message": message, "title": title, "type": type})

    def notify_driver(self, driver_id: str, notification: dict):
        return self.emit(events.ADMIN_NOTIFY_DRIVER, {"driver_id": driver_id, **notification})

    def notify_customer(self, customer_id: str, notification: dict):
        return self.emit(events.ADMIN_NOTIFY_CUSTOMER, {"customer_id": customer_id, **notification})

    def force_driver_offline(self, driver_id: str, reason: Optional[str] = None):
        return self.emit(events.ADMIN_FORCE_DRIVER_OFFLINE, {"driver_id": driver_id, "reason": reason})

    def cancel_ride(self, ride_id: str, reason: Optional[str] = None):
        return self.emit(events.ADMIN_CANCEL_RIDE, {"ride_id": ride_id, "reason": reason})

    def request_driver_location(self, driver_id: str):
        return self.emit(events.ADMIN_REQUEST_DRIVER_LOCATION, {"driver_id": driver_id})

    def emergency_broadcast(self, message: str, severity: str = "high"):
        return self.emit(events.ADMIN_EMERGENCY_BROADCAST, {
            "message": message,
            "severity": severity,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

    def maintenance_notification(self, start_time: str, duration, affected_services=None,
                                 message: Optional[str] = None):
        return self.emit(events.ADMIN_MAINTENANCE_NOTIFICATION, {
            "start_time": start_time,
            "duration": duration,
            "affected_services": list(affected_services or []),
            "message": message,
        })

    def update_app_settings(self, settings_type: str, values: dict):
        return self.emit(events.ADMIN_UPDATE_APP_SETTINGS, {"type": settings_type, "settings": values})

    def monitor_ride(self, ride_id: str):
        return self.emit(events.ADMIN_MONITOR_RIDE, {"ride_id": ride_id})

    def stop_monitoring_ride(self, ride_id: str):
        return self.emit(events.ADMIN_STOP_MONITOR_RIDE, {"ride_id": ride_id})

    # ------------------------------------------------------------ driver actions

    def join_driver_room(self, driver_id: str):
        return self.emit(events.DRIVER_JOIN_ROOM, {"driverId": driver_id})

    def leave_driver_room(self, driver_id: str):
        return self.emit(events.DRIVER_LEAVE_ROOM, {"driverId": driver_id})

    def emit_driver_location(self, location: dict):
        return self.emit(events.DRIVER_LOCATION, {"driverId": self.driver_id, "location": location})

    def emit_driver_status(self, is_online: bool, location: Optional[dict] = None):
        return self.emit(events.DRIVER_STATUS, {
            "driverId": self.driver_id,
            "isOnline": is_online,
            "location": location,
        })

    def emit_ride_update(self, ride_id: str, status: str, location: Optional[dict] = None):
        return self.emit(events.RIDE_STATUS, {"rideId": ride_id, "status": status, "location": location})

    # ------------------------------------------------------------ customer actions

    def request_ride(self, pickup: dict, destination: dict, ride_type: str = "standard",
                     payment_method: str = "cash"):
        return self.emit(events.REQUEST_RIDE, {
            "pickup": pickup,
            "destination": destination,
            "ride_type": ride_type,
            "payment_method": payment_method,
        })

    def cancel_booking(self, ride_id: str, reason: Optional[str] = None):
        return self.emit(events.CANCEL_RIDE, {"ride_id": ride_id, "reason": reason})
