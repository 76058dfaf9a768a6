"""Websocket endpoints for the admin, driver and customer namespaces.

Every frame in either direction is ``{"event": str, "data": object}``.
"""
from typing import Awaitable, Callable, Dict, Iterable
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from . import auth, events, lifecycle, models, schemas, services
from .events import hub
from .store import store

logger = logging.getLogger(__name__)

router = APIRouter()

Handler = Callable[[WebSocket, dict], Awaitable[None]]

_HANDLED_ERRORS = (services.ServiceError, lifecycle.InvalidTransition, lifecycle.InvalidStatus,
                   ValidationError, KeyError, TypeError)


async def _send(ws: WebSocket, event: str, data):
    await ws.send_json({"event": event, "data": data})


async def _serve(ws: WebSocket, rooms: Iterable[str], handlers: Dict[str, Handler], namespace: str):
    for room in rooms:
        hub.join(room, ws)
    try:
        while True:
            raw = await ws.receive_text()
            try:
                frame = json.loads(raw)
                event = frame["event"]
                data = frame.get("data") or {}
                if not isinstance(event, str) or not isinstance(data, dict):
                    raise TypeError("frame must carry a string event and object data")
            except (ValueError, KeyError, TypeError, AttributeError):
                await _send(ws, events.ERROR, {"message": "Malformed frame"})
                continue
            handler = handlers.get(event)
            if handler is None:
                await _send(ws, events.ERROR, {"message": f"Unknown event: {event}", "event": event})
                continue
            try:
                await handler(ws, data)
            except _HANDLED_ERRORS as e:
                message = getattr(e, "message", None) or str(e)
                logger.info("%s_event_rejected: event=%s error=%s", namespace, event, message)
                await _send(ws, events.ERROR, {"message": message, "event": event})
    except WebSocketDisconnect:
        logger.info("%s_disconnected", namespace)
    finally:
        hub.disconnect(ws)


# ---------------------------------------------------------------- admin

async def _admin_join(ws, data):
    hub.join(events.ADMIN_ROOM, ws)
    await _send(ws, events.ROOM_JOINED, {"room": events.ADMIN_ROOM})
    await _send(ws, events.STATS_UPDATE, services.compute_stats())


async def _admin_broadcast_drivers(ws, data):
    await services.broadcast_to_drivers(data["message"], data.get("title"), data.get("type", "info"))


async def _admin_broadcast_customers(ws, data):
    await services.broadcast_to_customers(data["message"], data.get("title"), data.get("type", "info"))


async def _admin_notify_driver(ws, data):
    await services.push_to_driver(data["driver_id"], data["message"], data.get("title"), data.get("type", "info"))


async def _admin_notify_customer(ws, data):
    await services.push_to_customer(data["customer_id"], data["message"], data.get("title"), data.get("type", "info"))


async def _admin_force_offline(ws, data):
    driver_id = data["driver_id"]
    # a suspended driver is already off the road
    if services.get_driver(driver_id)["status"] != models.DRIVER_SUSPENDED:
        await services.set_driver_status(driver_id, models.DRIVER_OFFLINE)
    await hub.publish(events.driver_room(driver_id), events.ADMIN_NOTIFICATION, {
        "type": "warning",
        "title": "You have been taken offline",
        "message": data.get("reason") or "An administrator set you offline.",
        "force_offline": True,
    })


async def _admin_cancel_ride(ws, data):
    await services.cancel_ride(data["ride_id"], data.get("reason"), cancelled_by="admin")


async def _admin_request_location(ws, data):
    driver_id = data["driver_id"]
    driver = services.get_driver(driver_id)
    loc = await services.get_driver_location(driver_id) or driver.get("location")
    await _send(ws, events.DRIVER_LOCATION_UPDATE, {"driver_id": driver_id, "location": loc})


async def _admin_emergency(ws, data):
    await hub.publish_many([events.ADMIN_ROOM, events.DRIVERS_ROOM, events.CUSTOMERS_ROOM], events.EMERGENCY_ALERT, {
        "message": data["message"],
        "location": data.get("location"),
        "severity": data.get("severity", "high"),
    })


async def _admin_maintenance(ws, data):
    await hub.publish_many([events.ADMIN_ROOM, events.DRIVERS_ROOM, events.CUSTOMERS_ROOM], events.SYSTEM_ALERT, {
        "type": "maintenance",
        "message": data.get("message") or "Scheduled maintenance",
        "start_time": data.get("start_time"),
        "duration": data.get("duration"),
        "affected_services": data.get("affected_services") or [],
    })


async def _admin_update_settings(ws, data):
    await services.update_app_settings(data.get("settings") or {})


async def _admin_monitor(ws, data):
    services.get_ride(data["ride_id"])
    hub.join(events.ride_room(data["ride_id"]), ws)


async def _admin_stop_monitor(ws, data):
    hub.leave(events.ride_room(data["ride_id"]), ws)


ADMIN_HANDLERS: Dict[str, Handler] = {
    events.JOIN_ADMIN_ROOM: _admin_join,
    events.ADMIN_BROADCAST_DRIVERS: _admin_broadcast_drivers,
    events.ADMIN_BROADCAST_CUSTOMERS: _admin_broadcast_customers,
    events.ADMIN_NOTIFY_DRIVER: _admin_notify_driver,
    events.ADMIN_NOTIFY_CUSTOMER: _admin_notify_customer,
    events.ADMIN_FORCE_DRIVER_OFFLINE: _admin_force_offline,
    events.ADMIN_CANCEL_RIDE: _admin_cancel_ride,
    events.ADMIN_REQUEST_DRIVER_LOCATION: _admin_request_location,
    events.ADMIN_EMERGENCY_BROADCAST: _admin_emergency,
    events.ADMIN_MAINTENANCE_NOTIFICATION: _admin_maintenance,
    events.ADMIN_UPDATE_APP_SETTINGS: _admin_update_settings,
    events.ADMIN_MONITOR_RIDE: _admin_monitor,
    events.ADMIN_STOP_MONITOR_RIDE: _admin_stop_monitor,
}


@router.websocket("/ws/admin")
async def admin_socket(websocket: WebSocket, token: str = ""):
    account = await auth.get_session(token)
    if account is None:
        await websocket.close(code=4401)
        return
    await websocket.accept()
    logger.info("admin_connected: email=%s", account["email"])
    await _serve(websocket, [events.ADMIN_ROOM], ADMIN_HANDLERS, "admin")


# ---------------------------------------------------------------- driver

def _driver_handlers(driver_id: str) -> Dict[str, Handler]:

    async def join_room(ws, data):
        hub.join(events.driver_room(data.get("driverId") or driver_id), ws)
        await _send(ws, events.ROOM_JOINED, {"room": events.driver_room(data.get("driverId") or driver_id)})

    async def leave_room(ws, data):
        hub.leave(events.driver_room(data.get("driverId") or driver_id), ws)

    async def location_update(ws, data):
        loc = schemas.LocationUpdate(**data["location"])
        await services.update_driver_location(driver_id, loc.lat, loc.lng, loc.heading, loc.speed)

    async def status_update(ws, data):
        status = data.get("status")
        if status is None:
            status = models.DRIVER_ONLINE if data.get("isOnline") else models.DRIVER_OFFLINE
        await services.set_driver_status(driver_id, status, data.get("location"))

    async def ride_status(ws, data):
        ride = services.get_ride(data["rideId"])
        if ride.get("driver_id") != driver_id:
            raise services.Forbidden("Ride is not assigned to this driver")
        await services.update_ride_status(data["rideId"], data["status"], data.get("location"))

    return {
        events.DRIVER_JOIN_ROOM: join_room,
        events.DRIVER_LEAVE_ROOM: leave_room,
        events.DRIVER_LOCATION: location_update,
        events.DRIVER_STATUS: status_update,
        events.RIDE_STATUS: ride_status,
    }


@router.websocket("/ws/driver")
async def driver_socket(websocket: WebSocket, driver_id: str = ""):
    if driver_id not in store.drivers:
        await websocket.close(code=4404)
        return
    await websocket.accept()
    logger.info("driver_connected: driver=%s", driver_id)
    rooms = [events.DRIVERS_ROOM, events.driver_room(driver_id)]
    await _serve(websocket, rooms, _driver_handlers(driver_id), "driver")


# ---------------------------------------------------------------- customer

def _customer_handlers(customer_id: str) -> Dict[str, Handler]:

    async def request_ride(ws, data):
        req = schemas.RideRequest(**{**data, "customer_id": customer_id})
        ride = await services.request_ride(
            customer_id, req.pickup.model_dump(), req.destination.model_dump(),
            req.ride_type, req.payment_method, req.notes,
        )
        await _send(ws, events.RIDE_REQUESTED, ride)

    async def cancel_ride(ws, data):
        ride = services.get_ride(data["ride_id"])
        if ride["customer"]["id"] != customer_id:
            raise services.Forbidden("Ride belongs to another customer")
        await services.cancel_ride(data["ride_id"], data.get("reason"), cancelled_by="customer")

    return {
        events.REQUEST_RIDE: request_ride,
        events.CANCEL_RIDE: cancel_ride,
    }


@router.websocket("/ws/customer")
async def customer_socket(websocket: WebSocket, customer_id: str = ""):
    if customer_id not in store.customers:
        await websocket.close(code=4404)
        return
    await websocket.accept()
    logger.info("customer_connected: customer=%s", customer_id)
    rooms = [events.CUSTOMERS_ROOM, events.customer_room(customer_id)]
    await _serve(websocket, rooms, _customer_handlers(customer_id), "customer")
