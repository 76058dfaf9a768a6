from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, List, Tuple
import csv
import io

from .config import settings
from .helpers import haversine_km
from . import cache, lifecycle, mock_data, models
from .events import hub
from .store import store
from . import events
import logging

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(ServiceError):
    status_code = 400


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404


class Conflict(ServiceError):
    status_code = 409


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _now_iso() -> str:
    return _now().isoformat()


def _parse_ts(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def estimate_fare(pickup: dict, destination: dict, ride_type: str = "standard") -> Tuple[float, float]:
    """Return (fare, distance_km) for a trip between two `{lat, lng}` points."""
    distance = round(haversine_km((pickup["lat"], pickup["lng"]), (destination["lat"], destination["lng"])), 1)
    rate = models.FARE_RATES.get(ride_type or "standard", models.FARE_RATES["standard"])
    fare = max(settings.MIN_FARE, settings.BASE_FARE + distance * rate)
    return round(fare, 2), distance


def _paginate(items: List[dict], page: int, limit: int) -> Tuple[List[dict], dict]:
    page = max(1, page)
    limit = max(1, limit)
    start = (page - 1) * limit
    total = len(items)
    return items[start:start + limit], {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": (total + limit - 1) // limit,
    }


def _matches(record: dict, search: Optional[str], *fields: str) -> bool:
    if not search:
        return True
    needle = search.lower()
    for field in fields:
        value = record
        for part in field.split("."):
            value = value.get(part) if isinstance(value, dict) else None
        if value is not None and needle in str(value).lower():
            return True
    return False


def _to_csv(rows: List[dict], columns: List[str]) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=columns, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return buf.getvalue()


# ---------------------------------------------------------------------------
# stats

def compute_stats() -> dict:
    rides = list(store.rides.values())
    drivers = list(store.drivers.values())
    customers = list(store.customers.values())
    completed = [r for r in rides if r["status"] == models.RIDE_COMPLETED]
    cancelled = [r for r in rides if r["status"] == models.RIDE_CANCELLED]
    active = [r for r in rides if r["status"] in (models.RIDE_DRIVER_ASSIGNED, models.RIDE_IN_PROGRESS)]
    finished = len(completed) + len(cancelled)
    ratings = [d["rating"] for d in drivers if d.get("rating")]
    return {
        "totalRides": len(rides),
        "activeRides": len(active),
        "pendingRides": sum(1 for r in rides if r["status"] == models.RIDE_PENDING),
        "completedRides": len(completed),
        "cancelledRides": len(cancelled),
        "totalDrivers": len(drivers),
        "onlineDrivers": sum(1 for d in drivers if d["status"] == models.DRIVER_ONLINE),
        "busyDrivers": sum(1 for d in drivers if d["status"] == models.DRIVER_BUSY),
        "totalCustomers": len(customers),
        "activeCustomers": sum(1 for c in customers if c["status"] == models.CUSTOMER_ACTIVE),
        "totalRevenue": round(sum(r.get("fare") or 0 for r in completed), 2),
        "totalCommission": round(sum(r.get("commission") or 0 for r in completed), 2),
        "completionRate": round(len(completed) / finished * 100, 1) if finished else 0.0,
        "cancelRate": round(len(cancelled) / finished * 100, 1) if finished else 0.0,
        "averageRating": round(sum(ratings) / len(ratings), 2) if ratings else 0.0,
    }


# ---------------------------------------------------------------------------
# driver location cache

async def invalidate_driver_cache(driver_id: str):
    """Remove driver from the location hash and the live set."""
    await cache.redis_client.delete(cache.driver_key(driver_id))
    await cache.redis_client.srem(cache.LIVE_DRIVERS_KEY, driver_id)
    logger.info("cache_invalidated: driver=%s", driver_id)


async def cache_driver_location(driver_id: str, lat: float, lng: float, heading=None, speed=None) -> dict:
    ts = _now().timestamp()
    mapping = {"lat": lat, "lng": lng, "timestamp": ts}
    if heading is not None:
        mapping["heading"] = heading
    if speed is not None:
        mapping["speed"] = speed
    key = cache.driver_key(driver_id)
    await cache.redis_client.hset(key, mapping=mapping)
    await cache.redis_client.expire(key, settings.LOCATION_TTL_SEC)
    await cache.redis_client.sadd(cache.LIVE_DRIVERS_KEY, driver_id)
    logger.debug("cache_driver_location: driver=%s lat=%s lng=%s", driver_id, lat, lng)
    return {"lat": lat, "lng": lng, "timestamp": ts}


async def get_driver_location(driver_id: str, max_age_sec: Optional[int] = None) -> Optional[dict]:
    """Cached `{lat, lng, timestamp}` for a driver, or None if missing or stale."""
    max_age_sec = max_age_sec or settings.LOCATION_TTL_SEC
    try:
        data = await cache.redis_client.hgetall(cache.driver_key(driver_id))
    except Exception as e:
        logger.warning("get_driver_location: driver=%s redis error: %s", driver_id, e)
        return None
    if not data:
        return None
    try:
        if "timestamp" in data:
            timestamp = float(data["timestamp"])
            age = _now().timestamp() - timestamp
            if age > max_age_sec:
                logger.debug("get_driver_location: driver=%s location stale (age=%.1fs), invalidating", driver_id, age)
                await invalidate_driver_cache(driver_id)
                return None
        else:
            timestamp = None
        return {"lat": float(data["lat"]), "lng": float(data["lng"]), "timestamp": timestamp}
    except Exception as e:
        logger.warning("get_driver_location: driver=%s error parsing data: %s", driver_id, e)
        return None


async def live_driver_locations() -> List[dict]:
    try:
        driver_ids = await cache.redis_client.smembers(cache.LIVE_DRIVERS_KEY)
    except Exception as e:
        logger.warning("live_driver_locations: redis error: %s", e)
        return []
    out = []
    for driver_id in sorted(driver_ids):
        loc = await get_driver_location(driver_id)
        if not loc:
            continue
        driver = store.drivers.get(driver_id, {})
        out.append({
            "driver_id": driver_id,
            "name": driver.get("name"),
            "status": driver.get("status"),
            "location": loc,
        })
    return out


async def sweep_stale_drivers() -> List[str]:
    """Mark drivers offline whose cached location has expired.

    Returns the ids of drivers that were taken offline.
    """
    went_offline = []
    try:
        driver_ids = await cache.redis_client.smembers(cache.LIVE_DRIVERS_KEY)
        for driver_id in driver_ids:
            if await cache.redis_client.exists(cache.driver_key(driver_id)):
                continue
            await cache.redis_client.srem(cache.LIVE_DRIVERS_KEY, driver_id)
            driver = store.drivers.get(driver_id)
            if driver and driver["status"] == models.DRIVER_ONLINE:
                went_offline.append(driver_id)
    except Exception as e:
        logger.error("sweep_stale_drivers: error during cleanup: %s", e)
        return []
    for driver_id in went_offline:
        await set_driver_status(driver_id, models.DRIVER_OFFLINE)
    if went_offline:
        logger.info("sweep_stale_drivers: %d drivers taken offline", len(went_offline))
    return went_offline


async def update_driver_location(driver_id: str, lat: float, lng: float, heading=None, speed=None) -> dict:
    driver = store.drivers.get(driver_id)
    if not driver:
        raise NotFound("Driver not found")
    loc = await cache_driver_location(driver_id, lat, lng, heading, speed)
    async with store.lock:
        address = (driver.get("location") or {}).get("address")
        driver["location"] = {"address": address, "lat": lat, "lng": lng}
        driver["last_active"] = _now_iso()
    payload = {"driver_id": driver_id, "location": {"lat": lat, "lng": lng}, "timestamp": loc["timestamp"]}
    rooms = [events.ADMIN_ROOM]
    ride = store.active_ride_for_driver(driver_id)
    if ride:
        payload["ride_id"] = ride["id"]
        rooms.append(events.customer_room(ride["customer"]["id"]))
        rooms.append(events.ride_room(ride["id"]))
    await hub.publish_many(rooms, events.DRIVER_LOCATION_UPDATE, payload)
    return payload


# ---------------------------------------------------------------------------
# ride fan-out

async def publish_ride(ride: dict, created: bool = False):
    if created:
        await hub.publish(events.ADMIN_ROOM, events.NEW_RIDE, ride)
        await hub.publish(events.ADMIN_ROOM, events.RIDE_CREATED, ride)
    else:
        await hub.publish(events.ADMIN_ROOM, events.RIDE_STATUS_UPDATE, ride)
        await hub.publish_many([events.ADMIN_ROOM, events.ride_room(ride["id"])], events.RIDE_UPDATED, ride)
        customer_event = events.CUSTOMER_STATUS_EVENTS.get(ride["status"])
        if customer_event:
            await hub.publish(events.customer_room(ride["customer"]["id"]), customer_event, ride)
        if ride.get("driver_id"):
            await hub.publish(events.driver_room(ride["driver_id"]), events.RIDE_STATUS, {
                "rideId": ride["id"],
                "status": ride["status"],
                "version": ride["version"],
                "ride": ride,
            })
    await hub.publish(events.ADMIN_ROOM, events.STATS_UPDATE, compute_stats())


async def publish_driver_status(driver: dict):
    payload = {"driver_id": driver["id"], "status": driver["status"], "location": driver.get("location")}
    await hub.publish(events.ADMIN_ROOM, events.DRIVER_STATUS_UPDATE, payload)
    if driver["status"] == models.DRIVER_ONLINE:
        await hub.publish(events.ADMIN_ROOM, events.DRIVER_ONLINE, payload)
    elif driver["status"] in (models.DRIVER_OFFLINE, models.DRIVER_SUSPENDED):
        await hub.publish(events.ADMIN_ROOM, events.DRIVER_OFFLINE, payload)


# ---------------------------------------------------------------------------
# rides

def get_ride(ride_id: str) -> dict:
    ride = store.rides.get(ride_id)
    if not ride:
        raise NotFound("Ride not found")
    return ride


def list_rides(status: Optional[str] = None, date_range: Optional[str] = None, search: Optional[str] = None,
               page: int = 1, limit: int = 20) -> dict:
    rides = sorted(store.rides.values(), key=lambda r: r.get("created_at") or "", reverse=True)
    if status and status != "all":
        wanted = lifecycle.normalize_status(status)
        rides = [r for r in rides if r["status"] == wanted]
    if date_range and date_range != "all":
        days = {"today": 1, "week": 7, "month": 30, "year": 365}.get(date_range)
        if days:
            cutoff = _now() - timedelta(days=days)
            rides = [r for r in rides if (_parse_ts(r.get("created_at")) or cutoff) >= cutoff]
    rides = [r for r in rides if _matches(r, search, "id", "customer.name", "driver.name", "pickup.address", "destination.address")]
    items, pagination = _paginate(rides, page, limit)
    return {"rides": items, "pagination": pagination}


def recent_rides(limit: int = 10) -> List[dict]:
    return list_rides(limit=limit)["rides"]


def ride_history(ride_id: str) -> List[dict]:
    return list(get_ride(ride_id).get("timeline") or [])


def rides_for_customer(customer_id: str, page: int = 1, limit: int = 10) -> dict:
    rides = [r for r in store.rides.values() if r["customer"]["id"] == customer_id]
    rides.sort(key=lambda r: r.get("created_at") or "", reverse=True)
    items, pagination = _paginate(rides, page, limit)
    return {"rides": items, "pagination": pagination}


def pending_requests() -> List[dict]:
    rides = [r for r in store.rides.values() if r["status"] == models.RIDE_PENDING]
    return sorted(rides, key=lambda r: r.get("created_at") or "")


def export_rides_csv() -> str:
    rows = [{
        "id": r["id"],
        "customer": r["customer"]["name"],
        "driver": (r.get("driver") or {}).get("name", ""),
        "pickup": r["pickup"]["address"],
        "destination": r["destination"]["address"],
        "status": r["status"],
        "fare": r.get("fare"),
        "distance": r.get("distance"),
        "created_at": r.get("created_at"),
    } for r in list_rides(limit=len(store.rides) or 1)["rides"]]
    return _to_csv(rows, ["id", "customer", "driver", "pickup", "destination", "status", "fare", "distance", "created_at"])


async def request_ride(customer_id: str, pickup: dict, destination: dict, ride_type: str = "standard",
                       payment_method: str = "cash", notes: Optional[str] = None) -> dict:
    customer = store.customers.get(customer_id)
    if not customer:
        raise NotFound("Customer not found")
    if customer["status"] in (models.CUSTOMER_BANNED, models.CUSTOMER_SUSPENDED):
        raise Forbidden(f"Customer account is {customer['status']}")
    fare, distance = estimate_fare(pickup, destination, ride_type)
    now = _now_iso()
    async with store.lock:
        ride_id = store.next_id("RIDE")
        ride = {
            "id": ride_id,
            "customer": {
                "id": customer["id"],
                "name": customer["name"],
                "phone": customer.get("phone"),
                "rating": customer.get("rating"),
            },
            "driver": None,
            "driver_id": None,
            "pickup": dict(pickup),
            "destination": dict(destination),
            "status": models.RIDE_PENDING,
            "ride_type": ride_type,
            "fare": fare,
            "estimated_fare": fare,
            "distance": distance,
            "duration_estimate": round(distance / 30 * 60),
            "created_at": now,
            "payment_method": payment_method,
            "surge_multiplier": 1.0,
            "notes": notes,
            "timeline": [{"status": models.RIDE_PENDING, "timestamp": now, "location": None}],
            "version": 1,
            "updated_at": now,
        }
        store.rides[ride_id] = ride
    logger.info("ride_requested: id=%s customer=%s fare=%s distance_km=%s", ride_id, customer_id, fare, distance)
    await publish_ride(ride, created=True)
    await hub.publish(events.DRIVERS_ROOM, events.RIDE_NEW_REQUEST, {
        "rideId": ride_id,
        "pickup": ride["pickup"],
        "destination": ride["destination"],
        "fare": fare,
        "distance": distance,
        "rideType": ride_type,
        "customer": ride["customer"],
    })
    return ride


def _driver_snapshot(driver: dict) -> dict:
    return {
        "id": driver["id"],
        "name": driver["name"],
        "phone": driver.get("phone"),
        "rating": driver.get("rating"),
        "location": driver.get("location"),
        "vehicle": driver.get("vehicle"),
    }


def _check_assignable(driver_id: str) -> dict:
    driver = store.drivers.get(driver_id)
    if not driver:
        raise NotFound("Driver not found")
    if driver["status"] == models.DRIVER_SUSPENDED:
        raise Forbidden("Driver is suspended")
    if driver["status"] != models.DRIVER_ONLINE:
        raise Conflict(f"Driver is {driver['status']}")
    return driver


async def _transition(ride_id: str, status: str, location: Optional[dict] = None, **extra) -> dict:
    """Apply a lifecycle move and its side effects on drivers, customers and payments."""
    target = lifecycle.normalize_status(status)
    async with store.lock:
        ride = get_ride(ride_id)
        previous = ride["status"]
        if target == models.RIDE_DRIVER_ASSIGNED:
            requested = extra.get("driver_id")
            if previous == target and requested and requested != ride.get("driver_id"):
                raise Conflict("Ride already has a driver")
            if previous != target:
                extra["driver"] = _driver_snapshot(_check_assignable(requested))
        updated = lifecycle.apply_transition(ride, target, location=location, **extra)
        if updated is ride:
            return ride
        store.rides[ride_id] = updated
        driver = store.drivers.get(updated.get("driver_id") or "")
        if target == models.RIDE_DRIVER_ASSIGNED:
            driver["status"] = models.DRIVER_BUSY
        elif target == models.RIDE_COMPLETED:
            _settle(updated, driver)
        if target in models.TERMINAL_RIDE_STATUSES and driver and driver["status"] == models.DRIVER_BUSY:
            driver["status"] = models.DRIVER_ONLINE
    logger.info("ride_transition: id=%s %s->%s version=%s", ride_id, previous, target, updated["version"])
    await publish_ride(updated)
    if driver and target in (models.RIDE_DRIVER_ASSIGNED,) + tuple(models.TERMINAL_RIDE_STATUSES):
        await publish_driver_status(driver)
    return updated


def _settle(ride: dict, driver: Optional[dict]):
    """Book the fare of a completed ride. Caller holds the store lock."""
    fare = round(ride.get("negotiated_fare") or ride.get("fare") or ride.get("estimated_fare") or 0, 2)
    commission = round(fare * settings.COMMISSION_RATE, 2)
    ride["fare"] = fare
    ride["commission"] = commission
    tx = {
        "id": store.next_id("TXN"),
        "ride_id": ride["id"],
        "customer_id": ride["customer"]["id"],
        "driver_id": ride.get("driver_id"),
        "type": models.TX_RIDE_PAYMENT,
        "amount": fare,
        "commission": commission,
        "status": models.PAY_COMPLETED,
        "payment_method": ride.get("payment_method"),
        "created_at": ride.get("completed_at") or _now_iso(),
    }
    store.transactions.append(tx)
    if driver:
        earned = round(fare - commission, 2)
        earnings = driver.setdefault("earnings", {"total": 0, "this_month": 0})
        earnings["total"] = round(earnings.get("total", 0) + earned, 2)
        earnings["this_month"] = round(earnings.get("this_month", 0) + earned, 2)
        driver["total_rides"] = driver.get("total_rides", 0) + 1
    customer = store.customers.get(ride["customer"]["id"])
    if customer:
        customer["total_rides"] = customer.get("total_rides", 0) + 1
        customer["total_spent"] = round(customer.get("total_spent", 0) + fare, 2)
        customer["average_ride_cost"] = round(customer["total_spent"] / customer["total_rides"], 2)
        customer["last_ride"] = ride.get("completed_at")
    logger.info("ride_settled: id=%s fare=%s commission=%s tx=%s", ride["id"], fare, commission, tx["id"])


async def accept_ride(ride_id: str, driver_id: str, negotiated_fare: Optional[float] = None) -> dict:
    ride = get_ride(ride_id)
    if ride["status"] != models.RIDE_PENDING:
        raise BadRequest("Ride is no longer available")
    extra = {"driver_id": driver_id, "accepted_at": _now_iso()}
    if negotiated_fare is not None:
        extra["negotiated_fare"] = negotiated_fare
        extra["fare"] = negotiated_fare
    return await _transition(ride_id, models.RIDE_DRIVER_ASSIGNED, **extra)


async def assign_driver(ride_id: str, driver_id: str) -> dict:
    ride = get_ride(ride_id)
    if ride["status"] == models.RIDE_DRIVER_ASSIGNED and ride.get("driver_id") == driver_id:
        return ride
    return await _transition(ride_id, models.RIDE_DRIVER_ASSIGNED, driver_id=driver_id)


async def update_ride_status(ride_id: str, status: str, location: Optional[dict] = None) -> dict:
    target = lifecycle.normalize_status(status)
    current = get_ride(ride_id)["status"]
    if target == models.RIDE_DRIVER_ASSIGNED and current == models.RIDE_PENDING:
        raise BadRequest("Use the accept or assign endpoint to attach a driver")
    step = status.strip().lower()
    if step in models.RIDE_PICKUP_STEPS:
        return await _pickup_step(ride_id, step, location)
    return await _transition(ride_id, target, location=location)


async def _pickup_step(ride_id: str, step: str, location: Optional[dict]) -> dict:
    async with store.lock:
        ride = get_ride(ride_id)
        updated = lifecycle.record_pickup_step(ride, step, location=location)
        if updated is ride:
            return ride
        store.rides[ride_id] = updated
    logger.info("ride_pickup_step: id=%s step=%s version=%s", ride_id, step, updated["version"])
    await publish_ride(updated)
    return updated


async def cancel_ride(ride_id: str, reason: Optional[str] = None, cancelled_by: str = "admin") -> dict:
    before = get_ride(ride_id)
    ride = await _transition(
        ride_id, models.RIDE_CANCELLED,
        cancellation_reason=reason or before.get("cancellation_reason"),
        cancelled_by=cancelled_by,
    )
    if ride is not before and cancelled_by == "customer" and ride.get("driver_id"):
        await hub.publish(events.driver_room(ride["driver_id"]), events.RIDE_CANCELLED_BY_CUSTOMER, {
            "rideId": ride_id,
            "reason": reason,
        })
    return ride


# ---------------------------------------------------------------------------
# drivers

def get_driver(driver_id: str) -> dict:
    driver = store.drivers.get(driver_id)
    if not driver:
        raise NotFound("Driver not found")
    return driver


def list_drivers(status: Optional[str] = None, search: Optional[str] = None) -> List[dict]:
    drivers = list(store.drivers.values())
    if status and status != "all":
        drivers = [d for d in drivers if d["status"] == status]
    return [d for d in drivers if _matches(d, search, "id", "name", "email", "phone", "vehicle.license_plate")]


def export_drivers_csv() -> str:
    rows = [{
        "id": d["id"], "name": d["name"], "email": d["email"], "phone": d["phone"],
        "status": d["status"], "rating": d.get("rating"), "total_rides": d.get("total_rides"),
        "earnings_total": (d.get("earnings") or {}).get("total"),
        "vehicle": " ".join(str((d.get("vehicle") or {}).get(k, "")) for k in ("make", "model", "year")).strip(),
        "license_plate": (d.get("vehicle") or {}).get("license_plate"),
    } for d in store.drivers.values()]
    return _to_csv(rows, ["id", "name", "email", "phone", "status", "rating", "total_rides",
                          "earnings_total", "vehicle", "license_plate"])


async def create_driver(name: str, email: str, phone: str, vehicle: dict) -> dict:
    if any(d["email"].lower() == email.lower() for d in store.drivers.values()):
        raise Conflict("A driver with this email already exists")
    async with store.lock:
        driver_id = store.next_id("DRV")
        driver = {
            "id": driver_id,
            "name": name,
            "email": email,
            "phone": phone,
            "status": models.DRIVER_OFFLINE,
            "rating": 0,
            "total_rides": 0,
            "earnings": {"total": 0, "this_month": 0},
            "vehicle": dict(vehicle),
            "documents": {
                "license": {"status": models.DOC_PENDING, "expires": None},
                "insurance": {"status": models.DOC_PENDING, "expires": None},
                "registration": {"status": models.DOC_PENDING, "expires": None},
            },
            "location": None,
            "join_date": _now().date().isoformat(),
            "last_active": None,
            "completion_rate": 0,
            "cancellation_rate": 0,
            "approved": False,
        }
        store.drivers[driver_id] = driver
    logger.info("driver_created: id=%s email=%s", driver_id, email)
    return driver


async def update_driver(driver_id: str, **fields) -> dict:
    async with store.lock:
        driver = get_driver(driver_id)
        for key, value in fields.items():
            if value is not None:
                driver[key] = value
    logger.info("driver_updated: id=%s fields=%s", driver_id, sorted(k for k, v in fields.items() if v is not None))
    return driver


async def set_driver_status(driver_id: str, status: str, location: Optional[dict] = None,
                            allow_unsuspend: bool = False) -> dict:
    """Change a driver's availability.

    Only admin paths pass ``allow_unsuspend``; otherwise a suspended driver
    stays suspended whatever status is asked for.
    """
    if status not in models.DRIVER_STATUSES:
        raise BadRequest(f"Invalid driver status: {status}")
    async with store.lock:
        driver = get_driver(driver_id)
        suspended = driver["status"] == models.DRIVER_SUSPENDED
        if suspended and status != models.DRIVER_SUSPENDED and not allow_unsuspend:
            raise Forbidden("Driver is suspended")
        driver["status"] = status
        driver["last_active"] = _now_iso()
        if location:
            driver["location"] = dict(location)
    if status in (models.DRIVER_OFFLINE, models.DRIVER_SUSPENDED):
        await invalidate_driver_cache(driver_id)
    elif location:
        await cache_driver_location(driver_id, location["lat"], location["lng"])
    logger.info("driver_status: id=%s status=%s", driver_id, status)
    await publish_driver_status(driver)
    return driver


def driver_documents(driver_id: str) -> dict:
    return get_driver(driver_id).get("documents") or {}


async def approve_driver(driver_id: str) -> dict:
    async with store.lock:
        driver = get_driver(driver_id)
        driver["approved"] = True
        for doc in (driver.get("documents") or {}).values():
            if doc.get("status") == models.DOC_PENDING:
                doc["status"] = models.DOC_APPROVED
        if driver["status"] == models.DRIVER_SUSPENDED:
            driver["status"] = models.DRIVER_OFFLINE
    logger.info("driver_approved: id=%s", driver_id)
    await publish_driver_status(driver)
    return driver


async def suspend_driver(driver_id: str, reason: Optional[str] = None) -> dict:
    driver = await set_driver_status(driver_id, models.DRIVER_SUSPENDED)
    driver["suspension_reason"] = reason
    await hub.publish(events.driver_room(driver_id), events.ADMIN_NOTIFICATION, {
        "type": "warning",
        "title": "Account suspended",
        "message": reason or "Your account has been suspended.",
    })
    return driver


def driver_earnings(driver_id: str, period: str = "week") -> dict:
    driver = get_driver(driver_id)
    days = {"today": 1, "week": 7, "month": 30, "year": 365}.get(period, 7)
    cutoff = _now() - timedelta(days=days)
    txs = [
        t for t in store.transactions
        if t.get("driver_id") == driver_id and t["type"] == models.TX_RIDE_PAYMENT
        and (_parse_ts(t.get("created_at")) or cutoff) >= cutoff
    ]
    gross = round(sum(t["amount"] for t in txs), 2)
    commission = round(sum(t.get("commission") or 0 for t in txs), 2)
    payouts = [t for t in store.transactions if t.get("driver_id") == driver_id and t["type"] == models.TX_PAYOUT]
    return {
        "driver_id": driver_id,
        "period": period,
        "rides": len(txs),
        "gross": gross,
        "commission": commission,
        "net": round(gross - commission, 2),
        "total": (driver.get("earnings") or {}).get("total", 0),
        "this_month": (driver.get("earnings") or {}).get("this_month", 0),
        "paid_out": round(sum(t["amount"] for t in payouts), 2),
        "transactions": txs,
    }


# ---------------------------------------------------------------------------
# customers

def get_customer(customer_id: str) -> dict:
    customer = store.customers.get(customer_id)
    if not customer:
        raise NotFound("Customer not found")
    return customer


def list_customers(status: Optional[str] = None, search: Optional[str] = None) -> List[dict]:
    customers = list(store.customers.values())
    if status and status != "all":
        customers = [c for c in customers if c["status"] == status]
    return [c for c in customers if _matches(c, search, "id", "name", "email", "phone")]


def export_customers_csv() -> str:
    rows = list(store.customers.values())
    return _to_csv(rows, ["id", "name", "email", "phone", "status", "rating", "total_rides", "total_spent"])


async def update_customer(customer_id: str, **fields) -> dict:
    async with store.lock:
        customer = get_customer(customer_id)
        for key, value in fields.items():
            if value is not None:
                customer[key] = value
    return customer


async def set_customer_status(customer_id: str, status: str, reason: Optional[str] = None) -> dict:
    if status not in models.CUSTOMER_STATUSES:
        raise BadRequest(f"Invalid customer status: {status}")
    async with store.lock:
        customer = get_customer(customer_id)
        customer["status"] = status
        if status == models.CUSTOMER_BANNED:
            customer["ban_reason"] = reason
            customer["ban_date"] = _now_iso()
        else:
            customer.pop("ban_reason", None)
            customer.pop("ban_date", None)
    logger.info("customer_status: id=%s status=%s", customer_id, status)
    if status != models.CUSTOMER_ACTIVE:
        await hub.publish(events.customer_room(customer_id), events.NOTIFICATION, {
            "type": "warning",
            "title": "Account status changed",
            "message": reason or f"Your account is now {status}.",
        })
    return customer


async def ban_customer(customer_id: str, reason: Optional[str] = None) -> dict:
    return await set_customer_status(customer_id, models.CUSTOMER_BANNED, reason)


async def unban_customer(customer_id: str) -> dict:
    return await set_customer_status(customer_id, models.CUSTOMER_ACTIVE)


# ---------------------------------------------------------------------------
# dashboard and analytics

def dashboard_stats() -> dict:
    stats = dict(mock_data.DASHBOARD_STATS)
    stats.update(compute_stats())
    return stats


def revenue_series(range_: str = "today") -> List[dict]:
    """Revenue per bucket from completed rides; hourly for today, daily otherwise."""
    completed = [r for r in store.rides.values() if r["status"] == models.RIDE_COMPLETED]
    buckets: Dict[str, dict] = {}
    for ride in completed:
        ts = _parse_ts(ride.get("completed_at") or ride.get("created_at"))
        if ts is None:
            continue
        label = ts.strftime("%H:00") if range_ == "today" else ts.date().isoformat()
        bucket = buckets.setdefault(label, {"time": label, "revenue": 0.0, "rides": 0})
        bucket["revenue"] = round(bucket["revenue"] + (ride.get("fare") or 0), 2)
        bucket["rides"] += 1
    return [buckets[k] for k in sorted(buckets)]


def ride_status_breakdown() -> List[dict]:
    counts = {status: 0 for status in models.RIDE_STATUSES}
    for ride in store.rides.values():
        counts[ride["status"]] = counts.get(ride["status"], 0) + 1
    return [{"status": status, "count": count} for status, count in counts.items()]


def driver_activity() -> List[dict]:
    counts = {status: 0 for status in models.DRIVER_STATUSES}
    for driver in store.drivers.values():
        counts[driver["status"]] = counts.get(driver["status"], 0) + 1
    return [{"status": status, "count": count} for status, count in counts.items()]


def analytics(period: str = "month") -> dict:
    data = mock_data.snapshot(mock_data.ANALYTICS)
    stats = compute_stats()
    data["period"] = period
    data["live"] = stats
    return data


def analytics_performance() -> dict:
    stats = compute_stats()
    durations = []
    for ride in store.rides.values():
        start, end = _parse_ts(ride.get("started_at")), _parse_ts(ride.get("completed_at"))
        if start and end:
            durations.append((end - start).total_seconds() / 60)
    return {
        "completion_rate": stats["completionRate"],
        "cancel_rate": stats["cancelRate"],
        "average_rating": stats["averageRating"],
        "average_ride_minutes": round(sum(durations) / len(durations), 1) if durations else 0.0,
    }


def peak_hours() -> dict:
    return {
        "hourly_distribution": mock_data.snapshot(mock_data.ANALYTICS["rides"]["hourly_distribution"]),
        "peak_hours": mock_data.snapshot(mock_data.ANALYTICS["peak_hours"]),
    }


def geographic() -> List[dict]:
    return mock_data.snapshot(mock_data.ANALYTICS["geography"])


def driver_performance(driver_id: Optional[str] = None) -> List[dict]:
    drivers = [get_driver(driver_id)] if driver_id else list(store.drivers.values())
    return [{
        "driver_id": d["id"],
        "name": d["name"],
        "rating": d.get("rating"),
        "total_rides": d.get("total_rides"),
        "completion_rate": d.get("completion_rate"),
        "cancellation_rate": d.get("cancellation_rate"),
        "earnings": (d.get("earnings") or {}).get("total", 0),
    } for d in drivers]


# ---------------------------------------------------------------------------
# finance

def list_transactions(customer_id: Optional[str] = None, driver_id: Optional[str] = None,
                      tx_type: Optional[str] = None) -> List[dict]:
    txs = store.transactions
    if customer_id:
        txs = [t for t in txs if t.get("customer_id") == customer_id]
    if driver_id:
        txs = [t for t in txs if t.get("driver_id") == driver_id]
    if tx_type:
        txs = [t for t in txs if t["type"] == tx_type]
    return sorted(txs, key=lambda t: t.get("created_at") or "", reverse=True)


def finance_summary(period: str = "month") -> dict:
    payments = [t for t in store.transactions if t["type"] == models.TX_RIDE_PAYMENT and t["status"] == models.PAY_COMPLETED]
    refunds = [t for t in store.transactions if t["type"] == models.TX_REFUND]
    payouts = [t for t in store.transactions if t["type"] == models.TX_PAYOUT]
    gross = round(sum(t["amount"] for t in payments), 2)
    commission = round(sum(t.get("commission") or 0 for t in payments), 2)
    refunded = round(sum(t["amount"] for t in refunds), 2)
    paid_out = round(sum(t["amount"] for t in payouts), 2)
    pending = round(sum((d.get("earnings") or {}).get("this_month", 0) for d in store.drivers.values()), 2)
    return {
        "period": period,
        "currency": settings.CURRENCY,
        "gross_revenue": gross,
        "commission": commission,
        "refunds": refunded,
        "net_revenue": round(commission - refunded, 2),
        "driver_payouts": paid_out,
        "pending_payouts": pending,
        "transactions": len(store.transactions),
    }


def pending_payouts() -> List[dict]:
    return [{
        "driver_id": d["id"],
        "name": d["name"],
        "amount": (d.get("earnings") or {}).get("this_month", 0),
    } for d in store.drivers.values() if (d.get("earnings") or {}).get("this_month", 0) > 0]


async def process_payouts(driver_ids: List[str]) -> List[dict]:
    processed = []
    async with store.lock:
        drivers = [get_driver(driver_id) for driver_id in driver_ids]
        for driver in drivers:
            driver_id = driver["id"]
            earnings = driver.setdefault("earnings", {"total": 0, "this_month": 0})
            amount = round(earnings.get("this_month", 0), 2)
            if amount <= 0:
                continue
            tx = {
                "id": store.next_id("TXN"),
                "ride_id": None,
                "customer_id": None,
                "driver_id": driver_id,
                "type": models.TX_PAYOUT,
                "amount": amount,
                "commission": 0,
                "status": models.PAY_COMPLETED,
                "payment_method": "bank_transfer",
                "created_at": _now_iso(),
            }
            store.transactions.append(tx)
            earnings["this_month"] = 0
            processed.append(tx)
    logger.info("payouts_processed: count=%d", len(processed))
    return processed


def wallet_balance(customer_id: str) -> dict:
    customer = get_customer(customer_id)
    return {"customer_id": customer_id, "balance": customer.get("wallet_balance", 0), "currency": settings.CURRENCY}


async def refund(ride_id: str, amount: Optional[float] = None, reason: Optional[str] = None) -> dict:
    async with store.lock:
        ride = get_ride(ride_id)
        original = next((
            t for t in store.transactions
            if t.get("ride_id") == ride_id and t["type"] == models.TX_RIDE_PAYMENT
        ), None)
        if original is None:
            raise NotFound("Original payment not found")
        if original["status"] == models.PAY_REFUNDED:
            raise Conflict("Ride has already been refunded")
        amount = round(amount if amount is not None else original["amount"], 2)
        if amount > original["amount"]:
            raise BadRequest("Refund exceeds the original payment")
        tx = {
            "id": store.next_id("TXN"),
            "ride_id": ride_id,
            "customer_id": ride["customer"]["id"],
            "driver_id": ride.get("driver_id"),
            "type": models.TX_REFUND,
            "amount": amount,
            "commission": 0,
            "status": models.PAY_COMPLETED,
            "payment_method": original.get("payment_method"),
            "reason": reason,
            "created_at": _now_iso(),
        }
        store.transactions.append(tx)
        original["status"] = models.PAY_REFUNDED
        customer = store.customers.get(ride["customer"]["id"])
        if customer is not None:
            customer["wallet_balance"] = round(customer.get("wallet_balance", 0) + amount, 2)
    logger.info("refund_issued: ride=%s amount=%s tx=%s", ride_id, amount, tx["id"])
    return tx


# ---------------------------------------------------------------------------
# system, notifications, reports

async def system_status() -> dict:
    redis_ok = await cache.ping()
    return {
        "status": "ok" if redis_ok else "degraded",
        "redis": "up" if redis_ok else "down",
        "websocket_connections": sum(len(m) for m in hub.rooms.values()),
        "rooms": len(hub.rooms),
        "maintenance_mode": store.app_settings.get("maintenance_mode", False),
        "timestamp": _now_iso(),
    }


def get_app_settings() -> dict:
    return dict(store.app_settings)


async def update_app_settings(values: dict) -> dict:
    async with store.lock:
        store.app_settings.update(values)
    logger.info("app_settings_updated: keys=%s", sorted(values))
    await hub.publish_many([events.DRIVERS_ROOM, events.CUSTOMERS_ROOM], events.APP_SETTINGS_UPDATED, dict(store.app_settings))
    return dict(store.app_settings)


async def create_notification(title: str, message: str, type: str = "info", audience: str = "all") -> dict:
    async with store.lock:
        note = {
            "id": store.next_id("NTF"),
            "title": title,
            "message": message,
            "type": type,
            "audience": audience,
            "read": False,
            "created_at": _now_iso(),
        }
        store.notifications.insert(0, note)
    rooms = {
        "all": [events.ADMIN_ROOM, events.DRIVERS_ROOM, events.CUSTOMERS_ROOM],
        "drivers": [events.DRIVERS_ROOM],
        "customers": [events.CUSTOMERS_ROOM],
        "admins": [events.ADMIN_ROOM],
    }.get(audience, [events.ADMIN_ROOM])
    await hub.publish_many(rooms, events.NOTIFICATION, note)
    return note


def list_notifications(unread_only: bool = False) -> List[dict]:
    return [n for n in store.notifications if not (unread_only and n["read"])]


async def mark_notification_read(notification_id: str) -> dict:
    async with store.lock:
        for note in store.notifications:
            if note["id"] == notification_id:
                note["read"] = True
                return note
    raise NotFound("Notification not found")


async def clear_cache() -> dict:
    """Drop every cached driver location."""
    cleared = 0
    try:
        driver_ids = await cache.redis_client.smembers(cache.LIVE_DRIVERS_KEY)
        for driver_id in driver_ids:
            await invalidate_driver_cache(driver_id)
            cleared += 1
    except Exception as e:
        logger.error("clear_cache: redis error: %s", e)
        raise ServiceError("Cache unavailable")
    return {"cleared": cleared}


REPORT_TYPES = ("rides", "drivers", "customers", "revenue", "payouts")


def _build_report(report_type: str, params: dict) -> dict:
    if report_type == "rides":
        return {"summary": compute_stats(), "breakdown": ride_status_breakdown()}
    if report_type == "drivers":
        return {"drivers": driver_performance()}
    if report_type == "customers":
        return {"customers": [{k: c.get(k) for k in ("id", "name", "status", "total_rides", "total_spent")}
                              for c in store.customers.values()]}
    if report_type == "revenue":
        return {"summary": finance_summary(params.get("period", "month")), "series": revenue_series(params.get("range", "week"))}
    return {"payouts": list_transactions(tx_type=models.TX_PAYOUT)}


async def generate_report(report_type: str, params: Optional[dict] = None) -> dict:
    if report_type not in REPORT_TYPES:
        raise BadRequest(f"Unknown report type: {report_type}")
    params = params or {}
    async with store.lock:
        report_id = store.next_id("RPT")
        report = {
            "id": report_id,
            "type": report_type,
            "params": params,
            "status": "completed",
            "created_at": _now_iso(),
            "data": _build_report(report_type, params),
        }
        store.reports[report_id] = report
    logger.info("report_generated: id=%s type=%s", report_id, report_type)
    return report


def report_status(report_id: str) -> dict:
    report = store.reports.get(report_id)
    if not report:
        raise NotFound("Report not found")
    return {"id": report_id, "status": report["status"], "type": report["type"], "created_at": report["created_at"]}


def scheduled_reports() -> List[dict]:
    return list(store.scheduled_reports.values())


async def schedule_report(report_type: str, frequency: str, recipients: List[str], params: Optional[dict] = None) -> dict:
    if report_type not in REPORT_TYPES:
        raise BadRequest(f"Unknown report type: {report_type}")
    async with store.lock:
        schedule_id = store.next_id("SCH")
        entry = {
            "id": schedule_id,
            "type": report_type,
            "frequency": frequency,
            "recipients": list(recipients),
            "params": params or {},
            "created_at": _now_iso(),
        }
        store.scheduled_reports[schedule_id] = entry
    return entry


async def delete_scheduled_report(schedule_id: str):
    async with store.lock:
        if store.scheduled_reports.pop(schedule_id, None) is None:
            raise NotFound("Scheduled report not found")


# ---------------------------------------------------------------------------
# integration

async def broadcast_to_drivers(message: str, title: Optional[str] = None, type: str = "info") -> int:
    return await hub.publish(events.DRIVERS_ROOM, events.ADMIN_NOTIFICATION, {
        "type": type, "title": title, "message": message, "timestamp": _now_iso(),
    })


async def broadcast_to_customers(message: str, title: Optional[str] = None, type: str = "info") -> int:
    return await hub.publish(events.CUSTOMERS_ROOM, events.NOTIFICATION, {
        "type": type, "title": title, "message": message, "timestamp": _now_iso(),
    })


async def push_to_driver(driver_id: str, message: str, title: Optional[str] = None, type: str = "info") -> int:
    get_driver(driver_id)
    return await hub.publish(events.driver_room(driver_id), events.ADMIN_NOTIFICATION, {
        "type": type, "title": title, "message": message, "timestamp": _now_iso(),
    })


async def push_to_customer(customer_id: str, message: str, title: Optional[str] = None, type: str = "info") -> int:
    get_customer(customer_id)
    return await hub.publish(events.customer_room(customer_id), events.NOTIFICATION, {
        "type": type, "title": title, "message": message, "timestamp": _now_iso(),
    })


async def ride_locations() -> List[dict]:
    """Active rides with their driver's latest known position."""
    out = []
    for ride in store.rides.values():
        if ride["status"] not in (models.RIDE_DRIVER_ASSIGNED, models.RIDE_IN_PROGRESS):
            continue
        driver_id = ride.get("driver_id")
        loc = await get_driver_location(driver_id) if driver_id else None
        if loc is None:
            loc = (store.drivers.get(driver_id) or {}).get("location")
        out.append({
            "ride_id": ride["id"],
            "status": ride["status"],
            "driver_id": driver_id,
            "driver_location": loc,
            "pickup": ride["pickup"],
            "destination": ride["destination"],
        })
    return out
