from fastapi import APIRouter, Query
import logging

from .config import settings
from . import services, schemas

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/rides/request", status_code=201)
async def request_ride(req: schemas.RideRequest):
    logger.info("request_ride: customer=%s pickup=%s", req.customer_id, req.pickup.model_dump())
    ride = await services.request_ride(
        req.customer_id,
        req.pickup.model_dump(),
        req.destination.model_dump(),
        req.ride_type,
        req.payment_method,
        req.notes,
    )
    return {"success": True, "ride": ride}


@router.post("/rides/estimate")
async def estimate(req: schemas.FareEstimate):
    fare, distance = services.estimate_fare(req.pickup.model_dump(), req.destination.model_dump(), req.ride_type)
    return {"fare": fare, "distance": distance, "ride_type": req.ride_type, "currency": settings.CURRENCY}


@router.get("/rides/my-rides")
async def my_rides(customer_id: str, page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100)):
    services.get_customer(customer_id)
    return services.rides_for_customer(customer_id, page, limit)


@router.get("/rides/{ride_id}")
async def get_ride(ride_id: str):
    return services.get_ride(ride_id)


@router.post("/rides/{ride_id}/accept")
async def accept_ride(ride_id: str, req: schemas.AcceptRide):
    logger.info("accept_ride: ride=%s driver=%s", ride_id, req.driver_id)
    ride = await services.accept_ride(ride_id, req.driver_id, req.negotiated_fare)
    return {"success": True, "ride": ride}


@router.put("/rides/{ride_id}/status")
async def update_ride_status(ride_id: str, req: schemas.StatusUpdate):
    location = req.location.model_dump() if req.location else None
    ride = await services.update_ride_status(ride_id, req.status, location)
    return {"success": True, "ride": ride}


@router.post("/rides/{ride_id}/cancel")
async def cancel_ride(ride_id: str, req: schemas.CancelRequest):
    ride = await services.cancel_ride(ride_id, req.reason, req.cancelled_by or "customer")
    return {"success": True, "ride": ride}


@router.get("/drivers/{driver_id}")
async def driver_profile(driver_id: str):
    return services.get_driver(driver_id)


@router.post("/drivers/{driver_id}/location")
async def driver_location(driver_id: str, loc: schemas.LocationUpdate):
    await services.update_driver_location(driver_id, loc.lat, loc.lng, loc.heading, loc.speed)
    return {"status": "ok"}


@router.put("/drivers/{driver_id}/status")
async def driver_status(driver_id: str, req: schemas.DriverStatusUpdate):
    location = req.location.model_dump() if req.location else None
    driver = await services.set_driver_status(driver_id, req.status, location)
    return {"success": True, "driver": driver}


@router.get("/drivers/{driver_id}/ride-requests")
async def ride_requests(driver_id: str):
    services.get_driver(driver_id)
    return {"requests": services.pending_requests()}


@router.get("/drivers/{driver_id}/earnings")
async def driver_earnings(driver_id: str, period: str = "week"):
    return services.driver_earnings(driver_id, period)


@router.get("/payments/transactions")
async def transactions(customer_id: str):
    services.get_customer(customer_id)
    return {"transactions": services.list_transactions(customer_id=customer_id)}


@router.get("/payments/wallet/balance")
async def wallet_balance(customer_id: str):
    return services.wallet_balance(customer_id)


@router.post("/payments/refund")
async def refund(req: schemas.RefundRequest):
    tx = await services.refund(req.ride_id, req.amount, req.reason)
    return {"success": True, "transaction": tx}
