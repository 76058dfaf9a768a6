from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse
from typing import Any, Dict, Optional
import logging

from . import auth, services, schemas

logger = logging.getLogger(__name__)

# login and password reset are reachable without a session
public_router = APIRouter()
router = APIRouter(dependencies=[Depends(auth.require_admin)])


def _csv(body: str, filename: str) -> PlainTextResponse:
    return PlainTextResponse(
        body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ---------------------------------------------------------------- auth

@public_router.post("/auth/login", response_model=schemas.LoginResponse)
async def login(req: schemas.LoginRequest):
    account = auth.authenticate(req.email, req.password)
    if account is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    token = await auth.create_session(account)
    logger.info("admin_login: email=%s", account["email"])
    return {"success": True, "token": token, "user": auth.public_user(account)}


@public_router.post("/auth/request-password-reset")
async def request_password_reset(req: schemas.PasswordResetRequest):
    await auth.request_password_reset(req.email)
    return {"success": True, "message": "If the account exists, a reset link has been sent."}


@public_router.post("/auth/reset-password")
async def reset_password(req: schemas.PasswordReset):
    if not await auth.reset_password(req.token, req.new_password):
        raise HTTPException(status_code=400, detail="Invalid or expired reset token")
    return {"success": True}


@router.post("/auth/logout")
async def logout(token: str = Depends(auth.current_token)):
    await auth.end_session(token)
    return {"success": True}


@router.post("/auth/refresh")
async def refresh(token: str = Depends(auth.current_token)):
    new_token = await auth.refresh_session(token)
    if new_token is None:
        raise HTTPException(status_code=401, detail="Session expired")
    return {"success": True, "token": new_token}


@router.get("/auth/verify")
async def verify(admin: dict = Depends(auth.require_admin)):
    return {"success": True, "valid": True, "user": auth.public_user(admin)}


@router.get("/auth/profile")
async def get_profile(admin: dict = Depends(auth.require_admin)):
    return {"user": auth.public_user(admin)}


@router.put("/auth/profile")
async def update_profile(req: schemas.ProfileUpdate, admin: dict = Depends(auth.require_admin)):
    for key, value in req.model_dump(exclude_none=True).items():
        admin[key] = value
    return {"success": True, "user": auth.public_user(admin)}


@router.put("/auth/change-password")
async def change_password(req: schemas.PasswordChange, admin: dict = Depends(auth.require_admin)):
    if not await auth.change_password(admin, req.current_password, req.new_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")
    return {"success": True, "message": "Password updated"}


# ---------------------------------------------------------------- dashboard

@router.get("/stats")
async def stats():
    return services.dashboard_stats()


@router.get("/dashboard/stats")
async def dashboard_stats():
    return services.dashboard_stats()


@router.get("/dashboard/revenue")
async def dashboard_revenue(range_: str = Query("today", alias="range")):
    return {"range": range_, "data": services.revenue_series(range_)}


@router.get("/dashboard/ride-status")
async def dashboard_ride_status():
    return {"data": services.ride_status_breakdown()}


@router.get("/dashboard/driver-activity")
async def dashboard_driver_activity():
    return {"data": services.driver_activity()}


# ---------------------------------------------------------------- rides

@router.get("/rides")
async def list_rides(status: Optional[str] = None, date_range: Optional[str] = None, search: Optional[str] = None,
                     page: int = Query(1, ge=1), limit: int = Query(20, ge=1, le=200)):
    return services.list_rides(status, date_range, search, page, limit)


@router.get("/rides/recent")
async def recent_rides():
    return {"rides": services.recent_rides(10)}


@router.get("/rides/export")
async def export_rides():
    return _csv(services.export_rides_csv(), "rides.csv")


@router.get("/rides/{ride_id}")
async def get_ride(ride_id: str):
    return services.get_ride(ride_id)


@router.put("/rides/{ride_id}/status")
async def update_ride_status(ride_id: str, req: schemas.StatusUpdate):
    location = req.location.model_dump() if req.location else None
    return await services.update_ride_status(ride_id, req.status, location)


@router.post("/rides/{ride_id}/assign")
async def assign_driver(ride_id: str, req: schemas.AssignDriver):
    logger.info("admin_assign: ride=%s driver=%s", ride_id, req.driver_id)
    return await services.assign_driver(ride_id, req.driver_id)


@router.post("/rides/{ride_id}/cancel")
async def cancel_ride(ride_id: str, req: schemas.ReasonRequest):
    return await services.cancel_ride(ride_id, req.reason, cancelled_by="admin")


@router.get("/rides/{ride_id}/history")
async def ride_history(ride_id: str):
    return {"ride_id": ride_id, "timeline": services.ride_history(ride_id)}


# ---------------------------------------------------------------- drivers

@router.get("/drivers")
async def list_drivers(status: Optional[str] = None, search: Optional[str] = None):
    return {"drivers": services.list_drivers(status, search)}


@router.post("/drivers", status_code=201)
async def create_driver(req: schemas.DriverCreate):
    return await services.create_driver(req.name, req.email, req.phone, req.vehicle.model_dump())


@router.get("/drivers/export")
async def export_drivers():
    return _csv(services.export_drivers_csv(), "drivers.csv")


@router.get("/drivers/{driver_id}")
async def get_driver(driver_id: str):
    return services.get_driver(driver_id)


@router.put("/drivers/{driver_id}")
async def update_driver(driver_id: str, req: schemas.DriverUpdate):
    fields = req.model_dump(exclude_none=True)
    return await services.update_driver(driver_id, **fields)


@router.put("/drivers/{driver_id}/status")
async def update_driver_status(driver_id: str, req: schemas.DriverStatusUpdate):
    location = req.location.model_dump() if req.location else None
    return await services.set_driver_status(driver_id, req.status, location, allow_unsuspend=True)


@router.get("/drivers/{driver_id}/documents")
async def driver_documents(driver_id: str):
    return {"driver_id": driver_id, "documents": services.driver_documents(driver_id)}


@router.post("/drivers/{driver_id}/approve")
async def approve_driver(driver_id: str):
    return await services.approve_driver(driver_id)


@router.post("/drivers/{driver_id}/suspend")
async def suspend_driver(driver_id: str, req: schemas.ReasonRequest):
    return await services.suspend_driver(driver_id, req.reason)


@router.get("/drivers/{driver_id}/earnings")
async def driver_earnings(driver_id: str, period: str = "week"):
    return services.driver_earnings(driver_id, period)


# ---------------------------------------------------------------- customers

@router.get("/customers")
async def list_customers(status: Optional[str] = None, search: Optional[str] = None):
    return {"customers": services.list_customers(status, search)}


@router.get("/customers/export")
async def export_customers():
    return _csv(services.export_customers_csv(), "customers.csv")


@router.get("/customers/{customer_id}")
async def get_customer(customer_id: str):
    return services.get_customer(customer_id)


@router.put("/customers/{customer_id}")
async def update_customer(customer_id: str, req: schemas.CustomerUpdate):
    return await services.update_customer(customer_id, **req.model_dump(exclude_none=True))


@router.put("/customers/{customer_id}/status")
async def update_customer_status(customer_id: str, req: schemas.CustomerStatusUpdate):
    return await services.set_customer_status(customer_id, req.status, req.reason)


@router.get("/customers/{customer_id}/rides")
async def customer_rides(customer_id: str, page: int = Query(1, ge=1), limit: int = Query(10, ge=1, le=100)):
    services.get_customer(customer_id)
    return services.rides_for_customer(customer_id, page, limit)


@router.post("/customers/{customer_id}/ban")
async def ban_customer(customer_id: str, req: schemas.ReasonRequest):
    return await services.ban_customer(customer_id, req.reason)


@router.post("/customers/{customer_id}/unban")
async def unban_customer(customer_id: str):
    return await services.unban_customer(customer_id)


# ---------------------------------------------------------------- analytics

@router.get("/analytics")
async def analytics(period: str = "month"):
    return services.analytics(period)


@router.get("/analytics/revenue")
async def analytics_revenue(range_: str = Query("month", alias="range")):
    return {"range": range_, "data": services.revenue_series(range_)}


@router.get("/analytics/ride-status")
async def analytics_ride_status():
    return {"data": services.ride_status_breakdown()}


@router.get("/analytics/driver-activity")
async def analytics_driver_activity():
    return {"data": services.driver_activity()}


@router.get("/analytics/performance")
async def analytics_performance():
    return services.analytics_performance()


@router.get("/analytics/peak-hours")
async def analytics_peak_hours():
    return services.peak_hours()


@router.get("/analytics/geographic")
async def analytics_geographic():
    return {"data": services.geographic()}


@router.get("/analytics/driver-performance")
async def analytics_driver_performance(driver_id: Optional[str] = None):
    return {"data": services.driver_performance(driver_id)}


# ---------------------------------------------------------------- finance

@router.get("/finance/summary")
async def finance_summary(period: str = "month"):
    return services.finance_summary(period)


@router.get("/finance/payments")
async def finance_payments():
    return {"payments": services.list_transactions(tx_type="ride_payment")}


@router.get("/finance/payouts")
async def finance_payouts():
    return {
        "pending": services.pending_payouts(),
        "history": services.list_transactions(tx_type="payout"),
    }


@router.post("/finance/payouts/process")
async def process_payouts(req: schemas.PayoutRequest):
    processed = await services.process_payouts(req.driver_ids)
    return {"success": True, "processed": processed}


@router.get("/finance/transactions")
async def finance_transactions(customer_id: Optional[str] = None, driver_id: Optional[str] = None,
                               type: Optional[str] = None):
    return {"transactions": services.list_transactions(customer_id, driver_id, type)}


# ---------------------------------------------------------------- system

@router.get("/system/status")
async def system_status():
    return await services.system_status()


@router.get("/system/settings")
async def get_system_settings():
    return {"settings": services.get_app_settings()}


@router.put("/system/settings")
async def update_system_settings(values: Dict[str, Any] = Body(...)):
    return {"settings": await services.update_app_settings(values)}


@router.post("/system/notifications", status_code=201)
async def create_notification(req: schemas.NotificationCreate):
    return await services.create_notification(req.title, req.message, req.type, req.audience)


@router.get("/system/notifications")
async def list_notifications(unread_only: bool = False):
    return {"notifications": services.list_notifications(unread_only)}


@router.put("/system/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: str):
    return await services.mark_notification_read(notification_id)


@router.post("/system/cache/clear")
async def clear_cache():
    return {"success": True, **await services.clear_cache()}


# ---------------------------------------------------------------- reports

@router.post("/reports/generate")
async def generate_report(req: schemas.ReportRequest):
    return await services.generate_report(req.type, req.params)


@router.get("/reports/scheduled")
async def scheduled_reports():
    return {"reports": services.scheduled_reports()}


@router.post("/reports/schedule", status_code=201)
async def schedule_report(req: schemas.ReportSchedule):
    return await services.schedule_report(req.type, req.frequency, req.recipients, req.params)


@router.delete("/reports/scheduled/{schedule_id}")
async def delete_scheduled_report(schedule_id: str):
    await services.delete_scheduled_report(schedule_id)
    return {"success": True}


@router.get("/reports/{report_id}/status")
async def report_status(report_id: str):
    return services.report_status(report_id)


# ---------------------------------------------------------------- integration

@router.post("/integration/driver/broadcast")
async def broadcast_drivers(req: schemas.PushMessage):
    sent = await services.broadcast_to_drivers(req.message, req.title, req.type)
    return {"success": True, "delivered": sent}


@router.post("/integration/driver/push")
async def push_driver(req: schemas.PushMessage):
    if not req.driver_id:
        raise HTTPException(status_code=400, detail="driver_id is required")
    sent = await services.push_to_driver(req.driver_id, req.message, req.title, req.type)
    return {"success": True, "delivered": sent}


@router.post("/integration/customer/broadcast")
async def broadcast_customers(req: schemas.PushMessage):
    sent = await services.broadcast_to_customers(req.message, req.title, req.type)
    return {"success": True, "delivered": sent}


@router.post("/integration/customer/push")
async def push_customer(req: schemas.PushMessage):
    if not req.customer_id:
        raise HTTPException(status_code=400, detail="customer_id is required")
    sent = await services.push_to_customer(req.customer_id, req.message, req.title, req.type)
    return {"success": True, "delivered": sent}


@router.get("/integration/locations/drivers")
async def driver_locations():
    return {"drivers": await services.live_driver_locations()}


@router.get("/integration/locations/rides")
async def ride_locations():
    return {"rides": await services.ride_locations()}
