"""HTTP clients for the platform service, one per app.

Each service exposes the same endpoint groups its app uses (``api.rides``,
``api.drivers`` and so on); every group method is a thin pass-through to
``call``.
"""
from typing import Optional
import logging

import httpx

from .config import settings
from .storage import Storage
from . import storage as keys

logger = logging.getLogger(__name__)

NETWORK_ERROR = "Network error. Please check your connection."
GENERIC_ERROR = "An error occurred"
SESSION_EXPIRED = "Your session has expired. Please log in again."

STATUS_MESSAGES = {
    400: "Bad request",
    403: "Access denied",
    404: "Resource not found",
    422: "Validation error",
    429: "Too many requests. Please try again later.",
    500: "Server error. Please try again later.",
    503: "Service temporarily unavailable",
}


class APIError(Exception):
    def __init__(self, message: str, status: Optional[int] = None, payload=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.payload = payload


class Unauthorized(APIError):
    pass


def error_message(status: int, body) -> str:
    """Message for a failed response: body.message, then body.detail, then a per-status default."""
    if isinstance(body, dict):
        for field in ("message", "detail"):
            value = body.get(field)
            if isinstance(value, str) and value:
                return value
    if status == 401:
        return SESSION_EXPIRED
    return STATUS_MESSAGES.get(status, GENERIC_ERROR)


class APIService:
    token_key = keys.ADMIN_TOKEN
    user_key = keys.ADMIN_USER
    path_prefix = ""

    def __init__(self, base_url: Optional[str] = None, storage: Optional[Storage] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None, timeout: Optional[float] = None):
        self.base_url = (base_url or settings.API_BASE_URL).rstrip("/")
        self.storage = storage or Storage()
        self.loading = False
        self.error: Optional[str] = None
        self._client = httpx.AsyncClient(
            base_url=self.base_url + self.path_prefix,
            timeout=timeout or settings.REQUEST_TIMEOUT_SEC,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._init_groups()

    def _init_groups(self):
        self.auth = _AdminAuth(self)
        self.dashboard = _Dashboard(self)
        self.rides = _AdminRides(self)
        self.drivers = _AdminDrivers(self)
        self.customers = _AdminCustomers(self)
        self.analytics = _Analytics(self)
        self.finance = _Finance(self)
        self.system = _System(self)
        self.reports = _Reports(self)
        self.integration = _Integration(self)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    def _headers(self) -> dict:
        token = self.storage.get_item(self.token_key)
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def call(self, endpoint: str, method: str = "GET", data=None, params: Optional[dict] = None):
        if params:
            params = {k: v for k, v in params.items() if v is not None}
        self.loading = True
        self.error = None
        try:
            try:
                resp = await self._client.request(method, endpoint, json=data, params=params or None,
                                                  headers=self._headers())
            except httpx.HTTPError as e:
                logger.warning("api_network_error: %s %s error=%s", method, endpoint, e)
                self.error = NETWORK_ERROR
                raise APIError(NETWORK_ERROR) from e

            body = _body(resp)
            if resp.status_code == 401:
                self.storage.remove_item(self.token_key, self.user_key)
                self.error = error_message(401, body)
                raise Unauthorized(self.error, 401, body)
            if resp.is_error:
                self.error = error_message(resp.status_code, body)
                logger.info("api_error: %s %s status=%s message=%s", method, endpoint, resp.status_code, self.error)
                raise APIError(self.error, resp.status_code, body)
            return body
        finally:
            self.loading = False


def _body(resp: httpx.Response):
    if "application/json" in resp.headers.get("content-type", ""):
        try:
            return resp.json()
        except ValueError:
            return None
    return resp.text


class _Group:
    def __init__(self, api: APIService):
        self._api = api

    def _call(self, *args, **kwargs):
        return self._api.call(*args, **kwargs)


# ---------------------------------------------------------------- admin groups

class _AdminAuth(_Group):
    def login(self, email: str, password: str):
        return self._call("/api/admin/auth/login", "POST", {"email": email, "password": password})

    def logout(self):
        return self._call("/api/admin/auth/logout", "POST")

    def refresh_token(self):
        return self._call("/api/admin/auth/refresh", "POST")

    def verify(self):
        return self._call("/api/admin/auth/verify")

    def get_profile(self):
        return self._call("/api/admin/auth/profile")

    def update_profile(self, profile: dict):
        return self._call("/api/admin/auth/profile", "PUT", profile)

    def change_password(self, current_password: str, new_password: str):
        return self._call("/api/admin/auth/change-password", "PUT",
                          {"current_password": current_password, "new_password": new_password})


class _Dashboard(_Group):
    def get_stats(self):
        return self._call("/api/admin/dashboard/stats")

    def get_revenue_data(self, time_range: str = "today"):
        return self._call("/api/admin/dashboard/revenue", params={"range": time_range})

    def get_ride_status_data(self):
        return self._call("/api/admin/dashboard/ride-status")

    def get_driver_activity(self):
        return self._call("/api/admin/dashboard/driver-activity")

    def get_recent_rides(self):
        return self._call("/api/admin/rides/recent")


class _AdminRides(_Group):
    def get_rides(self, **filters):
        return self._call("/api/admin/rides", params=filters)

    def get_ride(self, ride_id: str):
        return self._call(f"/api/admin/rides/{ride_id}")

    def update_status(self, ride_id: str, status: str):
        return self._call(f"/api/admin/rides/{ride_id}/status", "PUT", {"status": status})

    def assign_driver(self, ride_id: str, driver_id: str):
        return self._call(f"/api/admin/rides/{ride_id}/assign", "POST", {"driver_id": driver_id})

    def cancel(self, ride_id: str, reason: Optional[str] = None):
        return self._call(f"/api/admin/rides/{ride_id}/cancel", "POST", {"reason": reason})

    def history(self, ride_id: str):
        return self._call(f"/api/admin/rides/{ride_id}/history")

    def export(self, **filters):
        return self._call("/api/admin/rides/export", params=filters)


class _AdminDrivers(_Group):
    def get_drivers(self, **filters):
        return self._call("/api/admin/drivers", params=filters)

    def get_driver(self, driver_id: str):
        return self._call(f"/api/admin/drivers/{driver_id}")

    def create(self, driver: dict):
        return self._call("/api/admin/drivers", "POST", driver)

    def update(self, driver_id: str, driver: dict):
        return self._call(f"/api/admin/drivers/{driver_id}", "PUT", driver)

    def update_status(self, driver_id: str, status: str):
        return self._call(f"/api/admin/drivers/{driver_id}/status", "PUT", {"status": status})

    def documents(self, driver_id: str):
        return self._call(f"/api/admin/drivers/{driver_id}/documents")

    def approve(self, driver_id: str):
        return self._call(f"/api/admin/drivers/{driver_id}/approve", "POST")

    def suspend(self, driver_id: str, reason: Optional[str] = None):
        return self._call(f"/api/admin/drivers/{driver_id}/suspend", "POST", {"reason": reason})

    def earnings(self, driver_id: str, period: str = "week"):
        return self._call(f"/api/admin/drivers/{driver_id}/earnings", params={"period": period})

    def export(self, **filters):
        return self._call("/api/admin/drivers/export", params=filters)


class _AdminCustomers(_Group):
    def get_customers(self, **filters):
        return self._call("/api/admin/customers", params=filters)

    def get_customer(self, customer_id: str):
        return self._call(f"/api/admin/customers/{customer_id}")

    def update(self, customer_id: str, customer: dict):
        return self._call(f"/api/admin/customers/{customer_id}", "PUT", customer)

    def update_status(self, customer_id: str, status: str):
        return self._call(f"/api/admin/customers/{customer_id}/status", "PUT", {"status": status})

    def rides(self, customer_id: str):
        return self._call(f"/api/admin/customers/{customer_id}/rides")

    def ban(self, customer_id: str, reason: Optional[str] = None):
        return self._call(f"/api/admin/customers/{customer_id}/ban", "POST", {"reason": reason})

    def unban(self, customer_id: str):
        return self._call(f"/api/admin/customers/{customer_id}/unban", "POST")

    def export(self, **filters):
        return self._call("/api/admin/customers/export", params=filters)


class _Analytics(_Group):
    def get_analytics(self, period: str = "month"):
        return self._call("/api/admin/analytics", params={"period": period})

    def revenue(self, time_range: str = "month"):
        return self._call("/api/admin/analytics/revenue", params={"range": time_range})

    def performance(self):
        return self._call("/api/admin/analytics/performance")

    def geographic(self):
        return self._call("/api/admin/analytics/geographic")

    def peak_hours(self):
        return self._call("/api/admin/analytics/peak-hours")

    def driver_performance(self, driver_id: Optional[str] = None):
        return self._call("/api/admin/analytics/driver-performance", params={"driver_id": driver_id})


class _Finance(_Group):
    def summary(self, period: str = "month"):
        return self._call("/api/admin/finance/summary", params={"period": period})

    def payments(self):
        return self._call("/api/admin/finance/payments")

    def payouts(self):
        return self._call("/api/admin/finance/payouts")

    def process_payouts(self, driver_ids):
        return self._call("/api/admin/finance/payouts/process", "POST", {"driver_ids": list(driver_ids)})

    def transactions(self, **filters):
        return self._call("/api/admin/finance/transactions", params=filters)


class _System(_Group):
    def status(self):
        return self._call("/api/admin/system/status")

    def get_settings(self):
        return self._call("/api/admin/system/settings")

    def update_settings(self, values: dict):
        return self._call("/api/admin/system/settings", "PUT", values)

    def send_notification(self, notification: dict):
        return self._call("/api/admin/system/notifications", "POST", notification)

    def notifications(self, unread_only: bool = False):
        return self._call("/api/admin/system/notifications", params={"unread_only": str(unread_only).lower()})

    def mark_notification_read(self, notification_id: str):
        return self._call(f"/api/admin/system/notifications/{notification_id}/read", "PUT")

    def clear_cache(self):
        return self._call("/api/admin/system/cache/clear", "POST")


class _Reports(_Group):
    def generate(self, report_type: str, params: Optional[dict] = None):
        return self._call("/api/admin/reports/generate", "POST", {"type": report_type, "params": params or {}})

    def status(self, report_id: str):
        return self._call(f"/api/admin/reports/{report_id}/status")

    def scheduled(self):
        return self._call("/api/admin/reports/scheduled")

    def schedule(self, config: dict):
        return self._call("/api/admin/reports/schedule", "POST", config)

    def cancel_scheduled(self, schedule_id: str):
        return self._call(f"/api/admin/reports/scheduled/{schedule_id}", "DELETE")


class _CustomerAppIntegration(_Group):
    def send_push_notification(self, customer_id: str, notification: dict):
        return self._call("/api/admin/integration/customer/push", "POST", {"customer_id": customer_id, **notification})

    def broadcast_message(self, message: dict):
        return self._call("/api/admin/integration/customer/broadcast", "POST", message)


class _DriverAppIntegration(_Group):
    def send_push_notification(self, driver_id: str, notification: dict):
        return self._call("/api/admin/integration/driver/push", "POST", {"driver_id": driver_id, **notification})

    def broadcast_message(self, message: dict):
        return self._call("/api/admin/integration/driver/broadcast", "POST", message)


class _LocationIntegration(_Group):
    def driver_locations(self):
        return self._call("/api/admin/integration/locations/drivers")

    def active_ride_locations(self):
        return self._call("/api/admin/integration/locations/rides")


class _PaymentIntegration(_Group):
    def process_refund(self, ride_id: str, reason: str, amount: Optional[float] = None):
        return self._call("/api/payments/refund", "POST", {"ride_id": ride_id, "reason": reason, "amount": amount})


class _Integration:
    def __init__(self, api: APIService):
        self.customer_app = _CustomerAppIntegration(api)
        self.driver_app = _DriverAppIntegration(api)
        self.location = _LocationIntegration(api)
        self.payment = _PaymentIntegration(api)


# ---------------------------------------------------------------- customer app

class CustomerAPIService(APIService):
    token_key = keys.CUSTOMER_TOKEN
    user_key = keys.CUSTOMER_USER
    path_prefix = "/api"

    def _init_groups(self):
        self.auth = _LocalAuth(self)
        self.bookings = _Bookings(self)
        self.payments = _Payments(self)
        self.rides = _CustomerRides(self)


class _LocalAuth(_Group):
    """Token bookkeeping for apps whose login happens outside the platform service."""

    def set_token(self, token: str):
        self._api.storage.set_item(self._api.token_key, token)

    def logout(self):
        self._api.storage.remove_item(self._api.token_key, self._api.user_key)


class _Bookings(_Group):
    def list(self, customer_id: str, page: int = 1, limit: int = 10):
        return self._call("/rides/my-rides", params={"customer_id": customer_id, "page": page, "limit": limit})

    def estimate_fare(self, pickup: dict, destination: dict, ride_type: str = "standard"):
        return self._call("/rides/estimate", "POST", {"pickup": pickup, "destination": destination, "ride_type": ride_type})


class _Payments(_Group):
    def transactions(self, customer_id: str):
        return self._call("/payments/transactions", params={"customer_id": customer_id})

    def wallet_balance(self, customer_id: str):
        return self._call("/payments/wallet/balance", params={"customer_id": customer_id})

    def refund(self, ride_id: str, reason: str, amount: Optional[float] = None):
        return self._call("/payments/refund", "POST", {"ride_id": ride_id, "reason": reason, "amount": amount})


class _CustomerRides(_Group):
    def request(self, customer_id: str, pickup: dict, destination: dict, ride_type: str = "standard",
                payment_method: str = "cash"):
        return self._call("/rides/request", "POST", {
            "customer_id": customer_id,
            "pickup": pickup,
            "destination": destination,
            "ride_type": ride_type,
            "payment_method": payment_method,
        })

    def cancel(self, ride_id: str, reason: Optional[str] = None):
        return self._call(f"/rides/{ride_id}/cancel", "POST", {"reason": reason, "cancelled_by": "customer"})

    def get(self, ride_id: str):
        return self._call(f"/rides/{ride_id}")


# ---------------------------------------------------------------- driver app

class DriverAPIService(APIService):
    token_key = keys.DRIVER_TOKEN
    user_key = keys.DRIVER_DATA
    path_prefix = "/api"

    def _init_groups(self):
        self.auth = _LocalAuth(self)
        self.profile = _DriverProfile(self)
        self.status = _DriverStatus(self)
        self.location = _DriverLocation(self)
        self.ride_requests = _RideRequests(self)
        self.rides = _DriverRides(self)
        self.earnings = _DriverEarnings(self)


class _DriverProfile(_Group):
    def get(self, driver_id: str):
        return self._call(f"/drivers/{driver_id}")


class _DriverStatus(_Group):
    def update(self, driver_id: str, status: str, location: Optional[dict] = None):
        return self._call(f"/drivers/{driver_id}/status", "PUT", {"status": status, "location": location})


class _DriverLocation(_Group):
    def update(self, driver_id: str, lat: float, lng: float, heading: Optional[float] = None,
               speed: Optional[float] = None):
        return self._call(f"/drivers/{driver_id}/location", "POST",
                          {"lat": lat, "lng": lng, "heading": heading, "speed": speed})


class _RideRequests(_Group):
    def list(self, driver_id: str):
        return self._call(f"/drivers/{driver_id}/ride-requests")

    def accept(self, ride_id: str, driver_id: str, negotiated_fare: Optional[float] = None):
        return self._call(f"/rides/{ride_id}/accept", "POST", {"driver_id": driver_id, "negotiated_fare": negotiated_fare})

    async def decline(self, ride_id: str, reason: str = ""):
        # declining is local; the request stays pending for other drivers
        logger.info("ride_declined: ride=%s reason=%s", ride_id, reason)
        return {"success": True, "ride_id": ride_id}


class _DriverRides(_Group):
    def update_status(self, ride_id: str, status: str, location: Optional[dict] = None):
        return self._call(f"/rides/{ride_id}/status", "PUT", {"status": status, "location": location})

    def start(self, ride_id: str, location: Optional[dict] = None):
        return self.update_status(ride_id, "in_progress", location)

    def complete(self, ride_id: str, location: Optional[dict] = None):
        return self.update_status(ride_id, "completed", location)

    def cancel(self, ride_id: str, reason: Optional[str] = None):
        return self._call(f"/rides/{ride_id}/cancel", "POST", {"reason": reason, "cancelled_by": "driver"})


class _DriverEarnings(_Group):
    def get(self, driver_id: str, period: str = "week"):
        return self._call(f"/drivers/{driver_id}/earnings", params={"period": period})
