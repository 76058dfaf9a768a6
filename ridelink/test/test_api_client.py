import asyncio
import json

import httpx
import pytest

from ridelink import api_client
from ridelink.api_client import APIError, APIService, CustomerAPIService, DriverAPIService, Unauthorized
from ridelink.config import settings
from ridelink.storage import Storage


@pytest.fixture
def storage(tmp_path):
    return Storage(str(tmp_path / "storage.json"))


def _service(cls, handler, storage):
    return cls(base_url="http://platform.test", storage=storage, transport=httpx.MockTransport(handler))


def test_error_message_precedence():
    assert api_client.error_message(400, {"message": "Bad fare", "detail": "ignored"}) == "Bad fare"
    assert api_client.error_message(409, {"detail": "Driver is busy"}) == "Driver is busy"
    assert api_client.error_message(401, {}) == api_client.SESSION_EXPIRED
    assert api_client.error_message(404, "not json") == "Resource not found"
    assert api_client.error_message(418, None) == api_client.GENERIC_ERROR


def test_call_sends_token_and_drops_empty_params(storage):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers.get("authorization")
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"rides": []})

    storage.set_item("admin_token", "tok123")
    api = _service(APIService, handler, storage)
    body = asyncio.run(api.rides.get_rides(status="pending", search=None))
    assert body == {"rides": []}
    assert seen["auth"] == "Bearer tok123"
    assert seen["url"] == "http://platform.test/api/admin/rides?status=pending"
    assert api.loading is False


def test_unauthorized_clears_stored_session(storage):
    storage.set_item("admin_token", "expired")
    storage.set_json("admin_user", {"email": "admin@ridelink.dev"})
    api = _service(APIService, lambda request: httpx.Response(401, json={"detail": "Not authenticated"}), storage)

    with pytest.raises(Unauthorized) as exc:
        asyncio.run(api.dashboard.get_stats())
    assert exc.value.status == 401
    assert storage.get_item("admin_token") is None
    assert storage.get_item("admin_user") is None


def test_server_error_uses_body_message(storage):
    api = _service(APIService, lambda request: httpx.Response(
        409, json={"success": False, "message": "cannot move ride from pending to completed"}), storage)
    with pytest.raises(APIError) as exc:
        asyncio.run(api.rides.update_status("RIDE004", "completed"))
    assert exc.value.status == 409
    assert exc.value.message == "cannot move ride from pending to completed"
    assert api.error == exc.value.message


def test_network_error(storage):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    api = _service(APIService, handler, storage)
    with pytest.raises(APIError) as exc:
        asyncio.run(api.system.status())
    assert exc.value.message == api_client.NETWORK_ERROR
    assert exc.value.status is None


def test_csv_export_returns_text(storage):
    api = _service(APIService, lambda request: httpx.Response(
        200, text="id,name\nDRV001,Mike\n", headers={"content-type": "text/csv"}), storage)
    assert asyncio.run(api.drivers.export()).startswith("id,name")


def test_customer_service_paths(storage):
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path, json.loads(request.content or b"null")))
        return httpx.Response(200, json={"success": True})

    storage.set_item("authToken", "cust")
    api = _service(CustomerAPIService, handler, storage)

    async def run():
        await api.rides.request("CUST001", {"lat": 1, "lng": 2}, {"lat": 3, "lng": 4})
        await api.rides.cancel("RIDE004", "late")
        await api.payments.wallet_balance("CUST001")

    asyncio.run(run())
    assert calls[0][:2] == ("POST", "/api/rides/request")
    assert calls[0][2]["customer_id"] == "CUST001"
    assert calls[1] == ("POST", "/api/rides/RIDE004/cancel", {"reason": "late", "cancelled_by": "customer"})
    assert calls[2][:2] == ("GET", "/api/payments/wallet/balance")

    api.auth.logout()
    assert storage.get_item("authToken") is None


def test_driver_service_paths(storage):
    calls = []

    def handler(request):
        calls.append((request.method, request.url.path))
        return httpx.Response(200, json={"success": True})

    api = _service(DriverAPIService, handler, storage)

    async def run():
        await api.location.update("DRV001", 40.7, -74.0)
        await api.rides.start("RIDE004")
        declined = await api.ride_requests.decline("RIDE005", "too far")
        await api.earnings.get("DRV001", "month")
        return declined

    declined = asyncio.run(run())
    assert declined == {"success": True, "ride_id": "RIDE005"}
    assert calls == [
        ("POST", "/api/drivers/DRV001/location"),
        ("PUT", "/api/rides/RIDE004/status"),
        ("GET", "/api/drivers/DRV001/earnings"),
    ]


def test_client_against_platform(fake_redis, storage):
    from ridelink.main import app

    async def run():
        async with APIService(base_url="http://platform.test", storage=storage,
                              transport=httpx.ASGITransport(app=app)) as api:
            login = await api.auth.login(settings.ADMIN_EMAIL, settings.ADMIN_PASSWORD)
            storage.set_item("admin_token", login["token"])
            stats = await api.dashboard.get_stats()
            with pytest.raises(APIError) as exc:
                await api.rides.update_status("RIDE002", "pending")
            return stats, exc.value

    stats, error = asyncio.run(run())
    assert stats["totalRides"] == 3
    assert error.status == 409
