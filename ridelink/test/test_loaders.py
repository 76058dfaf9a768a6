import asyncio

import httpx
import pytest

from ridelink import loaders, mock_data
from ridelink.api_client import APIError, APIService, DriverAPIService
from ridelink.config import settings
from ridelink.storage import Storage


def _down(request):
    raise httpx.ConnectError("connection refused", request=request)


@pytest.fixture
def storage(tmp_path):
    return Storage(str(tmp_path / "storage.json"))


def test_live_data_is_returned(storage):
    api = APIService(base_url="http://platform.test", storage=storage, transport=httpx.MockTransport(
        lambda request: httpx.Response(200, json={"drivers": [{"id": "DRV009"}]})))
    assert asyncio.run(loaders.load_drivers(api, status="online")) == [{"id": "DRV009"}]


def test_unreachable_platform_falls_back_to_mock(storage):
    api = APIService(base_url="http://platform.test", storage=storage, transport=httpx.MockTransport(_down))
    rides = asyncio.run(loaders.load_rides(api, status="all"))
    assert [r["id"] for r in rides] == [r["id"] for r in mock_data.RIDES]
    rides[0]["status"] = "mutated"
    assert mock_data.RIDES[0]["status"] == "in_progress"

    dashboard = asyncio.run(loaders.load_dashboard(api))
    assert dashboard["stats"] == mock_data.DASHBOARD_STATS
    assert dashboard["recent_rides"] == mock_data.RECENT_RIDES


def test_server_error_falls_back_for_driver_earnings(storage):
    api = DriverAPIService(base_url="http://platform.test", storage=storage, transport=httpx.MockTransport(
        lambda request: httpx.Response(500, json={"message": "boom"})))
    earnings = asyncio.run(loaders.load_driver_earnings(api, "DRV001", "month"))
    assert earnings["summary"] == mock_data.DRIVER_EARNINGS["month"]
    assert earnings["goals"] == mock_data.WEEKLY_GOALS


def test_fallback_can_be_disabled(storage, monkeypatch):
    monkeypatch.setattr(settings, "USE_MOCK_FALLBACK", False)
    api = APIService(base_url="http://platform.test", storage=storage, transport=httpx.MockTransport(_down))
    with pytest.raises(APIError):
        asyncio.run(loaders.load_customers(api))
