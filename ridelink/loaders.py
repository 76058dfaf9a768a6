"""Screen loaders with the mock-data fallback.

A loader asks the platform for a screen's data; when the call fails it logs
a warning and hands back a private copy of that screen's demo dataset, so a
screen always has something to render.
"""
from typing import Optional

import httpx

from .api_client import APIError
from .config import settings
from .logging_setup import get_logger
from . import mock_data

logger = get_logger(__name__)

_FAILURES = (APIError, httpx.HTTPError)


def _fallback(screen: str, error, dataset):
    if not settings.USE_MOCK_FALLBACK:
        raise error
    logger.warning("load_failed_using_mock: screen=%s error=%s", screen, error)
    return mock_data.snapshot(dataset)


async def load_dashboard(api) -> dict:
    try:
        return {
            "stats": await api.dashboard.get_stats(),
            "recent_rides": (await api.dashboard.get_recent_rides())["rides"],
            "revenue": (await api.dashboard.get_revenue_data("today"))["data"],
        }
    except _FAILURES as e:
        return _fallback("dashboard", e, {
            "stats": mock_data.DASHBOARD_STATS,
            "recent_rides": mock_data.RECENT_RIDES,
            "revenue": mock_data.REVENUE_SERIES,
        })


async def load_rides(api, **filters) -> list:
    try:
        return (await api.rides.get_rides(**filters))["rides"]
    except _FAILURES as e:
        return _fallback("rides", e, mock_data.RIDES)


async def load_drivers(api, status: Optional[str] = None, search: Optional[str] = None) -> list:
    try:
        return (await api.drivers.get_drivers(status=status, search=search))["drivers"]
    except _FAILURES as e:
        return _fallback("drivers", e, mock_data.DRIVERS)


async def load_customers(api, status: Optional[str] = None, search: Optional[str] = None) -> list:
    try:
        return (await api.customers.get_customers(status=status, search=search))["customers"]
    except _FAILURES as e:
        return _fallback("customers", e, mock_data.CUSTOMERS)


async def load_analytics(api, period: str = "month") -> dict:
    try:
        return await api.analytics.get_analytics(period)
    except _FAILURES as e:
        return _fallback("analytics", e, mock_data.ANALYTICS)


async def load_driver_earnings(api, driver_id: str, period: str = "week") -> dict:
    """Earnings for the driver app; ``api`` is a DriverAPIService."""
    try:
        return await api.earnings.get(driver_id, period)
    except _FAILURES as e:
        return _fallback("driver_earnings", e, {
            "period": period,
            "summary": mock_data.DRIVER_EARNINGS.get(period, mock_data.DRIVER_EARNINGS["week"]),
            "recent": mock_data.RECENT_EARNINGS,
            "goals": mock_data.WEEKLY_GOALS,
        })
