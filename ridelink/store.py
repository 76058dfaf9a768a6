import asyncio
from typing import Dict, List, Optional
import logging

from . import mock_data

logger = logging.getLogger(__name__)


class Store:
    """Process-local record store keyed by id.

    Reads are plain dict lookups. Writers hold `lock` for the whole
    read-modify-write so concurrent requests never interleave on one record.
    """

    def __init__(self):
        self.reset()

    def reset(self):
        self.lock = asyncio.Lock()
        self.rides: Dict[str, dict] = {r["id"]: r for r in mock_data.snapshot(mock_data.RIDES)}
        self.drivers: Dict[str, dict] = {d["id"]: d for d in mock_data.snapshot(mock_data.DRIVERS)}
        self.customers: Dict[str, dict] = {c["id"]: c for c in mock_data.snapshot(mock_data.CUSTOMERS)}
        self.transactions: List[dict] = mock_data.snapshot(mock_data.TRANSACTIONS)
        self.notifications: List[dict] = []
        self.reports: Dict[str, dict] = {}
        self.scheduled_reports: Dict[str, dict] = {}
        self.app_settings: dict = {
            "maintenance_mode": False,
            "surge_pricing_enabled": True,
            "max_surge_multiplier": 3.0,
            "driver_commission_rate": 0.15,
            "support_email": "support@ridelink.dev",
        }
        self._counters: Dict[str, int] = {}
        logger.info(
            "store_seeded: rides=%d drivers=%d customers=%d",
            len(self.rides), len(self.drivers), len(self.customers),
        )

    def next_id(self, prefix: str, width: int = 3) -> str:
        """Sequential ids that continue after the seeded records (RIDE004, DRV004, ...)."""
        if prefix not in self._counters:
            existing = [
                key for pool in (self.rides, self.drivers, self.customers)
                for key in pool if key.startswith(prefix)
            ]
            existing += [t["id"] for t in self.transactions if t["id"].startswith(prefix)]
            existing += [n["id"] for n in self.notifications if n["id"].startswith(prefix)]
            existing += [k for k in list(self.reports) + list(self.scheduled_reports) if k.startswith(prefix)]
            numbers = [int(k[len(prefix):]) for k in existing if k[len(prefix):].isdigit()]
            self._counters[prefix] = max(numbers, default=0)
        self._counters[prefix] += 1
        return f"{prefix}{self._counters[prefix]:0{width}d}"

    def active_ride_for_driver(self, driver_id: str) -> Optional[dict]:
        for ride in self.rides.values():
            if ride.get("driver_id") == driver_id and ride.get("status") in ("driver_assigned", "in_progress"):
                return ride
        return None


store = Store()
