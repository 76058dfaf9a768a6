"""Status badge styling per screen: status -> (css classes, icon name)."""
from typing import NamedTuple, Optional

GRAY = "text-gray-600 bg-gray-100"
GREEN = "text-green-600 bg-green-100"
BLUE = "text-blue-600 bg-blue-100"
YELLOW = "text-yellow-600 bg-yellow-100"
RED = "text-red-600 bg-red-100"
PURPLE = "text-purple-600 bg-purple-100"
ORANGE = "text-orange-600 bg-orange-100"


class Badge(NamedTuple):
    classes: str
    icon: Optional[str]
    label: Optional[str] = None


ADMIN_RIDES = {
    "completed": Badge(GREEN, "CheckCircle"),
    "in_progress": Badge(BLUE, "Play"),
    "pending": Badge(YELLOW, "Clock"),
    "cancelled": Badge(RED, "XCircle"),
    "driver_assigned": Badge(PURPLE, "Navigation"),
}
ADMIN_RIDES_DEFAULT = Badge(GRAY, "AlertTriangle")

ADMIN_DRIVERS = {
    "online": Badge(GREEN, "CheckCircle"),
    "busy": Badge(YELLOW, "Clock"),
    "offline": Badge(GRAY, "XCircle"),
    "suspended": Badge(RED, "Ban"),
}
ADMIN_DRIVERS_DEFAULT = Badge(GRAY, "AlertTriangle")

ADMIN_CUSTOMERS = {
    "active": Badge(GREEN, None),
    "inactive": Badge(GRAY, None),
    "banned": Badge(RED, None),
    "suspended": Badge(YELLOW, None),
}
ADMIN_CUSTOMERS_DEFAULT = Badge(GRAY, None)

CUSTOMER_RIDE_DETAILS = {
    "completed": Badge(GREEN, "CheckCircle"),
    "in_progress": Badge(BLUE, "Navigation"),
    "cancelled": Badge(RED, "AlertCircle"),
    "pending": Badge(YELLOW, "Clock"),
}
CUSTOMER_RIDE_DETAILS_DEFAULT = Badge(GRAY, "Clock")

CUSTOMER_RIDES_LIST = {
    "completed": Badge("bg-green-100 text-green-600", None),
    "cancelled": Badge("bg-red-100 text-red-600", None),
    "ongoing": Badge("bg-blue-100 text-blue-600", None),
}
CUSTOMER_RIDES_LIST_DEFAULT = Badge("bg-gray-100 text-gray-600", None)

DRIVER_DOCUMENTS = {
    "verified": Badge(GREEN + " border-green-200", "CheckCircle", "Verified"),
    "pending": Badge(YELLOW + " border-yellow-200", "Clock", "Under Review"),
    "expired": Badge(ORANGE + " border-orange-200", "AlertCircle", "Expired"),
    "rejected": Badge(RED + " border-red-200", "XCircle", "Rejected"),
    "not_uploaded": Badge(GRAY + " border-gray-200", "Upload", "Not Uploaded"),
}
DRIVER_DOCUMENTS_DEFAULT = Badge(GRAY + " border-gray-200", "FileText", "Unknown")

# shared admin palette, keyed by any entity status
STATUS_COLORS = {
    "active": GREEN, "online": GREEN, "completed": GREEN, "success": GREEN,
    "pending": YELLOW, "warning": YELLOW, "busy": YELLOW,
    "inactive": GRAY, "offline": GRAY,
    "cancelled": RED, "suspended": RED, "banned": RED, "error": RED,
    "in-progress": BLUE, "in_progress": BLUE,
    "driver-assigned": PURPLE, "driver_assigned": PURPLE,
}

_SCREENS = {
    "admin_rides": (ADMIN_RIDES, ADMIN_RIDES_DEFAULT),
    "admin_drivers": (ADMIN_DRIVERS, ADMIN_DRIVERS_DEFAULT),
    "admin_customers": (ADMIN_CUSTOMERS, ADMIN_CUSTOMERS_DEFAULT),
    "customer_ride_details": (CUSTOMER_RIDE_DETAILS, CUSTOMER_RIDE_DETAILS_DEFAULT),
    "customer_rides": (CUSTOMER_RIDES_LIST, CUSTOMER_RIDES_LIST_DEFAULT),
    "driver_documents": (DRIVER_DOCUMENTS, DRIVER_DOCUMENTS_DEFAULT),
}


def badge(screen: str, status: Optional[str]) -> Badge:
    table, default = _SCREENS[screen]
    return table.get(status, default)


def get_status_color(status: Optional[str]) -> str:
    return STATUS_COLORS.get((status or "").lower(), GRAY)
