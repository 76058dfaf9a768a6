"""Status vocabularies and business rules shared by the platform service and the clients."""

# Ride lifecycle
RIDE_PENDING = "pending"
RIDE_DRIVER_ASSIGNED = "driver_assigned"
RIDE_IN_PROGRESS = "in_progress"
RIDE_COMPLETED = "completed"
RIDE_CANCELLED = "cancelled"

RIDE_STATUSES = (
    RIDE_PENDING,
    RIDE_DRIVER_ASSIGNED,
    RIDE_IN_PROGRESS,
    RIDE_COMPLETED,
    RIDE_CANCELLED,
)

TERMINAL_RIDE_STATUSES = frozenset({RIDE_COMPLETED, RIDE_CANCELLED})

RIDE_TRANSITIONS = {
    RIDE_PENDING: frozenset({RIDE_DRIVER_ASSIGNED, RIDE_CANCELLED}),
    RIDE_DRIVER_ASSIGNED: frozenset({RIDE_IN_PROGRESS, RIDE_CANCELLED}),
    RIDE_IN_PROGRESS: frozenset({RIDE_COMPLETED, RIDE_CANCELLED}),
    RIDE_COMPLETED: frozenset(),
    RIDE_CANCELLED: frozenset(),
}

# Spellings used by the admin, customer and driver apps for the same states
RIDE_STATUS_ALIASES = {
    "requested": RIDE_PENDING,
    "searching": RIDE_PENDING,
    "accepted": RIDE_DRIVER_ASSIGNED,
    "driver-assigned": RIDE_DRIVER_ASSIGNED,
    "in-progress": RIDE_IN_PROGRESS,
    "ongoing": RIDE_IN_PROGRESS,
    "started": RIDE_IN_PROGRESS,
    "cancelled_by_passenger": RIDE_CANCELLED,
    "cancelled_by_driver": RIDE_CANCELLED,
    "cancelled_by_system": RIDE_CANCELLED,
    "driver_arriving": RIDE_DRIVER_ASSIGNED,
    "driver_arrived": RIDE_DRIVER_ASSIGNED,
}

# progress reported by the driver while the ride stays driver_assigned
RIDE_PICKUP_STEPS = {
    "driver_arriving": None,
    "driver_arrived": "arrived_at",
}

# timestamp field stamped when a ride enters a state
RIDE_STATUS_TIMESTAMPS = {
    RIDE_DRIVER_ASSIGNED: "assigned_at",
    RIDE_IN_PROGRESS: "started_at",
    RIDE_COMPLETED: "completed_at",
    RIDE_CANCELLED: "cancelled_at",
}

# Drivers
DRIVER_ONLINE = "online"
DRIVER_BUSY = "busy"
DRIVER_OFFLINE = "offline"
DRIVER_SUSPENDED = "suspended"

DRIVER_STATUSES = (DRIVER_ONLINE, DRIVER_BUSY, DRIVER_OFFLINE, DRIVER_SUSPENDED)

DOC_APPROVED = "approved"
DOC_PENDING = "pending"
DOC_REJECTED = "rejected"
DOC_EXPIRED = "expired"

# Customers
CUSTOMER_ACTIVE = "active"
CUSTOMER_INACTIVE = "inactive"
CUSTOMER_BANNED = "banned"
CUSTOMER_SUSPENDED = "suspended"

CUSTOMER_STATUSES = (CUSTOMER_ACTIVE, CUSTOMER_INACTIVE, CUSTOMER_BANNED, CUSTOMER_SUSPENDED)

# Payments
TX_RIDE_PAYMENT = "ride_payment"
TX_REFUND = "refund"
TX_PAYOUT = "payout"

PAY_PENDING = "pending"
PAY_COMPLETED = "completed"
PAY_FAILED = "failed"
PAY_REFUNDED = "refunded"

PAYMENT_METHODS = ("cash", "credit_card", "card", "wallet", "paypal")

# Pricing, per km
RIDE_TYPES = ("economy", "standard", "premium")
FARE_RATES = {
    "economy": 1.2,
    "standard": 1.5,
    "premium": 2.5,
}

# Admin roles
ROLE_ADMIN = "admin"
ROLE_SUPER_ADMIN = "super_admin"

BUSINESS_RULES = {
    "MIN_RIDE_DISTANCE": 0.5,
    "MAX_RIDE_DISTANCE": 100,
    "MIN_FARE": 5.00,
    "MAX_FARE": 500.00,
    "SURGE_MULTIPLIER_MAX": 5.0,
    "DRIVER_RATING_MIN": 1.0,
    "DRIVER_RATING_MAX": 5.0,
    "CUSTOMER_RATING_MIN": 1.0,
    "CUSTOMER_RATING_MAX": 5.0,
    "MAX_PICKUP_TIME": 15,
    "MAX_RIDE_TIME": 240,
    "CANCELLATION_WINDOW": 5,
}

REGEX_PATTERNS = {
    "EMAIL": r"^[^\s@]+@[^\s@]+\.[^\s@]+$",
    "PHONE": r"^\+?[\d\s\-\(\)]{10,}$",
    "PASSWORD": r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,}$",
    "LICENSE_PLATE": r"^[A-Za-z0-9]{2,10}$",
    "POSTAL_CODE": r"^\d{5}(-\d{4})?$",
    "COORDINATES": r"^-?([1-8]?\d(\.\d+)?|90(\.0+)?),\s*-?(180(\.0+)?|((1[0-7]\d)|([1-9]?\d))(\.\d+)?)$",
}
