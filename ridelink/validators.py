"""Form validators.

Each validator returns ``None`` when the value passes or a human-readable
message when it does not. Empty values pass every check except
``validate_required``.
"""
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional
import re

from .helpers import parse_date
from . import models

Validator = Callable[..., Optional[str]]

_PATTERNS = {name: re.compile(pattern) for name, pattern in models.REGEX_PATTERNS.items()}
_RULES = models.BUSINESS_RULES


def is_empty(value) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict, set)):
        return len(value) == 0
    return False


def _to_number(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------- strings

def validate_required(value, field: str = "Field") -> Optional[str]:
    if is_empty(value):
        return f"{field} is required"
    return None


def validate_min_length(value, min_length: int, field: str = "Field") -> Optional[str]:
    if is_empty(value):
        return None
    if len(value) < min_length:
        return f"{field} must be at least {min_length} characters long"
    return None


def validate_max_length(value, max_length: int, field: str = "Field") -> Optional[str]:
    if is_empty(value):
        return None
    if len(value) > max_length:
        return f"{field} must be no more than {max_length} characters long"
    return None


def validate_length(value, min_length: int, max_length: int, field: str = "Field") -> Optional[str]:
    return validate_min_length(value, min_length, field) or validate_max_length(value, max_length, field)


def validate_email(value, field: str = "Email") -> Optional[str]:
    if is_empty(value):
        return None
    if not _PATTERNS["EMAIL"].match(value):
        return f"{field} must be a valid email address"
    return None


def validate_phone(value, field: str = "Phone number") -> Optional[str]:
    if is_empty(value):
        return None
    if not _PATTERNS["PHONE"].match(value):
        return f"{field} must be a valid phone number"
    return None


def validate_password(value, field: str = "Password") -> Optional[str]:
    if is_empty(value):
        return None
    if len(value) < 8:
        return f"{field} must be at least 8 characters long"
    if not _PATTERNS["PASSWORD"].match(value):
        return (f"{field} must contain at least one uppercase letter, one lowercase letter, "
                f"one number, and one special character")
    return None


def validate_password_confirmation(password, confirmation, field: str = "Password confirmation") -> Optional[str]:
    if is_empty(confirmation):
        return None
    if password != confirmation:
        return f"{field} must match the password"
    return None


# ---------------------------------------------------------------- numbers

def validate_number(value, field: str = "Field") -> Optional[str]:
    if is_empty(value):
        return None
    if _to_number(value) is None:
        return f"{field} must be a valid number"
    return None


def validate_min(value, minimum, field: str = "Field") -> Optional[str]:
    n = None if is_empty(value) else _to_number(value)
    if n is not None and n < minimum:
        return f"{field} must be at least {minimum}"
    return None


def validate_max(value, maximum, field: str = "Field") -> Optional[str]:
    n = None if is_empty(value) else _to_number(value)
    if n is not None and n > maximum:
        return f"{field} must be no more than {maximum}"
    return None


def validate_range(value, minimum, maximum, field: str = "Field") -> Optional[str]:
    return validate_min(value, minimum, field) or validate_max(value, maximum, field)


# ---------------------------------------------------------------- dates

def validate_date(value, field: str = "Date") -> Optional[str]:
    if is_empty(value):
        return None
    if parse_date(value) is None:
        return f"{field} must be a valid date"
    return None


def _aware(value) -> datetime:
    dt = parse_date(value)
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def validate_future_date(value, field: str = "Date", now: Optional[datetime] = None) -> Optional[str]:
    if is_empty(value):
        return None
    error = validate_date(value, field)
    if error:
        return error
    if _aware(value) <= (now or datetime.now(timezone.utc)):
        return f"{field} must be in the future"
    return None


def validate_past_date(value, field: str = "Date", now: Optional[datetime] = None) -> Optional[str]:
    if is_empty(value):
        return None
    error = validate_date(value, field)
    if error:
        return error
    if _aware(value) >= (now or datetime.now(timezone.utc)):
        return f"{field} must be in the past"
    return None


def validate_date_range(start, end, start_field: str = "Start date", end_field: str = "End date") -> Optional[str]:
    if is_empty(start) or is_empty(end):
        return None
    error = validate_date(start, start_field) or validate_date(end, end_field)
    if error:
        return error
    if _aware(start) >= _aware(end):
        return f"{end_field} must be after {start_field.lower()}"
    return None


# ---------------------------------------------------------------- business rules

def _numeric_range(value, minimum, maximum, field) -> Optional[str]:
    if is_empty(value):
        return None
    return validate_number(value, field) or validate_range(value, minimum, maximum, field)


def validate_ride_distance(value, field: str = "Ride distance") -> Optional[str]:
    return _numeric_range(value, _RULES["MIN_RIDE_DISTANCE"], _RULES["MAX_RIDE_DISTANCE"], field)


def validate_fare(value, field: str = "Fare") -> Optional[str]:
    return _numeric_range(value, _RULES["MIN_FARE"], _RULES["MAX_FARE"], field)


def validate_rating(value, field: str = "Rating") -> Optional[str]:
    return _numeric_range(value, _RULES["DRIVER_RATING_MIN"], _RULES["DRIVER_RATING_MAX"], field)


def validate_license_plate(value, field: str = "License plate") -> Optional[str]:
    if is_empty(value):
        return None
    if not _PATTERNS["LICENSE_PLATE"].match(value):
        return f"{field} must be a valid license plate number"
    return None


def validate_coordinates(value, field: str = "Coordinates") -> Optional[str]:
    if is_empty(value):
        return None
    if not _PATTERNS["COORDINATES"].match(value):
        return f"{field} must be valid latitude,longitude coordinates"
    return None


# ---------------------------------------------------------------- forms

def validate_form(data: dict, rules: Dict[str, List[Validator]]) -> dict:
    """Run each field's rules in order, keeping the first error per field."""
    errors = {}
    for field, checks in rules.items():
        for check in checks:
            error = check(data.get(field))
            if error:
                errors[field] = error
                break
    return {"is_valid": not errors, "errors": errors}


def validate_login_form(data: dict) -> dict:
    return validate_form(data, {
        "email": [lambda v: validate_required(v, "Email"), lambda v: validate_email(v, "Email")],
        "password": [lambda v: validate_required(v, "Password")],
    })


def validate_driver_form(data: dict) -> dict:
    return validate_form(data, {
        "name": [lambda v: validate_required(v, "Full name"), lambda v: validate_length(v, 2, 50, "Full name")],
        "email": [lambda v: validate_required(v, "Email"), lambda v: validate_email(v, "Email")],
        "phone": [lambda v: validate_required(v, "Phone number"), lambda v: validate_phone(v, "Phone number")],
        "license_plate": [
            lambda v: validate_required(v, "License plate"),
            lambda v: validate_license_plate(v, "License plate"),
        ],
    })


def validate_customer_form(data: dict) -> dict:
    return validate_form(data, {
        "name": [lambda v: validate_required(v, "Full name"), lambda v: validate_length(v, 2, 50, "Full name")],
        "email": [lambda v: validate_required(v, "Email"), lambda v: validate_email(v, "Email")],
        "phone": [lambda v: validate_phone(v, "Phone number")],
    })


def validate_ride_form(data: dict) -> dict:
    return validate_form(data, {
        "pickup_address": [lambda v: validate_required(v, "Pickup address")],
        "destination_address": [lambda v: validate_required(v, "Destination address")],
        "fare": [lambda v: validate_required(v, "Fare"), lambda v: validate_fare(v, "Fare")],
    })


def check_password_change(current: str, new: str, confirm: str) -> Optional[dict]:
    """Notification payload describing why a password change can't be submitted, or None."""
    if new != confirm:
        return {
            "type": "error",
            "title": "Password Mismatch",
            "message": "New password and confirmation do not match.",
        }
    missing = validate_required(current, "Current password") or validate_required(new, "New password")
    if missing:
        return {"type": "error", "title": "Missing Password", "message": missing}
    weak = validate_password(new, "New password")
    if weak:
        return {"type": "error", "title": "Weak Password", "message": weak}
    return None
