"""Formatting and collection helpers shared by the three apps' screens."""
from datetime import datetime, timezone
from math import radians, cos, sin, asin, sqrt, isnan
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union
import random
import re
import string

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "PKR": "Rs",
    "INR": "₹",
    "AED": "AED",
}

Key = Union[str, Callable[[Any], Any]]


def _missing(value) -> bool:
    if value is None:
        return True
    try:
        return isnan(float(value))
    except (TypeError, ValueError):
        return True


def parse_date(value) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _key_fn(key: Key) -> Callable[[Any], Any]:
    return key if callable(key) else (lambda item: item.get(key))


# ---------------------------------------------------------------- numbers

def format_currency(amount, currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency, currency)
    prefix = symbol if len(symbol) == 1 else symbol + " "
    if _missing(amount):
        return f"{prefix}0.00"
    amount = float(amount)
    sign = "-" if amount < 0 else ""
    return f"{sign}{prefix}{abs(amount):,.2f}"


def format_number(number, max_decimals: int = 2) -> str:
    if _missing(number):
        return "0"
    text = f"{float(number):,.{max_decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_percentage(value, total, decimals: int = 1) -> str:
    if not value or not total:
        return "0%"
    return f"{value / total * 100:.{decimals}f}%"


def abbreviate_number(number) -> str:
    if _missing(number):
        return "0"
    n = float(number)
    for threshold, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
        if abs(n) >= threshold:
            return f"{n / threshold:.1f}{suffix}"
    return str(int(n)) if n.is_integer() else str(n)


def calculate_growth_rate(current: float, previous: float) -> float:
    if not previous:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / previous * 100


def calculate_sum(items: Iterable[dict], key: Key) -> float:
    get = _key_fn(key)
    return sum(float(get(item) or 0) for item in items)


def calculate_average(items: List[dict], key: Key) -> float:
    if not items:
        return 0.0
    return calculate_sum(items, key) / len(items)


# ---------------------------------------------------------------- dates

def format_date(value, fmt: str = "short") -> str:
    """``short`` -> "Sep 14, 2025", ``long`` -> "September 14, 2025 at 02:30 PM", ``time`` -> "14:30:00"."""
    if value is None or value == "":
        return "N/A"
    dt = parse_date(value)
    if dt is None:
        return "Invalid Date"
    if fmt == "long":
        return f"{dt:%B} {dt.day}, {dt.year} at {dt:%I:%M %p}"
    if fmt == "time":
        return dt.strftime("%H:%M:%S")
    return f"{dt:%b} {dt.day}, {dt.year}"


def time_ago(value, now: Optional[datetime] = None) -> str:
    if not value:
        return "N/A"
    past = parse_date(value)
    if past is None:
        return "Invalid Date"
    if past.tzinfo is None:
        past = past.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    seconds = int((now - past).total_seconds())
    for limit, unit, suffix in ((60, 1, "s"), (3600, 60, "m"), (86400, 3600, "h"),
                                (2592000, 86400, "d"), (31536000, 2592000, "mo")):
        if seconds < limit:
            return f"{seconds // unit}{suffix} ago"
    return f"{seconds // 31536000}y ago"


def duration_between(start, end) -> str:
    if not start or not end:
        return "N/A"
    a, b = parse_date(start), parse_date(end)
    if a is None or b is None:
        return "N/A"
    if (a.tzinfo is None) != (b.tzinfo is None):
        a, b = a.replace(tzinfo=None), b.replace(tzinfo=None)
    minutes = int((b - a).total_seconds() // 60)
    if minutes < 60:
        return f"{minutes} min"
    return f"{minutes // 60}h {minutes % 60}m"


def format_duration(minutes) -> str:
    if not isinstance(minutes, (int, float)) or minutes < 0:
        return "0 min"
    hours, mins = divmod(int(round(minutes)), 60)
    if hours == 0:
        return f"{mins} min"
    if mins == 0:
        return f"{hours}h"
    return f"{hours}h {mins}min"


def format_distance(distance, unit: str = "km") -> str:
    if not isinstance(distance, (int, float)):
        return "0"
    value, label = float(distance), unit
    if unit == "km":
        if distance < 1:
            value, label = distance * 1000, "m"
    elif unit == "miles":
        if distance < 0.1:
            value, label = distance * 5280, "ft"
        elif distance == 1:
            label = "mile"
    return f"{value:.1f} {label}"


# ---------------------------------------------------------------- strings

def capitalize_words(text: Optional[str]) -> str:
    if not text:
        return ""
    return re.sub(r"\w\S*", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), text)


def truncate_text(text: Optional[str], max_length: int = 50, suffix: str = "...") -> str:
    if not text:
        return ""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def slugify(text: Optional[str]) -> str:
    if not text:
        return ""
    text = re.sub(r"[^\w\s-]", "", text.lower().strip())
    text = re.sub(r"[\s_-]+", "-", text)
    return text.strip("-")


def generate_id(length: int = 8) -> str:
    alphabet = string.ascii_letters + string.digits
    return "".join(random.choice(alphabet) for _ in range(length))


# ---------------------------------------------------------------- collections

def sort_by(items: Iterable[dict], key: Key, direction: str = "asc") -> List[dict]:
    get = _key_fn(key)
    return sorted(items, key=get, reverse=direction == "desc")


def group_by(items: Iterable[dict], key: Key) -> Dict[Any, List[dict]]:
    get = _key_fn(key)
    groups: Dict[Any, List[dict]] = {}
    for item in items:
        groups.setdefault(get(item), []).append(item)
    return groups


def filter_by(items: Iterable[dict], **filters) -> List[dict]:
    """Empty filter values match everything; strings match case-insensitive substrings."""

    def keep(item):
        for key, value in filters.items():
            if value is None or value == "":
                continue
            if isinstance(value, (list, tuple, set)):
                if item.get(key) not in value:
                    return False
            elif isinstance(value, str):
                if value.lower() not in str(item.get(key) or "").lower():
                    return False
            elif item.get(key) != value:
                return False
        return True

    return [item for item in items if keep(item)]


def unique_by(items: Iterable[dict], key: Key) -> List[dict]:
    get = _key_fn(key)
    seen = set()
    out = []
    for item in items:
        value = get(item)
        if value in seen:
            continue
        seen.add(value)
        out.append(item)
    return out


# ---------------------------------------------------------------- geo

def haversine_km(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    lat1, lon1 = a
    lat2, lon2 = b
    # convert decimal degrees to radians
    lon1, lat1, lon2, lat2 = map(radians, [lon1, lat1, lon2, lat2])
    dlon = lon2 - lon1
    dlat = lat2 - lat1
    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    return 6371 * 2 * asin(sqrt(h))
