"""Shared helpers: ids, pricing policy, timestamps, pagination and retries."""

import json
import logging
import random
import re
import string
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, TypeVar

from config import Settings

logger = logging.getLogger(__name__)
activity_logger = logging.getLogger("activity")

T = TypeVar("T")

_BASE36 = string.digits + string.ascii_lowercase

# upper bound of the private-use range, sorts after any practical name
PREFIX_SENTINEL = "\uf8ff"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(dt: datetime) -> str:
    """Millisecond UTC timestamp; fixed width so strings sort chronologically."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_base36(number: int) -> str:
    if number < 0:
        raise ValueError("number must be non-negative")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_order_id(now: Optional[datetime] = None) -> str:
    """``ORD-<base36 epoch ms>-<6 random base36>``, uppercased.

    No uniqueness check is made against the store; the random suffix makes
    a collision within the same millisecond very unlikely.
    """
    now = now or utcnow()
    stamp = to_base36(int(now.timestamp() * 1000))
    suffix = "".join(random.choices(_BASE36, k=6))
    return f"ORD-{stamp}-{suffix}".upper()


def generate_sku(category: str, name: str) -> str:
    category_code = category[:3].upper()
    name_code = re.sub(r"[^a-zA-Z0-9]", "", name)[:6].upper()
    random_code = "".join(random.choices(_BASE36, k=4)).upper()
    return f"{category_code}-{name_code}-{random_code}"


def calculate_shipping(subtotal: float, city: str, settings: Settings) -> float:
    if subtotal >= settings.free_shipping_threshold:
        return 0.0
    fee = settings.base_shipping_fee
    if city and city.strip() in settings.premium_city_list:
        fee += settings.premium_city_surcharge
    return float(fee)


def estimate_delivery(now: datetime, days: int) -> datetime:
    return now + timedelta(days=days)


def build_pagination(page: int, page_size: int, count: int) -> Dict[str, Any]:
    # total is the size of this page only; the store does not report a full count
    return {
        "page": page,
        "pageSize": page_size,
        "total": count,
        "hasMore": count == page_size,
    }


def prefix_range(term: str) -> Dict[str, str]:
    return {"$gte": term, "$lte": term + PREFIX_SENTINEL}


def log_activity(type_: str, action: str, details: Dict[str, Any],
                 user_id: Optional[str] = None) -> Dict[str, Any]:
    activity = {
        "type": type_,
        "action": action,
        "details": details,
        "userId": user_id,
        "timestamp": isoformat(utcnow()),
    }
    activity_logger.info(json.dumps(activity, default=str))
    return activity


def retry_operation(operation: Callable[[], T], max_retries: int = 3, delay: float = 1.0,
                    sleep: Callable[[float], None] = time.sleep) -> T:
    """Call ``operation`` up to ``max_retries`` times, waiting ``delay * attempt`` between tries."""
    if max_retries < 1:
        raise ValueError("max_retries must be at least 1")
    attempt = 1
    while True:
        try:
            return operation()
        except Exception as e:
            logger.warning("Operation failed (attempt %d/%d): %s", attempt, max_retries, e)
            if attempt >= max_retries:
                raise
            sleep(delay * attempt)
            attempt += 1
