"""
Payload validation for products, orders and users.

Each validator returns a ``ValidationResult`` holding human readable
messages; nothing here raises for bad input. Required-field checks run
only in full mode, type and range checks run whenever the field is
present.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping
from urllib.parse import urlparse

from schemas import PRODUCT_CATEGORIES

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PRODUCT_REQUIRED = ("name", "price", "category", "image")
MAX_PRICE = 10000
MAX_QUANTITY = 10


@dataclass
class ValidationResult:
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def is_valid_email(email: Any) -> bool:
    return isinstance(email, str) and EMAIL_RE.match(email) is not None


def is_valid_url(url: Any) -> bool:
    if not isinstance(url, str):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return bool(parsed.scheme and (parsed.netloc or parsed.path)) and not any(c.isspace() for c in url)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_product(data: Mapping[str, Any], partial: bool = False) -> ValidationResult:
    errors: List[str] = []

    if not partial:
        for name in PRODUCT_REQUIRED:
            value = data.get(name)
            if value is None or value == "":
                errors.append(f"{name} is required")

    if data.get("name") is not None:
        name = data["name"]
        if not isinstance(name, str) or len(name.strip()) < 2:
            errors.append("Product name must be at least 2 characters long")
        elif len(name.strip()) > 100:
            errors.append("Product name must be less than 100 characters")

    if data.get("price") is not None:
        price = data["price"]
        if not _is_number(price) or price <= 0:
            errors.append("Price must be a positive number")
        elif price > MAX_PRICE:
            errors.append("Price must be less than $10,000")

    if data.get("category") is not None and data["category"] not in PRODUCT_CATEGORIES:
        errors.append(f"Category must be one of: {', '.join(PRODUCT_CATEGORIES)}")

    if data.get("image") is not None and not is_valid_url(data["image"]):
        errors.append("Image must be a valid URL")

    if data.get("images") is not None:
        images = data["images"]
        if not isinstance(images, list) or not all(is_valid_url(i) for i in images):
            errors.append("Images must be a list of valid URLs")

    for name in ("colors", "sizes"):
        if data.get(name) is not None:
            value = data[name]
            if not isinstance(value, list) or len(value) == 0:
                errors.append(f"{name.capitalize()} must be a non-empty array")

    if data.get("description") is not None:
        description = data["description"]
        if not isinstance(description, str):
            errors.append("Description must be a string")
        elif len(description) > 1000:
            errors.append("Description must be less than 1000 characters")

    return ValidationResult(errors)


def validate_order(data: Mapping[str, Any]) -> ValidationResult:
    errors: List[str] = []

    customer = data.get("customerInfo")
    if not customer or not isinstance(customer, Mapping):
        errors.append("Customer information is required")
    else:
        if len(_text(customer.get("name"))) < 2:
            errors.append("Customer name is required and must be at least 2 characters")
        if len(_text(customer.get("phone"))) < 10:
            errors.append("Valid phone number is required")
        if len(_text(customer.get("address"))) < 10:
            errors.append("Complete address is required")
        if len(_text(customer.get("city"))) < 2:
            errors.append("City is required")
        if customer.get("email") and not is_valid_email(customer.get("email")):
            errors.append("Customer email must be a valid email address")

    items = data.get("items")
    if not items or not isinstance(items, list):
        errors.append("Order must contain at least one item")
    else:
        for index, item in enumerate(items, start=1):
            if not isinstance(item, Mapping):
                errors.append(f"Item {index}: Invalid item")
                continue
            if not item.get("productId"):
                errors.append(f"Item {index}: Product ID is required")
            quantity = item.get("quantity")
            if not _is_number(quantity) or quantity < 1 or quantity != int(quantity):
                errors.append(f"Item {index}: Valid quantity is required")
            elif quantity > MAX_QUANTITY:
                errors.append(f"Item {index}: Maximum quantity is {MAX_QUANTITY}")
            if not item.get("color") or not isinstance(item.get("color"), str):
                errors.append(f"Item {index}: Color is required")
            if not item.get("size") or not isinstance(item.get("size"), str):
                errors.append(f"Item {index}: Size is required")

    return ValidationResult(errors)


def validate_user(data: Mapping[str, Any], partial: bool = False) -> ValidationResult:
    errors: List[str] = []
    name = data.get("name")

    if not partial:
        if len(_text(name)) < 2:
            errors.append("Name is required and must be at least 2 characters")
        if not is_valid_email(data.get("email")):
            errors.append("Valid email address is required")
        password = data.get("password")
        if not isinstance(password, str) or len(password) < 6:
            errors.append("Password must be at least 6 characters long")
    else:
        if name is not None and len(_text(name)) < 2:
            errors.append("Name must be at least 2 characters")
        if data.get("email") is not None and not is_valid_email(data["email"]):
            errors.append("Valid email address is required")

    if isinstance(name, str) and len(name) > 50:
        errors.append("Name must be less than 50 characters")

    phone = data.get("phone")
    if phone is not None and phone != "":
        if not isinstance(phone, str) or len(phone) < 10:
            errors.append("Phone number must be at least 10 characters")

    return ValidationResult(errors)


def sanitize_input(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    return value.replace("<", "").replace(">", "").strip()


def sanitize_fields(data: Mapping[str, Any], allowed: Iterable[str]) -> Dict[str, Any]:
    return {k: sanitize_input(data[k]) for k in allowed if data.get(k) is not None}
