"""
Browser-side shopping cart model.

The cart never lives on the server. A line is identified by
(product id, color, size); adding the same line again only raises its
quantity. ``checkout_payload`` builds the body for ``POST /orders``; the
prices kept here are for display and are re-checked by the server.

This is a client-side helper for Python callers of the API; the service
itself never imports it.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

MAX_LINE_QUANTITY = 10


@dataclass
class CartItem:
    id: str
    name: str
    price: float
    color: str
    size: str
    quantity: int = 1
    image: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str, str]:
        return (self.id, self.color, self.size)

    @property
    def total(self) -> float:
        return round(self.price * self.quantity, 2)


class Cart:
    def __init__(self) -> None:
        self.items: List[CartItem] = []

    def __len__(self) -> int:
        return len(self.items)

    def _find(self, key: Tuple[str, str, str]) -> Optional[CartItem]:
        for item in self.items:
            if item.key == key:
                return item
        return None

    def add(self, item: CartItem) -> CartItem:
        if item.quantity < 1:
            raise ValueError("quantity must be at least 1")
        existing = self._find(item.key)
        if existing is not None:
            existing.quantity = min(MAX_LINE_QUANTITY, existing.quantity + item.quantity)
            return existing
        item.quantity = min(MAX_LINE_QUANTITY, item.quantity)
        self.items.append(item)
        return item

    def update_quantity(self, product_id: str, color: str, size: str, quantity: int) -> None:
        if quantity < 1:
            self.remove(product_id, color, size)
            return
        existing = self._find((product_id, color, size))
        if existing is None:
            raise KeyError((product_id, color, size))
        existing.quantity = min(MAX_LINE_QUANTITY, quantity)

    def remove(self, product_id: str, color: str, size: str) -> None:
        self.items = [i for i in self.items if i.key != (product_id, color, size)]

    def clear(self) -> None:
        self.items = []

    @property
    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    @property
    def subtotal(self) -> float:
        return round(sum(i.total for i in self.items), 2)

    def to_order_items(self) -> List[Dict[str, Any]]:
        return [
            {"productId": i.id, "quantity": i.quantity, "color": i.color, "size": i.size}
            for i in self.items
        ]

    def checkout_payload(self, customer_info: Dict[str, Any]) -> Dict[str, Any]:
        if not self.items:
            raise ValueError("cart is empty")
        return {"customerInfo": dict(customer_info), "items": self.to_order_items()}
