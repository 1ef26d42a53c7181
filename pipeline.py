"""
Order creation and fulfilment.

``create_order`` turns a checkout payload into a stored order. Each step is
a gate: the payload is validated, every line item is re-priced from the
current product document (client prices are ignored), shipping and totals
are derived, then the order is written once. A missing product aborts the
whole order and nothing is stored.

Pricing reads products and writes the order without a transaction, so a
price edited between the two is not reflected; this is accepted.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from pymongo.database import Database
from pymongo.errors import PyMongoError

from auth import UserPrincipal
from config import Settings
from database import ORDERS, PRODUCTS, find_by_id, to_dict
from errors import StoreError
from helpers import calculate_shipping, estimate_delivery, generate_order_id, isoformat, utcnow
from offline import OfflineQueue
from schemas import ORDER_STATUSES, CustomerInfo, Order, OrderLineItem, Pricing
from validation import validate_order

logger = logging.getLogger(__name__)


@dataclass
class OrderOutcome:
    order: Optional[Dict[str, Any]] = None
    errors: List[str] = field(default_factory=list)
    status_code: int = 201
    message: str = "Order created successfully"

    @property
    def ok(self) -> bool:
        return self.order is not None


@dataclass
class StatusUpdateOutcome:
    order: Optional[Dict[str, Any]] = None
    status_code: int = 200
    message: str = "Order status updated successfully"
    degraded: bool = False

    @property
    def ok(self) -> bool:
        return self.order is not None


def _cents(value: float) -> int:
    return int(round(value * 100))


def _amount(cents: int) -> float:
    return cents / 100


def create_order(db: Database, payload: Dict[str, Any], settings: Settings,
                 principal: Optional[UserPrincipal] = None,
                 now: Optional[datetime] = None) -> OrderOutcome:
    validation = validate_order(payload)
    if not validation.is_valid:
        return OrderOutcome(errors=validation.errors, status_code=400, message="Validation failed")

    items: List[OrderLineItem] = []
    subtotal_cents = 0
    for item in payload["items"]:
        product = find_by_id(db, PRODUCTS, item["productId"])
        if product is None:
            message = f"Product not found: {item['productId']}"
            return OrderOutcome(errors=[message], status_code=400, message=message)

        # whole cents: the subtotal equals the sum of the line totals
        price_cents = _cents(float(product["price"]))
        line_cents = price_cents * int(item["quantity"])
        subtotal_cents += line_cents
        items.append(OrderLineItem(
            product_id=item["productId"],
            name=product.get("name", ""),
            price=_amount(price_cents),
            image=product.get("image"),
            color=item["color"],
            size=item["size"],
            quantity=int(item["quantity"]),
            total=_amount(line_cents),
        ))

    subtotal = _amount(subtotal_cents)
    customer = payload["customerInfo"]
    shipping_cents = _cents(calculate_shipping(subtotal, customer["city"], settings))

    now = now or utcnow()
    stamp = isoformat(now)
    order = Order(
        order_id=generate_order_id(now),
        customer_info=CustomerInfo(
            name=customer["name"].strip(),
            phone=customer["phone"].strip(),
            address=customer["address"].strip(),
            city=customer["city"].strip(),
            notes=(customer.get("notes") or "").strip(),
            email=(customer.get("email") or (principal.email if principal else None) or None),
        ),
        items=items,
        pricing=Pricing(subtotal=subtotal, shipping_fee=_amount(shipping_cents),
                        total=_amount(subtotal_cents + shipping_cents)),
        estimated_delivery=isoformat(estimate_delivery(now, settings.delivery_days)),
        user_id=principal.id if principal else None,
        created_at=stamp,
        updated_at=stamp,
    )
    doc = order.model_dump(by_alias=True, exclude_none=True)
    if doc["customerInfo"].get("email"):
        doc["customerInfo"]["email"] = doc["customerInfo"]["email"].lower()

    result = db[ORDERS].insert_one(doc)
    logger.info("Order %s created (%d items, total %.2f)", order.order_id, len(items), order.pricing.total)
    doc["_id"] = result.inserted_id
    return OrderOutcome(order=to_dict(doc))


def _queue_status_write(queue: OfflineQueue, order_id: str, set_fields: Dict[str, Any],
                        entry: Dict[str, Any], known: Dict[str, Any], error: Exception) -> StatusUpdateOutcome:
    logger.warning("Order %s status write failed, queued offline: %s", order_id, error)
    queue.enqueue(ORDERS, order_id, set_fields, {"statusHistory": entry})
    return StatusUpdateOutcome(
        order=known,
        status_code=202,
        message="Order status saved offline and will sync when the database is reachable",
        degraded=True,
    )


def update_order_status(db: Database, order_id: str, status: Optional[str], notes: Optional[str],
                        updated_by: str, queue: Optional[OfflineQueue] = None,
                        now: Optional[datetime] = None) -> StatusUpdateOutcome:
    """Set a new status and append it to ``statusHistory``.

    Any status may follow any other. If the store fails, on the read or on
    the write, and a queue is given, the write is queued and the outcome is
    marked degraded. When the read itself failed the order is not known, so
    the returned order only holds the queued fields and the history
    timestamp is not checked against the previous entry.
    """
    if not status or status not in ORDER_STATUSES:
        return StatusUpdateOutcome(
            status_code=400, message="Invalid status. Valid statuses: " + ", ".join(ORDER_STATUSES))

    stamp = isoformat(now or utcnow())
    entry = {"status": status, "timestamp": stamp, "updatedBy": updated_by, "notes": notes}
    set_fields: Dict[str, Any] = {"status": status, "updatedAt": stamp, "updatedBy": updated_by}
    if notes:
        set_fields["adminNotes"] = notes

    try:
        current = find_by_id(db, ORDERS, order_id)
    except (PyMongoError, StoreError) as e:
        if queue is None:
            raise
        known = {"id": order_id, **set_fields, "statusHistory": [entry]}
        return _queue_status_write(queue, order_id, set_fields, entry, known, e)
    if current is None:
        return StatusUpdateOutcome(status_code=404, message="Order not found")

    history = current.get("statusHistory") or []
    if history and history[-1].get("timestamp", "") > stamp:
        # never let the log go backwards when clocks disagree
        stamp = history[-1]["timestamp"]
        entry["timestamp"] = stamp
        set_fields["updatedAt"] = stamp

    updated = to_dict(current)
    updated.update(set_fields)
    updated["statusHistory"] = history + [entry]

    try:
        db[ORDERS].update_one({"_id": current["_id"]},
                              {"$set": set_fields, "$push": {"statusHistory": entry}})
    except (PyMongoError, StoreError) as e:
        if queue is None:
            raise
        return _queue_status_write(queue, order_id, set_fields, entry, updated, e)

    logger.info("Order %s status -> %s by %s", order_id, status, updated_by)
    return StatusUpdateOutcome(order=updated)


def order_stats(db: Database) -> Dict[str, Any]:
    stats: Dict[str, Any] = {"total": 0}
    stats.update({s: 0 for s in ORDER_STATUSES})
    revenue = 0.0
    delivered = 0
    for order in db[ORDERS].find({}, {"status": 1, "pricing.total": 1}):
        stats["total"] += 1
        status = order.get("status")
        stats[status] = stats.get(status, 0) + 1
        if status == "delivered":
            revenue += (order.get("pricing") or {}).get("total", 0)
            delivered += 1
    stats["totalRevenue"] = round(revenue, 2)
    stats["averageOrderValue"] = round(revenue / delivered, 2) if delivered else 0
    return stats
