import json
import logging
import re
from datetime import datetime, timedelta, timezone

import pytest

from config import get_settings
from helpers import (PREFIX_SENTINEL, build_pagination, calculate_shipping, estimate_delivery,
                     generate_order_id, generate_sku, isoformat, log_activity, prefix_range,
                     retry_operation, to_base36)


def test_isoformat_is_millisecond_utc():
    dt = datetime(2024, 1, 2, 3, 4, 5, 678901, tzinfo=timezone.utc)
    assert isoformat(dt) == "2024-01-02T03:04:05.678Z"
    shifted = dt.astimezone(timezone(timedelta(hours=3)))
    assert isoformat(shifted) == "2024-01-02T03:04:05.678Z"


def test_to_base36():
    assert to_base36(0) == "0"
    assert to_base36(35) == "z"
    assert to_base36(36) == "10"
    with pytest.raises(ValueError):
        to_base36(-1)


def test_order_id_format():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    order_id = generate_order_id(now)
    assert re.match(r"^ORD-[0-9A-Z]+-[0-9A-Z]{6}$", order_id)
    assert order_id.split("-")[1] == to_base36(int(now.timestamp() * 1000)).upper()


def test_sku_format():
    assert re.match(r"^T-S-CLASSI-[0-9A-Z]{4}$", generate_sku("t-shirts", "Classic Tee"))


@pytest.mark.parametrize("subtotal,fee", [(99.99, 12.0), (100, 0.0), (250, 0.0), (0.01, 12.0)])
def test_shipping_threshold(subtotal, fee):
    assert calculate_shipping(subtotal, "Springfield", get_settings()) == fee


def test_premium_city_surcharge():
    settings = get_settings().model_copy(update={"premium_cities": "Beirut, Byblos"})
    assert calculate_shipping(50, "Byblos", settings) == 15.0
    assert calculate_shipping(50, "Tyre", settings) == 12.0
    assert calculate_shipping(150, "Byblos", settings) == 0.0


def test_estimate_delivery():
    now = datetime(2024, 6, 1, tzinfo=timezone.utc)
    assert estimate_delivery(now, 5) == datetime(2024, 6, 6, tzinfo=timezone.utc)


def test_pagination_reports_page_size_only():
    assert build_pagination(2, 10, 10) == {"page": 2, "pageSize": 10, "total": 10, "hasMore": True}
    assert build_pagination(1, 10, 3)["hasMore"] is False


def test_prefix_range():
    assert prefix_range("Tee") == {"$gte": "Tee", "$lte": "Tee" + PREFIX_SENTINEL}


def test_log_activity_writes_json(caplog):
    with caplog.at_level(logging.INFO, logger="activity"):
        activity = log_activity("product", "created", {"id": "1"}, "admin")
    assert activity["userId"] == "admin"
    logged = json.loads(caplog.records[-1].getMessage())
    assert logged["action"] == "created"


def test_retry_operation_backs_off_linearly():
    calls = []
    sleeps = []

    def flaky():
        calls.append(1)
        if len(calls) < 3:
            raise ConnectionError("down")
        return "ok"

    assert retry_operation(flaky, max_retries=3, delay=1.0, sleep=sleeps.append) == "ok"
    assert sleeps == [1.0, 2.0]


def test_retry_operation_raises_last_error():
    sleeps = []

    def broken():
        raise ConnectionError("down")

    with pytest.raises(ConnectionError):
        retry_operation(broken, max_retries=2, delay=0.5, sleep=sleeps.append)
    assert sleeps == [0.5]


@pytest.mark.parametrize("max_retries", [0, -1])
def test_retry_operation_rejects_non_positive_attempts(max_retries):
    calls = []
    with pytest.raises(ValueError):
        retry_operation(lambda: calls.append(1), max_retries=max_retries, sleep=lambda s: None)
    assert calls == []
