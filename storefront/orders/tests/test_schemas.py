"""Tests for request validation and normalization.

These tests validate that ``parse_order_request`` coerces loosely typed
input into an ``OrderRequest`` and reports failures as a field-keyed map
of readable messages.
"""

from decimal import Decimal

import pytest

from storefront.orders.domain import LineRequest, ValidationError
from storefront.orders.schemas import parse_order_request


def test_minimal_request_gets_default_shipping():
    req = parse_order_request({"items": [{"variant_id": 5, "qty": 2}]})
    assert req.items == [LineRequest(variant_id=5, qty=2)]
    assert req.shipping_total == Decimal("25.00")
    assert req.user_id is None


def test_numeric_strings_are_coerced():
    req = parse_order_request(
        {"user_id": "7", "items": [{"variant_id": "5", "qty": "3"}], "shipping_total": "10.5"}
    )
    assert req.user_id == 7
    assert req.items[0] == LineRequest(variant_id=5, qty=3)
    assert req.shipping_total == Decimal("10.50")


def test_null_user_id_is_accepted():
    req = parse_order_request({"user_id": None, "items": [{"variant_id": 1, "qty": 1}]})
    assert req.user_id is None


def test_shipping_is_rounded_half_up_to_cents():
    req = parse_order_request({"items": [{"variant_id": 1, "qty": 1}], "shipping_total": "12.345"})
    assert req.shipping_total == Decimal("12.35")


def test_zero_shipping_is_allowed():
    req = parse_order_request({"items": [{"variant_id": 1, "qty": 1}], "shipping_total": 0})
    assert req.shipping_total == Decimal("0.00")


def test_item_order_is_preserved():
    req = parse_order_request(
        {"items": [{"variant_id": 9, "qty": 1}, {"variant_id": 2, "qty": 4}, {"variant_id": 5, "qty": 1}]}
    )
    assert [i.variant_id for i in req.items] == [9, 2, 5]


def test_empty_items_is_rejected():
    with pytest.raises(ValidationError) as e:
        parse_order_request({"items": []})
    assert e.value.fields == {"items": ["items must have at least one entry"]}


def test_missing_items_is_rejected():
    with pytest.raises(ValidationError) as e:
        parse_order_request({})
    assert e.value.fields["items"] == ["items is required"]


@pytest.mark.parametrize("qty", [0, -1])
def test_non_positive_qty_is_rejected(qty):
    with pytest.raises(ValidationError) as e:
        parse_order_request({"items": [{"variant_id": 5, "qty": qty}]})
    assert e.value.fields == {"items.0.qty": ["qty must be greater than zero"]}


def test_fractional_ids_are_rejected():
    with pytest.raises(ValidationError) as e:
        parse_order_request({"items": [{"variant_id": 1.5, "qty": 1}]})
    assert e.value.fields == {"items.0.variant_id": ["variant_id must be an integer"]}


def test_non_numeric_qty_is_rejected():
    with pytest.raises(ValidationError) as e:
        parse_order_request({"items": [{"variant_id": 1, "qty": "two"}]})
    assert "items.0.qty" in e.value.fields


def test_negative_shipping_is_rejected():
    with pytest.raises(ValidationError) as e:
        parse_order_request({"items": [{"variant_id": 1, "qty": 1}], "shipping_total": -1})
    assert e.value.fields == {"shipping_total": ["shipping_total cannot be negative"]}


def test_invalid_user_id_is_rejected():
    with pytest.raises(ValidationError) as e:
        parse_order_request({"user_id": 0, "items": [{"variant_id": 1, "qty": 1}]})
    assert e.value.fields == {"user_id": ["user_id must be greater than zero"]}


def test_several_errors_are_reported_together():
    with pytest.raises(ValidationError) as e:
        parse_order_request({"items": [{"variant_id": 0, "qty": 0}], "shipping_total": -5})
    assert set(e.value.fields) == {"items.0.variant_id", "items.0.qty", "shipping_total"}


@pytest.mark.parametrize("payload", [None, [], "items"])
def test_non_object_body_is_rejected(payload):
    with pytest.raises(ValidationError) as e:
        parse_order_request(payload)
    assert e.value.fields == {"body": ["body must be an object"]}


@pytest.mark.parametrize("shipping", [1e30, "1e30", "10000000000"])
def test_shipping_too_large_for_column_is_rejected(shipping):
    with pytest.raises(ValidationError) as e:
        parse_order_request({"items": [{"variant_id": 5, "qty": 1}], "shipping_total": shipping})
    assert e.value.fields == {"shipping_total": ["shipping_total must not exceed 9999999999.99"]}


def test_largest_shipping_that_fits_is_accepted():
    req = parse_order_request({"items": [{"variant_id": 5, "qty": 1}], "shipping_total": "9999999999.99"})
    assert req.shipping_total == Decimal("9999999999.99")
