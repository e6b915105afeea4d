"""
DOS — Reconciliation Input Validation Tests
=============================================
Entity/event parsing, policy construction, and the caller-misuse
path (ValidationError aborts the whole call).
"""

from decimal import Decimal

import pytest

from core.catalog.models import Location, LocationKind, Product, vehicle_display_name
from engines.reconciliation import (
    BaselinePolicy,
    OrderEvent,
    OrderStatus,
    ReconciliationPolicy,
    TransferEvent,
    TransferStatus,
    ValidationError,
    reconcile,
)

LOCATIONS = [{"location_id": "W1", "kind": "warehouse"}]
PRODUCTS = [{"product_id": "P1", "code": "SKU-1", "price": "1.25"}]


def _transfer_dict(**overrides):
    data = {
        "transfer_id": "T1",
        "source_location_id": "W1", "source_kind": "warehouse",
        "target_location_id": "W1", "target_kind": "warehouse",
        "date": "2026-10-01", "status": "pending",
        "items": [{"product_id": "P1", "quantity": 5}],
    }
    data.update(overrides)
    return data


# ══════════════════════════════════════════════════════════════
# ENTITIES
# ══════════════════════════════════════════════════════════════

class TestEntities:
    def test_product_price_coerced_to_decimal(self):
        product = Product.from_dict({"id": "P1", "code": "A", "price": 2.5})
        assert product.price == Decimal("2.5")

    def test_negative_price_rejected(self):
        with pytest.raises(ValueError, match="negative"):
            Product("P1", "A", "-1")

    def test_boolean_price_rejected(self):
        with pytest.raises(ValueError, match="number"):
            Product("P1", "A", True)

    def test_location_kind_parsed(self):
        location = Location.from_dict({"locationId": "V1", "type": "VEHICLE"})
        assert location.kind is LocationKind.VEHICLE
        assert location.is_vehicle

    def test_unknown_location_kind(self):
        with pytest.raises(ValueError, match="location kind"):
            Location("X", "store")

    def test_frozen(self):
        product = Product("P1", "A", "1")
        with pytest.raises(AttributeError):
            product.price = Decimal("2")

    def test_vehicle_display_name(self):
        assert vehicle_display_name("10-AB-123", "Ford Transit") == (
            "10-AB-123 (Ford Transit)"
        )
        assert vehicle_display_name("10-AB-123") == "10-AB-123"


# ══════════════════════════════════════════════════════════════
# EVENTS
# ══════════════════════════════════════════════════════════════

class TestEvents:
    def test_transfer_status_effects(self):
        assert TransferStatus.PENDING.leaves_source
        assert not TransferStatus.PENDING.reaches_target
        assert TransferStatus.COMPLETED.reaches_target
        assert not TransferStatus.CANCELLED.leaves_source

    def test_order_withdrawing_statuses(self):
        withdrawing = {s for s in OrderStatus if s.withdraws_stock}
        assert withdrawing == {OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED}

    def test_transfer_from_camel_case(self):
        transfer = TransferEvent.from_dict({
            "id": "T7", "sourceId": "W1", "sourceType": "warehouse",
            "targetId": "V1", "targetType": "vehicle",
            "items": [{"productId": "P1", "quantity": 3}],
            "date": "2026-10-03", "status": "completed",
            "driverConfirmationDate": "2026-10-03T09:00:00Z",
        })
        assert transfer.status is TransferStatus.COMPLETED
        assert transfer.items[0].quantity == 3
        assert transfer.driver_confirmed_at == "2026-10-03T09:00:00Z"

    def test_order_blank_vehicle_means_unassigned(self):
        order = OrderEvent.from_dict({
            "orderId": "O1", "status": "delivered", "vehicleId": "",
            "items": [{"productId": "P1", "quantity": 1, "price": 3}],
        })
        assert order.assigned_vehicle_location_id is None
        assert order.items[0].unit_price == Decimal("3")

    def test_to_dict_round_trip(self):
        transfer = TransferEvent.from_dict(_transfer_dict())
        assert TransferEvent.from_dict(transfer.to_dict()) == transfer


# ══════════════════════════════════════════════════════════════
# CALLER MISUSE
# ══════════════════════════════════════════════════════════════

class TestValidationErrors:
    def test_missing_status(self):
        bad = _transfer_dict()
        del bad["status"]
        with pytest.raises(ValidationError, match="status is required") as exc_info:
            reconcile(LOCATIONS, PRODUCTS, [bad])
        assert exc_info.value.record_id == "T1"

    def test_unknown_status(self):
        with pytest.raises(ValidationError, match="status must be one of"):
            reconcile(LOCATIONS, PRODUCTS, [_transfer_dict(status="lost")])

    @pytest.mark.parametrize("quantity", [0, -3, 2.5, "4", True])
    def test_bad_line_quantity(self, quantity):
        bad = _transfer_dict(items=[{"product_id": "P1", "quantity": quantity}])
        with pytest.raises(ValidationError, match="quantity"):
            reconcile(LOCATIONS, PRODUCTS, [bad])

    def test_missing_items(self):
        bad = _transfer_dict()
        del bad["items"]
        with pytest.raises(ValidationError, match="items"):
            reconcile(LOCATIONS, PRODUCTS, [bad])

    def test_missing_order_line_product(self):
        bad = {"order_id": "O1", "status": "delivered",
               "items": [{"quantity": 1, "price": 1}]}
        with pytest.raises(ValidationError, match="product_id"):
            reconcile(LOCATIONS, PRODUCTS, orders=[bad])

    def test_duplicate_transfer_id(self):
        with pytest.raises(ValidationError, match="Duplicate transfer id 'T1'"):
            reconcile(LOCATIONS, PRODUCTS, [_transfer_dict(), _transfer_dict()])

    def test_duplicate_location_id(self):
        with pytest.raises(ValidationError, match="Duplicate location"):
            reconcile(LOCATIONS * 2, PRODUCTS)

    def test_wrong_record_type(self):
        with pytest.raises(ValidationError, match="expected Product"):
            reconcile(LOCATIONS, ["P1"])

    def test_missing_product_price(self):
        with pytest.raises(ValidationError, match="price is required"):
            reconcile(LOCATIONS, [{"product_id": "P1", "code": "SKU-1"}])

    @pytest.mark.parametrize("price", ["NaN", "Infinity", "-Infinity", "sNaN"])
    def test_non_finite_product_price(self, price):
        with pytest.raises(ValidationError, match="price must be finite"):
            reconcile(
                LOCATIONS, [{"product_id": "P1", "code": "SKU-1", "price": price}]
            )

    def test_non_finite_order_line_price(self):
        bad = {"order_id": "O1", "status": "delivered",
               "items": [{"product_id": "P1", "quantity": 1, "price": "NaN"}]}
        with pytest.raises(ValidationError, match="unit_price must be finite"):
            reconcile(LOCATIONS, PRODUCTS, orders=[bad])

    def test_none_collection(self):
        with pytest.raises(ValidationError, match="required"):
            reconcile(LOCATIONS, None)

    def test_bad_policy(self):
        with pytest.raises(ValidationError, match="policy"):
            reconcile(LOCATIONS, PRODUCTS, policy=42)

    def test_later_bad_record_aborts_whole_call(self):
        good = _transfer_dict(transfer_id="T0")
        bad = _transfer_dict(transfer_id="T9", status=None)
        with pytest.raises(ValidationError, match="T9"):
            reconcile(LOCATIONS, PRODUCTS, [good, bad])

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            reconcile(LOCATIONS, PRODUCTS, [_transfer_dict(status="")])


# ══════════════════════════════════════════════════════════════
# POLICY
# ══════════════════════════════════════════════════════════════

class TestPolicy:
    def test_reference_defaults(self):
        policy = ReconciliationPolicy()
        assert policy.baseline.table[LocationKind.WAREHOUSE] == 500
        assert policy.baseline.table[LocationKind.VEHICLE] == 0
        assert policy.fallback_location_id == "1"
        assert policy.low_stock_threshold == 10
        assert not policy.strict_references

    def test_from_mapping(self):
        policy = ReconciliationPolicy.from_mapping({
            "baseline": {"warehouse": 250},
            "fallback_location_id": 7,
            "low_stock_threshold": 3,
        })
        assert policy.baseline.opening_quantity(Location("W", "warehouse")) == 250
        assert policy.baseline.opening_quantity(Location("V", "vehicle")) == 0
        assert policy.fallback_location_id == "7"
        assert policy.low_stock_threshold == 3

    def test_from_mapping_rejects_unknown_keys(self):
        with pytest.raises(ValueError, match="fallback"):
            ReconciliationPolicy.from_mapping({"fallback": "1"})

    def test_table_baseline_per_kind(self):
        baseline = BaselinePolicy({"warehouse": 12, "vehicle": 3})
        assert baseline(Location("V", "vehicle")) == 3
        assert baseline.fingerprintable

    def test_callable_baseline_is_not_fingerprintable(self):
        baseline = BaselinePolicy.from_callable(lambda location: 7)
        assert baseline(Location("W", "warehouse")) == 7
        assert not baseline.fingerprintable

    def test_policies_compare_by_value(self):
        assert ReconciliationPolicy() == ReconciliationPolicy()
        assert hash(ReconciliationPolicy()) == hash(ReconciliationPolicy())
