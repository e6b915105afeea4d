"""
DOS — Stock Reconciliation Replay Tests
=========================================
Baseline, transfer lifecycle, order withdrawal, diagnostics and
order-independence of the replay.
"""

import copy

import pytest

from core.catalog.models import Location, LocationKind, Product
from engines.reconciliation import (
    BaselinePolicy,
    OrderEvent,
    OrderLine,
    ReconciliationPolicy,
    TransferEvent,
    TransferLine,
    UnknownReferenceError,
    ValidationError,
    reconcile,
)
from engines.reconciliation.errors import (
    LOCATION_KIND_MISMATCH,
    NO_WITHDRAWAL_LOCATION,
    UNKNOWN_LOCATION,
    UNKNOWN_PRODUCT,
)

WH = Location("W1", LocationKind.WAREHOUSE, "Central Warehouse")
VAN = Location("V1", LocationKind.VEHICLE, "10-AB-123 (Ford Transit)")
P1 = Product("P1", "SKU-001", "2.50", "Water")
P2 = Product("P2", "SKU-002", "4.00", "Juice")

LOCATIONS = [WH, VAN]
PRODUCTS = [P1, P2]


def _transfer(status, qty=50, tid="T1", source=WH, target=VAN, product="P1"):
    return TransferEvent(
        transfer_id=tid,
        source_location_id=source.location_id,
        source_kind=source.kind,
        target_location_id=target.location_id,
        target_kind=target.kind,
        items=(TransferLine(product, qty),),
        date="2026-10-01",
        status=status,
    )


def _order(status, qty=5, oid="O1", vehicle="V1", product="P1"):
    return OrderEvent(
        order_id=oid,
        items=(OrderLine(product, qty, "2.50"),),
        status=status,
        assigned_vehicle_location_id=vehicle,
    )


def _policy(**overrides):
    return ReconciliationPolicy(fallback_location_id="W1", **overrides)


# ══════════════════════════════════════════════════════════════
# BASELINE
# ══════════════════════════════════════════════════════════════

class TestBaseline:
    def test_reference_baseline_without_events(self):
        result = reconcile(LOCATIONS, PRODUCTS)
        assert result.quantities.quantity("W1", "P1") == 500
        assert result.quantities.quantity("W1", "P2") == 500
        assert result.quantities.quantity("V1", "P1") == 0
        assert result.quantities.quantity("V1", "P2") == 0

    def test_every_pair_present(self):
        result = reconcile(LOCATIONS, PRODUCTS)
        assert len(result.quantities) == 4
        assert set(result.quantities) == {
            ("W1", "P1"), ("W1", "P2"), ("V1", "P1"), ("V1", "P2"),
        }

    def test_custom_table(self):
        policy = ReconciliationPolicy(
            baseline=BaselinePolicy(table={"warehouse": 100, "vehicle": 5})
        )
        result = reconcile(LOCATIONS, PRODUCTS, policy=policy)
        assert result.quantities.quantity("W1", "P1") == 100
        assert result.quantities.quantity("V1", "P2") == 5

    def test_callable_baseline_per_location(self):
        openings = {"W1": 42, "V1": 7}
        result = reconcile(
            LOCATIONS, PRODUCTS,
            policy=lambda loc: openings[loc.location_id],
        )
        assert result.quantities.quantity("W1", "P2") == 42
        assert result.quantities.quantity("V1", "P1") == 7

    def test_non_integer_baseline_is_validation_error(self):
        with pytest.raises(ValidationError, match="baseline"):
            reconcile(LOCATIONS, PRODUCTS, policy=lambda loc: "lots")

    def test_empty_catalogs(self):
        result = reconcile([], [])
        assert len(result.quantities) == 0
        assert result.diagnostics == ()


# ══════════════════════════════════════════════════════════════
# SCENARIOS
# ══════════════════════════════════════════════════════════════

class TestScenarios:
    def test_a_completed_transfer(self):
        result = reconcile(LOCATIONS, [P1], [_transfer("completed")])
        assert result.quantities.quantity("W1", "P1") == 450
        assert result.quantities.quantity("V1", "P1") == 50

    def test_b_pending_transfer(self):
        result = reconcile(LOCATIONS, [P1], [_transfer("pending")])
        assert result.quantities.quantity("W1", "P1") == 450
        assert result.quantities.quantity("V1", "P1") == 0

    def test_c_delivered_order_from_vehicle(self):
        result = reconcile(
            LOCATIONS, [P1], [_transfer("completed")], [_order("delivered")],
            policy=_policy(),
        )
        assert result.quantities.quantity("V1", "P1") == 45
        assert result.quantities.quantity("W1", "P1") == 450

    def test_d_unassigned_order_charged_to_fallback(self):
        result = reconcile(
            LOCATIONS, [P1], [_transfer("completed")],
            [_order("delivered", qty=10, vehicle=None)],
            policy=_policy(),
        )
        assert result.quantities.quantity("W1", "P1") == 440
        assert result.quantities.quantity("V1", "P1") == 50


# ══════════════════════════════════════════════════════════════
# TRANSFER LIFECYCLE
# ══════════════════════════════════════════════════════════════

class TestTransferLifecycle:
    def test_cancellation_removes_exactly_its_effects(self):
        other = _transfer("completed", qty=7, tid="T2", product="P2")
        before = reconcile(LOCATIONS, PRODUCTS, [_transfer("completed"), other])
        after = reconcile(LOCATIONS, PRODUCTS, [_transfer("cancelled"), other])

        assert after.quantities.quantity("W1", "P1") == 500
        assert after.quantities.quantity("V1", "P1") == 0
        assert before.quantities.quantity("W1", "P2") == 493
        assert after.quantities.quantity("W1", "P2") == 493
        assert after.quantities.quantity("V1", "P2") == 7

    def test_cancelled_pending_restores_source(self):
        result = reconcile(LOCATIONS, [P1], [_transfer("cancelled")])
        assert result.quantities.quantity("W1", "P1") == 500
        assert result.transfers_applied == 0

    def test_completion_credits_target_only(self):
        pending = reconcile(LOCATIONS, [P1], [_transfer("pending", qty=30)])
        completed = reconcile(LOCATIONS, [P1], [_transfer("completed", qty=30)])

        assert completed.quantities.quantity("W1", "P1") == (
            pending.quantities.quantity("W1", "P1")
        )
        assert completed.quantities.quantity("V1", "P1") == (
            pending.quantities.quantity("V1", "P1") + 30
        )

    def test_multi_line_transfer(self):
        transfer = TransferEvent(
            transfer_id="T9",
            source_location_id="W1", source_kind="warehouse",
            target_location_id="V1", target_kind="vehicle",
            items=(TransferLine("P1", 10), TransferLine("P2", 20),
                   TransferLine("P1", 5)),
            date="2026-10-02",
            status="completed",
        )
        result = reconcile(LOCATIONS, PRODUCTS, [transfer])
        assert result.quantities.quantity("W1", "P1") == 485
        assert result.quantities.quantity("V1", "P1") == 15
        assert result.quantities.quantity("W1", "P2") == 480
        assert result.quantities.quantity("V1", "P2") == 20

    def test_vehicle_to_warehouse_return(self):
        back = _transfer("completed", qty=20, tid="T2", source=VAN, target=WH)
        result = reconcile(LOCATIONS, [P1], [_transfer("completed"), back])
        assert result.quantities.quantity("W1", "P1") == 470
        assert result.quantities.quantity("V1", "P1") == 30


# ══════════════════════════════════════════════════════════════
# ORDER WITHDRAWAL
# ══════════════════════════════════════════════════════════════

class TestOrderWithdrawal:
    @pytest.mark.parametrize("status", ["pending_warehouse", "assigned_to_driver", "failed"])
    def test_non_dispatched_orders_have_no_effect(self, status):
        baseline = reconcile(LOCATIONS, PRODUCTS, policy=_policy())
        result = reconcile(
            LOCATIONS, PRODUCTS, orders=[_order(status, qty=99)], policy=_policy()
        )
        assert result.quantities == baseline.quantities
        assert result.orders_applied == 0

    @pytest.mark.parametrize("status", ["out_for_delivery", "delivered"])
    def test_dispatched_orders_touch_one_location_only(self, status):
        baseline = reconcile(LOCATIONS, PRODUCTS, policy=_policy())
        result = reconcile(
            LOCATIONS, PRODUCTS, orders=[_order(status, qty=3)], policy=_policy()
        )
        changed = {
            key for key in baseline.quantities
            if baseline.quantities[key] != result.quantities[key]
        }
        assert changed == {("V1", "P1")}
        assert result.quantities.quantity("V1", "P1") == -3
        assert result.orders_applied == 1

    def test_no_fallback_configured_reports_diagnostic(self):
        policy = ReconciliationPolicy(fallback_location_id=None)
        result = reconcile(
            LOCATIONS, [P1], orders=[_order("delivered", vehicle=None)],
            policy=policy,
        )
        assert result.quantities.quantity("W1", "P1") == 500
        assert [d.code for d in result.diagnostics] == [NO_WITHDRAWAL_LOCATION]
        assert result.line_items_skipped == 1

    def test_reference_fallback_is_location_one(self):
        central = Location("1", "warehouse", "Central")
        result = reconcile(
            [central, VAN], [P1], orders=[_order("delivered", vehicle=None)]
        )
        assert result.quantities.quantity("1", "P1") == 495

    def test_order_assigned_to_warehouse_flags_kind_mismatch(self):
        result = reconcile(
            LOCATIONS, [P1], orders=[_order("delivered", vehicle="W1")],
            policy=_policy(),
        )
        assert result.quantities.quantity("W1", "P1") == 495
        assert [d.code for d in result.diagnostics] == [LOCATION_KIND_MISMATCH]
        assert not result.diagnostics[0].skipped


# ══════════════════════════════════════════════════════════════
# NEGATIVE STOCK
# ══════════════════════════════════════════════════════════════

class TestNegativeStock:
    def test_overdrawn_vehicle_goes_negative(self):
        result = reconcile(
            LOCATIONS, [P1], orders=[_order("delivered", qty=12)],
            policy=_policy(),
        )
        assert result.quantities.quantity("V1", "P1") == -12

    def test_pending_transfers_can_overdraw_source(self):
        result = reconcile(
            LOCATIONS, [P1], [_transfer("pending", qty=600)]
        )
        assert result.quantities.quantity("W1", "P1") == -100


# ══════════════════════════════════════════════════════════════
# REFERENCE DIAGNOSTICS
# ══════════════════════════════════════════════════════════════

class TestReferenceDiagnostics:
    def test_unknown_product_line_skipped(self):
        transfer = TransferEvent(
            transfer_id="T1",
            source_location_id="W1", source_kind="warehouse",
            target_location_id="V1", target_kind="vehicle",
            items=(TransferLine("P1", 10), TransferLine("GHOST", 10)),
            date="2026-10-01",
            status="completed",
        )
        result = reconcile(LOCATIONS, [P1], [transfer])
        assert result.quantities.quantity("W1", "P1") == 490
        assert result.quantities.quantity("V1", "P1") == 10
        assert len(result.diagnostics) == 1
        diag = result.diagnostics[0]
        assert diag.code == UNKNOWN_PRODUCT
        assert diag.product_id == "GHOST"
        assert diag.event_id == "T1"
        assert result.line_items_skipped == 1

    def test_unknown_target_skips_completed_transfer_lines(self):
        ghost = Location("GONE", "vehicle", "Scrapped van")
        result = reconcile(
            LOCATIONS, [P1], [_transfer("completed", target=ghost)]
        )
        assert result.quantities.quantity("W1", "P1") == 500
        assert [d.code for d in result.diagnostics] == [UNKNOWN_LOCATION]
        assert result.diagnostics[0].location_id == "GONE"
        assert result.diagnostics[0].skipped
        assert result.line_items_skipped == 1

    def test_unknown_target_still_charges_pending_source(self):
        ghost = Location("GONE", "vehicle", "Scrapped van")
        result = reconcile(
            LOCATIONS, [P1], [_transfer("pending", target=ghost)]
        )
        assert result.quantities.quantity("W1", "P1") == 450
        diagnostic = result.diagnostics[0]
        assert diagnostic.code == UNKNOWN_LOCATION
        assert diagnostic.location_id == "GONE"
        assert not diagnostic.skipped
        assert result.line_items_skipped == 0

    def test_unknown_target_on_pending_transfer_is_strict_error(self):
        ghost = Location("GONE", "vehicle", "Scrapped van")
        with pytest.raises(UnknownReferenceError):
            reconcile(
                LOCATIONS, [P1], [_transfer("pending", target=ghost)],
                policy=ReconciliationPolicy(strict_references=True),
            )

    def test_unknown_vehicle_on_order(self):
        result = reconcile(
            LOCATIONS, [P1], orders=[_order("delivered", vehicle="V404")],
            policy=_policy(),
        )
        assert result.quantities.quantity("V1", "P1") == 0
        assert result.diagnostics[0].code == UNKNOWN_LOCATION

    def test_cancelled_transfer_with_unknown_ids_is_silent(self):
        result = reconcile(
            LOCATIONS, [P1], [_transfer("cancelled", product="GHOST")]
        )
        assert result.diagnostics == ()

    def test_declared_kind_mismatch_still_applies(self):
        transfer = TransferEvent(
            transfer_id="T1",
            source_location_id="W1", source_kind="vehicle",
            target_location_id="V1", target_kind="vehicle",
            items=(TransferLine("P1", 10),),
            date="2026-10-01",
            status="completed",
        )
        result = reconcile(LOCATIONS, [P1], [transfer])
        assert result.quantities.quantity("W1", "P1") == 490
        assert [d.code for d in result.diagnostics] == [LOCATION_KIND_MISMATCH]

    def test_strict_mode_raises(self):
        policy = ReconciliationPolicy(strict_references=True)
        with pytest.raises(UnknownReferenceError, match="GHOST") as exc_info:
            reconcile(
                LOCATIONS, [P1], [_transfer("pending", product="GHOST")],
                policy=policy,
            )
        assert exc_info.value.diagnostics[0].code == UNKNOWN_PRODUCT

    def test_strict_mode_ignores_kind_mismatch(self):
        policy = ReconciliationPolicy(
            fallback_location_id="W1", strict_references=True
        )
        result = reconcile(
            LOCATIONS, [P1], orders=[_order("delivered", vehicle="W1")],
            policy=policy,
        )
        assert result.quantities.quantity("W1", "P1") == 495


# ══════════════════════════════════════════════════════════════
# PURITY
# ══════════════════════════════════════════════════════════════

class TestPurity:
    def test_event_order_does_not_matter(self):
        transfers = [
            _transfer("completed", qty=50, tid="T1"),
            _transfer("pending", qty=20, tid="T2", product="P2"),
            _transfer("completed", qty=5, tid="T3", source=VAN, target=WH),
        ]
        orders = [
            _order("delivered", qty=3, oid="O1"),
            _order("out_for_delivery", qty=4, oid="O2", vehicle=None),
        ]
        forward = reconcile(LOCATIONS, PRODUCTS, transfers, orders, _policy())
        backward = reconcile(
            LOCATIONS, PRODUCTS, transfers[::-1], orders[::-1], _policy()
        )
        assert forward.quantities == backward.quantities

    def test_mapping_inputs_are_not_mutated(self):
        transfers = [{
            "transferId": "T1", "sourceId": "W1", "sourceType": "warehouse",
            "targetId": "V1", "targetType": "vehicle", "date": "2026-10-01",
            "status": "completed",
            "items": [{"productId": "P1", "quantity": 50}],
        }]
        snapshot = copy.deepcopy(transfers)
        result = reconcile(LOCATIONS, [P1], transfers)
        assert transfers == snapshot
        assert result.quantities.quantity("V1", "P1") == 50

    def test_quantity_map_is_read_only(self):
        result = reconcile(LOCATIONS, [P1])
        with pytest.raises(TypeError):
            result.quantities[("W1", "P1")] = 1
        nested = result.quantities.to_dict()
        nested["W1"]["P1"] = 0
        assert result.quantities.quantity("W1", "P1") == 500

    def test_repeated_calls_equal(self):
        args = (LOCATIONS, PRODUCTS, [_transfer("completed")],
                [_order("delivered")], _policy())
        assert reconcile(*args).quantities == reconcile(*args).quantities
