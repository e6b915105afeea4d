"""
DOS Reconciliation Engine — Stock Replay
==========================================
Authority: DOS Doctrine — Derived, Never Stored

Computes on-hand quantity of every product at every location by
replaying transfer and order events over a baseline. No running
balance is ever persisted; every read is a fresh replay.

RULES (NON-NEGOTIABLE):
- Pure: no I/O, no mutation of inputs, same inputs → same output
- Order-independent: each event contributes a fixed set of deltas and
  the deltas are summed, so event order never matters
- Every location × product pair is present, even at zero
- Negative quantities are valid output (over-commitment), never clamped
- Unknown product/location ids skip the line item and are reported as
  diagnostics; they never abort the replay
- Malformed input aborts the call before any event is applied

Replay effects:
    transfer pending     source −= qty
    transfer completed   source −= qty, target += qty
    transfer cancelled   no effect
    order out_for_delivery / delivered
                         (assigned vehicle or fallback) −= qty
    any other order      no effect
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from core.catalog.models import Location, Product
from engines.reconciliation.errors import (
    LOCATION_KIND_MISMATCH,
    NO_WITHDRAWAL_LOCATION,
    UNKNOWN_LOCATION,
    UNKNOWN_PRODUCT,
    ReferenceDiagnostic,
    UnknownReferenceError,
    ValidationError,
)
from engines.reconciliation.events import OrderEvent, TransferEvent
from engines.reconciliation.policies import ReconciliationPolicy
from engines.reconciliation.validators import ReconciliationInputs

logger = logging.getLogger("dos.reconciliation")

_Key = Tuple[str, str]  # (location_id, product_id)


# ══════════════════════════════════════════════════════════════
# QUANTITY MAP
# ══════════════════════════════════════════════════════════════

class QuantityMap(Mapping):
    """
    Read-only (location_id, product_id) → quantity mapping.

    Iterates locations in catalog order, products in catalog order
    within each location. Equality is structural.
    """

    __slots__ = ("_quantities", "_location_ids", "_product_ids")

    def __init__(
        self,
        quantities: Dict[_Key, int],
        location_ids: Tuple[str, ...],
        product_ids: Tuple[str, ...],
    ) -> None:
        self._quantities = {
            (loc, prod): quantities[(loc, prod)]
            for loc in location_ids
            for prod in product_ids
        }
        self._location_ids = tuple(location_ids)
        self._product_ids = tuple(product_ids)

    def __getitem__(self, key: _Key) -> int:
        return self._quantities[key]

    def __iter__(self) -> Iterator[_Key]:
        return iter(self._quantities)

    def __len__(self) -> int:
        return len(self._quantities)

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Mapping):
            return NotImplemented
        return dict(self._quantities) == dict(other)

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"QuantityMap(locations={len(self._location_ids)}, "
            f"products={len(self._product_ids)})"
        )

    @property
    def location_ids(self) -> Tuple[str, ...]:
        return self._location_ids

    @property
    def product_ids(self) -> Tuple[str, ...]:
        return self._product_ids

    def quantity(self, location_id: str, product_id: str) -> int:
        return self._quantities[(location_id, product_id)]

    def for_location(self, location_id: str) -> Dict[str, int]:
        """product_id → quantity at one location."""
        return {
            prod: self._quantities[(location_id, prod)]
            for prod in self._product_ids
            if (location_id, prod) in self._quantities
        }

    def for_product(self, product_id: str) -> Dict[str, int]:
        """location_id → quantity of one product."""
        return {
            loc: self._quantities[(loc, product_id)]
            for loc in self._location_ids
            if (loc, product_id) in self._quantities
        }

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        """Nested {location_id: {product_id: quantity}}."""
        return {loc: self.for_location(loc) for loc in self._location_ids}


# ══════════════════════════════════════════════════════════════
# RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StockEffect:
    """One signed delta contributed by one line item of one event."""
    location_id: str
    product_id: str
    delta: int
    event_type: str
    event_id: str


@dataclass(frozen=True)
class ReconciliationResult:
    """Output of a single replay. Projections must read from one of these."""
    quantities: QuantityMap
    diagnostics: Tuple[ReferenceDiagnostic, ...]
    locations: Tuple[Location, ...]
    products: Tuple[Product, ...]
    policy: ReconciliationPolicy
    transfers_applied: int = 0
    orders_applied: int = 0
    line_items_skipped: int = 0

    @property
    def has_diagnostics(self) -> bool:
        return bool(self.diagnostics)

    def location(self, location_id: str) -> Optional[Location]:
        for loc in self.locations:
            if loc.location_id == location_id:
                return loc
        return None

    def product(self, product_id: str) -> Optional[Product]:
        for prod in self.products:
            if prod.product_id == product_id:
                return prod
        return None

    def summary(self) -> dict:
        return {
            "location_count": len(self.locations),
            "product_count": len(self.products),
            "transfers_applied": self.transfers_applied,
            "orders_applied": self.orders_applied,
            "line_items_skipped": self.line_items_skipped,
            "diagnostic_count": len(self.diagnostics),
        }


# ══════════════════════════════════════════════════════════════
# EVENT → EFFECTS
# ══════════════════════════════════════════════════════════════

def _kind_mismatch(
    event_type: str, event_id: str, location: Location, declared: Any,
) -> ReferenceDiagnostic:
    declared_value = getattr(declared, "value", declared)
    return ReferenceDiagnostic(
        code=LOCATION_KIND_MISMATCH,
        event_type=event_type,
        event_id=event_id,
        location_id=location.location_id,
        skipped=False,
        message=(
            f"{event_type} {event_id} declares location "
            f"{location.location_id} as {declared_value}, catalog says "
            f"{location.kind.value}."
        ),
    )


def _unknown_location(
    event_type: str, event_id: str, location_id: str, role: str,
    skipped: bool = True,
) -> ReferenceDiagnostic:
    outcome = "line items skipped" if skipped else "not credited"
    return ReferenceDiagnostic(
        code=UNKNOWN_LOCATION,
        event_type=event_type,
        event_id=event_id,
        location_id=location_id,
        skipped=skipped,
        message=(
            f"{event_type} {event_id} {role} location '{location_id}' "
            f"is not in the catalog; {outcome}."
        ),
    )


def _unknown_product(
    event_type: str, event_id: str, product_id: str,
) -> ReferenceDiagnostic:
    return ReferenceDiagnostic(
        code=UNKNOWN_PRODUCT,
        event_type=event_type,
        event_id=event_id,
        product_id=product_id,
        message=(
            f"{event_type} {event_id} references product '{product_id}' "
            f"which is not in the catalog; line item skipped."
        ),
    )


def transfer_effects(
    transfer: TransferEvent,
    locations: Dict[str, Location],
    product_ids: frozenset,
) -> Tuple[List[StockEffect], List[ReferenceDiagnostic], int]:
    """
    Deltas for one transfer.

    Returns (effects, diagnostics, skipped_line_count).
    """
    if not transfer.status.leaves_source:
        return [], [], 0

    event_id = transfer.transfer_id
    diagnostics: List[ReferenceDiagnostic] = []

    source = locations.get(transfer.source_location_id)
    target = locations.get(transfer.target_location_id)
    if source is None:
        diagnostics.append(_unknown_location(
            "transfer", event_id, transfer.source_location_id, "source"
        ))
    elif source.kind != transfer.source_kind:
        diagnostics.append(_kind_mismatch(
            "transfer", event_id, source, transfer.source_kind
        ))
    if target is None:
        diagnostics.append(_unknown_location(
            "transfer", event_id, transfer.target_location_id, "target",
            skipped=source is None or transfer.status.reaches_target,
        ))
    elif target.kind != transfer.target_kind:
        diagnostics.append(_kind_mismatch(
            "transfer", event_id, target, transfer.target_kind
        ))

    # An in-transit transfer never touches its target, so only a
    # completed one needs both ends to keep the pair balanced.
    if source is None or (target is None and transfer.status.reaches_target):
        return [], diagnostics, len(transfer.items)

    effects: List[StockEffect] = []
    skipped = 0
    for line in transfer.items:
        if line.product_id not in product_ids:
            diagnostics.append(
                _unknown_product("transfer", event_id, line.product_id)
            )
            skipped += 1
            continue
        # Source is charged as soon as the transfer exists; the target
        # is only credited once receipt is confirmed.
        effects.append(StockEffect(
            location_id=source.location_id,
            product_id=line.product_id,
            delta=-line.quantity,
            event_type="transfer",
            event_id=event_id,
        ))
        if transfer.status.reaches_target:
            effects.append(StockEffect(
                location_id=target.location_id,
                product_id=line.product_id,
                delta=line.quantity,
                event_type="transfer",
                event_id=event_id,
            ))
    return effects, diagnostics, skipped


def order_effects(
    order: OrderEvent,
    locations: Dict[str, Location],
    product_ids: frozenset,
    fallback_location_id: Optional[str],
) -> Tuple[List[StockEffect], List[ReferenceDiagnostic], int]:
    """
    Deltas for one order.

    Unassigned orders are charged to the default consolidation location
    (policy.fallback_location_id).
    """
    if not order.status.withdraws_stock:
        return [], [], 0

    event_id = order.order_id
    diagnostics: List[ReferenceDiagnostic] = []

    location_id = order.assigned_vehicle_location_id or fallback_location_id
    if location_id is None:
        diagnostics.append(ReferenceDiagnostic(
            code=NO_WITHDRAWAL_LOCATION,
            event_type="order",
            event_id=event_id,
            message=(
                f"order {event_id} has no assigned vehicle and no default "
                f"consolidation location is configured; line items skipped."
            ),
        ))
        return [], diagnostics, len(order.items)

    location = locations.get(location_id)
    if location is None:
        role = (
            "assigned vehicle" if order.assigned_vehicle_location_id
            else "fallback"
        )
        diagnostics.append(_unknown_location("order", event_id, location_id, role))
        return [], diagnostics, len(order.items)
    if order.assigned_vehicle_location_id and not location.is_vehicle:
        diagnostics.append(_kind_mismatch("order", event_id, location, "vehicle"))

    effects: List[StockEffect] = []
    skipped = 0
    for line in order.items:
        if line.product_id not in product_ids:
            diagnostics.append(_unknown_product("order", event_id, line.product_id))
            skipped += 1
            continue
        effects.append(StockEffect(
            location_id=location.location_id,
            product_id=line.product_id,
            delta=-line.quantity,
            event_type="order",
            event_id=event_id,
        ))
    return effects, diagnostics, skipped


# ══════════════════════════════════════════════════════════════
# REPLAY
# ══════════════════════════════════════════════════════════════

def replay(inputs: ReconciliationInputs) -> ReconciliationResult:
    """
    Replay an already-validated input bundle.

    Fold: baseline + Σ effects. Each event's effects depend only on that
    event and the catalogs, so the sum is independent of event order.
    """
    policy = inputs.policy
    location_index = {loc.location_id: loc for loc in inputs.locations}
    product_ids = tuple(p.product_id for p in inputs.products)
    known_products = frozenset(product_ids)

    balances: Dict[_Key, int] = {}
    for loc in inputs.locations:
        try:
            opening = policy.baseline.opening_quantity(loc)
        except ValueError as exc:
            raise ValidationError(
                f"Invalid baseline for location {loc.location_id}: {exc}",
                field="baseline",
                record_id=loc.location_id,
            ) from exc
        for prod_id in product_ids:
            balances[(loc.location_id, prod_id)] = opening

    diagnostics: List[ReferenceDiagnostic] = []
    skipped_total = 0
    transfers_applied = 0
    orders_applied = 0

    for transfer in inputs.transfers:
        effects, diags, skipped = transfer_effects(
            transfer, location_index, known_products
        )
        transfers_applied += _apply(balances, effects)
        diagnostics.extend(diags)
        skipped_total += skipped

    for order in inputs.orders:
        effects, diags, skipped = order_effects(
            order, location_index, known_products, policy.fallback_location_id
        )
        orders_applied += _apply(balances, effects)
        diagnostics.extend(diags)
        skipped_total += skipped

    for diag in diagnostics:
        logger.debug(f"Reconciliation diagnostic {diag.code}: {diag.message}")

    result = ReconciliationResult(
        quantities=QuantityMap(
            balances,
            tuple(loc.location_id for loc in inputs.locations),
            product_ids,
        ),
        diagnostics=tuple(diagnostics),
        locations=inputs.locations,
        products=inputs.products,
        policy=policy,
        transfers_applied=transfers_applied,
        orders_applied=orders_applied,
        line_items_skipped=skipped_total,
    )

    logger.info(
        f"Reconciliation complete: {len(inputs.locations)} locations × "
        f"{len(product_ids)} products, {transfers_applied} transfers and "
        f"{orders_applied} orders applied, {skipped_total} line items skipped"
    )

    blocking = tuple(d for d in diagnostics if d.unknown_reference)
    if blocking:
        logger.warning(
            f"Reconciliation skipped {skipped_total} line item(s) with "
            f"{len(blocking)} unknown reference(s)"
        )
        if policy.strict_references:
            raise UnknownReferenceError(blocking)

    return result


def _apply(balances: Dict[_Key, int], effects: Iterable[StockEffect]) -> int:
    """Add deltas in place. Returns 1 if anything was applied, else 0."""
    applied = 0
    for effect in effects:
        balances[(effect.location_id, effect.product_id)] += effect.delta
        applied = 1
    return applied


def reconcile(
    locations: Iterable[Any],
    products: Iterable[Any],
    transfers: Iterable[Any] = (),
    orders: Iterable[Any] = (),
    policy: Any = None,
) -> ReconciliationResult:
    """
    Derive the current quantity map.

    Args:
        locations: Warehouses and vehicles (Location or mapping).
        products:  Products (Product or mapping).
        transfers: Transfer events (TransferEvent or mapping).
        orders:    Order events (OrderEvent or mapping).
        policy:    ReconciliationPolicy, config mapping, or a baseline
                   callable. None uses the reference policy.

    Raises:
        ValidationError:        malformed input; nothing was applied.
        UnknownReferenceError:  strict mode only.
    """
    inputs = ReconciliationInputs.build(
        locations=locations,
        products=products,
        transfers=transfers,
        orders=orders,
        policy=policy,
    )
    return replay(inputs)
