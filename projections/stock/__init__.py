"""
DOS Projections — Stock Read Model
====================================
Reporting views over ONE reconciliation result.

A StockSnapshot wraps a single ReconciliationResult, so every view a
caller combines (per location, per kind, per product, low stock, total
value) comes from the same replay. Build a new snapshot to see new
events.

Valuation: value = quantity × current product price, negative
quantities included.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from core.catalog.models import Location, LocationKind, Product
from engines.reconciliation.consistency import (
    NegativeStockEntry,
    negative_stock_report,
)
from engines.reconciliation.engine import ReconciliationResult
from engines.reconciliation.errors import UnknownEntityError


# ══════════════════════════════════════════════════════════════
# ROWS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StockRow:
    """One location × product line of the stock report."""
    location_id: str
    location_name: str
    location_kind: LocationKind
    product_id: str
    product_name: str
    code: str
    quantity: int
    price: Decimal

    @property
    def value(self) -> Decimal:
        return self.quantity * self.price

    def is_low(self, threshold: int) -> bool:
        return self.quantity < threshold

    def to_dict(self) -> dict:
        return {
            "location_id": self.location_id,
            "location_name": self.location_name,
            "location_kind": self.location_kind.value,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "code": self.code,
            "quantity": self.quantity,
            "price": str(self.price),
            "value": str(self.value),
        }


@dataclass(frozen=True)
class ProductLocationRow:
    """Where one SKU sits."""
    product_id: str
    location_id: str
    location_name: str
    location_kind: LocationKind
    quantity: int

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "location_id": self.location_id,
            "location_name": self.location_name,
            "location_kind": self.location_kind.value,
            "quantity": self.quantity,
        }


@dataclass(frozen=True)
class ProductTotal:
    product_id: str
    code: str
    product_name: str
    total_quantity: int
    total_value: Decimal

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "code": self.code,
            "product_name": self.product_name,
            "total_quantity": self.total_quantity,
            "total_value": str(self.total_value),
        }


# ══════════════════════════════════════════════════════════════
# SNAPSHOT
# ══════════════════════════════════════════════════════════════

class StockSnapshot:
    """
    Read model over a single replay.

    All methods return freshly built immutable rows; nothing hands out
    references into the underlying map.
    """

    projection_name = "stock_snapshot"

    def __init__(self, result: ReconciliationResult) -> None:
        self._result = result
        self._locations: Dict[str, Location] = {
            loc.location_id: loc for loc in result.locations
        }
        self._products: Dict[str, Product] = {
            p.product_id: p for p in result.products
        }

    # ── Internals ─────────────────────────────────────────────

    def _location(self, location_id: str) -> Location:
        location = self._locations.get(location_id)
        if location is None:
            raise UnknownEntityError("location", location_id)
        return location

    def _product(self, product_id: str) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise UnknownEntityError("product", product_id)
        return product

    def _row(self, location: Location, product: Product) -> StockRow:
        return StockRow(
            location_id=location.location_id,
            location_name=location.name,
            location_kind=location.kind,
            product_id=product.product_id,
            product_name=product.name,
            code=product.code,
            quantity=self._result.quantities.quantity(
                location.location_id, product.product_id
            ),
            price=product.price,
        )

    def _rows_for(self, location: Location) -> List[StockRow]:
        return [self._row(location, p) for p in self._result.products]

    # ── Accessors ─────────────────────────────────────────────

    @property
    def result(self) -> ReconciliationResult:
        return self._result

    @property
    def low_stock_threshold(self) -> int:
        return self._result.policy.low_stock_threshold

    @property
    def diagnostics(self):
        return self._result.diagnostics

    def quantity(self, location_id: str, product_id: str) -> int:
        self._location(location_id)
        self._product(product_id)
        return self._result.quantities.quantity(location_id, product_id)

    # ── Views ─────────────────────────────────────────────────

    def by_location(self, location_id: str) -> Tuple[StockRow, ...]:
        return tuple(self._rows_for(self._location(location_id)))

    def by_location_kind(self, kind: Any) -> Tuple[StockRow, ...]:
        kind = LocationKind.parse(kind)
        rows: List[StockRow] = []
        for location in self._result.locations:
            if location.kind == kind:
                rows.extend(self._rows_for(location))
        return tuple(rows)

    def by_product(self, product_id: str) -> Tuple[ProductLocationRow, ...]:
        self._product(product_id)
        per_location = self._result.quantities.for_product(product_id)
        return tuple(
            ProductLocationRow(
                product_id=product_id,
                location_id=loc.location_id,
                location_name=loc.name,
                location_kind=loc.kind,
                quantity=per_location[loc.location_id],
            )
            for loc in self._result.locations
        )

    def low_stock(self, threshold: Optional[int] = None) -> Tuple[StockRow, ...]:
        """Rows with quantity strictly below threshold (negatives included)."""
        if threshold is None:
            threshold = self.low_stock_threshold
        return tuple(
            row for row in self.report(include_zero=True)
            if row.is_low(threshold)
        )

    def total_value(self, location_id: Optional[str] = None) -> Decimal:
        """Sum of value for one location, or for every location when None."""
        if location_id is not None:
            rows = self.by_location(location_id)
        else:
            rows = self.report(include_zero=True)
        return sum((row.value for row in rows), Decimal(0))

    def report(
        self,
        location_id: Optional[str] = None,
        kind: Any = None,
        include_zero: bool = False,
    ) -> Tuple[StockRow, ...]:
        """
        Flattened stock report, warehouses and vehicles in catalog order.

        location_id and kind filters combine (both must match). Pairs at
        zero are left out unless include_zero is set.
        """
        if location_id is not None:
            self._location(location_id)
        kind = LocationKind.parse(kind) if kind is not None else None

        rows: List[StockRow] = []
        for location in self._result.locations:
            if location_id is not None and location.location_id != location_id:
                continue
            if kind is not None and location.kind != kind:
                continue
            for row in self._rows_for(location):
                if include_zero or row.quantity != 0:
                    rows.append(row)
        return tuple(rows)

    def product_totals(self) -> Tuple[ProductTotal, ...]:
        """Total quantity and value of every product across all locations."""
        totals = []
        for product in self._result.products:
            quantity = sum(
                self._result.quantities.for_product(product.product_id).values()
            )
            totals.append(ProductTotal(
                product_id=product.product_id,
                code=product.code,
                product_name=product.name,
                total_quantity=quantity,
                total_value=quantity * product.price,
            ))
        return tuple(totals)

    def negative_stock(self) -> Tuple[NegativeStockEntry, ...]:
        return negative_stock_report(self._result.quantities)

    def summary(self) -> Dict[str, Any]:
        data = self._result.summary()
        data.update({
            "total_value": str(self.total_value()),
            "low_stock_count": len(self.low_stock()),
            "low_stock_threshold": self.low_stock_threshold,
        })
        return data
