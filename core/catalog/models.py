"""
DOS Entity Catalog — Products and Locations
=============================================
Read-only snapshots of the reference entities owned by the host
application. The reconciliation engine consumes these; it never
creates, edits or deletes them.

RULES:
- Identity is a non-empty string id
- Prices are Decimal and never negative
- A location is either a warehouse or a delivery vehicle
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Mapping, Optional


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class LocationKind(Enum):
    WAREHOUSE = "warehouse"
    VEHICLE = "vehicle"

    @classmethod
    def parse(cls, value: Any) -> LocationKind:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(
                f"location kind must be one of "
                f"{[k.value for k in cls]}, got {value!r}."
            ) from None


# ══════════════════════════════════════════════════════════════
# HELPERS
# ══════════════════════════════════════════════════════════════

def pick_field(data: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    """First present key wins (snake_case first, then camelCase aliases)."""
    for key in keys:
        if key in data:
            return data[key]
    return default


def to_decimal(value: Any, field_name: str) -> Decimal:
    if isinstance(value, bool):
        raise ValueError(f"{field_name} must be a number, got {value!r}.")
    if value is None:
        raise ValueError(f"{field_name} is required.")
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise ValueError(
                f"{field_name} must be a number, got {value!r}."
            ) from None
    if not value.is_finite():
        raise ValueError(f"{field_name} must be finite, got {value}.")
    return value


def require_id(value: Any, field_name: str) -> str:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValueError(f"{field_name} is required.")
    return str(value)


# ══════════════════════════════════════════════════════════════
# PRODUCT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Product:
    """
    A sellable SKU.

    price is the unit price used for valuation. Price history is a
    reference-data concern; reconciliation always values stock at the
    current price.
    """
    product_id: str
    code: str
    price: Decimal
    name: str = ""

    def __post_init__(self):
        object.__setattr__(
            self, "product_id", require_id(self.product_id, "product_id")
        )
        price = to_decimal(self.price, "price")
        if price < 0:
            raise ValueError(f"price cannot be negative, got {price}.")
        object.__setattr__(self, "price", price)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "code": self.code,
            "name": self.name,
            "price": str(self.price),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Product:
        return cls(
            product_id=pick_field(data, "product_id", "productId", "id"),
            code=str(pick_field(data, "code", "sku", default="")),
            price=pick_field(data, "price"),
            name=str(pick_field(data, "name", default="")),
        )


# ══════════════════════════════════════════════════════════════
# LOCATION
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Location:
    """Unit of stock custody: a warehouse or a delivery vehicle."""
    location_id: str
    kind: LocationKind
    name: str = ""

    def __post_init__(self):
        object.__setattr__(
            self, "location_id", require_id(self.location_id, "location_id")
        )
        object.__setattr__(self, "kind", LocationKind.parse(self.kind))

    @property
    def is_vehicle(self) -> bool:
        return self.kind == LocationKind.VEHICLE

    def to_dict(self) -> dict:
        return {
            "location_id": self.location_id,
            "kind": self.kind.value,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Location:
        return cls(
            location_id=pick_field(data, "location_id", "locationId", "id"),
            kind=pick_field(data, "kind", "location_kind", "locationKind", "type"),
            name=str(pick_field(data, "name", default="")),
        )


def vehicle_display_name(plate_number: str, model: Optional[str] = None) -> str:
    """Vehicles are shown as 'PLATE (Model)' in stock reports."""
    if model:
        return f"{plate_number} ({model})"
    return plate_number
