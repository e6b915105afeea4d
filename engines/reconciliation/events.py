"""
DOS Reconciliation Engine — Stock-Movement Events
===================================================
Transfer and order snapshots supplied by the host's transfer and order
workflows. The engine only reads the current status of each event;
lifecycle transitions are enforced upstream.

Transfer lifecycle:
    pending → completed
    pending → cancelled
    (completed and cancelled are terminal)

Order progression:
    pending_warehouse → assigned_to_driver → out_for_delivery → delivered
    (any non-terminal state may end in failed)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

from core.catalog.models import (
    LocationKind,
    pick_field,
    require_id,
    to_decimal,
)


# ══════════════════════════════════════════════════════════════
# STATUS ENUMS
# ══════════════════════════════════════════════════════════════

class TransferStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def leaves_source(self) -> bool:
        """Goods leave the source as soon as the transfer is recorded."""
        return self != TransferStatus.CANCELLED

    @property
    def reaches_target(self) -> bool:
        return self == TransferStatus.COMPLETED


class OrderStatus(Enum):
    PENDING_WAREHOUSE = "pending_warehouse"
    ASSIGNED_TO_DRIVER = "assigned_to_driver"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    FAILED = "failed"

    @property
    def withdraws_stock(self) -> bool:
        # failed orders are assumed still on the vehicle (returns are not modelled)
        return self in (OrderStatus.OUT_FOR_DELIVERY, OrderStatus.DELIVERED)


def _parse_enum(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    if value is None:
        raise ValueError(f"{field_name} is required.")
    try:
        return enum_cls(str(value).lower())
    except ValueError:
        raise ValueError(
            f"{field_name} must be one of "
            f"{[s.value for s in enum_cls]}, got {value!r}."
        ) from None


def _positive_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer, got {value!r}.")
    if value <= 0:
        raise ValueError(f"{field_name} must be positive, got {value}.")
    return value


# ══════════════════════════════════════════════════════════════
# LINE ITEMS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferLine:
    product_id: str
    quantity: int

    def __post_init__(self):
        object.__setattr__(
            self, "product_id", require_id(self.product_id, "product_id")
        )
        _positive_int(self.quantity, "quantity")

    def to_dict(self) -> dict:
        return {"product_id": self.product_id, "quantity": self.quantity}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TransferLine:
        return cls(
            product_id=pick_field(data, "product_id", "productId"),
            quantity=pick_field(data, "quantity"),
        )


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    quantity: int
    unit_price: Decimal      # price at order time, informational only

    def __post_init__(self):
        object.__setattr__(
            self, "product_id", require_id(self.product_id, "product_id")
        )
        _positive_int(self.quantity, "quantity")
        object.__setattr__(
            self, "unit_price", to_decimal(self.unit_price, "unit_price")
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OrderLine:
        return cls(
            product_id=pick_field(data, "product_id", "productId"),
            quantity=pick_field(data, "quantity"),
            unit_price=pick_field(data, "unit_price", "price", default=0),
        )


# ══════════════════════════════════════════════════════════════
# TRANSFER EVENT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class TransferEvent:
    """
    Location-to-location stock movement.

    Fields:
        transfer_id:          Identity
        source_location_id:   Where goods leave from
        source_kind:          Declared kind of the source
        target_location_id:   Where goods arrive
        target_kind:          Declared kind of the target
        items:                Ordered (product_id, quantity) lines
        date:                 Date recorded (ISO string, informational)
        status:               pending | completed | cancelled
        driver_confirmed_at:  When the receiving driver accepted (optional)
    """
    transfer_id: str
    source_location_id: str
    source_kind: LocationKind
    target_location_id: str
    target_kind: LocationKind
    items: Tuple[TransferLine, ...]
    date: str
    status: TransferStatus
    driver_confirmed_at: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(
            self, "transfer_id", require_id(self.transfer_id, "transfer_id")
        )
        object.__setattr__(
            self, "source_location_id",
            require_id(self.source_location_id, "source_location_id"),
        )
        object.__setattr__(
            self, "target_location_id",
            require_id(self.target_location_id, "target_location_id"),
        )
        object.__setattr__(
            self, "source_kind", LocationKind.parse(self.source_kind)
        )
        object.__setattr__(
            self, "target_kind", LocationKind.parse(self.target_kind)
        )
        object.__setattr__(
            self, "status", _parse_enum(TransferStatus, self.status, "status")
        )
        if self.items is None:
            raise ValueError("items is required.")
        object.__setattr__(self, "items", tuple(self.items))
        for line in self.items:
            if not isinstance(line, TransferLine):
                raise ValueError("items must contain TransferLine entries.")

    def to_dict(self) -> dict:
        return {
            "transfer_id": self.transfer_id,
            "source_location_id": self.source_location_id,
            "source_kind": self.source_kind.value,
            "target_location_id": self.target_location_id,
            "target_kind": self.target_kind.value,
            "items": [line.to_dict() for line in self.items],
            "date": self.date,
            "status": self.status.value,
            "driver_confirmed_at": self.driver_confirmed_at,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TransferEvent:
        items = pick_field(data, "items")
        if items is None:
            raise ValueError("items is required.")
        return cls(
            transfer_id=pick_field(data, "transfer_id", "transferId", "id"),
            source_location_id=pick_field(
                data, "source_location_id", "sourceLocationId", "sourceId"
            ),
            source_kind=pick_field(data, "source_kind", "sourceKind", "sourceType"),
            target_location_id=pick_field(
                data, "target_location_id", "targetLocationId", "targetId"
            ),
            target_kind=pick_field(data, "target_kind", "targetKind", "targetType"),
            items=tuple(TransferLine.from_dict(i) for i in items),
            date=str(pick_field(data, "date", default="")),
            status=pick_field(data, "status"),
            driver_confirmed_at=pick_field(
                data, "driver_confirmed_at", "driverConfirmationDate"
            ),
        )


# ══════════════════════════════════════════════════════════════
# ORDER EVENT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OrderEvent:
    """Customer order; withdraws stock from its vehicle once dispatched."""
    order_id: str
    items: Tuple[OrderLine, ...]
    status: OrderStatus
    assigned_vehicle_location_id: Optional[str] = None
    customer_id: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(
            self, "order_id", require_id(self.order_id, "order_id")
        )
        object.__setattr__(
            self, "status", _parse_enum(OrderStatus, self.status, "status")
        )
        vehicle = self.assigned_vehicle_location_id
        if vehicle is not None and str(vehicle).strip() == "":
            vehicle = None
        object.__setattr__(
            self, "assigned_vehicle_location_id",
            None if vehicle is None else str(vehicle),
        )
        if self.items is None:
            raise ValueError("items is required.")
        object.__setattr__(self, "items", tuple(self.items))
        for line in self.items:
            if not isinstance(line, OrderLine):
                raise ValueError("items must contain OrderLine entries.")

    def to_dict(self) -> dict:
        return {
            "order_id": self.order_id,
            "items": [line.to_dict() for line in self.items],
            "status": self.status.value,
            "assigned_vehicle_location_id": self.assigned_vehicle_location_id,
            "customer_id": self.customer_id,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> OrderEvent:
        items = pick_field(data, "items")
        if items is None:
            raise ValueError("items is required.")
        return cls(
            order_id=pick_field(data, "order_id", "orderId", "id"),
            items=tuple(OrderLine.from_dict(i) for i in items),
            status=pick_field(data, "status"),
            assigned_vehicle_location_id=pick_field(
                data, "assigned_vehicle_location_id",
                "assignedVehicleLocationId", "vehicleId",
            ),
            customer_id=pick_field(data, "customer_id", "customerId"),
        )
