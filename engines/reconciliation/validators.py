"""
DOS Reconciliation Engine — Input Validation
==============================================
Coerces host-supplied collections into typed, immutable snapshots.

Validation runs over ALL inputs before the replay starts. One malformed
record fails the whole reconcile() call with ValidationError, so no
event is ever partially applied.

Accepted shapes per record:
- the typed dataclass (Product, Location, TransferEvent, OrderEvent)
- a mapping in the host's wire shape (snake_case or camelCase keys)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping, Optional, Tuple

from core.caching.fingerprint import compute_fingerprint
from core.catalog.models import Location, Product
from engines.reconciliation.errors import ValidationError
from engines.reconciliation.events import OrderEvent, TransferEvent
from engines.reconciliation.policies import ReconciliationPolicy


# ══════════════════════════════════════════════════════════════
# RECORD COERCION
# ══════════════════════════════════════════════════════════════

def _record_id(raw: Any, id_keys: Tuple[str, ...]) -> Optional[str]:
    if isinstance(raw, Mapping):
        for key in id_keys:
            if raw.get(key) is not None:
                return str(raw[key])
    return None


def _coerce_collection(
    records: Optional[Iterable[Any]],
    cls: type,
    label: str,
    id_attr: str,
    id_keys: Tuple[str, ...],
) -> tuple:
    if records is None:
        raise ValidationError(f"{label} collection is required.", field=label)
    if isinstance(records, (str, bytes, Mapping)):
        raise ValidationError(
            f"{label} must be a collection of records.", field=label
        )

    coerced = []
    seen = set()
    for index, raw in enumerate(records):
        if isinstance(raw, cls):
            record = raw
        elif isinstance(raw, Mapping):
            try:
                record = cls.from_dict(raw)
            except (ValueError, TypeError, KeyError) as exc:
                record_id = _record_id(raw, id_keys)
                raise ValidationError(
                    f"Invalid {label} record "
                    f"{record_id or f'#{index}'}: {exc}",
                    field=label,
                    record_id=record_id,
                ) from exc
        else:
            raise ValidationError(
                f"Invalid {label} record #{index}: expected "
                f"{cls.__name__} or mapping, got {type(raw).__name__}.",
                field=label,
            )

        record_id = getattr(record, id_attr)
        if record_id in seen:
            raise ValidationError(
                f"Duplicate {label} id '{record_id}'.",
                field=id_attr,
                record_id=record_id,
            )
        seen.add(record_id)
        coerced.append(record)
    return tuple(coerced)


def coerce_products(records: Iterable[Any]) -> Tuple[Product, ...]:
    return _coerce_collection(
        records, Product, "product", "product_id",
        ("product_id", "productId", "id"),
    )


def coerce_locations(records: Iterable[Any]) -> Tuple[Location, ...]:
    return _coerce_collection(
        records, Location, "location", "location_id",
        ("location_id", "locationId", "id"),
    )


def coerce_transfers(records: Iterable[Any]) -> Tuple[TransferEvent, ...]:
    return _coerce_collection(
        records, TransferEvent, "transfer", "transfer_id",
        ("transfer_id", "transferId", "id"),
    )


def coerce_orders(records: Iterable[Any]) -> Tuple[OrderEvent, ...]:
    return _coerce_collection(
        records, OrderEvent, "order", "order_id",
        ("order_id", "orderId", "id"),
    )


def coerce_policy(policy: Any) -> ReconciliationPolicy:
    if policy is None:
        return ReconciliationPolicy()
    if isinstance(policy, ReconciliationPolicy):
        return policy
    try:
        if isinstance(policy, Mapping):
            return ReconciliationPolicy.from_mapping(policy)
        if callable(policy):
            return ReconciliationPolicy(baseline=policy)
    except (ValueError, TypeError) as exc:
        raise ValidationError(f"Invalid policy: {exc}", field="policy") from exc
    raise ValidationError(
        f"policy must be a ReconciliationPolicy, mapping or baseline "
        f"callable, got {type(policy).__name__}.",
        field="policy",
    )


# ══════════════════════════════════════════════════════════════
# INPUT BUNDLE
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReconciliationInputs:
    """
    Immutable snapshot of everything one replay reads.

    Build with ReconciliationInputs.build() to coerce raw collections.
    """
    locations: Tuple[Location, ...]
    products: Tuple[Product, ...]
    transfers: Tuple[TransferEvent, ...] = ()
    orders: Tuple[OrderEvent, ...] = ()
    policy: ReconciliationPolicy = field(default_factory=ReconciliationPolicy)

    @classmethod
    def build(
        cls,
        locations: Iterable[Any],
        products: Iterable[Any],
        transfers: Iterable[Any] = (),
        orders: Iterable[Any] = (),
        policy: Any = None,
    ) -> ReconciliationInputs:
        return cls(
            locations=coerce_locations(locations),
            products=coerce_products(products),
            transfers=coerce_transfers(transfers),
            orders=coerce_orders(orders),
            policy=coerce_policy(policy),
        )

    def to_dict(self) -> dict:
        return {
            "locations": [loc.to_dict() for loc in self.locations],
            "products": [p.to_dict() for p in self.products],
            "transfers": [t.to_dict() for t in self.transfers],
            "orders": [o.to_dict() for o in self.orders],
            "policy": self.policy.describe(),
        }

    def fingerprint(self) -> str:
        """
        Content hash of the inputs.

        Event collections are hashed as sets (sorted by id) because the
        replay is order-independent. A callable baseline enters only by
        name; see BaselinePolicy.fingerprintable.
        """
        payload = self.to_dict()
        payload["transfers"] = sorted(
            payload["transfers"], key=lambda t: t["transfer_id"]
        )
        payload["orders"] = sorted(payload["orders"], key=lambda o: o["order_id"])
        return compute_fingerprint(payload)
