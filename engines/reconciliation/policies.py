"""
DOS Reconciliation Engine — Policies
======================================
Replay parameters that stand in for data the system does not yet own.

BaselinePolicy
    Opening quantity of every product at a location, by location kind.
    The reference table (warehouse=500, vehicle=0) is a modelling
    convenience, NOT a true opening-balance ledger. Override it.

fallback_location_id: the default consolidation location
    Orders that withdraw stock but have no assigned vehicle are charged
    to this location. A wrong value silently corrupts that location's
    figures, so it is explicit configuration. None disables the
    fallback (unassigned orders become NO_WITHDRAWAL_LOCATION
    diagnostics).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional

from core.catalog.models import Location, LocationKind


# ══════════════════════════════════════════════════════════════
# REFERENCE DEFAULTS
# ══════════════════════════════════════════════════════════════

REFERENCE_WAREHOUSE_BASELINE = 500
REFERENCE_VEHICLE_BASELINE = 0
REFERENCE_FALLBACK_LOCATION_ID = "1"
REFERENCE_LOW_STOCK_THRESHOLD = 10


def _int_quantity(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field_name} must be an integer, got {value!r}.")
    return value


# ══════════════════════════════════════════════════════════════
# BASELINE POLICY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class BaselinePolicy:
    """
    Starting quantity per location.

    Either a kind → quantity table, or a callable taking the Location
    (for per-location openings). The callable wins when both are set.
    """
    table: Mapping[LocationKind, int] = field(default_factory=lambda: {
        LocationKind.WAREHOUSE: REFERENCE_WAREHOUSE_BASELINE,
        LocationKind.VEHICLE: REFERENCE_VEHICLE_BASELINE,
    })
    resolver: Optional[Callable[[Location], int]] = None

    def __post_init__(self):
        table = {
            LocationKind.parse(kind): _int_quantity(qty, f"baseline[{kind}]")
            for kind, qty in dict(self.table).items()
        }
        object.__setattr__(self, "table", MappingProxyType(table))

    def __hash__(self) -> int:
        return hash((tuple(sorted((k.value, v) for k, v in self.table.items())),
                     self.resolver))

    def opening_quantity(self, location: Location) -> int:
        if self.resolver is not None:
            return _int_quantity(
                self.resolver(location), f"baseline({location.location_id})"
            )
        return self.table.get(location.kind, 0)

    def __call__(self, location: Location) -> int:
        return self.opening_quantity(location)

    @property
    def fingerprintable(self) -> bool:
        """True when describe() captures the whole baseline."""
        return self.resolver is None

    @classmethod
    def from_callable(cls, resolver: Callable[[Location], int]) -> BaselinePolicy:
        return cls(table={}, resolver=resolver)

    def describe(self) -> dict:
        if self.resolver is not None:
            return {"resolver": getattr(self.resolver, "__qualname__", repr(self.resolver))}
        return {kind.value: qty for kind, qty in sorted(
            self.table.items(), key=lambda kv: kv[0].value
        )}


# ══════════════════════════════════════════════════════════════
# RECONCILIATION POLICY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReconciliationPolicy:
    """Everything reconcile() needs besides the catalogs and events."""

    baseline: BaselinePolicy = field(default_factory=BaselinePolicy)
    fallback_location_id: Optional[str] = REFERENCE_FALLBACK_LOCATION_ID
    low_stock_threshold: int = REFERENCE_LOW_STOCK_THRESHOLD
    strict_references: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.baseline, BaselinePolicy):
            if callable(self.baseline):
                object.__setattr__(
                    self, "baseline", BaselinePolicy.from_callable(self.baseline)
                )
            elif isinstance(self.baseline, Mapping):
                object.__setattr__(
                    self, "baseline", BaselinePolicy(table=self.baseline)
                )
            else:
                raise ValueError(
                    "baseline must be a BaselinePolicy, mapping or callable."
                )
        _int_quantity(self.low_stock_threshold, "low_stock_threshold")
        if self.fallback_location_id is not None:
            object.__setattr__(
                self, "fallback_location_id", str(self.fallback_location_id)
            )

    def describe(self) -> dict:
        return {
            "baseline": self.baseline.describe(),
            "fallback_location_id": self.fallback_location_id,
            "low_stock_threshold": self.low_stock_threshold,
            "strict_references": self.strict_references,
        }

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ReconciliationPolicy:
        """Build from a plain config dict (missing keys keep reference values)."""
        kwargs: dict = {}
        if "baseline" in data:
            if not isinstance(data["baseline"], Mapping):
                raise ValueError("baseline must map location kind to quantity.")
            kwargs["baseline"] = BaselinePolicy(table=data["baseline"])
        if "fallback_location_id" in data:
            kwargs["fallback_location_id"] = data["fallback_location_id"]
        if "low_stock_threshold" in data:
            kwargs["low_stock_threshold"] = data["low_stock_threshold"]
        if "strict_references" in data:
            kwargs["strict_references"] = bool(data["strict_references"])
        unknown = set(data) - {
            "baseline", "fallback_location_id",
            "low_stock_threshold", "strict_references",
        }
        if unknown:
            raise ValueError(
                f"Unknown reconciliation setting(s): {', '.join(sorted(unknown))}."
            )
        return cls(**kwargs)
