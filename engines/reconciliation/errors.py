"""
DOS Reconciliation Engine — Errors and Diagnostics
====================================================
Error types for the reconciliation and projection layer.

- ValidationError aborts a single reconcile() call.
- Reference problems are NOT errors by default: they are collected as
  ReferenceDiagnostic records on the result. Only strict mode raises.
- Negative stock is data, never an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple


# ══════════════════════════════════════════════════════════════
# DIAGNOSTIC CODES
# ══════════════════════════════════════════════════════════════

UNKNOWN_PRODUCT = "UNKNOWN_PRODUCT"
UNKNOWN_LOCATION = "UNKNOWN_LOCATION"
NO_WITHDRAWAL_LOCATION = "NO_WITHDRAWAL_LOCATION"
LOCATION_KIND_MISMATCH = "LOCATION_KIND_MISMATCH"

# Codes naming something the catalogs do not know (kind mismatch is
# informational).
UNKNOWN_REFERENCE_CODES = frozenset({
    UNKNOWN_PRODUCT,
    UNKNOWN_LOCATION,
    NO_WITHDRAWAL_LOCATION,
})


@dataclass(frozen=True)
class ReferenceDiagnostic:
    """A line item that named something the catalogs do not know."""
    code: str
    event_type: str          # "transfer" | "order"
    event_id: str
    message: str
    product_id: Optional[str] = None
    location_id: Optional[str] = None
    skipped: bool = True     # False when the effect was still applied

    @property
    def unknown_reference(self) -> bool:
        return self.code in UNKNOWN_REFERENCE_CODES

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "event_type": self.event_type,
            "event_id": self.event_id,
            "product_id": self.product_id,
            "location_id": self.location_id,
            "message": self.message,
            "skipped": self.skipped,
        }


# ══════════════════════════════════════════════════════════════
# EXCEPTIONS
# ══════════════════════════════════════════════════════════════

class ReconciliationError(Exception):
    """Base error for all reconciliation operations."""
    pass


class ValidationError(ReconciliationError, ValueError):
    """Malformed or missing required field in an input collection."""

    def __init__(self, message: str, *, field: Optional[str] = None,
                 record_id: Optional[str] = None):
        self.field = field
        self.record_id = record_id
        super().__init__(message)


class UnknownReferenceError(ReconciliationError):
    """Strict mode: events referenced ids absent from the catalogs."""

    def __init__(self, diagnostics: Tuple[ReferenceDiagnostic, ...]):
        self.diagnostics = diagnostics
        ids = sorted({
            d.product_id or d.location_id or d.event_id for d in diagnostics
        })
        super().__init__(
            f"Reconciliation refused: {len(diagnostics)} line item(s) "
            f"reference unknown ids: {', '.join(ids)}."
        )


class UnknownEntityError(ReconciliationError, KeyError):
    """Projection query for a location or product not in the snapshot."""

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"Unknown {entity} '{entity_id}'.")

    def __str__(self) -> str:
        return self.args[0]
