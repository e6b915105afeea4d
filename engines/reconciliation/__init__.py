"""
DOS Reconciliation Engine — Public API
========================================
Derives per-location, per-product stock by replaying transfers and
orders over a baseline. See engine.py for the replay rules.
"""

from engines.reconciliation.consistency import (
    NegativeStockEntry,
    is_idempotent,
    negative_stock_report,
)
from engines.reconciliation.engine import (
    QuantityMap,
    ReconciliationResult,
    StockEffect,
    reconcile,
    replay,
)
from engines.reconciliation.errors import (
    ReconciliationError,
    ReferenceDiagnostic,
    UnknownEntityError,
    UnknownReferenceError,
    ValidationError,
)
from engines.reconciliation.events import (
    OrderEvent,
    OrderLine,
    OrderStatus,
    TransferEvent,
    TransferLine,
    TransferStatus,
)
from engines.reconciliation.policies import (
    BaselinePolicy,
    ReconciliationPolicy,
)
from engines.reconciliation.validators import ReconciliationInputs

__all__ = [
    "BaselinePolicy",
    "NegativeStockEntry",
    "OrderEvent",
    "OrderLine",
    "OrderStatus",
    "QuantityMap",
    "ReconciliationError",
    "ReconciliationInputs",
    "ReconciliationPolicy",
    "ReconciliationResult",
    "ReferenceDiagnostic",
    "StockEffect",
    "TransferEvent",
    "TransferLine",
    "TransferStatus",
    "UnknownEntityError",
    "UnknownReferenceError",
    "ValidationError",
    "is_idempotent",
    "negative_stock_report",
    "reconcile",
    "replay",
]
