"""
DOS Reconciliation Engine — Consistency Checks
================================================
Observability checks over the replay. They report; they never change
what reconcile() returns.

- is_idempotent:         same inputs → same map, inputs untouched
- negative_stock_report: every (location, product) below zero
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Tuple

from engines.reconciliation.engine import replay
from engines.reconciliation.validators import ReconciliationInputs

logger = logging.getLogger("dos.reconciliation")


# ══════════════════════════════════════════════════════════════
# IDEMPOTENCE
# ══════════════════════════════════════════════════════════════

def is_idempotent(inputs: ReconciliationInputs) -> bool:
    """
    Replay twice and compare.

    Also verifies that the inputs fingerprint is unchanged afterwards,
    i.e. the replay did not mutate anything it was given.
    """
    before = inputs.fingerprint()
    first = replay(inputs)
    second = replay(inputs)
    after = inputs.fingerprint()

    same_map = first.quantities == second.quantities
    same_diagnostics = first.diagnostics == second.diagnostics
    untouched = before == after

    if not (same_map and same_diagnostics and untouched):
        logger.warning(
            f"Idempotence violated: map_equal={same_map}, "
            f"diagnostics_equal={same_diagnostics}, "
            f"inputs_unchanged={untouched}"
        )
        return False
    return True


# ══════════════════════════════════════════════════════════════
# NEGATIVE STOCK
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class NegativeStockEntry:
    location_id: str
    product_id: str
    quantity: int

    def to_dict(self) -> dict:
        return {
            "location_id": self.location_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
        }


def negative_stock_report(
    quantities: Mapping[Tuple[str, str], int],
) -> Tuple[NegativeStockEntry, ...]:
    """All pairs with quantity < 0, in map iteration order."""
    entries = tuple(
        NegativeStockEntry(location_id=loc, product_id=prod, quantity=qty)
        for (loc, prod), qty in quantities.items()
        if qty < 0
    )
    if entries:
        logger.warning(
            f"Negative stock detected at {len(entries)} location/product "
            f"pair(s)"
        )
    return entries
