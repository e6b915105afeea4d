"""
DOS Reconciliation Engine — Application Service
=================================================
Orchestrates: catalog snapshot → replay → stock read model.

Recompute, don't maintain: every call replays from the current event
collections. The optional cache only short-circuits replays whose
inputs are byte-for-byte identical to a previous one.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from core.caching import ReconciliationCache
from engines.reconciliation.engine import ReconciliationResult, replay
from engines.reconciliation.policies import ReconciliationPolicy
from engines.reconciliation.validators import (
    ReconciliationInputs,
    coerce_locations,
    coerce_orders,
    coerce_products,
    coerce_transfers,
)
from projections.stock import StockSnapshot

logger = logging.getLogger("dos.reconciliation")


class StockReconciliationService:
    """
    Args:
        catalog: EntityCatalog (list_products / list_locations).
        events:  EventSource (list_transfers / list_orders). Defaults to
                 the catalog itself when it also implements EventSource.
        policy:  ReconciliationPolicy; reference policy when None.
        cache:   Optional ReconciliationCache.
    """

    def __init__(
        self,
        catalog: Any,
        events: Any = None,
        policy: Optional[ReconciliationPolicy] = None,
        cache: Optional[ReconciliationCache] = None,
    ) -> None:
        self._catalog = catalog
        self._events = events if events is not None else catalog
        self._policy = policy or ReconciliationPolicy()
        self._cache = cache

    @property
    def policy(self) -> ReconciliationPolicy:
        return self._policy

    @property
    def cache(self) -> Optional[ReconciliationCache]:
        return self._cache

    def inputs(self) -> ReconciliationInputs:
        """
        Acquire one consistent input bundle.

        Uses the catalog's scoped snapshot() when it has one and also
        serves the events; otherwise reads each collection once.
        """
        if self._events is self._catalog and hasattr(self._catalog, "snapshot"):
            with self._catalog.snapshot(self._policy) as inputs:
                return inputs
        return ReconciliationInputs(
            locations=coerce_locations(self._catalog.list_locations()),
            products=coerce_products(self._catalog.list_products()),
            transfers=coerce_transfers(self._events.list_transfers()),
            orders=coerce_orders(self._events.list_orders()),
            policy=self._policy,
        )

    def reconcile(self) -> ReconciliationResult:
        inputs = self.inputs()
        if self._cache is None:
            return replay(inputs)
        if not inputs.policy.baseline.fingerprintable:
            # a callable baseline cannot be hashed by content
            logger.debug("Callable baseline, bypassing reconciliation cache")
            return replay(inputs)
        key = inputs.fingerprint()
        return self._cache.get_or_compute(key, lambda: replay(inputs))

    def snapshot(self) -> StockSnapshot:
        """Stock read model over a single fresh (or cached-identical) replay."""
        return StockSnapshot(self.reconcile())
