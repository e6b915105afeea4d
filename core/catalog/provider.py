"""
DOS Entity Catalog — Providers
================================
Read interfaces over host-owned reference data and event logs.

The engine needs ONE consistent view of products, locations, transfers
and orders per replay. snapshot() gives that view: it takes the read
lock, copies the current tuples into an immutable bundle, and releases
the lock on every exit path.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Iterable, Iterator, Optional, Protocol, Tuple

from core.catalog.models import Location, Product
from engines.reconciliation.events import OrderEvent, TransferEvent
from engines.reconciliation.policies import ReconciliationPolicy
from engines.reconciliation.validators import (
    ReconciliationInputs,
    coerce_locations,
    coerce_orders,
    coerce_products,
    coerce_transfers,
)

logger = logging.getLogger("dos.catalog")


# ══════════════════════════════════════════════════════════════
# PROTOCOLS
# ══════════════════════════════════════════════════════════════

class EntityCatalog(Protocol):
    """Side-effect-free reads over products and locations."""

    def list_products(self) -> Tuple[Product, ...]:
        ...  # pragma: no cover

    def list_locations(self) -> Tuple[Location, ...]:
        ...  # pragma: no cover


class EventSource(Protocol):
    """Side-effect-free reads over the transfer and order logs."""

    def list_transfers(self) -> Tuple[TransferEvent, ...]:
        ...  # pragma: no cover

    def list_orders(self) -> Tuple[OrderEvent, ...]:
        ...  # pragma: no cover


# ══════════════════════════════════════════════════════════════
# IN-MEMORY CATALOG (for hosts without a store, and tests)
# ══════════════════════════════════════════════════════════════

class InMemoryEntityCatalog:
    """
    Entity catalog + event source held in memory.

    Writers replace whole collections (replace_*) or append events
    (record_*); readers always see a complete, consistent set.
    """

    def __init__(
        self,
        products: Iterable[Any] = (),
        locations: Iterable[Any] = (),
        transfers: Iterable[Any] = (),
        orders: Iterable[Any] = (),
    ) -> None:
        self._lock = threading.RLock()
        self._products: Tuple[Product, ...] = coerce_products(products)
        self._locations: Tuple[Location, ...] = coerce_locations(locations)
        self._transfers: Tuple[TransferEvent, ...] = coerce_transfers(transfers)
        self._orders: Tuple[OrderEvent, ...] = coerce_orders(orders)

    # ── Reads ─────────────────────────────────────────────────

    def list_products(self) -> Tuple[Product, ...]:
        with self._lock:
            return self._products

    def list_locations(self) -> Tuple[Location, ...]:
        with self._lock:
            return self._locations

    def list_transfers(self) -> Tuple[TransferEvent, ...]:
        with self._lock:
            return self._transfers

    def list_orders(self) -> Tuple[OrderEvent, ...]:
        with self._lock:
            return self._orders

    @contextmanager
    def snapshot(
        self, policy: Optional[ReconciliationPolicy] = None,
    ) -> Iterator[ReconciliationInputs]:
        """Scoped read: one consistent input bundle, lock always released."""
        with self._lock:
            inputs = ReconciliationInputs(
                locations=self._locations,
                products=self._products,
                transfers=self._transfers,
                orders=self._orders,
                policy=policy or ReconciliationPolicy(),
            )
            yield inputs

    # ── Writes (host side) ────────────────────────────────────

    def replace_products(self, products: Iterable[Any]) -> None:
        coerced = coerce_products(products)
        with self._lock:
            self._products = coerced

    def replace_locations(self, locations: Iterable[Any]) -> None:
        coerced = coerce_locations(locations)
        with self._lock:
            self._locations = coerced

    def replace_transfers(self, transfers: Iterable[Any]) -> None:
        coerced = coerce_transfers(transfers)
        with self._lock:
            self._transfers = coerced

    def replace_orders(self, orders: Iterable[Any]) -> None:
        coerced = coerce_orders(orders)
        with self._lock:
            self._orders = coerced

    def record_transfer(self, transfer: Any) -> TransferEvent:
        """Append a transfer, or replace the one with the same id."""
        (event,) = coerce_transfers([transfer])
        with self._lock:
            kept = tuple(
                t for t in self._transfers if t.transfer_id != event.transfer_id
            )
            replaced = len(kept) != len(self._transfers)
            self._transfers = kept + (event,)
        logger.debug(
            f"Transfer {event.transfer_id} "
            f"{'updated' if replaced else 'recorded'} ({event.status.value})"
        )
        return event

    def record_order(self, order: Any) -> OrderEvent:
        """Append an order, or replace the one with the same id."""
        (event,) = coerce_orders([order])
        with self._lock:
            kept = tuple(o for o in self._orders if o.order_id != event.order_id)
            replaced = len(kept) != len(self._orders)
            self._orders = kept + (event,)
        logger.debug(
            f"Order {event.order_id} "
            f"{'updated' if replaced else 'recorded'} ({event.status.value})"
        )
        return event
