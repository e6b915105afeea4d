"""
DOS Django Adapter Wiring
=========================
Constructs the stock service for local/staging runs.

This module is adapter-only glue:
- no engine or projection logic
- in-memory catalog seeded with dev fixtures
- policy read from Django settings
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from core.caching import ReconciliationCache
from core.catalog.models import vehicle_display_name
from core.catalog.provider import InMemoryEntityCatalog
from core.config import load_reconciliation_policy
from engines.reconciliation.service import StockReconciliationService


DEV_CENTRAL_WAREHOUSE_ID = "1"
DEV_VEHICLE_ID = "v1"

_DEPENDENCIES_LOCK = threading.Lock()
_DEPENDENCIES: Optional["StockApiDependencies"] = None


@dataclass(frozen=True)
class StockApiDependencies:
    catalog: InMemoryEntityCatalog
    service: StockReconciliationService


def _dev_catalog() -> InMemoryEntityCatalog:
    return InMemoryEntityCatalog(
        products=[
            {"product_id": "p1", "code": "SKU-001", "name": "Mineral Water 0.5L",
             "price": "0.60"},
            {"product_id": "p2", "code": "SKU-002", "name": "Orange Juice 1L",
             "price": "2.40"},
        ],
        locations=[
            {"location_id": DEV_CENTRAL_WAREHOUSE_ID, "kind": "warehouse",
             "name": "Central Warehouse"},
            {"location_id": DEV_VEHICLE_ID, "kind": "vehicle",
             "name": vehicle_display_name("10-AB-123", "Ford Transit")},
        ],
        transfers=[
            {"transfer_id": "t1", "source_location_id": DEV_CENTRAL_WAREHOUSE_ID,
             "source_kind": "warehouse", "target_location_id": DEV_VEHICLE_ID,
             "target_kind": "vehicle", "date": "2026-10-01",
             "status": "completed",
             "items": [{"product_id": "p1", "quantity": 40}]},
        ],
        orders=[
            {"order_id": "o1", "status": "delivered",
             "assigned_vehicle_location_id": DEV_VEHICLE_ID,
             "items": [{"product_id": "p1", "quantity": 35, "price": "0.60"}]},
        ],
    )


def build_dependencies() -> StockApiDependencies:
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        if _DEPENDENCIES is None:
            catalog = _dev_catalog()
            _DEPENDENCIES = StockApiDependencies(
                catalog=catalog,
                service=StockReconciliationService(
                    catalog,
                    policy=load_reconciliation_policy(),
                    cache=ReconciliationCache(),
                ),
            )
        return _DEPENDENCIES


def set_dependencies(dependencies: Optional[StockApiDependencies]) -> None:
    """Swap the wired dependencies (tests, host bootstrap). None resets."""
    global _DEPENDENCIES
    with _DEPENDENCIES_LOCK:
        _DEPENDENCIES = dependencies
