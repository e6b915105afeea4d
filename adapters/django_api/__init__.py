"""
DOS Django HTTP adapter.
Thin framework glue over the stock read model.
"""

from adapters.django_api.wiring import (
    DEV_CENTRAL_WAREHOUSE_ID,
    DEV_VEHICLE_ID,
    StockApiDependencies,
    build_dependencies,
    set_dependencies,
)

__all__ = [
    "DEV_CENTRAL_WAREHOUSE_ID",
    "DEV_VEHICLE_ID",
    "StockApiDependencies",
    "build_dependencies",
    "set_dependencies",
]
