"""
DOS Entity Catalog — Public API
=================================
Read-only products and locations consumed by reconciliation.
Providers (protocols, in-memory catalog) live in core.catalog.provider.
"""

from core.catalog.models import (
    Location,
    LocationKind,
    Product,
    vehicle_display_name,
)

__all__ = [
    "Location",
    "LocationKind",
    "Product",
    "vehicle_display_name",
]
