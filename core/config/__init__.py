"""
DOS Core Config — Public API
===============================
Admin-configurable replay policy.
"""

from core.config.reconciliation import SETTINGS_KEY, load_reconciliation_policy

__all__ = [
    "SETTINGS_KEY",
    "load_reconciliation_policy",
]
