"""
DOS Core Config — Reconciliation Settings
===========================================
Doctrine: No hidden constants in engine logic.

Replay policy comes from the host's Django settings:

    DOS_RECONCILIATION = {
        "baseline": {"warehouse": 500, "vehicle": 0},
        "fallback_location_id": "1",   # default consolidation location
        "low_stock_threshold": 10,
        "strict_references": False,
    }

Missing keys keep the reference values.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from engines.reconciliation.policies import ReconciliationPolicy

logger = logging.getLogger("dos.config")

SETTINGS_KEY = "DOS_RECONCILIATION"


def load_reconciliation_policy(settings: Optional[Any] = None) -> ReconciliationPolicy:
    """
    Build the policy from Django settings (or any object with the
    DOS_RECONCILIATION attribute).

    Raises ValueError on malformed configuration.
    """
    if settings is None:
        from django.conf import settings as django_settings
        settings = django_settings

    raw = getattr(settings, SETTINGS_KEY, None)
    if raw is None:
        logger.info(f"{SETTINGS_KEY} not set, using reference policy")
        return ReconciliationPolicy()
    if not isinstance(raw, Mapping):
        raise ValueError(f"{SETTINGS_KEY} must be a dict, got {type(raw).__name__}.")

    policy = ReconciliationPolicy.from_mapping(raw)
    logger.info(f"Reconciliation policy loaded: {policy.describe()}")
    return policy
