"""
DOS Core Caching — Input Fingerprints
=======================================
SHA-256 over canonical JSON.

Rules:
- Canonical JSON: sorted keys, fixed separators
- No salt, no randomness
- Same input ALWAYS produces same output
"""

import hashlib
import json
from typing import Any


def canonical_serialize(payload: Any) -> str:
    """
    Deterministic JSON string for payload.

    Non-JSON types (Decimal, UUID, datetime) fall back to str().
    """
    return json.dumps(
        payload,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


def compute_fingerprint(payload: Any) -> str:
    """64-character lowercase hex SHA-256 digest of payload."""
    canonical = canonical_serialize(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()
