"""
Deterministic hashing used to fingerprint bus registrations.

The validator caches the fingerprint of the action and subscription
registries; when nothing changed between two process starts the structural
checks are skipped.

Examples:
    >>> compute_hash("orders.create", "orders.pay")
    '...'  # 32-char hex string
    >>> compute_hash("a", "b") != compute_hash("b", "a")
    True
"""

import hashlib
from typing import Any


def compute_hash(*values: Any, length: int = 32) -> str:
    """
    Compute deterministic hash from values.

    Values are converted to strings and joined with ``|`` before hashing
    with SHA-256, so the hash is order-dependent and type-agnostic.

    Args:
        *values: Values to hash (converted to strings)
        length: Hex digest length (default 32 = 128 bits, max 64)

    Returns:
        Hex string of specified length
    """
    content = "|".join(str(v) for v in values)
    return hashlib.sha256(content.encode()).hexdigest()[:length]
