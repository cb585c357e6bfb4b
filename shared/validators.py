"""
Input validators: pure functions, no I/O.
"""

from __future__ import annotations

from typing import Optional


def validate_client_secret(secret: Optional[str], min_length: int = 6) -> bool:
    """Return True if *secret* has at least *min_length* non-blank characters."""
    if not secret:
        return False
    return len(secret.strip()) >= min_length


def validate_api_key_format(raw_key: object, prefix: str = "kazadi-sk-") -> bool:
    """Return True if *raw_key* is a non-empty string carrying *prefix*.

    A bare prefix with nothing after it is rejected as well.
    """
    if not isinstance(raw_key, str) or not raw_key:
        return False
    return raw_key.startswith(prefix) and len(raw_key) > len(prefix)
