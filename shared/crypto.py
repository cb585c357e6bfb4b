"""
Cryptographic helpers: key hashing, alias password derivation and
constant-time comparison.

Raw API keys and client secrets are only ever persisted as SHA-256 digests.
"""

from __future__ import annotations

import hashlib
import hmac

# Bumping the version changes every derived alias password
_ALIAS_PASSWORD_VERSION = "v2"


def hash_token(token: str) -> str:
    """Return the hex-encoded SHA-256 digest of *token*.

    Used for API keys (the gateway looks records up by this digest) and for
    client secrets, so the plaintext is never persisted.

    Returns:
        64-character lowercase hex string.
    """
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def derive_alias_password(owner_id: str, alias_email: str) -> str:
    """Derive the upstream password for an alias identity.

    The password is a pure function of ``(owner_id, alias_email)`` so it can be
    recomputed at any time and never needs storing.

    Returns:
        ``"KS-"`` followed by the first 32 hex chars of
        ``sha256("kazadi:{owner_id}:{alias_email}:v2")``.
    """
    material = f"kazadi:{owner_id}:{alias_email}:{_ALIAS_PASSWORD_VERSION}"
    return f"KS-{hash_token(material)[:32]}"


def digests_match(expected: str, actual: str) -> bool:
    """Compare two hex digests in constant time."""
    return hmac.compare_digest(expected.encode("ascii"), actual.encode("ascii"))
