"""
Random identifier generators: side-effect-free functions.

All generators use cryptographically secure sources (``secrets`` / ``uuid4``).
"""

from __future__ import annotations

import secrets
import string
import uuid

_ALIAS_ALPHABET = string.ascii_lowercase + string.digits


def generate_alias_local_part(length: int = 6) -> str:
    """Generate a random ``[a-z0-9]`` string for an alias mailbox."""
    return "".join(secrets.choice(_ALIAS_ALPHABET) for _ in range(length))


def generate_alias_email(domain: str) -> str:
    """Generate a throwaway alias identity such as ``k3x9a0@falub.ca``."""
    return f"{generate_alias_local_part()}@{domain}"


def generate_idempotency_key() -> str:
    """Generate a token unique to one issuance attempt."""
    return str(uuid.uuid4())


def generate_key_id() -> str:
    """Generate an opaque key id, used when the upstream does not supply one."""
    return uuid.uuid4().hex
