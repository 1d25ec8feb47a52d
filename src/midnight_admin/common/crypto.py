"""Admin API key generation and verification."""

from __future__ import annotations

import hashlib
import hmac
import secrets

KEY_PREFIX = "mnp_admin_"


def generate_admin_key() -> tuple[str, str, str]:
    """
    Generate a new admin API key.

    Returns:
        (raw_key, key_hash, key_prefix)
        - raw_key: Full key shown to the operator ONCE
        - key_hash: SHA-256 hash placed in ``auth.admin_key_hashes``
        - key_prefix: First 14 chars for display
    """
    raw = f"{KEY_PREFIX}{secrets.token_urlsafe(32)}"
    return raw, hash_admin_key(raw), raw[:14]


def hash_admin_key(raw_key: str) -> str:
    """Hash an admin key with SHA-256 for storage in config."""
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def matches_any_hash(raw_key: str, key_hashes: list[str]) -> bool:
    candidate = hash_admin_key(raw_key)
    return any(hmac.compare_digest(candidate, h) for h in key_hashes)
