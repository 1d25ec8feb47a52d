"""
FastAPI dependency injection.

Central place for all shared dependencies used across routes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

import structlog
from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from midnight_admin.common.crypto import hash_admin_key, matches_any_hash
from midnight_admin.common.errors import AuthenticationError
from midnight_admin.config import Settings, get_settings
from midnight_admin.db.session import get_db_session

logger = structlog.stdlib.get_logger()

# Type aliases for cleaner signatures
DBSession = Annotated[AsyncSession, Depends(get_db_session)]
AppSettings = Annotated[Settings, Depends(get_settings)]


@dataclass(frozen=True)
class AdminIdentity:
    admin_id: str
    role: str  # "admin" | "viewer"

    @property
    def can_write(self) -> bool:
        return self.role == "admin"


MASTER_ADMIN = AdminIdentity(admin_id="master_admin", role="admin")


async def get_admin(
    authorization: Annotated[str | None, Header()] = None,
    settings: Settings = Depends(get_settings),
) -> AdminIdentity:
    """
    Authenticate an admin request.

    Accepts:
        - Authorization: Bearer mnp_admin_xxx
    """
    if not authorization:
        raise AuthenticationError("Missing Authorization header")

    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Invalid Authorization header format. Expected: Bearer <key>")

    raw_key = parts[1].strip()

    if settings.auth.master_api_key and raw_key == settings.auth.master_api_key:
        return MASTER_ADMIN

    # Config holds hashes only; the id is derived from the hash so it is stable across restarts
    if matches_any_hash(raw_key, settings.auth.admin_key_hashes):
        return AdminIdentity(admin_id=f"admin:{hash_admin_key(raw_key)[:12]}", role="admin")
    if matches_any_hash(raw_key, settings.auth.viewer_key_hashes):
        return AdminIdentity(admin_id=f"viewer:{hash_admin_key(raw_key)[:12]}", role="viewer")

    await logger.awarning("auth.rejected", key_prefix=raw_key[:14])
    raise AuthenticationError("Invalid API key")


AdminUser = Annotated[AdminIdentity, Depends(get_admin)]
