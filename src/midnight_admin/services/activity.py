"""Admin activity trail."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from midnight_admin.models.activity_log import AdminActivityLog

logger = structlog.stdlib.get_logger()

# Keys that never reach the activity table
_REDACTED_PARAMS = frozenset({"importData", "import_data", "data", "draft"})


async def record_activity(
    db: AsyncSession,
    *,
    actor_id: str,
    action: str,
    target_type: str,
    target_id: str | None = None,
    details: dict[str, Any] | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> AdminActivityLog:
    entry = AdminActivityLog(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        details=_scrub(details),
        ip_address=ip_address,
        user_agent=user_agent[:512] if user_agent else None,
    )
    db.add(entry)
    await db.flush()
    await logger.ainfo(
        "admin.activity", actor=actor_id, action=action, target_type=target_type, target_id=target_id
    )
    return entry


def _scrub(details: dict[str, Any] | None) -> dict[str, Any] | None:
    if details is None:
        return None
    return {k: v for k, v in details.items() if k not in _REDACTED_PARAMS}
