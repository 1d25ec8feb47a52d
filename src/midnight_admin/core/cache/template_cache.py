"""
Read-through cache of current template snapshots, backed by Redis.

Key: <prefix>template:<kind>:<template_id>
Value: JSON snapshot of the template's current version

Entries are dropped whenever a template gains a version (see
``TemplateChangedEvent``); the TTL only bounds staleness if an
invalidation is lost.
"""

from __future__ import annotations

import uuid
from typing import Any

import orjson
import redis.asyncio as aioredis
import structlog

from midnight_admin.common.events import TemplateChangedEvent
from midnight_admin.config import get_settings
from midnight_admin.core.templates.store import TemplateRecord, VersionedTemplateStore

logger = structlog.stdlib.get_logger()


class TemplateCache:
    def __init__(self, redis_client: aioredis.Redis | None = None, ttl_seconds: int | None = None) -> None:
        settings = get_settings()
        if redis_client:
            self._redis = redis_client
        else:
            self._redis = aioredis.from_url(settings.redis.url, decode_responses=True)
        self._prefix = f"{settings.redis.key_prefix}template:"
        self._ttl = ttl_seconds or settings.cache.template_ttl_seconds

    def key(self, kind: str, template_id: uuid.UUID | str) -> str:
        return f"{self._prefix}{kind}:{template_id}"

    async def get(self, kind: str, template_id: uuid.UUID | str) -> dict[str, Any] | None:
        try:
            data = await self._redis.get(self.key(kind, template_id))
        except aioredis.ConnectionError:
            await logger.awarning("cache.template.redis_unavailable")
            return None
        if data is None:
            return None
        await logger.adebug("cache.template.hit", kind=kind, template_id=str(template_id))
        return orjson.loads(data)

    async def set(self, kind: str, template_id: uuid.UUID | str, snapshot: dict[str, Any]) -> None:
        try:
            await self._redis.setex(self.key(kind, template_id), self._ttl, orjson.dumps(snapshot))
        except aioredis.ConnectionError:
            await logger.awarning("cache.template.redis_unavailable")

    async def invalidate(self, kind: str, template_id: uuid.UUID | str) -> None:
        try:
            await self._redis.delete(self.key(kind, template_id))
        except aioredis.ConnectionError:
            await logger.awarning("cache.template.redis_unavailable")

    async def on_template_changed(self, event: TemplateChangedEvent) -> None:
        await self.invalidate(event.kind, event.template_id)
        await logger.adebug(
            "cache.template.invalidated", kind=event.kind, template_id=str(event.template_id)
        )

    async def close(self) -> None:
        await self._redis.aclose()


def snapshot_record(store: VersionedTemplateStore, record: TemplateRecord) -> dict[str, Any]:
    """JSON-safe view of a template's current version."""
    return {
        "id": str(record.id),
        "name": record.name,
        "version": record.version,
        "variables": list(record.current.variables or []),
        **store.snapshot(record.current),
    }


async def load_current_snapshot(
    store: VersionedTemplateStore,
    template_id: uuid.UUID,
    cache: TemplateCache | None = None,
) -> dict[str, Any]:
    """Current snapshot of a template, via the cache when one is configured."""
    if cache is not None:
        cached = await cache.get(store.kind, template_id)
        if cached is not None:
            return cached

    snapshot = snapshot_record(store, await store.get(template_id))
    if cache is not None:
        await cache.set(store.kind, template_id, snapshot)
    return snapshot


_template_cache: TemplateCache | None = None


def get_template_cache() -> TemplateCache | None:
    """Process-wide cache, or None when caching is disabled."""
    global _template_cache  # noqa: PLW0603
    if not get_settings().cache.enabled:
        return None
    if _template_cache is None:
        _template_cache = TemplateCache()
    return _template_cache


async def close_template_cache() -> None:
    global _template_cache  # noqa: PLW0603
    if _template_cache is not None:
        await _template_cache.close()
        _template_cache = None
