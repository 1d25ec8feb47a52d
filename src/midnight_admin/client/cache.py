"""In-memory tagged cache used by the admin client."""

from __future__ import annotations

import time
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass
from typing import Any


@dataclass
class _Entry:
    value: Any
    tags: frozenset[str]
    expires_at: float


class TaggedCache:
    """
    Read-through cache whose entries carry tags.

    Invalidating a tag drops every entry carrying it, so a mutation can
    clear the template list and the one template it touched without
    knowing which keys were filled.
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: dict[Hashable, _Entry] = {}

    def get(self, key: Hashable) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: Hashable, value: Any, tags: Iterable[str] = ()) -> None:
        self._entries[key] = _Entry(value, frozenset(tags), self._clock() + self.ttl_seconds)

    def invalidate_tags(self, *tags: str) -> int:
        doomed = [key for key, entry in self._entries.items() if entry.tags.intersection(tags)]
        for key in doomed:
            del self._entries[key]
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def kind_tag(kind: str) -> str:
    return kind


def list_tag(kind: str) -> str:
    return f"{kind}:list"


def template_tag(kind: str, template_id: str) -> str:
    return f"{kind}:{template_id}"
