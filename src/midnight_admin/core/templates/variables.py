"""Placeholder extraction for ``{{identifier}}`` template variables."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import Any

import orjson

# {{ name }}: identifier must start with a letter or underscore
PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def extract_variables(text: str | None) -> list[str]:
    """
    Return the distinct placeholder names in ``text``.

    Names appear once, in order of first occurrence. Malformed tokens such
    as ``{{1abc}}`` or ``{{}}`` are ignored.
    """
    if not text:
        return []
    seen: dict[str, None] = {}
    for match in PLACEHOLDER_PATTERN.finditer(text):
        seen.setdefault(match.group(1), None)
    return list(seen)


def get_all_variables(*slots: str | None) -> list[str]:
    """Union of the variables of every slot, in slot order (subject, html, text)."""
    seen: dict[str, None] = {}
    for slot in slots:
        for name in extract_variables(slot):
            seen.setdefault(name, None)
    return list(seen)


def find_missing_variables(names: Iterable[str], values: Mapping[str, Any]) -> list[str]:
    """Names with no usable value (absent, None or empty string)."""
    return [name for name in names if values.get(name) in (None, "")]


def coerce_variables(raw: Any) -> list[str]:
    """
    Normalise a stored ``variables`` value into an ordered set of names.

    Storage has held lists, ``{name: options}`` dicts and JSON text over time;
    anything else becomes an empty list.
    """
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = orjson.loads(raw)
        except orjson.JSONDecodeError:
            return []
    if isinstance(raw, Mapping):
        raw = list(raw.keys())
    if not isinstance(raw, (list, tuple)):
        return []

    seen: dict[str, None] = {}
    for item in raw:
        if isinstance(item, str) and PLACEHOLDER_PATTERN.fullmatch("{{" + item + "}}"):
            seen.setdefault(item, None)
    return list(seen)
