"""Placeholder substitution shared by preview, test send and prompt runs."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from midnight_admin.core.templates.variables import (
    PLACEHOLDER_PATTERN,
    find_missing_variables,
    get_all_variables,
)


def render_template(text: str | None, values: Mapping[str, Any]) -> str:
    """
    Substitute known variables into ``text``.

    Placeholders without a non-empty value are left exactly as written, so
    rendering a partially rendered string again never loses them. Replaced
    values are not re-scanned for placeholders.
    """
    if not text:
        return text or ""

    def _substitute(match: re.Match[str]) -> str:
        value = values.get(match.group(1))
        if value is None or value == "":
            return match.group(0)
        return str(value)

    return PLACEHOLDER_PATTERN.sub(_substitute, text)


def render_slots(
    slots: Mapping[str, str | None], values: Mapping[str, Any]
) -> dict[str, str | None]:
    """Render every body slot; absent slots stay ``None``."""
    return {
        name: render_template(text, values) if text is not None else None
        for name, text in slots.items()
    }


@dataclass
class RenderedPreview:
    rendered: dict[str, str | None]
    variables: list[str]
    unresolved: list[str]


def preview_slots(slots: Mapping[str, str | None], values: Mapping[str, Any]) -> RenderedPreview:
    variables = get_all_variables(*slots.values())
    return RenderedPreview(
        rendered=render_slots(slots, values),
        variables=variables,
        unresolved=find_missing_variables(variables, values),
    )
