"""Rendering for inspection: previews of stored templates or unsaved drafts."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import BaseModel

from midnight_admin.core.cache.template_cache import TemplateCache, load_current_snapshot
from midnight_admin.core.emails.registry import EmailTemplateRegistry
from midnight_admin.core.prompts.registry import PromptRegistry
from midnight_admin.core.templates.render import preview_slots
from midnight_admin.core.templates.store import VersionedTemplateStore
from midnight_admin.schemas.emails import EmailPreview, PreviewEmailParams
from midnight_admin.schemas.prompts import PreviewPromptParams, PromptPreview


async def resolve_source(
    store: VersionedTemplateStore,
    template_id: uuid.UUID | None,
    draft: BaseModel | None = None,
    cache: TemplateCache | None = None,
) -> dict[str, Any]:
    """
    Snapshot to render: the stored current version, overlaid with the
    editor draft when one is supplied. A draft has no version number.
    """
    if template_id is not None:
        snapshot = dict(await load_current_snapshot(store, template_id, cache))
    else:
        snapshot = {"id": None, "name": "draft", "version": None, "variables": []}

    if draft is not None:
        snapshot.update(draft.model_dump(exclude_none=True))
        snapshot["version"] = None
    return snapshot


def seed_test_values(snapshot: dict[str, Any], variables: dict[str, Any]) -> dict[str, Any]:
    """Values a test send renders with: caller variables over the test-mode defaults."""
    return {"template_name": snapshot["name"], "test_mode": "true", **variables}


def body_of(store: VersionedTemplateStore, snapshot: dict[str, Any]) -> dict[str, str | None]:
    return {slot: snapshot.get(slot) for slot in store.body_slots}


async def preview_prompt(
    registry: PromptRegistry, params: PreviewPromptParams, cache: TemplateCache | None = None
) -> PromptPreview:
    snapshot = await resolve_source(registry, params.template_id, params.draft, cache)
    preview = preview_slots(body_of(registry, snapshot), params.variables)
    return PromptPreview(
        rendered=preview.rendered["template_text"] or "",
        variables=preview.variables,
        unresolved_variables=preview.unresolved,
        template_version=snapshot["version"],
    )


async def preview_email(
    registry: EmailTemplateRegistry, params: PreviewEmailParams, cache: TemplateCache | None = None
) -> EmailPreview:
    snapshot = await resolve_source(registry, params.template_id, params.draft, cache)
    values = seed_test_values(snapshot, params.variables) if params.as_test_send else params.variables
    preview = preview_slots(body_of(registry, snapshot), values)
    return EmailPreview(
        subject=preview.rendered["subject_template"] or "",
        html=preview.rendered["html_template"] or "",
        text=preview.rendered["text_template"],
        variables=preview.variables,
        unresolved_variables=preview.unresolved,
        template_version=snapshot["version"],
    )
