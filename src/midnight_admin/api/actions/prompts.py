"""Prompt template actions."""

from __future__ import annotations

from typing import Any

from midnight_admin.api.actions.registry import ActionContext, action
from midnight_admin.common.errors import ValidationError
from midnight_admin.core.prompts.registry import PromptRegistry
from midnight_admin.core.templates.store import TemplateRecord
from midnight_admin.core.templates.transfer import TemplateTransfer
from midnight_admin.providers.http import get_http_client
from midnight_admin.providers.openrouter import OpenRouterClient
from midnight_admin.schemas.common import (
    ExportParams,
    ImportParams,
    ImportResult,
    NoParams,
    RestoreVersionParams,
    TemplateIdParams,
)
from midnight_admin.schemas.prompts import (
    CreatePromptParams,
    PreviewPromptParams,
    PromptPreview,
    PromptRunResult,
    PromptTemplateDetail,
    PromptTemplateInfo,
    PromptVersionInfo,
    RunPromptParams,
    UpdatePromptParams,
)
from midnight_admin.services.llm_service import LLMService
from midnight_admin.services.preview import preview_prompt
from midnight_admin.services.prompt_runner import PromptRunner

TARGET = "prompt_template"


def _registry(ctx: ActionContext) -> PromptRegistry:
    return PromptRegistry(ctx.db, actor_id=ctx.actor_id)


def _to_info(registry: PromptRegistry, record: TemplateRecord) -> PromptTemplateInfo:
    t, v = record.template, record.current
    return PromptTemplateInfo(
        id=t.id,
        name=t.name,
        description=t.description,
        variables=v.variables,
        version=v.version,
        change_notes=v.change_notes,
        is_active=t.is_active,
        created_at=t.created_at,
        updated_at=t.updated_at,
        **registry.snapshot(v),
    )


def _content(registry: PromptRegistry, params: CreatePromptParams | UpdatePromptParams) -> dict[str, Any]:
    return params.model_dump(include=set(registry.content_fields))


@action("getPromptTemplates", target_type=TARGET)
async def get_prompt_templates(params: NoParams, ctx: ActionContext) -> list[PromptTemplateInfo]:
    registry = _registry(ctx)
    return [_to_info(registry, r) for r in await registry.list_current()]


@action("getPromptTemplate", TemplateIdParams, target_type=TARGET)
async def get_prompt_template(params: TemplateIdParams, ctx: ActionContext) -> PromptTemplateDetail:
    registry = _registry(ctx)
    record = await registry.get(params.template_id)
    versions = await registry.list_versions(params.template_id)
    return PromptTemplateDetail(
        **_to_info(registry, record).model_dump(),
        versions=[PromptVersionInfo.model_validate(v, from_attributes=True) for v in versions],
    )


@action("createPromptTemplate", CreatePromptParams, target_type=TARGET)
async def create_prompt_template(params: CreatePromptParams, ctx: ActionContext) -> PromptTemplateInfo:
    registry = _registry(ctx)
    record = await registry.create(
        params.name,
        _content(registry, params),
        change_notes=params.change_notes,
        description=params.description,
    )
    return _to_info(registry, record)


@action("updatePromptTemplate", UpdatePromptParams, target_type=TARGET)
async def update_prompt_template(params: UpdatePromptParams, ctx: ActionContext) -> PromptTemplateInfo:
    registry = _registry(ctx)
    record = await registry.update(
        params.template_id,
        _content(registry, params),
        change_notes=params.change_notes,
        description=params.description,
    )
    return _to_info(registry, record)


@action("getPromptVersions", TemplateIdParams, target_type=TARGET)
async def get_prompt_versions(params: TemplateIdParams, ctx: ActionContext) -> list[PromptVersionInfo]:
    versions = await _registry(ctx).list_versions(params.template_id)
    return [PromptVersionInfo.model_validate(v, from_attributes=True) for v in versions]


@action("restorePromptVersion", RestoreVersionParams, target_type=TARGET)
async def restore_prompt_version(params: RestoreVersionParams, ctx: ActionContext) -> PromptTemplateInfo:
    registry = _registry(ctx)
    record = await registry.restore(
        params.template_id, params.version_id, change_notes=params.change_notes
    )
    return _to_info(registry, record)


@action("exportPromptTemplates", ExportParams, target_type=TARGET)
async def export_prompt_templates(params: ExportParams, ctx: ActionContext) -> dict[str, Any]:
    transfer = TemplateTransfer(_registry(ctx), rename_marker=ctx.settings.templates.import_rename_marker)
    return await transfer.export_templates(params.template_ids, include_history=params.include_history)


@action("importPromptTemplates", ImportParams, target_type=TARGET)
async def import_prompt_templates(params: ImportParams, ctx: ActionContext) -> ImportResult:
    if params.import_data is None:
        raise ValidationError("importData is required")
    transfer = TemplateTransfer(_registry(ctx), rename_marker=ctx.settings.templates.import_rename_marker)
    summary = await transfer.import_templates(params.import_data, params.conflict_strategy)
    return ImportResult(**summary.to_dict())


@action("runPrompt", RunPromptParams, target_type=TARGET)
async def run_prompt(params: RunPromptParams, ctx: ActionContext) -> PromptRunResult:
    llm = LLMService(OpenRouterClient(get_http_client(), ctx.settings.llm), ctx.session_factory)
    runner = PromptRunner(_registry(ctx), llm, ctx.settings.llm, cache=ctx.cache)
    return await runner.run(params, actor_id=ctx.actor_id, request_id=ctx.request_id)


@action("previewPromptTemplate", PreviewPromptParams, target_type=TARGET)
async def preview_prompt_template(params: PreviewPromptParams, ctx: ActionContext) -> PromptPreview:
    return await preview_prompt(_registry(ctx), params, cache=ctx.cache)
