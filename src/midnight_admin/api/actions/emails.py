"""Email template actions."""

from __future__ import annotations

from typing import Any

from midnight_admin.api.actions.registry import ActionContext, action
from midnight_admin.common.errors import ValidationError
from midnight_admin.core.emails.registry import EmailTemplateRegistry
from midnight_admin.core.templates.store import TemplateRecord
from midnight_admin.core.templates.transfer import TemplateTransfer
from midnight_admin.providers.http import get_http_client
from midnight_admin.providers.resend import ResendClient
from midnight_admin.schemas.common import (
    ExportParams,
    ImportParams,
    ImportResult,
    NoParams,
    RestoreVersionParams,
    TemplateIdParams,
)
from midnight_admin.schemas.emails import (
    CreateEmailParams,
    EmailPreview,
    EmailTemplateDetail,
    EmailTemplateInfo,
    EmailVersionInfo,
    PreviewEmailParams,
    SendTestEmailParams,
    TestEmailResult,
    UpdateEmailParams,
)
from midnight_admin.services.preview import preview_email
from midnight_admin.services.test_send import TestEmailSender

TARGET = "email_template"


def _registry(ctx: ActionContext) -> EmailTemplateRegistry:
    return EmailTemplateRegistry(ctx.db, actor_id=ctx.actor_id)


def _to_info(registry: EmailTemplateRegistry, record: TemplateRecord) -> EmailTemplateInfo:
    t, v = record.template, record.current
    return EmailTemplateInfo(
        id=t.id,
        name=t.name,
        description=t.description,
        category=t.category,
        variables=v.variables,
        version=v.version,
        change_notes=v.change_notes,
        is_active=t.is_active,
        created_at=t.created_at,
        updated_at=t.updated_at,
        **registry.snapshot(v),
    )


def _content(registry: EmailTemplateRegistry, params: CreateEmailParams | UpdateEmailParams) -> dict[str, Any]:
    return params.model_dump(include=set(registry.content_fields))


@action("getEmailTemplates", target_type=TARGET)
async def get_email_templates(params: NoParams, ctx: ActionContext) -> list[EmailTemplateInfo]:
    registry = _registry(ctx)
    return [_to_info(registry, r) for r in await registry.list_current()]


@action("getEmailTemplate", TemplateIdParams, target_type=TARGET)
async def get_email_template(params: TemplateIdParams, ctx: ActionContext) -> EmailTemplateDetail:
    registry = _registry(ctx)
    record = await registry.get(params.template_id)
    versions = await registry.list_versions(params.template_id)
    return EmailTemplateDetail(
        **_to_info(registry, record).model_dump(),
        versions=[EmailVersionInfo.model_validate(v, from_attributes=True) for v in versions],
    )


@action("createEmailTemplate", CreateEmailParams, target_type=TARGET)
async def create_email_template(params: CreateEmailParams, ctx: ActionContext) -> EmailTemplateInfo:
    registry = _registry(ctx)
    record = await registry.create(
        params.name,
        _content(registry, params),
        change_notes=params.change_notes,
        description=params.description,
        category=params.category,
    )
    return _to_info(registry, record)


@action("updateEmailTemplate", UpdateEmailParams, target_type=TARGET)
async def update_email_template(params: UpdateEmailParams, ctx: ActionContext) -> EmailTemplateInfo:
    registry = _registry(ctx)
    record = await registry.update(
        params.template_id,
        _content(registry, params),
        change_notes=params.change_notes,
        description=params.description,
        category=params.category,
    )
    return _to_info(registry, record)


@action("getEmailVersions", TemplateIdParams, target_type=TARGET)
async def get_email_versions(params: TemplateIdParams, ctx: ActionContext) -> list[EmailVersionInfo]:
    versions = await _registry(ctx).list_versions(params.template_id)
    return [EmailVersionInfo.model_validate(v, from_attributes=True) for v in versions]


@action("restoreEmailVersion", RestoreVersionParams, target_type=TARGET)
async def restore_email_version(params: RestoreVersionParams, ctx: ActionContext) -> EmailTemplateInfo:
    registry = _registry(ctx)
    record = await registry.restore(
        params.template_id, params.version_id, change_notes=params.change_notes
    )
    return _to_info(registry, record)


@action("exportEmailTemplates", ExportParams, target_type=TARGET)
async def export_email_templates(params: ExportParams, ctx: ActionContext) -> dict[str, Any]:
    transfer = TemplateTransfer(_registry(ctx), rename_marker=ctx.settings.templates.import_rename_marker)
    return await transfer.export_templates(params.template_ids, include_history=params.include_history)


@action("importEmailTemplates", ImportParams, target_type=TARGET)
async def import_email_templates(params: ImportParams, ctx: ActionContext) -> ImportResult:
    if params.import_data is None:
        raise ValidationError("importData is required")
    transfer = TemplateTransfer(_registry(ctx), rename_marker=ctx.settings.templates.import_rename_marker)
    summary = await transfer.import_templates(params.import_data, params.conflict_strategy)
    return ImportResult(**summary.to_dict())


@action("sendTestEmail", SendTestEmailParams, target_type=TARGET)
async def send_test_email(params: SendTestEmailParams, ctx: ActionContext) -> TestEmailResult:
    sender = TestEmailSender(
        _registry(ctx), ResendClient(get_http_client(), ctx.settings.email), cache=ctx.cache
    )
    return await sender.send(params)


@action("previewEmailTemplate", PreviewEmailParams, target_type=TARGET)
async def preview_email_template(params: PreviewEmailParams, ctx: ActionContext) -> EmailPreview:
    return await preview_email(_registry(ctx), params, cache=ctx.cache)


@action("getEmailCategories", target_type=TARGET)
async def get_email_categories(params: NoParams, ctx: ActionContext) -> list[str]:
    return await _registry(ctx).list_categories()
