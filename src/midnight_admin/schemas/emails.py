"""Email template action schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, model_validator

from midnight_admin.schemas.common import ActionParams, StoredVariables


class CreateEmailParams(ActionParams):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1024)
    category: str = "general"
    subject_template: str
    html_template: str
    text_template: str | None = None
    default_from_address: str | None = None
    email_type: str = "transactional"
    template_category: str = "general"
    change_notes: str | None = None


class UpdateEmailParams(ActionParams):
    template_id: uuid.UUID
    description: str | None = Field(None, max_length=1024)
    category: str | None = None
    subject_template: str | None = None
    html_template: str | None = None
    text_template: str | None = None
    default_from_address: str | None = None
    email_type: str | None = None
    template_category: str | None = None
    change_notes: str | None = None


class EmailDraft(ActionParams):
    subject_template: str
    html_template: str
    text_template: str | None = None
    default_from_address: str | None = None


class PreviewEmailParams(ActionParams):
    template_id: uuid.UUID | None = None
    variables: dict[str, Any] = Field(default_factory=dict)
    draft: EmailDraft | None = None
    # Render with the values sendTestEmail seeds (template_name, test_mode)
    as_test_send: bool = False

    @model_validator(mode="after")
    def _needs_source(self) -> PreviewEmailParams:
        if self.template_id is None and self.draft is None:
            raise ValueError("templateId or draft is required")
        return self


class SendTestEmailParams(ActionParams):
    template_id: uuid.UUID
    test_email: str | None = None
    recipients: list[str] = Field(default_factory=list)
    variables: dict[str, Any] = Field(default_factory=dict)
    draft: EmailDraft | None = None

    @model_validator(mode="after")
    def _needs_recipient(self) -> SendTestEmailParams:
        if not self.test_email and not self.recipients:
            raise ValueError("testEmail or recipients is required")
        return self

    @property
    def destinations(self) -> list[str]:
        seen: dict[str, None] = {}
        for address in [self.test_email, *self.recipients]:
            if address and address.strip():
                seen.setdefault(address.strip(), None)
        return list(seen)


class EmailTemplateInfo(StoredVariables):
    id: uuid.UUID
    name: str
    description: str | None
    category: str
    subject_template: str
    html_template: str
    text_template: str | None
    version: int
    default_from_address: str | None
    email_type: str
    template_category: str
    change_notes: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class EmailVersionInfo(StoredVariables):
    id: uuid.UUID
    template_id: uuid.UUID
    version: int
    subject_template: str
    html_template: str
    text_template: str | None
    default_from_address: str | None
    email_type: str
    template_category: str
    change_notes: str
    created_by: str | None
    is_current: bool
    created_at: datetime


class EmailTemplateDetail(EmailTemplateInfo):
    versions: list[EmailVersionInfo]


class EmailPreview(BaseModel):
    subject: str
    html: str
    text: str | None
    variables: list[str]
    unresolved_variables: list[str]
    template_version: int | None


class RecipientResult(BaseModel):
    email: str
    success: bool
    message_id: str | None = None
    error: str | None = None


class TestEmailResult(BaseModel):
    success: bool
    results: list[RecipientResult]
    unresolved_variables: list[str]
    template_version: int | None
    timestamp: str
