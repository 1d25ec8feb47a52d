"""Prompt template action schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from midnight_admin.schemas.common import ActionParams, StoredVariables
from midnight_admin.schemas.llm import ChatMessage


class CreatePromptParams(ActionParams):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=1024)
    template_text: str
    is_json_response: bool = False
    json_schema: str | dict[str, Any] | None = None
    llm_model: str | None = None
    default_temperature: float | None = Field(None, ge=0.0, le=2.0)
    change_notes: str | None = None


class UpdatePromptParams(ActionParams):
    template_id: uuid.UUID
    template_text: str | None = None
    description: str | None = Field(None, max_length=1024)
    change_notes: str | None = None
    is_json_response: bool | None = None
    json_schema: str | dict[str, Any] | None = None
    llm_model: str | None = None
    default_temperature: float | None = Field(None, ge=0.0, le=2.0)


class PromptDraft(ActionParams):
    """Unsaved editor state used instead of the stored current version."""

    template_text: str
    is_json_response: bool | None = None
    json_schema: str | None = None
    llm_model: str | None = None
    default_temperature: float | None = Field(None, ge=0.0, le=2.0)


class PreviewPromptParams(ActionParams):
    template_id: uuid.UUID | None = None
    variables: dict[str, Any] = Field(default_factory=dict)
    draft: PromptDraft | None = None

    @model_validator(mode="after")
    def _needs_source(self) -> PreviewPromptParams:
        if self.template_id is None and self.draft is None:
            raise ValueError("templateId or draft is required")
        return self


class RunPromptParams(ActionParams):
    template_id: uuid.UUID | None = None
    template_name: str | None = None
    variables: dict[str, Any] = Field(default_factory=dict)
    model: str | None = None
    temperature: float | None = Field(None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(None, ge=1)
    response_format: dict[str, Any] | None = None
    additional_messages: list[ChatMessage] = Field(default_factory=list)
    draft: PromptDraft | None = None

    @model_validator(mode="after")
    def _needs_template(self) -> RunPromptParams:
        if self.template_id is None and not self.template_name and self.draft is None:
            raise ValueError("Either templateName or templateId is required")
        return self


class PromptTemplateInfo(StoredVariables):
    id: uuid.UUID
    name: str
    description: str | None
    template_text: str
    version: int
    is_json_response: bool
    json_schema: str | None
    llm_model: str | None
    default_temperature: float | None
    change_notes: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PromptVersionInfo(StoredVariables):
    id: uuid.UUID
    template_id: uuid.UUID
    version: int
    template_text: str
    is_json_response: bool
    json_schema: str | None
    llm_model: str | None
    default_temperature: float | None
    change_notes: str
    created_by: str | None
    is_current: bool
    created_at: datetime


class PromptTemplateDetail(PromptTemplateInfo):
    versions: list[PromptVersionInfo]


class PromptPreview(BaseModel):
    rendered: str
    variables: list[str]
    unresolved_variables: list[str]
    template_version: int | None


class PromptRunResult(BaseModel):
    """Serialized with camelCase keys (templateUsed, templateVersion, logId)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    response: str
    usage: dict[str, int]
    template_used: str
    template_version: int | None
    model: str
    temperature: float
    log_id: uuid.UUID | None = None
