"""Shared schema plumbing for the action API."""

from __future__ import annotations

import uuid
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from midnight_admin.core.templates.variables import coerce_variables


class ActionRequest(BaseModel):
    action: str = ""
    params: dict[str, Any] = Field(default_factory=dict)


class ActionParams(BaseModel):
    """Params accept camelCase (dashboard) or snake_case (scripts) keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class NoParams(ActionParams):
    pass


class TemplateIdParams(ActionParams):
    template_id: uuid.UUID


class RestoreVersionParams(ActionParams):
    template_id: uuid.UUID
    version_id: uuid.UUID
    change_notes: str | None = Field(
        None, validation_alias=AliasChoices("changeNotes", "change_notes")
    )


class ExportParams(ActionParams):
    template_ids: list[uuid.UUID] | None = None
    include_history: bool = True


class ImportParams(ActionParams):
    import_data: Any = Field(
        None, validation_alias=AliasChoices("importData", "import_data", "data")
    )
    conflict_strategy: str | None = Field(
        None, validation_alias=AliasChoices("conflictStrategy", "conflict_strategy", "strategy")
    )


class ImportResult(BaseModel):
    imported: int
    skipped: int
    errors: list[str]
    templates: list[dict[str, Any]]


class StoredVariables(BaseModel):
    """Coerces whatever the ``variables`` column holds into an ordered list of names."""

    variables: list[str] = Field(default_factory=list)

    @field_validator("variables", mode="before")
    @classmethod
    def _coerce_variables(cls, value: Any) -> list[str]:
        return coerce_variables(value)
