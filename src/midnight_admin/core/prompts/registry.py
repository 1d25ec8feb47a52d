"""Prompt template version management."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import orjson

from midnight_admin.common.errors import ValidationError
from midnight_admin.core.templates.store import VersionedTemplateStore
from midnight_admin.models.prompt_template import PromptTemplate, PromptTemplateVersion

MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0


def check_temperature(value: float | None) -> None:
    if value is None:
        return
    # bool is an int subclass; imported documents can carry anything
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(
            f"Temperature must be a number, got {type(value).__name__}",
            details={"temperature": value},
        )
    if not MIN_TEMPERATURE <= value <= MAX_TEMPERATURE:
        raise ValidationError(
            f"Temperature must be between {MIN_TEMPERATURE:g} and {MAX_TEMPERATURE:g}",
            details={"temperature": value},
        )


def parse_json_schema(schema_text: str) -> dict[str, Any]:
    """Decode a stored JSON schema, raising ValidationError when it is not a JSON object."""
    try:
        schema = orjson.loads(schema_text)
    except orjson.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON schema: {e}") from e
    if not isinstance(schema, dict):
        raise ValidationError("Invalid JSON schema: expected a JSON object")
    return schema


class PromptRegistry(VersionedTemplateStore):
    """Manages versioned prompt templates."""

    kind = "prompt"
    template_model = PromptTemplate
    version_model = PromptTemplateVersion
    body_slots = ("template_text",)
    required_slots = ("template_text",)
    version_fields = ("is_json_response", "json_schema", "llm_model", "default_temperature")
    version_defaults = {"is_json_response": False}

    def normalize_content(self, content: dict[str, Any]) -> dict[str, Any]:
        # Exports from older deployments carry the schema as an object
        schema = content.get("json_schema")
        if isinstance(schema, (dict, list)):
            content["json_schema"] = orjson.dumps(schema).decode()
        elif isinstance(schema, str) and not schema.strip():
            content["json_schema"] = None
        return content

    def validate_content(self, content: Mapping[str, Any]) -> None:
        super().validate_content(content)
        check_temperature(content.get("default_temperature"))
        if content.get("json_schema"):
            parse_json_schema(content["json_schema"])
        elif content.get("is_json_response"):
            raise ValidationError("A JSON schema is required when is_json_response is enabled")
