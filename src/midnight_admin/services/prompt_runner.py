"""
Prompt runs: render a stored (or draft) prompt as the system message and
send it to the LLM with any extra conversation turns.
"""

from __future__ import annotations

from typing import Any

import structlog

from midnight_admin.common.errors import NotFoundError, ValidationError
from midnight_admin.config import LLMSettings
from midnight_admin.core.cache.template_cache import TemplateCache
from midnight_admin.core.prompts.registry import PromptRegistry, check_temperature, parse_json_schema
from midnight_admin.core.templates.render import render_template
from midnight_admin.core.templates.variables import extract_variables, find_missing_variables
from midnight_admin.schemas.llm import ChatCompletionRequest, ChatMessage
from midnight_admin.schemas.prompts import PromptRunResult, RunPromptParams
from midnight_admin.services.llm_service import LLMService
from midnight_admin.services.preview import resolve_source

logger = structlog.stdlib.get_logger()

RUN_SOURCE = "admin-api.runPrompt"


def json_schema_response_format(schema_text: str) -> dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": "response",
            "strict": True,
            "schema": parse_json_schema(schema_text),
        },
    }


class PromptRunner:
    def __init__(
        self,
        registry: PromptRegistry,
        llm: LLMService,
        settings: LLMSettings,
        cache: TemplateCache | None = None,
    ) -> None:
        self.registry = registry
        self.llm = llm
        self.settings = settings
        self.cache = cache

    async def run(
        self,
        params: RunPromptParams,
        *,
        actor_id: str | None = None,
        request_id: str | None = None,
    ) -> PromptRunResult:
        template_id = params.template_id
        if template_id is None and params.template_name:
            record = await self.registry.get_by_name(params.template_name)
            if record is None or not record.template.is_active:
                raise NotFoundError(f"Prompt template not found: {params.template_name}")
            template_id = record.id

        snapshot = await resolve_source(self.registry, template_id, params.draft, self.cache)
        template_text = snapshot.get("template_text") or ""

        missing = find_missing_variables(extract_variables(template_text), params.variables)
        if missing:
            raise ValidationError(
                f"Missing required variables: {', '.join(missing)}",
                details={"missing_variables": missing},
            )

        model = params.model or snapshot.get("llm_model") or self.settings.default_model
        temperature = _first_set(
            params.temperature, snapshot.get("default_temperature"), self.settings.default_temperature
        )
        check_temperature(temperature)

        response_format = params.response_format
        if response_format is None and snapshot.get("is_json_response") and snapshot.get("json_schema"):
            response_format = json_schema_response_format(snapshot["json_schema"])

        request = ChatCompletionRequest(
            model=model,
            messages=[
                ChatMessage(role="system", content=render_template(template_text, params.variables)),
                *params.additional_messages,
            ],
            temperature=temperature,
            max_tokens=params.max_tokens or self.settings.max_tokens,
            response_format=response_format,
        )

        await logger.ainfo(
            "prompt.run",
            template=snapshot["name"],
            version=snapshot["version"],
            model=model,
            extra_turns=len(params.additional_messages),
        )
        completion = await self.llm.complete(
            request, source=RUN_SOURCE, user_id=actor_id, request_id=request_id
        )

        return PromptRunResult(
            response=completion.result.content,
            usage=completion.result.usage.model_dump(),
            template_used=snapshot["name"],
            template_version=snapshot["version"],
            model=model,
            temperature=temperature,
            log_id=completion.log_id,
        )


def _first_set(*values: float | None) -> float:
    return next(v for v in values if v is not None)
