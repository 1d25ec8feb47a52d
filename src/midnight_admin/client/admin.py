"""
Async client for the admin action endpoint.

Cheap checks (temperature range, JSON schema text, import document JSON)
run locally before the round trip. Template reads go through a tagged
cache that every mutating call invalidates.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from typing import Any

import httpx
import structlog

from midnight_admin.client.cache import TaggedCache, kind_tag, list_tag, template_tag
from midnight_admin.common.errors import ERRORS_BY_TYPE, MidnightError
from midnight_admin.core.prompts.registry import check_temperature, parse_json_schema
from midnight_admin.core.templates.render import RenderedPreview, preview_slots
from midnight_admin.core.templates.transfer import ConflictStrategy, parse_import_document

logger = structlog.stdlib.get_logger()

# Action names per template kind
_ACTIONS: dict[str, dict[str, str]] = {
    "prompt": {
        "list": "getPromptTemplates",
        "get": "getPromptTemplate",
        "create": "createPromptTemplate",
        "update": "updatePromptTemplate",
        "versions": "getPromptVersions",
        "restore": "restorePromptVersion",
        "export": "exportPromptTemplates",
        "import": "importPromptTemplates",
        "preview": "previewPromptTemplate",
    },
    "email": {
        "list": "getEmailTemplates",
        "get": "getEmailTemplate",
        "create": "createEmailTemplate",
        "update": "updateEmailTemplate",
        "versions": "getEmailVersions",
        "restore": "restoreEmailVersion",
        "export": "exportEmailTemplates",
        "import": "importEmailTemplates",
        "preview": "previewEmailTemplate",
    },
}

ConfirmCallback = Callable[[str], bool]


class AdminAPIClient:
    """Python client for the Midnight admin API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "http://localhost:8000",
        *,
        http_client: httpx.AsyncClient | None = None,
        cache: TaggedCache | None = None,
        timeout: float = 130.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.client = http_client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)
        self._headers = {"Authorization": f"Bearer {api_key}"}
        self.cache = cache if cache is not None else TaggedCache()

    async def call(self, action: str, params: dict[str, Any] | None = None) -> Any:
        """Invoke one action and return its ``data``; error envelopes raise."""
        response = await self.client.post(
            "/admin-api",
            json={"action": action, "params": params or {}},
            headers=self._headers,
        )
        try:
            body = response.json()
        except ValueError as e:
            raise MidnightError(
                f"Admin API returned a non-JSON response ({response.status_code})",
                details={"action": action, "status_code": response.status_code},
            ) from e

        if not body.get("success"):
            error_cls = ERRORS_BY_TYPE.get(body.get("error_type", ""), MidnightError)
            await logger.adebug("admin_client.error", action=action, error_type=body.get("error_type"))
            raise error_cls(body.get("error") or "Unknown error", details=body.get("details"))
        return body.get("data")

    # Shared template plumbing

    async def _cached(self, key: tuple[str, ...], tags: list[str], action: str, params: dict[str, Any]) -> Any:
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        data = await self.call(action, params)
        self.cache.set(key, data, tags)
        return data

    async def _list(self, kind: str) -> list[dict[str, Any]]:
        return await self._cached(
            (kind, "list"), [kind_tag(kind), list_tag(kind)], _ACTIONS[kind]["list"], {}
        )

    async def _get(self, kind: str, template_id: str) -> dict[str, Any]:
        return await self._cached(
            (kind, template_id),
            [kind_tag(kind), template_tag(kind, template_id)],
            _ACTIONS[kind]["get"],
            {"templateId": template_id},
        )

    async def _versions(self, kind: str, template_id: str) -> list[dict[str, Any]]:
        return await self._cached(
            (kind, template_id, "versions"),
            [kind_tag(kind), template_tag(kind, template_id)],
            _ACTIONS[kind]["versions"],
            {"templateId": template_id},
        )

    async def _mutate(self, kind: str, op: str, params: dict[str, Any]) -> Any:
        try:
            return await self.call(_ACTIONS[kind][op], params)
        finally:
            # A failed write may still have landed; refetch either way
            template_id = params.get("templateId")
            if template_id:
                self.cache.invalidate_tags(list_tag(kind), template_tag(kind, str(template_id)))
            else:
                self.cache.invalidate_tags(kind_tag(kind))

    async def _restore(
        self,
        kind: str,
        template_id: str,
        version_id: str,
        *,
        confirm: ConfirmCallback,
        change_notes: str | None = None,
    ) -> dict[str, Any] | None:
        question = (
            f"Restore version {version_id} of {kind} template {template_id}? "
            "This creates a new version with that content."
        )
        if not confirm(question):
            return None
        params: dict[str, Any] = {"templateId": template_id, "versionId": version_id}
        if change_notes is not None:
            params["changeNotes"] = change_notes
        return await self._mutate(kind, "restore", params)

    async def _import(self, kind: str, data: Any, strategy: str | ConflictStrategy | None) -> dict[str, Any]:
        templates = parse_import_document(data)
        conflict = ConflictStrategy.parse(strategy)
        return await self._mutate(
            kind,
            "import",
            {"importData": {"templates": templates}, "conflictStrategy": conflict.value},
        )

    async def _export(
        self, kind: str, template_ids: list[str] | None, include_history: bool
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"includeHistory": include_history}
        if template_ids is not None:
            params["templateIds"] = template_ids
        return await self.call(_ACTIONS[kind]["export"], params)

    # Prompt templates

    async def list_prompt_templates(self) -> list[dict[str, Any]]:
        return await self._list("prompt")

    async def get_prompt_template(self, template_id: str | uuid.UUID) -> dict[str, Any]:
        return await self._get("prompt", str(template_id))

    async def get_prompt_versions(self, template_id: str | uuid.UUID) -> list[dict[str, Any]]:
        return await self._versions("prompt", str(template_id))

    async def create_prompt_template(
        self,
        name: str,
        template_text: str,
        *,
        description: str | None = None,
        is_json_response: bool = False,
        json_schema: str | None = None,
        llm_model: str | None = None,
        default_temperature: float | None = None,
        change_notes: str | None = None,
    ) -> dict[str, Any]:
        _check_prompt_settings(default_temperature, json_schema)
        return await self._mutate(
            "prompt",
            "create",
            _compact(
                name=name,
                templateText=template_text,
                description=description,
                isJsonResponse=is_json_response,
                jsonSchema=json_schema,
                llmModel=llm_model,
                defaultTemperature=default_temperature,
                changeNotes=change_notes,
            ),
        )

    async def update_prompt_template(
        self,
        template_id: str | uuid.UUID,
        *,
        template_text: str | None = None,
        description: str | None = None,
        is_json_response: bool | None = None,
        json_schema: str | None = None,
        llm_model: str | None = None,
        default_temperature: float | None = None,
        change_notes: str | None = None,
    ) -> dict[str, Any]:
        _check_prompt_settings(default_temperature, json_schema)
        return await self._mutate(
            "prompt",
            "update",
            _compact(
                templateId=str(template_id),
                templateText=template_text,
                description=description,
                isJsonResponse=is_json_response,
                jsonSchema=json_schema,
                llmModel=llm_model,
                defaultTemperature=default_temperature,
                changeNotes=change_notes,
            ),
        )

    async def restore_prompt_version(
        self,
        template_id: str | uuid.UUID,
        version_id: str | uuid.UUID,
        *,
        confirm: ConfirmCallback,
        change_notes: str | None = None,
    ) -> dict[str, Any] | None:
        return await self._restore(
            "prompt", str(template_id), str(version_id), confirm=confirm, change_notes=change_notes
        )

    async def export_prompt_templates(
        self, template_ids: list[str] | None = None, *, include_history: bool = True
    ) -> dict[str, Any]:
        return await self._export("prompt", template_ids, include_history)

    async def import_prompt_templates(
        self, data: Any, strategy: str | ConflictStrategy | None = ConflictStrategy.SKIP
    ) -> dict[str, Any]:
        return await self._import("prompt", data, strategy)

    async def run_prompt(
        self,
        *,
        template_id: str | uuid.UUID | None = None,
        template_name: str | None = None,
        variables: dict[str, Any] | None = None,
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        response_format: dict[str, Any] | None = None,
        additional_messages: list[dict[str, str]] | None = None,
    ) -> dict[str, Any]:
        check_temperature(temperature)
        return await self.call(
            "runPrompt",
            _compact(
                templateId=str(template_id) if template_id else None,
                templateName=template_name,
                variables=variables or {},
                model=model,
                temperature=temperature,
                maxTokens=max_tokens,
                responseFormat=response_format,
                additionalMessages=additional_messages,
            ),
        )

    async def preview_prompt_template(
        self, template_id: str | uuid.UUID, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        return await self.call(
            _ACTIONS["prompt"]["preview"],
            {"templateId": str(template_id), "variables": variables or {}},
        )

    # Email templates

    async def list_email_templates(self) -> list[dict[str, Any]]:
        return await self._list("email")

    async def get_email_template(self, template_id: str | uuid.UUID) -> dict[str, Any]:
        return await self._get("email", str(template_id))

    async def get_email_versions(self, template_id: str | uuid.UUID) -> list[dict[str, Any]]:
        return await self._versions("email", str(template_id))

    async def create_email_template(
        self,
        name: str,
        subject_template: str,
        html_template: str,
        *,
        text_template: str | None = None,
        description: str | None = None,
        category: str | None = None,
        default_from_address: str | None = None,
        email_type: str | None = None,
        change_notes: str | None = None,
    ) -> dict[str, Any]:
        return await self._mutate(
            "email",
            "create",
            _compact(
                name=name,
                subjectTemplate=subject_template,
                htmlTemplate=html_template,
                textTemplate=text_template,
                description=description,
                category=category,
                defaultFromAddress=default_from_address,
                emailType=email_type,
                changeNotes=change_notes,
            ),
        )

    async def update_email_template(
        self,
        template_id: str | uuid.UUID,
        *,
        subject_template: str | None = None,
        html_template: str | None = None,
        text_template: str | None = None,
        description: str | None = None,
        category: str | None = None,
        default_from_address: str | None = None,
        email_type: str | None = None,
        change_notes: str | None = None,
    ) -> dict[str, Any]:
        return await self._mutate(
            "email",
            "update",
            _compact(
                templateId=str(template_id),
                subjectTemplate=subject_template,
                htmlTemplate=html_template,
                textTemplate=text_template,
                description=description,
                category=category,
                defaultFromAddress=default_from_address,
                emailType=email_type,
                changeNotes=change_notes,
            ),
        )

    async def restore_email_version(
        self,
        template_id: str | uuid.UUID,
        version_id: str | uuid.UUID,
        *,
        confirm: ConfirmCallback,
        change_notes: str | None = None,
    ) -> dict[str, Any] | None:
        return await self._restore(
            "email", str(template_id), str(version_id), confirm=confirm, change_notes=change_notes
        )

    async def export_email_templates(
        self, template_ids: list[str] | None = None, *, include_history: bool = True
    ) -> dict[str, Any]:
        return await self._export("email", template_ids, include_history)

    async def import_email_templates(
        self, data: Any, strategy: str | ConflictStrategy | None = ConflictStrategy.SKIP
    ) -> dict[str, Any]:
        return await self._import("email", data, strategy)

    async def send_test_email(
        self,
        template_id: str | uuid.UUID,
        recipients: str | list[str],
        variables: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        if isinstance(recipients, str):
            recipients = [recipients]
        return await self.call(
            "sendTestEmail",
            {"templateId": str(template_id), "recipients": recipients, "variables": variables or {}},
        )

    async def preview_email_template(
        self,
        template_id: str | uuid.UUID,
        variables: dict[str, Any] | None = None,
        *,
        as_test_send: bool = False,
    ) -> dict[str, Any]:
        return await self.call(
            _ACTIONS["email"]["preview"],
            {"templateId": str(template_id), "variables": variables or {}, "asTestSend": as_test_send},
        )

    async def get_email_categories(self) -> list[str]:
        return await self._cached(
            ("email", "categories"), [kind_tag("email"), list_tag("email")], "getEmailCategories", {}
        )

    # LLM call logs

    async def get_llm_logs(self, **filters: Any) -> dict[str, Any]:
        return await self.call("getLLMLogs", filters)

    async def get_llm_log_details(self, log_id: str | uuid.UUID) -> dict[str, Any]:
        return await self.call("getLLMLogDetails", {"logId": str(log_id)})

    async def get_llm_log_stats(self, **params: Any) -> dict[str, Any]:
        return await self.call("getLLMLogStats", params)

    # Local helpers

    @staticmethod
    def preview_locally(slots: dict[str, str | None], variables: dict[str, Any]) -> RenderedPreview:
        """Render editor text without a round trip, using the server's substitution rules."""
        return preview_slots(slots, variables)

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> AdminAPIClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


def _check_prompt_settings(temperature: float | None, json_schema: str | None) -> None:
    check_temperature(temperature)
    if json_schema:
        parse_json_schema(json_schema)


def _compact(**params: Any) -> dict[str, Any]:
    return {k: v for k, v in params.items() if v is not None}
