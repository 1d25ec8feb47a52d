"""Integration tests for prompt template actions."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from midnight_admin.models.activity_log import AdminActivityLog


async def call(client: AsyncClient, headers: dict, action: str, **params: Any) -> tuple[int, dict]:
    response = await client.post("/admin-api", headers=headers, json={"action": action, "params": params})
    return response.status_code, response.json()


@pytest.mark.integration
class TestPromptLifecycle:
    async def test_create_update_restore(self, client: AsyncClient, admin_headers: dict) -> None:
        status, body = await call(
            client,
            admin_headers,
            "createPromptTemplate",
            name="matchmaker_intro",
            templateText="You are {{agent_name}} for {{user_handle}}",
            description="Intro prompt",
            defaultTemperature=0.4,
        )
        assert status == 200
        assert body["success"] is True
        assert "timestamp" in body
        created = body["data"]
        assert created["version"] == 1
        assert created["variables"] == ["agent_name", "user_handle"]
        assert created["default_temperature"] == 0.4
        template_id = created["id"]

        # snake_case params are accepted too
        status, body = await call(
            client,
            admin_headers,
            "updatePromptTemplate",
            template_id=template_id,
            template_text="You are {{agent_name}}",
            change_notes="shorter",
        )
        assert status == 200
        assert body["data"]["version"] == 2
        assert body["data"]["variables"] == ["agent_name"]
        assert body["data"]["default_temperature"] == 0.4

        _, body = await call(client, admin_headers, "getPromptVersions", templateId=template_id)
        versions = body["data"]
        assert [v["version"] for v in versions] == [2, 1]
        assert versions[0]["change_notes"] == "shorter"

        _, body = await call(
            client, admin_headers, "restorePromptVersion", templateId=template_id, versionId=versions[1]["id"]
        )
        assert body["data"]["version"] == 3
        assert body["data"]["template_text"] == "You are {{agent_name}} for {{user_handle}}"
        assert body["data"]["change_notes"] == "Restored from version 1"

        _, body = await call(client, admin_headers, "getPromptTemplate", templateId=template_id)
        detail = body["data"]
        assert detail["version"] == 3
        assert [v["version"] for v in detail["versions"]] == [3, 2, 1]

        _, body = await call(client, admin_headers, "getPromptTemplates")
        assert [t["name"] for t in body["data"]] == ["matchmaker_intro"]

    async def test_mutations_are_audited(
        self, client: AsyncClient, admin_headers: dict, db_session: AsyncSession
    ) -> None:
        _, body = await call(client, admin_headers, "createPromptTemplate", name="audited", templateText="x")
        await call(client, admin_headers, "getPromptTemplates")

        result = await db_session.execute(select(AdminActivityLog))
        entries = result.scalars().all()
        assert [e.action for e in entries] == ["createPromptTemplate"]
        assert entries[0].actor_id == "master_admin"
        assert entries[0].target_type == "prompt_template"


@pytest.mark.integration
class TestPromptErrors:
    async def test_duplicate_name(self, client: AsyncClient, admin_headers: dict) -> None:
        await call(client, admin_headers, "createPromptTemplate", name="dup", templateText="a")
        status, body = await call(client, admin_headers, "createPromptTemplate", name="dup", templateText="b")
        assert status == 409
        assert body["success"] is False
        assert body["error_type"] == "duplicate_name"

    async def test_empty_body(self, client: AsyncClient, admin_headers: dict) -> None:
        status, body = await call(client, admin_headers, "createPromptTemplate", name="e", templateText="  ")
        assert status == 400
        assert body["error_type"] == "validation_error"

    async def test_temperature_out_of_range(self, client: AsyncClient, admin_headers: dict) -> None:
        status, body = await call(
            client, admin_headers, "createPromptTemplate", name="t", templateText="a", defaultTemperature=3
        )
        assert status == 400
        assert body["error_type"] == "validation_error"
        assert body["details"]["errors"][0]["field"] == "defaultTemperature"

    async def test_unknown_template(self, client: AsyncClient, admin_headers: dict) -> None:
        status, body = await call(
            client, admin_headers, "getPromptTemplate", templateId="00000000-0000-0000-0000-000000000001"
        )
        assert status == 404
        assert body["error_type"] == "not_found"

    async def test_failed_write_is_rolled_back(self, client: AsyncClient, admin_headers: dict) -> None:
        _, body = await call(client, admin_headers, "createPromptTemplate", name="keep", templateText="a")
        template_id = body["data"]["id"]
        status, _ = await call(
            client, admin_headers, "updatePromptTemplate", templateId=template_id, jsonSchema="{bad"
        )
        assert status == 400

        _, body = await call(client, admin_headers, "getPromptVersions", templateId=template_id)
        assert len(body["data"]) == 1


@pytest.mark.integration
class TestPromptTransfer:
    async def test_export_and_import_round_trip(self, client: AsyncClient, admin_headers: dict) -> None:
        _, body = await call(client, admin_headers, "createPromptTemplate", name="portable", templateText="v1")
        template_id = body["data"]["id"]
        await call(client, admin_headers, "updatePromptTemplate", templateId=template_id, templateText="v2")

        _, body = await call(client, admin_headers, "exportPromptTemplates")
        document = body["data"]
        assert document["templates"][0]["version"] == 2

        status, body = await call(
            client, admin_headers, "importPromptTemplates", importData=document, conflictStrategy="create_new"
        )
        assert status == 200
        summary = body["data"]
        assert summary["imported"] == 1
        assert summary["templates"][0]["final_name"] == "portable_imported_1"

        status, body = await call(client, admin_headers, "importPromptTemplates", importData=document)
        assert body["data"]["skipped"] == 1

    async def test_import_requires_templates_array(self, client: AsyncClient, admin_headers: dict) -> None:
        status, body = await call(client, admin_headers, "importPromptTemplates", importData={"nope": 1})
        assert status == 400
        assert "templates array is required" in body["error"]

    async def test_import_bad_json_text(self, client: AsyncClient, admin_headers: dict) -> None:
        status, body = await call(client, admin_headers, "importPromptTemplates", importData="{oops")
        assert status == 400
        assert body["error_type"] == "parse_error"

    async def test_partial_import(self, client: AsyncClient, admin_headers: dict) -> None:
        document = {
            "templates": [
                {"name": "one", "template_text": "1"},
                {"name": "two", "template_text": ""},
                {"name": "three", "template_text": "3"},
            ]
        }
        status, body = await call(client, admin_headers, "importPromptTemplates", importData=document)
        assert status == 200
        assert body["data"]["imported"] == 2
        assert len(body["data"]["errors"]) == 1

        _, body = await call(client, admin_headers, "getPromptTemplates")
        assert sorted(t["name"] for t in body["data"]) == ["one", "three"]


@pytest.mark.integration
class TestPromptPreview:
    async def test_preview_stored_and_draft(self, client: AsyncClient, admin_headers: dict) -> None:
        _, body = await call(client, admin_headers, "createPromptTemplate", name="p", templateText="Hi {{a}} {{b}}")
        template_id = body["data"]["id"]

        _, body = await call(
            client, admin_headers, "previewPromptTemplate", templateId=template_id, variables={"a": "Ann"}
        )
        assert body["data"]["rendered"] == "Hi Ann {{b}}"
        assert body["data"]["unresolved_variables"] == ["b"]
        assert body["data"]["template_version"] == 1

        _, body = await call(
            client,
            admin_headers,
            "previewPromptTemplate",
            templateId=template_id,
            variables={"c": "see"},
            draft={"templateText": "Draft {{c}}"},
        )
        assert body["data"]["rendered"] == "Draft see"
        assert body["data"]["template_version"] is None
