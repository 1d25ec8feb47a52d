"""Integration tests for email template actions and test sends."""

from __future__ import annotations

import json
from typing import Any

import pytest
import respx
from httpx import AsyncClient, Response
from sqlalchemy.ext.asyncio import AsyncSession

from tests.conftest import RESEND_URL
from tests.factories import create_test_email


async def call(client: AsyncClient, headers: dict, action: str, **params: Any) -> tuple[int, dict]:
    response = await client.post("/admin-api", headers=headers, json={"action": action, "params": params})
    return response.status_code, response.json()


@pytest.fixture
async def welcome_email(db_session: AsyncSession) -> str:
    record = await create_test_email(db_session, default_from_address="Team <team@midnight.test>")
    await db_session.commit()
    return str(record.id)


@pytest.mark.integration
class TestEmailTemplates:
    async def test_create_and_update_keep_unchanged_fields(
        self, client: AsyncClient, admin_headers: dict
    ) -> None:
        status, body = await call(
            client,
            admin_headers,
            "createEmailTemplate",
            name="reminder",
            subjectTemplate="Hi {{user_name}}",
            htmlTemplate="<p>{{agent_name}} found a match</p>",
            textTemplate="{{agent_name}} found a match",
            category="reminder",
        )
        assert status == 200
        created = body["data"]
        assert created["variables"] == ["user_name", "agent_name"]
        assert created["category"] == "reminder"
        assert created["email_type"] == "transactional"

        _, body = await call(
            client,
            admin_headers,
            "updateEmailTemplate",
            templateId=created["id"],
            subjectTemplate="Hello {{user_name}}",
        )
        updated = body["data"]
        assert updated["version"] == 2
        assert updated["subject_template"] == "Hello {{user_name}}"
        assert updated["html_template"] == "<p>{{agent_name}} found a match</p>"

    async def test_html_is_required(self, client: AsyncClient, admin_headers: dict) -> None:
        status, body = await call(
            client, admin_headers, "createEmailTemplate", name="x", subjectTemplate="s", htmlTemplate=""
        )
        assert status == 400
        assert body["details"]["fields"] == ["html_template"]

    async def test_categories_include_defaults_and_custom(
        self, client: AsyncClient, admin_headers: dict
    ) -> None:
        await call(
            client,
            admin_headers,
            "createEmailTemplate",
            name="digest",
            subjectTemplate="s",
            htmlTemplate="h",
            category="digest",
        )
        _, body = await call(client, admin_headers, "getEmailCategories")
        assert "digest" in body["data"]
        assert "transactional" in body["data"]
        assert body["data"] == sorted(body["data"])

    async def test_preview_reports_unresolved(
        self, client: AsyncClient, admin_headers: dict, welcome_email: str
    ) -> None:
        _, body = await call(
            client,
            admin_headers,
            "previewEmailTemplate",
            templateId=welcome_email,
            variables={"user_name": "Ada"},
        )
        preview = body["data"]
        assert preview["subject"] == "Welcome to Midnight, Ada"
        assert preview["html"] == "<p>Hi Ada, your agent {{agent_name}} is ready.</p>"
        assert preview["unresolved_variables"] == ["agent_name"]
        assert preview["template_version"] == 1

    @respx.mock
    async def test_test_send_preview_matches_the_send(
        self, client: AsyncClient, admin_headers: dict, db_session: AsyncSession
    ) -> None:
        record = await create_test_email(
            db_session, name="tagged", subject_template="[{{template_name}}] Hi {{user_name}}"
        )
        await db_session.commit()
        route = respx.post(RESEND_URL).mock(return_value=Response(200, json={"id": "msg-3"}))
        variables = {"user_name": "Ada"}

        _, body = await call(
            client, admin_headers, "previewEmailTemplate", templateId=str(record.id), variables=variables
        )
        assert body["data"]["subject"] == "[{{template_name}}] Hi Ada"

        _, body = await call(
            client,
            admin_headers,
            "previewEmailTemplate",
            templateId=str(record.id),
            variables=variables,
            asTestSend=True,
        )
        previewed = body["data"]
        assert previewed["subject"] == "[tagged] Hi Ada"

        await call(
            client,
            admin_headers,
            "sendTestEmail",
            templateId=str(record.id),
            testEmail="ops@midnight.test",
            variables=variables,
        )
        sent = json.loads(route.calls[0].request.content)
        assert sent["subject"] == previewed["subject"]
        assert sent["html"] == previewed["html"]

    async def test_export_import_overwrite(
        self, client: AsyncClient, admin_headers: dict, welcome_email: str
    ) -> None:
        _, body = await call(client, admin_headers, "exportEmailTemplates", includeHistory=False)
        document = body["data"]
        assert "versions" not in document["templates"][0]
        document["templates"][0]["subject_template"] = "Changed {{user_name}}"

        _, body = await call(
            client, admin_headers, "importEmailTemplates", importData=document, conflictStrategy="overwrite"
        )
        assert body["data"]["templates"][0]["status"] == "updated"

        _, body = await call(client, admin_headers, "getEmailTemplate", templateId=welcome_email)
        assert body["data"]["version"] == 2
        assert body["data"]["subject_template"] == "Changed {{user_name}}"


@pytest.mark.integration
class TestSendTestEmail:
    @respx.mock
    async def test_sends_to_each_recipient(
        self, client: AsyncClient, admin_headers: dict, welcome_email: str
    ) -> None:
        route = respx.post(RESEND_URL).mock(
            side_effect=[
                Response(200, json={"id": "msg-1"}),
                Response(422, json={"message": "Invalid `to` field"}),
            ]
        )

        status, body = await call(
            client,
            admin_headers,
            "sendTestEmail",
            templateId=welcome_email,
            testEmail="ops@midnight.test",
            recipients=["ops@midnight.test", "bad-address"],
            variables={"user_name": "Ada"},
        )
        assert status == 200
        result = body["data"]
        assert result["success"] is False
        assert [r["email"] for r in result["results"]] == ["ops@midnight.test", "bad-address"]
        assert result["results"][0]["message_id"] == "msg-1"
        assert "422" in result["results"][1]["error"]
        assert result["unresolved_variables"] == ["agent_name"]

        assert route.call_count == 2
        sent = json.loads(route.calls[0].request.content)
        assert sent["to"] == ["ops@midnight.test"]
        assert sent["from"] == "Team <team@midnight.test>"
        assert sent["subject"] == "Welcome to Midnight, Ada"
        assert sent["text"] == "Hi Ada"

    @respx.mock
    async def test_draft_overrides_stored_body(
        self, client: AsyncClient, admin_headers: dict, welcome_email: str
    ) -> None:
        route = respx.post(RESEND_URL).mock(return_value=Response(200, json={"id": "msg-2"}))

        _, body = await call(
            client,
            admin_headers,
            "sendTestEmail",
            templateId=welcome_email,
            testEmail="ops@midnight.test",
            draft={"subjectTemplate": "Draft for {{template_name}}", "htmlTemplate": "<b>{{test_mode}}</b>"},
        )
        assert body["data"]["success"] is True
        assert body["data"]["template_version"] is None

        sent = json.loads(route.calls[0].request.content)
        assert sent["subject"] == "Draft for welcome_email"
        assert sent["html"] == "<b>true</b>"

    async def test_requires_a_recipient(
        self, client: AsyncClient, admin_headers: dict, welcome_email: str
    ) -> None:
        status, body = await call(client, admin_headers, "sendTestEmail", templateId=welcome_email)
        assert status == 400
        assert body["error_type"] == "validation_error"
