"""Test sends of email templates to operator-supplied addresses."""

from __future__ import annotations

import structlog

from midnight_admin.common.errors import ProviderError, utc_timestamp
from midnight_admin.core.cache.template_cache import TemplateCache
from midnight_admin.core.emails.registry import EmailTemplateRegistry
from midnight_admin.core.templates.render import preview_slots
from midnight_admin.providers.resend import EmailMessage, ResendClient
from midnight_admin.schemas.emails import RecipientResult, SendTestEmailParams, TestEmailResult
from midnight_admin.services.preview import body_of, resolve_source, seed_test_values

logger = structlog.stdlib.get_logger()


class TestEmailSender:
    """Renders once and sends to each recipient in turn. No retries."""

    __test__ = False  # not a pytest class

    def __init__(
        self,
        registry: EmailTemplateRegistry,
        client: ResendClient,
        cache: TemplateCache | None = None,
    ) -> None:
        self.registry = registry
        self.client = client
        self.cache = cache

    async def send(self, params: SendTestEmailParams) -> TestEmailResult:
        snapshot = await resolve_source(self.registry, params.template_id, params.draft, self.cache)
        values = seed_test_values(snapshot, params.variables)
        preview = preview_slots(body_of(self.registry, snapshot), values)

        results: list[RecipientResult] = []
        for address in params.destinations:
            message = EmailMessage(
                to=address,
                subject=preview.rendered["subject_template"] or "",
                html=preview.rendered["html_template"] or "",
                text=preview.rendered["text_template"],
                from_address=snapshot.get("default_from_address"),
            )
            try:
                message_id = await self.client.send(message)
            except ProviderError as e:
                results.append(RecipientResult(email=address, success=False, error=e.message))
                await logger.awarning(
                    "email.test.failed", template=snapshot["name"], recipient=address, error=e.message
                )
                continue
            results.append(RecipientResult(email=address, success=True, message_id=message_id))
            await logger.ainfo(
                "email.test.sent", template=snapshot["name"], recipient=address, message_id=message_id
            )

        return TestEmailResult(
            success=bool(results) and all(r.success for r in results),
            results=results,
            unresolved_variables=preview.unresolved,
            template_version=snapshot["version"],
            timestamp=utc_timestamp(),
        )
