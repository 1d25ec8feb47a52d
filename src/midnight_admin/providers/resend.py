"""Resend email delivery client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
import structlog

from midnight_admin.common.errors import ProviderError
from midnight_admin.config import EmailSettings

logger = structlog.stdlib.get_logger()


@dataclass
class EmailMessage:
    to: str
    subject: str
    html: str
    text: str | None = None
    from_address: str | None = None


class ResendClient:
    provider_name = "resend"

    def __init__(self, http_client: httpx.AsyncClient, settings: EmailSettings) -> None:
        self.client = http_client
        self.settings = settings

    def transform_request(self, message: EmailMessage) -> tuple[str, dict[str, str], dict[str, Any]]:
        url = f"{self.settings.api_base.rstrip('/')}/emails"
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }
        body: dict[str, Any] = {
            "from": message.from_address or self.settings.default_from_address,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
        }
        if message.text:
            body["text"] = message.text
        return url, headers, body

    async def send(self, message: EmailMessage) -> str:
        """Send one email; returns the provider message id."""
        if not self.settings.api_key:
            raise ProviderError(
                "Resend API key not configured (MIDNIGHT_EMAIL__API_KEY)",
                details={"provider": self.provider_name},
            )

        url, headers, body = self.transform_request(message)
        try:
            response = await self.client.post(
                url, headers=headers, json=body, timeout=self.settings.timeout_seconds
            )
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Failed to reach Resend: {e}",
                details={"provider": self.provider_name},
            ) from e

        if response.status_code not in (200, 201, 202):
            await logger.aerror(
                "provider.resend.error",
                status_code=response.status_code,
                body=response.text[:500],
                recipient=message.to,
            )
            raise ProviderError(
                f"Resend returned {response.status_code}: {response.text[:200]}",
                details={"provider": self.provider_name, "status_code": response.status_code},
            )

        return str(response.json().get("id", ""))
