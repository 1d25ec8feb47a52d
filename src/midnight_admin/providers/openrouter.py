"""OpenRouter chat completion client."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from midnight_admin.common.errors import ProviderError
from midnight_admin.config import LLMSettings
from midnight_admin.schemas.llm import ChatCompletionRequest, ChatCompletionResult, Usage

logger = structlog.stdlib.get_logger()

# Appended to the provider's own error text
_STATUS_HINTS = {
    400: "Bad Request (invalid or missing parameters)",
    401: "Invalid credentials or API key",
    402: "Insufficient credits on the OpenRouter account",
    403: "Content flagged by moderation",
    408: "Request timeout",
    429: "Rate limit exceeded",
    502: "Model is down or unavailable",
    503: "No available model provider meets routing requirements",
}


class OpenRouterClient:
    provider_name = "openrouter"

    def __init__(self, http_client: httpx.AsyncClient, settings: LLMSettings) -> None:
        self.client = http_client
        self.settings = settings

    def transform_request(
        self, request: ChatCompletionRequest
    ) -> tuple[str, dict[str, str], dict[str, Any]]:
        """Returns (url, headers, body) for the chat completions endpoint."""
        url = f"{self.settings.api_base.rstrip('/')}/chat/completions"
        headers = {
            "Authorization": f"Bearer {self.settings.api_key}",
            "Content-Type": "application/json",
        }

        body: dict[str, Any] = {
            "model": request.model,
            "messages": [m.model_dump() for m in request.messages],
            "stream": False,
        }
        optional_fields = {
            "temperature": request.temperature,
            "max_tokens": request.max_tokens,
            "response_format": request.response_format,
        }
        for key, value in optional_fields.items():
            if value is not None:
                body[key] = value

        return url, headers, body

    def transform_response(self, raw: dict[str, Any], model: str) -> ChatCompletionResult:
        choices = raw.get("choices") or [{}]
        message = choices[0].get("message") or {}
        raw_usage = raw.get("usage") or {}
        prompt_tokens = raw_usage.get("prompt_tokens", 0)
        completion_tokens = raw_usage.get("completion_tokens", 0)
        return ChatCompletionResult(
            id=raw.get("id"),
            model=raw.get("model", model),
            content=message.get("content") or "",
            usage=Usage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=raw_usage.get("total_tokens", prompt_tokens + completion_tokens),
            ),
            raw=raw,
        )

    async def send(self, request: ChatCompletionRequest) -> ChatCompletionResult:
        """Send a non-streaming completion request."""
        if not self.settings.api_key:
            raise ProviderError(
                "OpenRouter API key not configured (MIDNIGHT_LLM__API_KEY)",
                details={"provider": self.provider_name},
            )

        url, headers, body = self.transform_request(request)
        try:
            response = await self.client.post(
                url, headers=headers, json=body, timeout=self.settings.timeout_seconds
            )
        except httpx.TimeoutException as e:
            raise ProviderError(
                f"OpenRouter request timed out: {e}",
                details={"provider": self.provider_name, "status_code": 408},
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"Failed to reach OpenRouter: {e}",
                details={"provider": self.provider_name},
            ) from e

        if response.status_code != 200:
            await self._handle_error_response(response, request.model)

        try:
            raw = response.json()
        except ValueError as e:
            raise ProviderError(
                "OpenRouter returned a non-JSON response",
                details={"provider": self.provider_name, "status_code": response.status_code},
            ) from e
        return self.transform_response(raw, request.model)

    async def _handle_error_response(self, response: httpx.Response, model: str) -> None:
        error_body = response.text
        await logger.aerror(
            "provider.openrouter.error",
            status_code=response.status_code,
            body=error_body[:500],
            model=model,
        )

        message = f"OpenRouter API error {response.status_code}: {error_body[:200]}"
        hint = _STATUS_HINTS.get(response.status_code)
        if hint:
            message = f"{message} - {hint}"
        raise ProviderError(
            message,
            details={
                "provider": self.provider_name,
                "status_code": response.status_code,
                "retry": response.status_code in (408, 429, 502, 503),
            },
        )
