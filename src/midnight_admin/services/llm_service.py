"""
LLM call service.

Every completion is logged in three steps (started, then completed or
failed) through its own short-lived session, so the log survives when
the calling request rolls back.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from midnight_admin.common.errors import ProviderError
from midnight_admin.core.cost.calculator import calculate_cost
from midnight_admin.models.base import utcnow
from midnight_admin.models.llm_call_log import LLMCallLog
from midnight_admin.providers.openrouter import OpenRouterClient
from midnight_admin.schemas.llm import ChatCompletionRequest, ChatCompletionResult

logger = structlog.stdlib.get_logger()


@dataclass
class LoggedCompletion:
    result: ChatCompletionResult
    log_id: uuid.UUID
    latency_ms: int


class LLMService:
    def __init__(
        self,
        client: OpenRouterClient,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> None:
        self.client = client
        self.session_factory = session_factory

    async def complete(
        self,
        request: ChatCompletionRequest,
        *,
        source: str,
        user_id: str | None = None,
        request_id: str | None = None,
    ) -> LoggedCompletion:
        log_id = await self._log_started(request, source=source, user_id=user_id, request_id=request_id)
        start = time.perf_counter()

        try:
            result = await self.client.send(request)
        except ProviderError as e:
            latency_ms = int((time.perf_counter() - start) * 1000)
            await self._log_failed(log_id, e, latency_ms)
            await logger.awarning(
                "llm.call.failed", model=request.model, source=source, error=e.message
            )
            raise

        latency_ms = int((time.perf_counter() - start) * 1000)
        await self._log_completed(log_id, result, latency_ms)
        await logger.ainfo(
            "llm.call.completed",
            model=result.model,
            source=source,
            prompt_tokens=result.usage.prompt_tokens,
            completion_tokens=result.usage.completion_tokens,
            latency_ms=latency_ms,
        )
        return LoggedCompletion(result=result, log_id=log_id, latency_ms=latency_ms)

    async def _log_started(
        self,
        request: ChatCompletionRequest,
        *,
        source: str,
        user_id: str | None,
        request_id: str | None,
    ) -> uuid.UUID:
        log_id = uuid.uuid4()
        entry = LLMCallLog(
            id=log_id,
            request_id=request_id,
            model=request.model,
            method_type="chat_completion",
            input_messages=[m.model_dump() for m in request.messages],
            input_params=request.model_dump(exclude={"messages", "model"}, exclude_none=True),
            source=source,
            user_id=user_id,
            status="started",
        )
        async with self.session_factory() as session:
            session.add(entry)
            await session.commit()
        return log_id

    async def _log_completed(
        self, log_id: uuid.UUID, result: ChatCompletionResult, latency_ms: int
    ) -> None:
        async with self.session_factory() as session:
            entry = await session.get(LLMCallLog, log_id)
            if entry is None:
                return
            entry.status = "completed"
            entry.output_response = result.raw
            entry.completion_text = result.content
            entry.prompt_tokens = result.usage.prompt_tokens
            entry.completion_tokens = result.usage.completion_tokens
            entry.total_tokens = result.usage.total_tokens
            entry.cost_usd = calculate_cost(
                result.model, result.usage.prompt_tokens, result.usage.completion_tokens
            )
            entry.response_time_ms = latency_ms
            entry.http_status_code = 200
            entry.completed_at = utcnow()
            await session.commit()

    async def _log_failed(self, log_id: uuid.UUID, error: ProviderError, latency_ms: int) -> None:
        async with self.session_factory() as session:
            entry = await session.get(LLMCallLog, log_id)
            if entry is None:
                return
            entry.status = "failed"
            entry.error_message = error.message[:1024]
            entry.http_status_code = error.details.get("status_code")
            entry.response_time_ms = latency_ms
            entry.completed_at = utcnow()
            await session.commit()
