"""LLM call log schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, Field

from midnight_admin.schemas.common import ActionParams


class LLMLogFilters(ActionParams):
    status: Literal["started", "completed", "failed"] | None = None
    model: str | None = None
    method_type: str | None = None
    source: str | None = None
    user_id: str | None = None
    since: datetime | None = None
    until: datetime | None = None
    search: str | None = None
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int = Field(50, ge=1, le=200)
    offset: int = Field(0, ge=0)


class LLMLogIdParams(ActionParams):
    log_id: uuid.UUID


class LLMLogStatsParams(ActionParams):
    since: datetime | None = None
    until: datetime | None = None


class LLMLogInfo(BaseModel):
    id: uuid.UUID
    request_id: str | None
    model: str
    method_type: str
    source: str | None
    user_id: str | None
    status: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    cost_usd: Decimal
    response_time_ms: int | None
    error_message: str | None
    http_status_code: int | None
    started_at: datetime
    completed_at: datetime | None


class LLMLogDetail(LLMLogInfo):
    input_messages: list[dict[str, Any]]
    input_params: dict[str, Any] | None
    output_response: dict[str, Any] | None
    completion_text: str | None


class LLMLogListResponse(BaseModel):
    logs: list[LLMLogInfo]
    total: int
    page: int
    page_size: int


class ModelUsage(BaseModel):
    calls: int = 0
    total_tokens: int = 0
    cost_usd: Decimal = Decimal("0")


class LLMLogStats(BaseModel):
    total_calls: int
    completed_calls: int
    failed_calls: int
    total_tokens: int
    total_cost_usd: Decimal
    avg_response_time_ms: int
    success_rate: float
    by_model: dict[str, ModelUsage]
