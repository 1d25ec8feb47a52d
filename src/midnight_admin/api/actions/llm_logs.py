"""LLM call log actions."""

from __future__ import annotations

from midnight_admin.api.actions.registry import ActionContext, action
from midnight_admin.schemas.llm_logs import (
    LLMLogDetail,
    LLMLogFilters,
    LLMLogIdParams,
    LLMLogListResponse,
    LLMLogStats,
    LLMLogStatsParams,
)
from midnight_admin.services.llm_logs import LLMLogService

TARGET = "llm_log"


@action("getLLMLogs", LLMLogFilters, target_type=TARGET)
async def get_llm_logs(params: LLMLogFilters, ctx: ActionContext) -> LLMLogListResponse:
    return await LLMLogService(ctx.db).list_logs(params)


@action("getLLMLogDetails", LLMLogIdParams, target_type=TARGET)
async def get_llm_log_details(params: LLMLogIdParams, ctx: ActionContext) -> LLMLogDetail:
    return await LLMLogService(ctx.db).get_log(params.log_id)


@action("getLLMLogStats", LLMLogStatsParams, target_type=TARGET)
async def get_llm_log_stats(params: LLMLogStatsParams, ctx: ActionContext) -> LLMLogStats:
    return await LLMLogService(ctx.db).stats(params)
