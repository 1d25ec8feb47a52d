"""Read side of the LLM call log."""

from __future__ import annotations

import uuid
from collections import defaultdict
from decimal import Decimal

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from midnight_admin.common.errors import NotFoundError
from midnight_admin.models.llm_call_log import LLMCallLog
from midnight_admin.schemas.llm_logs import (
    LLMLogDetail,
    LLMLogFilters,
    LLMLogInfo,
    LLMLogListResponse,
    LLMLogStats,
    LLMLogStatsParams,
    ModelUsage,
)


class LLMLogService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_logs(self, filters: LLMLogFilters) -> LLMLogListResponse:
        stmt = self._apply_filters(select(LLMCallLog), filters)

        count_result = await self.db.execute(
            select(func.count()).select_from(stmt.order_by(None).subquery())
        )
        total = count_result.scalar_one()

        order = LLMCallLog.started_at.asc() if filters.sort_order == "asc" else LLMCallLog.started_at.desc()
        result = await self.db.execute(stmt.order_by(order).offset(filters.offset).limit(filters.limit))
        logs = result.scalars().all()

        return LLMLogListResponse(
            logs=[LLMLogInfo.model_validate(log, from_attributes=True) for log in logs],
            total=total,
            page=filters.offset // filters.limit + 1,
            page_size=filters.limit,
        )

    async def get_log(self, log_id: uuid.UUID) -> LLMLogDetail:
        log = await self.db.get(LLMCallLog, log_id)
        if log is None:
            raise NotFoundError(f"LLM log not found: {log_id}")
        return LLMLogDetail.model_validate(log, from_attributes=True)

    async def stats(self, params: LLMLogStatsParams) -> LLMLogStats:
        stmt = select(
            LLMCallLog.model,
            LLMCallLog.status,
            LLMCallLog.total_tokens,
            LLMCallLog.cost_usd,
            LLMCallLog.response_time_ms,
        )
        if params.since:
            stmt = stmt.where(LLMCallLog.started_at >= params.since)
        if params.until:
            stmt = stmt.where(LLMCallLog.started_at <= params.until)
        rows = (await self.db.execute(stmt)).all()

        by_model: dict[str, ModelUsage] = defaultdict(ModelUsage)
        completed = failed = total_tokens = 0
        total_cost = Decimal("0")
        response_times: list[int] = []
        for model, status, tokens, cost, response_time_ms in rows:
            usage = by_model[model]
            usage.calls += 1
            usage.total_tokens += tokens or 0
            usage.cost_usd += cost or Decimal("0")
            total_tokens += tokens or 0
            total_cost += cost or Decimal("0")
            if status == "completed":
                completed += 1
                if response_time_ms is not None:
                    response_times.append(response_time_ms)
            elif status == "failed":
                failed += 1

        total_calls = len(rows)
        return LLMLogStats(
            total_calls=total_calls,
            completed_calls=completed,
            failed_calls=failed,
            total_tokens=total_tokens,
            total_cost_usd=total_cost,
            avg_response_time_ms=round(sum(response_times) / len(response_times)) if response_times else 0,
            success_rate=round(completed / total_calls * 100, 2) if total_calls else 0.0,
            by_model=dict(by_model),
        )

    @staticmethod
    def _apply_filters(stmt: Select, filters: LLMLogFilters) -> Select:
        if filters.status:
            stmt = stmt.where(LLMCallLog.status == filters.status)
        if filters.model:
            stmt = stmt.where(LLMCallLog.model == filters.model)
        if filters.method_type:
            stmt = stmt.where(LLMCallLog.method_type == filters.method_type)
        if filters.source:
            stmt = stmt.where(LLMCallLog.source == filters.source)
        if filters.user_id:
            stmt = stmt.where(LLMCallLog.user_id == filters.user_id)
        if filters.since:
            stmt = stmt.where(LLMCallLog.started_at >= filters.since)
        if filters.until:
            stmt = stmt.where(LLMCallLog.started_at <= filters.until)
        if filters.search:
            pattern = f"%{filters.search}%"
            stmt = stmt.where(
                or_(
                    LLMCallLog.model.ilike(pattern),
                    LLMCallLog.source.ilike(pattern),
                    LLMCallLog.error_message.ilike(pattern),
                )
            )
        return stmt
