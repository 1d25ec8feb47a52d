from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from midnight_admin.models.base import Base, JSONType, utcnow


class LLMCallLog(Base):
    __tablename__ = "llm_call_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    request_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)

    # Request
    model: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    method_type: Mapped[str] = mapped_column(String(64), nullable=False, default="chat_completion")
    input_messages: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    input_params: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)  # "admin-api.runPrompt"
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Response
    output_response: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    completion_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    prompt_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completion_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_tokens: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    cost_usd: Mapped[Decimal] = mapped_column(Numeric(12, 8), default=Decimal("0"), nullable=False)
    response_time_ms: Mapped[int | None] = mapped_column(Integer, nullable=True)

    # Outcome
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="started", index=True)  # started | completed | failed
    error_message: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    http_status_code: Mapped[int | None] = mapped_column(Integer, nullable=True)

    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
