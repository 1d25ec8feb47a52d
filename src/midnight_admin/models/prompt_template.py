"""Prompt template with append-only version history."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Float, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from midnight_admin.models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin


class PromptTemplate(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "prompt_templates"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(1024), nullable=True)

    # Pointer to the row in prompt_template_versions with is_current=True
    current_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    variables: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class PromptTemplateVersion(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    """Immutable snapshot. Rows are only ever inserted; is_current is the one flag that moves."""

    __tablename__ = "prompt_template_versions"

    template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("prompt_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Body
    template_text: Mapped[str] = mapped_column(Text, nullable=False)
    variables: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Execution defaults
    is_json_response: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    json_schema: Mapped[str | None] = mapped_column(Text, nullable=True)
    llm_model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    default_temperature: Mapped[float | None] = mapped_column(Float, nullable=True)

    # History
    change_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("template_id", "version", name="uq_prompt_version"),
    )
