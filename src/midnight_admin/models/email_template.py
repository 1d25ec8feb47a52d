"""Email template with append-only version history."""

from __future__ import annotations

import uuid

from sqlalchemy import Boolean, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from midnight_admin.models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin


class EmailTemplate(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "email_templates"

    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    category: Mapped[str] = mapped_column(String(64), nullable=False, default="general")

    current_version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    variables: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class EmailTemplateVersion(Base, UUIDPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "email_template_versions"

    template_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("email_templates.id", ondelete="CASCADE"), nullable=False, index=True
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    # Body slots
    subject_template: Mapped[str] = mapped_column(String(998), nullable=False)
    html_template: Mapped[str] = mapped_column(Text, nullable=False)
    text_template: Mapped[str | None] = mapped_column(Text, nullable=True)
    variables: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    # Delivery defaults
    default_from_address: Mapped[str | None] = mapped_column(String(320), nullable=True)
    email_type: Mapped[str] = mapped_column(String(64), nullable=False, default="transactional")
    template_category: Mapped[str] = mapped_column(String(64), nullable=False, default="general")

    # History
    change_notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_current: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("template_id", "version", name="uq_email_version"),
    )
