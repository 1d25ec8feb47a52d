"""
Append-only version store shared by prompt and email templates.

A template row holds identity and a ``current_version`` pointer; every
edit inserts a new version row and moves ``is_current`` onto it. Version
rows are never updated apart from that flag and never deleted.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from midnight_admin.common.errors import (
    DuplicateNameError,
    NotFoundError,
    OptimisticConflictError,
    ValidationError,
)
from midnight_admin.common.events import TemplateChangedEvent, queue_event
from midnight_admin.core.templates.variables import get_all_variables
from midnight_admin.models.base import utcnow

logger = structlog.stdlib.get_logger()


@dataclass
class TemplateRecord:
    """A template together with its current version."""

    template: Any
    current: Any

    @property
    def id(self) -> uuid.UUID:
        return self.template.id

    @property
    def name(self) -> str:
        return self.template.name

    @property
    def version(self) -> int:
        return self.current.version


class VersionedTemplateStore:
    """
    Version bookkeeping for one template kind.

    Subclasses declare the ORM models and which columns make up the body
    (``body_slots``) and the per-version settings (``version_fields``).
    ``content`` dicts passed to the write methods use those column names.
    """

    kind: ClassVar[str]
    template_model: ClassVar[type]
    version_model: ClassVar[type]
    body_slots: ClassVar[tuple[str, ...]]
    required_slots: ClassVar[tuple[str, ...]]
    version_fields: ClassVar[tuple[str, ...]] = ()
    version_defaults: ClassVar[dict[str, Any]] = {}
    template_fields: ClassVar[tuple[str, ...]] = ("description",)

    def __init__(self, db: AsyncSession, *, actor_id: str | None = None) -> None:
        self.db = db
        self.actor_id = actor_id

    @property
    def content_fields(self) -> tuple[str, ...]:
        return self.body_slots + self.version_fields

    # Reads

    async def get_template(self, template_id: uuid.UUID) -> Any:
        T = self.template_model
        result = await self.db.execute(select(T).where(T.id == template_id))
        template = result.scalar_one_or_none()
        if template is None:
            raise NotFoundError(f"{self.kind.capitalize()} template not found: {template_id}")
        return template

    async def get(self, template_id: uuid.UUID) -> TemplateRecord:
        template = await self.get_template(template_id)
        return TemplateRecord(template, await self._current_version(template))

    async def get_by_name(self, name: str) -> TemplateRecord | None:
        T = self.template_model
        result = await self.db.execute(select(T).where(T.name == name))
        template = result.scalar_one_or_none()
        if template is None:
            return None
        return TemplateRecord(template, await self._current_version(template))

    async def name_exists(self, name: str) -> bool:
        T = self.template_model
        result = await self.db.execute(select(T.id).where(T.name == name))
        return result.first() is not None

    async def list_current(
        self,
        template_ids: list[uuid.UUID] | None = None,
        *,
        include_inactive: bool = False,
    ) -> list[TemplateRecord]:
        """Every template joined to its current version, ordered by name."""
        T, V = self.template_model, self.version_model
        stmt = (
            select(T, V)
            .join(V, (V.template_id == T.id) & V.is_current.is_(True))
            .order_by(T.name)
        )
        if template_ids is not None:
            stmt = stmt.where(T.id.in_(template_ids))
        if not include_inactive:
            stmt = stmt.where(T.is_active.is_(True))
        result = await self.db.execute(stmt)
        return [TemplateRecord(t, v) for t, v in result.all()]

    async def list_versions(self, template_id: uuid.UUID) -> list[Any]:
        """All versions of a template, newest first."""
        await self.get_template(template_id)
        V = self.version_model
        result = await self.db.execute(
            select(V).where(V.template_id == template_id).order_by(V.version.desc())
        )
        return list(result.scalars().all())

    async def get_version(self, template_id: uuid.UUID, version_id: uuid.UUID) -> Any:
        V = self.version_model
        result = await self.db.execute(
            select(V).where(V.id == version_id, V.template_id == template_id)
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise NotFoundError(
                f"Version {version_id} not found for {self.kind} template {template_id}"
            )
        return version

    # Writes

    async def create(
        self,
        name: str,
        content: Mapping[str, Any],
        *,
        change_notes: str | None = None,
        **template_attrs: Any,
    ) -> TemplateRecord:
        """Create a template whose version 1 is current."""
        name = (name or "").strip()
        if not name:
            raise ValidationError("Template name is required")

        data = {**self.version_defaults, **self._pick_content(content)}
        data = self.normalize_content(data)
        self.validate_content(data)

        if await self.name_exists(name):
            raise DuplicateNameError(f'Template with name "{name}" already exists')

        template = self.template_model(
            name=name,
            current_version=0,
            variables=[],
            created_by=self.actor_id,
            **self._pick_template_attrs(template_attrs),
        )
        self.db.add(template)
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise DuplicateNameError(f'Template with name "{name}" already exists') from e

        version = await self._append_version(
            template, data, change_notes if change_notes is not None else "Initial version"
        )
        record = TemplateRecord(template, version)
        await self._announce(record, "created")
        return record

    async def update(
        self,
        template_id: uuid.UUID,
        content: Mapping[str, Any],
        *,
        change_notes: str | None = None,
        **template_attrs: Any,
    ) -> TemplateRecord:
        """
        Append ``current + 1`` built from the current snapshot overlaid with
        ``content``. Fields passed as ``None`` keep their current value.
        """
        template = await self.get_template(template_id)
        current = await self._current_version(template)

        data = self.snapshot(current)
        data.update(self._pick_content(content))
        data = self.normalize_content(data)
        self.validate_content(data)

        for field, value in self._pick_template_attrs(template_attrs).items():
            setattr(template, field, value)

        version = await self._append_version(
            template, data, change_notes if change_notes is not None else "Updated template"
        )
        record = TemplateRecord(template, version)
        await self._announce(record, "updated")
        return record

    async def restore(
        self,
        template_id: uuid.UUID,
        version_id: uuid.UUID,
        *,
        change_notes: str | None = None,
    ) -> TemplateRecord:
        """Append a copy of an older version; the restored row itself is untouched."""
        template = await self.get_template(template_id)
        target = await self.get_version(template_id, version_id)

        version = await self._append_version(
            template,
            self.snapshot(target),
            change_notes if change_notes is not None else f"Restored from version {target.version}",
        )
        record = TemplateRecord(template, version)
        await self._announce(record, "restored", restored_from=target.version)
        return record

    # Hooks

    def normalize_content(self, content: dict[str, Any]) -> dict[str, Any]:
        return content

    def validate_content(self, content: Mapping[str, Any]) -> None:
        missing = [
            slot for slot in self.required_slots
            if not isinstance(content.get(slot), str) or not content[slot].strip()
        ]
        if missing:
            raise ValidationError(
                f"Required template fields are empty: {', '.join(missing)}",
                details={"fields": missing},
            )

    def variables_for(self, content: Mapping[str, Any]) -> list[str]:
        return get_all_variables(*(content.get(slot) for slot in self.body_slots))

    def snapshot(self, version: Any) -> dict[str, Any]:
        """Body slots and per-version settings of a version row."""
        return {field: getattr(version, field) for field in self.content_fields}

    # Internals

    def _pick_content(self, content: Mapping[str, Any]) -> dict[str, Any]:
        return {
            k: v for k, v in content.items()
            if k in self.content_fields and v is not None
        }

    def _pick_template_attrs(self, attrs: Mapping[str, Any]) -> dict[str, Any]:
        return {
            k: v for k, v in attrs.items()
            if k in self.template_fields and v is not None
        }

    async def _current_version(self, template: Any) -> Any:
        V = self.version_model
        result = await self.db.execute(
            select(V).where(V.template_id == template.id, V.is_current.is_(True))
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise NotFoundError(f"No current version found for template {template.name}")
        return version

    async def _append_version(
        self, template: Any, content: Mapping[str, Any], change_notes: str
    ) -> Any:
        V = self.version_model
        next_version = template.current_version + 1
        variables = self.variables_for(content)

        await self.db.execute(
            update(V)
            .where(V.template_id == template.id, V.is_current.is_(True))
            .values(is_current=False)
        )

        version = V(
            template_id=template.id,
            version=next_version,
            variables=variables,
            change_notes=change_notes,
            created_by=self.actor_id,
            is_current=True,
            **content,
        )
        self.db.add(version)

        template.current_version = next_version
        template.variables = variables
        template.updated_at = utcnow()

        try:
            await self.db.flush()
        except IntegrityError as e:
            raise OptimisticConflictError(
                f"Version {next_version} of template {template.name} was written concurrently; "
                "reload and retry",
                details={"template_id": str(template.id), "version": next_version},
            ) from e
        return version

    async def _announce(self, record: TemplateRecord, change: str, **extra: Any) -> None:
        await logger.ainfo(
            "template.version_created",
            kind=self.kind,
            template=record.name,
            version=record.version,
            change=change,
            actor=self.actor_id,
            **extra,
        )
        queue_event(
            self.db,
            TemplateChangedEvent(
                kind=self.kind,
                template_id=record.id,
                name=record.name,
                version=record.version,
                change=change,
            ),
        )
