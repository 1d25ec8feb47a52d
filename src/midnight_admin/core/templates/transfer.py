"""
Template export and import.

Export produces a portable document carrying each template's current body
and its full history. Import walks the document item by item; each item is
reconciled against the destination under a ``ConflictStrategy`` and runs in
its own savepoint, so one bad item never sinks the others.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from enum import StrEnum
from typing import Any

import orjson
import structlog
from sqlalchemy.exc import SQLAlchemyError

from midnight_admin.common.errors import MidnightError, ParseError, ValidationError, utc_timestamp
from midnight_admin.common.events import discard_queued_events, queued_event_count
from midnight_admin.core.templates.store import TemplateRecord, VersionedTemplateStore

logger = structlog.stdlib.get_logger()

EXPORT_FORMAT_VERSION = "1.0"


class ConflictStrategy(StrEnum):
    SKIP = "skip"
    OVERWRITE = "overwrite"
    CREATE_NEW = "create_new"

    @classmethod
    def parse(cls, raw: str | ConflictStrategy | None) -> ConflictStrategy:
        if raw is None:
            return cls.SKIP
        if isinstance(raw, cls):
            return raw
        value = str(raw).strip().lower()
        if value == "rename":
            return cls.CREATE_NEW
        try:
            return cls(value)
        except ValueError:
            allowed = ", ".join(s.value for s in cls)
            raise ValidationError(f"Unknown conflict strategy '{raw}'. Expected one of: {allowed}")


@dataclass
class ImportOutcome:
    """What happened to one item of an import document."""

    name: str
    status: str  # "imported" | "updated" | "skipped" | "failed"
    final_name: str | None = None
    template_id: uuid.UUID | None = None
    version: int | None = None
    versions_imported: int = 0
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["template_id"] = str(self.template_id) if self.template_id else None
        return data


@dataclass
class ImportSummary:
    outcomes: list[ImportOutcome] = field(default_factory=list)

    @property
    def imported(self) -> int:
        return sum(1 for o in self.outcomes if o.status in ("imported", "updated"))

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.status == "skipped")

    @property
    def errors(self) -> list[str]:
        return [f'{o.name}: {o.error}' for o in self.outcomes if o.status == "failed"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "imported": self.imported,
            "skipped": self.skipped,
            "errors": self.errors,
            "templates": [o.to_dict() for o in self.outcomes],
        }


@dataclass
class ImportItem:
    name: str
    template_attrs: dict[str, Any]
    # (content, change_notes, source_version) in ascending source order
    history: list[tuple[dict[str, Any], str, int | None]]
    current_index: int

    @property
    def current_content(self) -> dict[str, Any]:
        return self.history[self.current_index][0]


def parse_import_document(document: Any) -> list[Any]:
    """Return the ``templates`` list of an import document or reject the whole document."""
    if isinstance(document, (str, bytes)):
        try:
            document = orjson.loads(document)
        except orjson.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in import document: {e}") from e
    if not isinstance(document, Mapping) or not isinstance(document.get("templates"), list):
        raise ValidationError("Invalid import data: templates array is required")
    return document["templates"]


class TemplateTransfer:
    def __init__(self, store: VersionedTemplateStore, *, rename_marker: str = "_imported_") -> None:
        self.store = store
        self.rename_marker = rename_marker

    # Export

    async def export_templates(
        self,
        template_ids: list[uuid.UUID] | None = None,
        *,
        include_history: bool = True,
    ) -> dict[str, Any]:
        records = await self.store.list_current(template_ids, include_inactive=True)
        templates = []
        for record in records:
            item = self._export_item(record)
            if include_history:
                versions = await self.store.list_versions(record.id)
                item["versions"] = [self._export_version(v) for v in reversed(versions)]
            templates.append(item)

        await logger.ainfo(
            "template.export", kind=self.store.kind, count=len(templates), history=include_history
        )
        return {
            "version": EXPORT_FORMAT_VERSION,
            "kind": self.store.kind,
            "exported_at": utc_timestamp(),
            "exported_by": self.store.actor_id,
            "templates": templates,
        }

    def _export_item(self, record: TemplateRecord) -> dict[str, Any]:
        template = record.template
        item: dict[str, Any] = {"name": template.name}
        for attr in self.store.template_fields:
            item[attr] = getattr(template, attr)
        item.update(self.store.snapshot(record.current))
        item["variables"] = list(record.current.variables or [])
        item["version"] = record.current.version
        item["created_at"] = template.created_at.isoformat()
        item["updated_at"] = template.updated_at.isoformat()
        return item

    def _export_version(self, version: Any) -> dict[str, Any]:
        return {
            "version": version.version,
            **self.store.snapshot(version),
            "variables": list(version.variables or []),
            "change_notes": version.change_notes,
            "is_current": version.is_current,
            "created_at": version.created_at.isoformat(),
        }

    # Import

    async def import_templates(
        self, document: Any, strategy: str | ConflictStrategy | None = None
    ) -> ImportSummary:
        items = parse_import_document(document)
        conflict = ConflictStrategy.parse(strategy)
        summary = ImportSummary()

        for index, raw in enumerate(items):
            name = _item_label(raw, index)
            queued = queued_event_count(self.store.db)
            try:
                item = self._parse_item(raw)
                async with self.store.db.begin_nested():
                    outcome = await self.reconcile(item, conflict)
            except (MidnightError, SQLAlchemyError) as e:
                discard_queued_events(self.store.db, keep=queued)
                message = e.message if isinstance(e, MidnightError) else str(e.__cause__ or e)
                outcome = ImportOutcome(name=name, status="failed", error=message)
                await logger.awarning(
                    "template.import.item_failed", kind=self.store.kind, template=name, error=message
                )
            summary.outcomes.append(outcome)

        await logger.ainfo(
            "template.import",
            kind=self.store.kind,
            strategy=conflict.value,
            imported=summary.imported,
            skipped=summary.skipped,
            failed=len(summary.errors),
        )
        return summary

    async def reconcile(self, item: ImportItem, strategy: ConflictStrategy) -> ImportOutcome:
        """Apply ``strategy`` to one parsed item against the destination."""
        existing = await self.store.get_by_name(item.name)

        if existing is None:
            return await self._create(item, item.name)

        match strategy:
            case ConflictStrategy.SKIP:
                return ImportOutcome(
                    name=item.name,
                    status="skipped",
                    final_name=item.name,
                    template_id=existing.id,
                    version=existing.version,
                )
            case ConflictStrategy.OVERWRITE:
                record = await self.store.update(
                    existing.id,
                    item.current_content,
                    change_notes="Imported (overwrite)",
                    **item.template_attrs,
                )
                return ImportOutcome(
                    name=item.name,
                    status="updated",
                    final_name=record.name,
                    template_id=record.id,
                    version=record.version,
                    versions_imported=1,
                )
            case ConflictStrategy.CREATE_NEW:
                return await self._create(item, await self._unique_name(item.name))

    async def _create(self, item: ImportItem, name: str) -> ImportOutcome:
        (first, first_notes, _), *rest = item.history
        record = await self.store.create(
            name, first, change_notes=first_notes, **item.template_attrs
        )
        for content, notes, _ in rest:
            record = await self.store.update(record.id, content, change_notes=notes)

        replayed = len(item.history)
        if item.current_index != len(item.history) - 1:
            content, _, source_version = item.history[item.current_index]
            record = await self.store.update(
                record.id,
                content,
                change_notes=f"Restored from version {source_version} on import",
            )
            replayed += 1

        return ImportOutcome(
            name=item.name,
            status="imported",
            final_name=record.name,
            template_id=record.id,
            version=record.version,
            versions_imported=replayed,
        )

    async def _unique_name(self, base: str) -> str:
        counter = 1
        while True:
            candidate = f"{base}{self.rename_marker}{counter}"
            if not await self.store.name_exists(candidate):
                return candidate
            counter += 1

    def _parse_item(self, raw: Any) -> ImportItem:
        if not isinstance(raw, Mapping):
            raise ValidationError("Invalid template data: expected an object")
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Invalid template data: name is required")

        template_attrs = {
            attr: raw[attr] for attr in self.store.template_fields if raw.get(attr) is not None
        }

        versions = raw.get("versions")
        if versions is None:
            content = self._content_of(raw)
            return ImportItem(
                name=name.strip(),
                template_attrs=template_attrs,
                history=[(content, "Imported version", _as_int(raw.get("version")))],
                current_index=0,
            )

        if not isinstance(versions, list) or not versions:
            raise ValidationError(f'Template "{name}" has no versions')
        if not all(isinstance(v, Mapping) for v in versions):
            raise ValidationError(f'Template "{name}" has malformed versions')

        ordered = sorted(
            enumerate(versions),
            key=lambda pair: (_as_int(pair[1].get("version")) or 0, pair[0]),
        )
        history = [
            (
                self._content_of(v),
                v.get("change_notes") or "Imported version",
                _as_int(v.get("version")),
            )
            for _, v in ordered
        ]
        flagged = [i for i, (_, v) in enumerate(ordered) if v.get("is_current")]
        current_index = flagged[-1] if flagged else len(history) - 1

        return ImportItem(
            name=name.strip(),
            template_attrs=template_attrs,
            history=history,
            current_index=current_index,
        )

    def _content_of(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        content = {f: raw[f] for f in self.store.content_fields if f in raw}
        # Import replaces content wholesale; an absent required slot must fail validation
        for slot in self.store.required_slots:
            if content.get(slot) is None:
                content[slot] = ""
        return content


def _item_label(raw: Any, index: int) -> str:
    if isinstance(raw, Mapping) and isinstance(raw.get("name"), str) and raw["name"].strip():
        return raw["name"].strip()
    return f"#{index + 1}"


def _as_int(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
