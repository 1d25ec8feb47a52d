"""Email template version management."""

from __future__ import annotations

from sqlalchemy import select

from midnight_admin.core.templates.store import VersionedTemplateStore
from midnight_admin.models.email_template import EmailTemplate, EmailTemplateVersion

DEFAULT_CATEGORIES = (
    "general",
    "transactional",
    "notification",
    "marketing",
    "system",
    "welcome",
    "reminder",
    "bulk",
)


class EmailTemplateRegistry(VersionedTemplateStore):
    """Manages versioned email templates (subject, HTML and plain-text bodies)."""

    kind = "email"
    template_model = EmailTemplate
    version_model = EmailTemplateVersion
    body_slots = ("subject_template", "html_template", "text_template")
    required_slots = ("subject_template", "html_template")
    version_fields = ("default_from_address", "email_type", "template_category")
    version_defaults = {"email_type": "transactional", "template_category": "general"}
    template_fields = ("description", "category")

    async def list_categories(self) -> list[str]:
        """Categories in use on templates or versions, plus the built-in set."""
        categories: set[str] = set(DEFAULT_CATEGORIES)
        for column in (EmailTemplate.category, EmailTemplateVersion.template_category):
            result = await self.db.execute(select(column).distinct().where(column.is_not(None)))
            categories.update(result.scalars().all())
        return sorted(categories)
