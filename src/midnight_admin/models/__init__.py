"""SQLAlchemy models. Import all models here so metadata.create_all sees them."""

from midnight_admin.models.activity_log import AdminActivityLog
from midnight_admin.models.base import Base
from midnight_admin.models.email_template import EmailTemplate, EmailTemplateVersion
from midnight_admin.models.llm_call_log import LLMCallLog
from midnight_admin.models.prompt_template import PromptTemplate, PromptTemplateVersion

__all__ = [
    "Base",
    "PromptTemplate",
    "PromptTemplateVersion",
    "EmailTemplate",
    "EmailTemplateVersion",
    "LLMCallLog",
    "AdminActivityLog",
]
