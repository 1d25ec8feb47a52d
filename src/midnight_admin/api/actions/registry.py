"""
Action registry.

Handlers register under their dashboard action name with the params model
that validates their input. Actions whose name starts with a read-only
prefix are open to viewer keys and are not written to the activity log.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from midnight_admin.api.deps import AdminIdentity
from midnight_admin.common.errors import ValidationError
from midnight_admin.config import Settings
from midnight_admin.core.cache.template_cache import TemplateCache
from midnight_admin.schemas.common import ActionParams, NoParams

READ_ONLY_PREFIXES = ("get", "search", "verify", "export", "preview")


@dataclass
class ActionContext:
    db: AsyncSession
    admin: AdminIdentity
    settings: Settings
    session_factory: async_sessionmaker[AsyncSession]
    cache: TemplateCache | None = None
    request_id: str | None = None

    @property
    def actor_id(self) -> str:
        return self.admin.admin_id


ActionHandler = Callable[[Any, ActionContext], Awaitable[Any]]


@dataclass(frozen=True)
class RegisteredAction:
    name: str
    handler: ActionHandler
    params_model: type[BaseModel]
    target_type: str

    @property
    def read_only(self) -> bool:
        return self.name.startswith(READ_ONLY_PREFIXES)


_actions: dict[str, RegisteredAction] = {}


def action(
    name: str,
    params_model: type[ActionParams] = NoParams,
    *,
    target_type: str,
) -> Callable[[ActionHandler], ActionHandler]:
    """Register ``handler(params, ctx)`` under ``name``."""

    def decorator(handler: ActionHandler) -> ActionHandler:
        if name in _actions:
            raise RuntimeError(f"Action registered twice: {name}")
        _actions[name] = RegisteredAction(name, handler, params_model, target_type)
        return handler

    return decorator


def get_action(name: str) -> RegisteredAction:
    if not name:
        raise ValidationError("Action is required")
    action_def = _actions.get(name)
    if action_def is None:
        raise ValidationError(f"Unknown action: {name}", details={"action": name})
    return action_def


def registered_actions() -> list[str]:
    return sorted(_actions)
