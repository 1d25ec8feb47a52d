"""Single POST endpoint that dispatches ``{action, params}`` to a registered handler."""

from __future__ import annotations

import pydantic
import structlog
from fastapi import APIRouter, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import ORJSONResponse

# Handler modules register themselves on import
from midnight_admin.api.actions import emails, llm_logs, prompts  # noqa: F401
from midnight_admin.api.actions.registry import ActionContext, get_action
from midnight_admin.api.deps import AdminUser, AppSettings, DBSession
from midnight_admin.common.errors import AuthorizationError, ValidationError, utc_timestamp
from midnight_admin.core.cache.template_cache import get_template_cache
from midnight_admin.schemas.common import ActionRequest
from midnight_admin.services.activity import record_activity

logger = structlog.stdlib.get_logger()

router = APIRouter(tags=["Admin API"])


@router.post("/admin-api", summary="Dispatch an admin action")
async def dispatch(
    body: ActionRequest,
    request: Request,
    admin: AdminUser,
    db: DBSession,
    settings: AppSettings,
) -> ORJSONResponse:
    action_def = get_action(body.action)
    if not action_def.read_only and not admin.can_write:
        raise AuthorizationError(
            f"Action {action_def.name} requires an admin key", details={"action": action_def.name}
        )

    try:
        params = action_def.params_model.model_validate(body.params)
    except pydantic.ValidationError as e:
        problems = [
            {"field": ".".join(str(part) for part in err["loc"]) or "params", "message": err["msg"]}
            for err in e.errors(include_url=False)
        ]
        raise ValidationError(
            f"Invalid params for {action_def.name}: {problems[0]['field']}: {problems[0]['message']}",
            details={"action": action_def.name, "errors": problems},
        ) from e

    ctx = ActionContext(
        db=db,
        admin=admin,
        settings=settings,
        session_factory=request.app.state.db_session_factory,
        cache=get_template_cache(),
        request_id=getattr(request.state, "request_id", None),
    )

    await logger.adebug("admin.action", action=action_def.name, actor=admin.admin_id)
    result = await action_def.handler(params, ctx)

    if not action_def.read_only:
        template_id = getattr(params, "template_id", None)
        await record_activity(
            db,
            actor_id=admin.admin_id,
            action=action_def.name,
            target_type=action_def.target_type,
            target_id=str(template_id) if template_id else None,
            details=body.params,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )

    return ORJSONResponse(
        content={
            "success": True,
            "data": jsonable_encoder(result, by_alias=True),
            "timestamp": utc_timestamp(),
        }
    )
