from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response

from opsdesk.authz.api import router as roles_router
from opsdesk.core.auth import AuthUser, get_current_user
from opsdesk.core.config import get_settings
from opsdesk.kras.api import router as kra_templates_router
from opsdesk.metrics import generate_metrics_payload, metrics_content_type
from opsdesk.tasks.api import router as tasks_router
from opsdesk.teams.api import router as teams_router
from opsdesk.users.api import router as users_router

METRICS_ROLE = "system.metrics.read"

router = APIRouter()
for entity_router in (tasks_router, kra_templates_router, users_router, teams_router, roles_router):
    router.include_router(entity_router)


@router.get("/health", tags=["system"])
def health() -> dict[str, str]:
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }


@router.get("/me", tags=["auth"])
async def me(user: AuthUser = Depends(get_current_user)) -> dict[str, str | list[str]]:
    return {"sub": user.sub, "roles": user.roles}


@router.get("/metrics", tags=["system"])
def metrics(user: AuthUser = Depends(get_current_user)) -> Response:
    if not get_settings().metrics_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="not found")
    if METRICS_ROLE not in user.roles:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Missing permission: {METRICS_ROLE}")
    return Response(content=generate_metrics_payload(), media_type=metrics_content_type())
