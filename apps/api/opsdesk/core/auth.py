from dataclasses import dataclass, field

from fastapi import Depends
from jose import JWTError, jwt
from starlette.requests import Request

from opsdesk.context import get_correlation_id
from opsdesk.core.config import get_settings


@dataclass
class AuthUser:
    sub: str
    roles: list[str]


@dataclass
class ActorUser:
    user_id: str
    permissions: set[str] = field(default_factory=set)
    is_super_admin: bool = False
    correlation_id: str | None = None


async def get_current_user(request: Request) -> AuthUser:
    auth_header = request.headers.get("authorization", "")
    token = auth_header.replace("Bearer ", "") if auth_header.startswith("Bearer ") else ""

    if not token:
        return AuthUser(sub="anonymous", roles=["guest"])

    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        subject = str(payload.get("sub", "anonymous"))
        roles = payload.get("roles", ["user"])
        if not isinstance(roles, list):
            roles = ["user"]
        request.state.context.user_id = subject
        return AuthUser(sub=subject, roles=[str(role) for role in roles])
    except JWTError:
        return AuthUser(sub="anonymous", roles=["guest"])


def get_current_actor(request: Request, auth_user: AuthUser = Depends(get_current_user)) -> ActorUser:
    correlation_id = get_correlation_id() or getattr(getattr(request.state, "context", None), "request_id", None)
    normalized_roles = {str(role).lower() for role in auth_user.roles}
    return ActorUser(
        user_id=auth_user.sub,
        permissions=set(auth_user.roles),
        is_super_admin="admin" in normalized_roles or "system.admin" in normalized_roles,
        correlation_id=correlation_id,
    )
