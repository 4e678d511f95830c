from collections.abc import Callable

from fastapi import Depends, HTTPException, status

from opsdesk.core.auth import ActorUser, get_current_actor


def require_permissions(*permissions: str) -> Callable[..., ActorUser]:
    def checker(actor: ActorUser = Depends(get_current_actor)) -> ActorUser:
        if actor.is_super_admin:
            return actor
        missing_permissions = [permission for permission in permissions if permission not in actor.permissions]
        if missing_permissions:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Missing permissions: {', '.join(missing_permissions)}",
            )
        return actor

    return checker
