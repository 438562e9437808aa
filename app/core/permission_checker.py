from fastapi import Depends, Request
from app.core.exceptions import ForbiddenError
from app.core.security import get_current_user
from app.core.utils import logger
from app.models.user_model import User
from app.schemas.user_schemas import UserRole


# Tier label used in denial messages. Keyed by every role so a new role
# fails loudly here instead of silently passing a check.
ROLE_TIERS = {
    UserRole.MOTHER: "patient",
    UserRole.HEALTH_WORKER: "health-worker",
    UserRole.ADMIN: "admin",
}


def _client_host(request: Request) -> str:
    if request is not None and request.client:
        return getattr(request.client, "host", "unknown")
    return "unknown"


def require_role(*roles: UserRole):
    """
    Dependency factory that admits users holding one of ``roles``.

    Missing or invalid credentials raise 401 (from ``get_current_user``);
    an authenticated user outside the allowed tier gets 403.

    Usage:
        current_user: User = Depends(require_role(UserRole.ADMIN))
    """
    allowed = frozenset(roles)
    tiers = ", ".join(ROLE_TIERS[role] for role in roles)

    async def checker(
        request: Request,
        current_user: User = Depends(get_current_user),
    ) -> User:
        try:
            user_role = current_user.user_role
        except ValueError:
            user_role = None

        if user_role not in allowed:
            logger.log_security_event(
                {
                    "event_type": "unauthorized_role_access_attempt",
                    "user_id": str(current_user.id),
                    "user_role": current_user.role,
                    "required_roles": [role.value for role in roles],
                    "path": request.url.path,
                    "ip_address": _client_host(request),
                }
            )
            raise ForbiddenError(f"Access denied. Requires {tiers} access")

        logger.log_debug(
            {
                "event_type": "access_granted_role",
                "user_id": str(current_user.id),
                "user_role": user_role.value,
            }
        )
        return current_user

    return checker


def require_mother():
    return require_role(UserRole.MOTHER)


def require_health_worker():
    return require_role(UserRole.HEALTH_WORKER)


def require_admin():
    return require_role(UserRole.ADMIN)
