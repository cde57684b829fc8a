from dataclasses import dataclass
from typing import Iterable, Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.accounts.models.users import UserRole
from app.core.exceptions import AuthenticationError, ForbiddenError
from app.core.jwt_auth import jwt_manager

# auto_error=False so a missing header is reported as 401, not 403
security = HTTPBearer(
    scheme_name="JWT Token",
    description="Access token issued by the auth service",
    auto_error=False,
)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as carried by the access token"""

    user_id: int
    role: UserRole

    @property
    def is_coach(self) -> bool:
        return self.role == UserRole.coach

    @property
    def is_parent(self) -> bool:
        return self.role == UserRole.parent


async def get_current_actor(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Actor:
    if credentials is None or not credentials.credentials.strip():
        raise AuthenticationError("Authentication credentials were not provided")

    payload = jwt_manager.decode_token(credentials.credentials)

    try:
        user_id = int(payload["sub"])
        role = UserRole(payload["role"])
    except (ValueError, KeyError):
        raise AuthenticationError("Token carries an unknown identity")

    return Actor(user_id=user_id, role=role)


def require_roles(allowed_roles: Iterable[UserRole]):
    """
    Dependency factory restricting an endpoint to the given roles

    Usage:
        @router.get("/pending")
        async def pending(actor: Actor = Depends(require_roles([UserRole.coach]))):
            ...
    """
    allowed = frozenset(allowed_roles)

    async def role_dependency(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in allowed:
            raise ForbiddenError(
                "Access denied for this role",
                details={
                    "role": actor.role.value,
                    "required": sorted(r.value for r in allowed),
                },
            )
        return actor

    return role_dependency


require_coach = require_roles([UserRole.coach])
require_parent = require_roles([UserRole.parent])
require_coach_or_parent = require_roles([UserRole.coach, UserRole.parent])
