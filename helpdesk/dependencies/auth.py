from collections.abc import Callable
from enum import Enum
from typing import Annotated

from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from helpdesk.core.config import Settings, get_settings


class Role(str, Enum):
    """Supported roles."""

    ADMIN = "admin"
    EMPLOYEE = "employee"
    PROJECT_MANAGER = "project_manager"
    CLIENT = "client"
    CLIENT_HEAD = "client_head"


class User:
    """Identity attached to a request by the identity provider's token."""

    def __init__(self, id: str, email: str, role: Role):
        self.id = id
        self.email = email
        self.role = role

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles


bearer_scheme = HTTPBearer(auto_error=False)


def decode_token(token: str, settings: Settings) -> User:
    """Validate a bearer token and return the identity it carries."""

    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise HTTPException(status_code=401, detail="Invalid or expired token") from exc

    user_id, email, role = claims.get("id"), claims.get("email"), claims.get("role")
    if not user_id or not email:
        raise HTTPException(status_code=401, detail="Token is missing identity claims")
    try:
        return User(id=str(user_id), email=str(email), role=Role(role))
    except ValueError as exc:
        raise HTTPException(status_code=401, detail=f"Unknown role {role!r}") from exc


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=401, detail="No token provided")
    return decode_token(credentials.credentials, settings)


def role_required(*roles: Role) -> Callable[[User], User]:
    """Dependency factory ensuring the current user has one of the requested roles."""

    async def dependency(user: Annotated[User, Depends(get_current_user)]) -> User:
        if not user.has_role(*roles):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency


CurrentUser = Annotated[User, Depends(get_current_user)]
