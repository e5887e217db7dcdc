import pytest
from fastapi import HTTPException
from jose import jwt

from helpdesk.core.config import Settings
from helpdesk.dependencies.auth import Role, User, decode_token, role_required

SETTINGS = Settings(jwt_secret="test-secret")


def _token(claims: dict, secret: str = "test-secret") -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.mark.asyncio
async def test_role_required_allows_authorized_user():
    dependency = role_required(Role.ADMIN, Role.EMPLOYEE)
    user = User("u-1", "alice@example.com", Role.EMPLOYEE)
    result = await dependency(user)  # type: ignore[arg-type]
    assert result.email == "alice@example.com"


@pytest.mark.asyncio
async def test_role_required_rejects_unauthorized_user():
    dependency = role_required(Role.ADMIN)
    user = User("u-2", "bob@example.com", Role.CLIENT)
    with pytest.raises(HTTPException) as exc:
        await dependency(user)  # type: ignore[arg-type]

    assert exc.value.status_code == 403
    assert exc.value.detail == "Insufficient permissions"


def test_decode_token_returns_identity():
    user = decode_token(_token({"id": "u-3", "email": "pm@example.com", "role": "project_manager"}), SETTINGS)

    assert user.id == "u-3"
    assert user.role is Role.PROJECT_MANAGER


@pytest.mark.parametrize(
    "token",
    [
        _token({"id": "u-4", "email": "x@example.com", "role": "admin"}, secret="wrong"),
        _token({"email": "x@example.com", "role": "admin"}),
        _token({"id": "u-4", "email": "x@example.com", "role": "superuser"}),
        "not-a-jwt",
    ],
)
def test_decode_token_rejects_bad_tokens(token):
    with pytest.raises(HTTPException) as exc:
        decode_token(token, SETTINGS)

    assert exc.value.status_code == 401
