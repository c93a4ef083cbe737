"""
API tests for /auth: password reset, invite acceptance and the error
envelope on authentication failures.
"""

import uuid
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from rights_api.main import app
from rights_api.middleware.auth import get_current_user
from rights_api.models.user import User
from rights_api.services.auth_service import hash_password, verify_password

RESET_MESSAGE = {"message": "If the email exists, a reset link will be sent"}


def _user(**overrides) -> User:
    values = dict(
        id=uuid.uuid4(),
        email="admin@example.com",
        first_name="Ada",
        role="Admin",
        is_active=True,
        password_hash="existing-hash",
    )
    values.update(overrides)
    return User(**values)


def _one(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


# ---------------------------------------------------------------------------
# Forgot / reset password
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_forgot_password_never_returns_token_for_known_email(client, mock_session):
    admin = _user()
    mock_session.execute = AsyncMock(return_value=_one(admin))

    resp = await client.post("/auth/forgot-password", json={"email": "admin@example.com"})

    assert resp.status_code == 200
    assert resp.json() == RESET_MESSAGE
    assert admin.reset_token is not None
    assert admin.reset_token not in resp.text


@pytest.mark.asyncio
async def test_forgot_password_unknown_email_gets_same_response(client, mock_session):
    mock_session.execute = AsyncMock(return_value=_one(None))

    resp = await client.post("/auth/forgot-password", json={"email": "nobody@example.com"})

    assert resp.status_code == 200
    assert resp.json() == RESET_MESSAGE
    mock_session.flush.assert_not_called()


@pytest.mark.asyncio
async def test_reset_password_with_unknown_token(client, mock_session):
    mock_session.execute = AsyncMock(return_value=_one(None))

    resp = await client.post(
        "/auth/reset-password", json={"token": "nope", "password": "NewPassword1!"}
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "RESET_TOKEN_INVALID"


@pytest.mark.asyncio
async def test_reset_password_with_expired_token(client, mock_session):
    user = _user(reset_token="tok", reset_token_expiry=datetime.utcnow() - timedelta(minutes=1))
    mock_session.execute = AsyncMock(return_value=_one(user))

    resp = await client.post(
        "/auth/reset-password", json={"token": "tok", "password": "NewPassword1!"}
    )

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "RESET_TOKEN_EXPIRED"
    assert user.password_hash == "existing-hash"


@pytest.mark.asyncio
async def test_reset_password_sets_new_hash_and_clears_token(client, mock_session):
    user = _user(reset_token="tok", reset_token_expiry=datetime.utcnow() + timedelta(minutes=30))
    mock_session.execute = AsyncMock(return_value=_one(user))

    resp = await client.post(
        "/auth/reset-password", json={"token": "tok", "password": "NewPassword1!"}
    )

    assert resp.status_code == 204
    assert verify_password("NewPassword1!", user.password_hash)
    assert user.reset_token is None
    audit = mock_session.add.call_args.args[0]
    assert audit.action == "Password Reset"


# ---------------------------------------------------------------------------
# Accept invite
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_accept_invite_expired(client, mock_session):
    user = _user(
        is_active=False,
        password_hash=None,
        invite_token="inv",
        invite_status="pending",
        invite_token_expiry=datetime.utcnow() - timedelta(hours=1),
    )
    mock_session.execute = AsyncMock(return_value=_one(user))

    resp = await client.post("/auth/accept-invite", json={"token": "inv", "password": "Welcome123!"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVITE_EXPIRED"
    assert user.is_active is False


@pytest.mark.asyncio
async def test_accept_invite_already_accepted_is_invalid(client, mock_session):
    user = _user(invite_token="inv", invite_status="accepted")
    mock_session.execute = AsyncMock(return_value=_one(user))

    resp = await client.post("/auth/accept-invite", json={"token": "inv", "password": "Welcome123!"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVITE_INVALID"


@pytest.mark.asyncio
async def test_accept_invite_activates_user(client, mock_session):
    user = _user(
        is_active=False,
        password_hash=None,
        invite_token="inv",
        invite_status="pending",
        invite_token_expiry=datetime.utcnow() + timedelta(hours=1),
    )
    mock_session.execute = AsyncMock(return_value=_one(user))

    resp = await client.post("/auth/accept-invite", json={"token": "inv", "password": "Welcome123!"})

    assert resp.status_code == 200
    assert resp.json()["access_token"]
    assert user.is_active is True
    assert user.invite_status == "accepted"
    assert user.invite_token is None


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_bad_credentials_error_envelope(client, mock_session):
    user = _user(password_hash=hash_password("RightPassword1!"))
    mock_session.execute = AsyncMock(return_value=_one(user))

    resp = await client.post(
        "/auth/login", json={"email": "admin@example.com", "password": "WrongPassword1!"}
    )

    assert resp.status_code == 401
    assert resp.json() == {
        "error": {"code": "AUTH_INVALID_CREDENTIALS", "message": "Invalid email or password"}
    }


@pytest.mark.asyncio
async def test_invalid_bearer_token_error_envelope(client):
    app.dependency_overrides.pop(get_current_user)

    resp = await client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert resp.status_code == 401
    assert resp.json() == {
        "error": {"code": "AUTH_TOKEN_INVALID", "message": "Invalid or expired token"}
    }
