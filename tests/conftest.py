from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from rights_api.database import get_db
from rights_api.main import app
from rights_api.middleware.auth import get_current_user
from rights_api.services.auth_service import create_access_token

ADMIN_ID = "a0000000-0000-0000-0000-000000000001"
SALES_ID = "a0000000-0000-0000-0000-000000000002"


@pytest.fixture
def admin_token():
    return create_access_token(user_id=ADMIN_ID, role="Admin", email="admin@example.com")


@pytest.fixture
def auth_headers(admin_token):
    return {"Authorization": f"Bearer {admin_token}"}


@pytest.fixture
def mock_session():
    session = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def current_user():
    """Claims returned by the overridden get_current_user; tests may mutate the role."""
    return {"user_id": ADMIN_ID, "role": "Admin", "email": "admin@example.com"}


@pytest.fixture
async def client(mock_session, current_user):
    async def _override_db():
        yield mock_session

    async def _override_user():
        return current_user

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_current_user] = _override_user
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

