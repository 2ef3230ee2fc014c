"""
Conftest for API integration tests
Defines fixtures specific to API testing

Note: These tests use ASGI transport against an in-memory SQLite database,
so no server, PostgreSQL or MinIO is required. The content store is left
uninitialized, which makes every upload local-only.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from docvault.db.models import Account
from docvault.db.session import get_db_session
from docvault.main import app
from tests.integration.api.helpers import Seed


@pytest.fixture
def seed(session_maker) -> Seed:
    return Seed(session_maker)


@pytest_asyncio.fixture
async def client(session_maker) -> AsyncClient:
    """
    Test HTTP client using ASGI transport
    Tests the FastAPI app directly without requiring a running server
    """
    async def override_get_db_session():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_get_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def admin_account(seed) -> Account:
    return await seed.account("admin", "carol@example.com")


@pytest_asyncio.fixture
async def alice_account(seed) -> Account:
    return await seed.account("user", "alice@example.com")


@pytest_asyncio.fixture
async def bob_account(seed) -> Account:
    return await seed.account("user", "bob@example.com")


@pytest_asyncio.fixture
async def guest_account(seed) -> Account:
    return await seed.account("guest", "guest@example.com")
