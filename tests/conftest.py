"""
Pytest Configuration and Fixtures
Shared fixtures and configuration for all tests
"""

import os

# Settings are read at import time and SECRET_KEY has no default
os.environ.setdefault("SECRET_KEY", "docvault-test-secret-key-0123456789abcdef")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from docvault.db.base import Base
from docvault.db.models import AccountRole
from tests.factories import make_account

TEST_DATABASE_URL = "sqlite+aiosqlite://"


# ============================================
# DATABASE
# ============================================

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite engine, one shared connection per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_maker):
    async with session_maker() as session:
        yield session


# ============================================
# TRANSIENT ACCOUNTS
# ============================================

@pytest.fixture
def admin():
    return make_account(AccountRole.ADMIN.value, "carol@example.com")


@pytest.fixture
def alice():
    return make_account(AccountRole.USER.value, "alice@example.com")


@pytest.fixture
def bob():
    return make_account(AccountRole.USER.value, "bob@example.com")


@pytest.fixture
def guest():
    return make_account(AccountRole.GUEST.value, "guest@example.com")
