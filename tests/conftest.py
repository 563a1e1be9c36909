"""Pytest fixtures and configuration."""

from collections.abc import AsyncGenerator
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from procapacity.core.dates import utcnow
from procapacity.core.permissions import Role
from procapacity.core.security import create_token_pair, hash_password
from procapacity.db.postgres import Base, get_db
from procapacity.main import app
from procapacity.models.sql.team_member import TeamMember
from procapacity.models.sql.user import User
from procapacity.models.sql.workspace import Workspace
from procapacity.workers.celery_app import celery_app

# Test database URL (use SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Create test engine
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    poolclass=StaticPool,
)

# Create test session factory
test_session_factory = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

OWNER_PASSWORD = "OwnerPass123"
MEMBER_PASSWORD = "MemberPass123"


@pytest_asyncio.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with test_session_factory() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def send_task() -> MagicMock:
    """Capture queued Celery tasks instead of talking to a broker."""
    with patch.object(celery_app, "send_task", MagicMock()) as mock_send:
        yield mock_send


@pytest.fixture
def refresh_store() -> SimpleNamespace:
    """Replace the Redis refresh token store with mocks that accept any token."""
    store = SimpleNamespace(
        store=AsyncMock(),
        is_current=AsyncMock(return_value=True),
        revoke=AsyncMock(),
    )
    with (
        patch("procapacity.api.v1.auth.store_refresh_token", store.store),
        patch("procapacity.api.v1.auth.is_current_refresh_token", store.is_current),
        patch("procapacity.api.v1.auth.revoke_refresh_token", store.revoke),
        patch("procapacity.api.v1.users.revoke_refresh_token", store.revoke),
    ):
        yield store


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession, send_task: MagicMock, refresh_store: SimpleNamespace
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with overridden dependencies."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def workspace(db_session: AsyncSession) -> Workspace:
    """A workspace in an active Growth trial."""
    workspace = Workspace(
        id=uuid4(),
        name="Acme Agency",
        plan="GROWTH",
        billing_period="MONTHLY",
        trial_ends_at=utcnow() + timedelta(days=14),
        current_seats=1,
        included_seats=30,
    )
    db_session.add(workspace)
    await db_session.commit()
    await db_session.refresh(workspace)
    return workspace


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession, workspace: Workspace) -> User:
    """Create the workspace owner."""
    user = User(
        id=uuid4(),
        email="owner@example.com",
        name="Olivia Owner",
        hashed_password=hash_password(OWNER_PASSWORD),
        role=Role.OWNER.value,
        workspace_id=workspace.id,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest_asyncio.fixture
async def member(db_session: AsyncSession, workspace: Workspace, owner: User) -> User:
    """Create a non-owner user in the same workspace."""
    user = User(
        id=uuid4(),
        email="member@example.com",
        name="Max Member",
        hashed_password=hash_password(MEMBER_PASSWORD),
        role=Role.MEMBER.value,
        workspace_id=workspace.id,
    )
    db_session.add(user)
    workspace.current_seats = 2
    await db_session.commit()
    await db_session.refresh(user)
    return user


def _headers(user: User) -> dict:
    access_token, _ = create_token_pair(user.id, user.workspace_id, user.role)
    return {"Authorization": f"Bearer {access_token}"}


@pytest.fixture
def auth_headers(owner: User) -> dict:
    """Create authentication headers for the owner."""
    return _headers(owner)


@pytest.fixture
def member_headers(member: User) -> dict:
    """Create authentication headers for the member."""
    return _headers(member)


@pytest_asyncio.fixture
async def team_member(db_session: AsyncSession, workspace: Workspace) -> TeamMember:
    """A 40 hour/week designer."""
    person = TeamMember(
        id=uuid4(),
        workspace_id=workspace.id,
        name="Dana Designer",
        role="Designer",
        title="Senior Designer",
        skills=["Figma", "Branding"],
        default_weekly_capacity_hours=40,
    )
    db_session.add(person)
    await db_session.commit()
    await db_session.refresh(person)
    return person
