import os
import tempfile

# Settings are read at import time, so they have to be in place first
_IMPORT_DIR = tempfile.mkdtemp(prefix="coaching-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_IMPORT_DIR}/import.db"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["VALIDATE_CONFIG_ON_IMPORT"] = "false"
os.environ["RESEND_API_KEY"] = ""

from dataclasses import dataclass
from datetime import date, timedelta
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.core.database import Base, get_session
from app.core.dependencies import Actor
from app.core.jwt_auth import create_access_token
from app.core import init_db  # noqa: F401  registers every table
from app.accounts.crud.identity import resolve_profile_id
from app.accounts.crud.players import create_player
from app.accounts.crud.users import create_user
from app.accounts.models.users import User, UserRole
from app.accounts.schemas.players import PlayerCreate
from app.scheduling.crud.sessions import create_session
from app.scheduling.schemas.sessions import SessionCreate


@dataclass
class Account:
    user: User
    actor: Actor
    profile_id: int

    @property
    def headers(self) -> dict:
        token = create_access_token(self.user.id, self.user.role)
        return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path}/test.db")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def sent_emails(monkeypatch):
    """Outbound e-mail is replaced for every test"""
    mock = AsyncMock(return_value=True)
    monkeypatch.setattr(
        "app.notifications.services.notification_service.send_email", mock
    )
    return mock


async def make_account(db, email: str, first_name: str, role: UserRole) -> Account:
    user = await create_user(db, email, first_name, role, last_name="Tester")
    actor = Actor(user_id=user.id, role=UserRole(user.role))
    profile_id = await resolve_profile_id(db, actor)
    return Account(user=user, actor=actor, profile_id=profile_id)


@pytest_asyncio.fixture
async def coach(db):
    return await make_account(db, "coach@example.com", "Carla", UserRole.coach)


@pytest_asyncio.fixture
async def other_coach(db):
    return await make_account(db, "coach2@example.com", "Omar", UserRole.coach)


@pytest_asyncio.fixture
async def parent(db):
    return await make_account(db, "parent@example.com", "Paula", UserRole.parent)


@pytest_asyncio.fixture
async def other_parent(db):
    return await make_account(db, "parent2@example.com", "Ben", UserRole.parent)


@pytest_asyncio.fixture
async def player(db, coach, parent):
    return await create_player(
        db,
        coach.profile_id,
        PlayerCreate(first_name="Sam", last_name="Lee", parent_id=parent.profile_id),
    )


@pytest_asyncio.fixture
async def other_player(db, coach, other_parent):
    return await create_player(
        db,
        coach.profile_id,
        PlayerCreate(first_name="Yuki", last_name="Mori", parent_id=other_parent.profile_id),
    )


@pytest.fixture
def next_week():
    return date.today() + timedelta(days=7)


@pytest.fixture
def make_session(db, coach, next_week):
    async def _make(
        start_time: str = "16:00",
        end_time: str = "17:00",
        max_participants: int = 1,
        session_date: date = None,
        coach_id: int = None,
    ):
        return await create_session(
            db,
            coach_id or coach.profile_id,
            SessionCreate(
                date=session_date or next_week,
                start_time=start_time,
                end_time=end_time,
                location="Main court",
                max_participants=max_participants,
            ),
        )

    return _make


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
