"""Service test fixtures — async DB, seeded participants, fake notifier, test client.

Invariants:
    - Every test gets a fresh SQLite database file (tmp_path)
    - get_db dependency overridden to use the test session factory
    - app.state collaborators (locks, notifier, code store) replaced per test
    - RecordingNotifier never touches SMTP; set fail=True to simulate an outage

Design Decisions:
    - File-backed SQLite over :memory:: concurrency tests need independent
      connections that still see the same database
    - Arrangements seeded directly through the ORM so each test starts from the
      state it exercises
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import trustlend.infrastructure.database as db_module
from trustlend.core.verification_codes import VerificationCodeStore
from trustlend.db.base import Base
from trustlend.infrastructure.arrangement_locks import ArrangementLocks
from trustlend.infrastructure.database import DatabaseSessionManager, get_db
from trustlend.main import app
from trustlend.models.arrangement import Arrangement
from trustlend.models.user import User
from tests.services.fakes import T0, FakeClock, RecordingNotifier


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'trustlend.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def locks():
    return ArrangementLocks()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def code_store():
    return VerificationCodeStore(ttl=timedelta(minutes=10))


async def _add_user(db: AsyncSession, name: str, email: str) -> User:
    user = User(name=name, email=email)
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def lender(test_db):
    return await _add_user(test_db, "Asha", "asha@example.com")


@pytest.fixture
async def borrower(test_db):
    return await _add_user(test_db, "Ravi", "ravi@example.com")


@pytest.fixture
async def stranger(test_db):
    return await _add_user(test_db, "Meera", "meera@example.com")


@pytest.fixture
def make_arrangement(test_db, lender, borrower):
    """Factory: seed an arrangement between lender and borrower."""

    async def _make(
        total: str = "1000", status: str = "active", **fields,
    ) -> Arrangement:
        arrangement = Arrangement(
            title=fields.pop("title", "Laptop repair"),
            total_amount=Decimal(total),
            currency=fields.pop("currency", "INR"),
            lender_id=lender.id,
            borrower_id=borrower.id,
            repayment_style=fields.pop("repayment_style", "flexible"),
            status=status,
            created_at=fields.pop("created_at", T0),
            **fields,
        )
        test_db.add(arrangement)
        await test_db.commit()
        return arrangement

    return _make


@pytest.fixture
async def arrangement(make_arrangement):
    return await make_arrangement()


@pytest.fixture
async def client(test_engine, test_session_factory, locks, notifier, code_store):
    """FastAPI test client with DB dependency and app.state collaborators overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    app.state.arrangement_locks = locks
    app.state.notifier = notifier
    app.state.code_store = code_store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager


@pytest.fixture
async def work_db(test_session_factory):
    """Session for the workflow under test, separate from the seeding session.

    A domain error rolls back work_db and expires its objects; seeded objects in
    test_db stay readable. Use `await test_db.refresh(obj)` to see committed state.
    """
    async with test_session_factory() as session:
        yield session
