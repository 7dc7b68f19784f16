"""
Shared fixtures: a file-backed SQLite database per test, seeded branches and sessions.

SQLite runs every transaction as BEGIN IMMEDIATE (see database.py), so
concurrent sessions against the same file serialize like row-locked writers.
"""

from decimal import Decimal

import pytest
import pytest_asyncio

from artgram_booking_platform.database import create_database_engine, create_session_factory, create_tables
from artgram_booking_platform.models import Activity, ActivitySession, Branch
from artgram_booking_platform.schemas.common import Actor, ActorRole

# A Tuesday; 2026-10-26 is the following Monday
SESSION_DATE = "2026-10-20"
MONDAY = "2026-10-26"


# ============================================================================
# Database
# ============================================================================


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_database_engine(f"sqlite+aiosqlite:///{tmp_path / 'artgram.db'}")
    await create_tables(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def persist(session_factory, *objects):
    """Insert and commit objects in a throwaway session."""
    async with session_factory() as session:
        session.add_all(objects)
        await session.commit()
    return objects[0] if len(objects) == 1 else objects


# ============================================================================
# Seed data
# ============================================================================


@pytest_asyncio.fixture
async def branch(session_factory):
    return await persist(session_factory, Branch(
        name="Artgram Hyderabad",
        location="Hyderabad",
        allow_slime=True,
        allow_tufting=True,
        allow_monday=False,
    ))


@pytest_asyncio.fixture
async def slime_only_branch(session_factory):
    return await persist(session_factory, Branch(
        name="Artgram Vijayawada",
        location="Vijayawada",
        allow_slime=True,
        allow_tufting=False,
        allow_monday=False,
    ))


@pytest.fixture
def make_session(session_factory, branch):
    """Factory persisting a session at the default branch."""

    async def _make(total_seats: int = 10, booked_seats: int = 0, **overrides) -> ActivitySession:
        fields = dict(
            branch_id=branch.id,
            date=SESSION_DATE,
            time="10:00",
            activity=Activity.SLIME,
            label="10:00 AM",
            total_seats=total_seats,
            booked_seats=booked_seats,
            available_seats=total_seats - booked_seats,
            type="Slime Play & Demo",
            age_group="3+ years",
            price=Decimal("750.00"),
            is_active=True,
        )
        fields.update(overrides)
        return await persist(session_factory, ActivitySession(**fields))

    return _make


@pytest_asyncio.fixture
async def activity_session(make_session):
    return await make_session(total_seats=15)


# ============================================================================
# Actors
# ============================================================================


@pytest.fixture
def admin():
    return Actor(id="admin-1", role=ActorRole.ADMIN, name="Admin")


@pytest.fixture
def manager(branch):
    return Actor(id="manager-1", role=ActorRole.BRANCH_MANAGER, branch_id=branch.id, name="Ravi")


@pytest.fixture
def other_manager(slime_only_branch):
    return Actor(id="manager-2", role=ActorRole.BRANCH_MANAGER, branch_id=slime_only_branch.id, name="Kiran")


@pytest.fixture
def customer():
    return Actor(id="cust-1", role=ActorRole.CUSTOMER, name="Asha", email="asha@example.com", phone="9000000001")


@pytest.fixture
def another_customer():
    return Actor(id="cust-2", role=ActorRole.CUSTOMER, name="Meera", email="meera@example.com")
