"""
Pytest configuration and fixtures.
"""

import itertools
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker

from src.models import Admin, Agent, Base, Landlord, RankingTier, Tenant
from src.services import notifications


# Test database URL (use SQLite for tests)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

_sequence = itertools.count(1)


class RecordingSender:
    """Notification sender that keeps what it was asked to send."""

    def __init__(self):
        self.sent = []

    async def send(self, recipient_id, kind, template_id, data):
        self.sent.append((recipient_id, kind, template_id, data))


class FailingSender:
    async def send(self, recipient_id, kind, template_id, data):
        raise ConnectionError("mail relay unreachable")


@pytest_asyncio.fixture
async def db_engine():
    """Create test database engine."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with async_session() as session:
        yield session


@pytest.fixture(autouse=True)
def sent_notifications(monkeypatch):
    """Replace the database-backed sender so no test reaches a real database."""
    sender = RecordingSender()
    monkeypatch.setattr(notifications, "default_sender", sender)
    return sender


@pytest.fixture
def failing_sender():
    return FailingSender()


def _actor_fields(prefix: str, balance, total_earned, kwargs: dict) -> dict:
    n = next(_sequence)
    balance = Decimal(str(balance))
    total_earned = Decimal(str(total_earned)) if total_earned is not None else balance
    fields = {
        "first_name": f"{prefix.capitalize()}{n}",
        "last_name": "Test",
        "email": f"{prefix}{n}@example.com",
        "commission_balance": balance,
        "commission_total_earned": total_earned,
    }
    fields.update(kwargs)
    return fields


@pytest_asyncio.fixture
async def make_agent(db_session):
    """Factory for agents with valid bank details."""

    async def _make(balance=0, total_earned=None, **kwargs) -> Agent:
        defaults = {
            "bank_name": "First Bank",
            "account_number": "0123456789",
            "account_name": "Agent Test",
        }
        defaults.update(kwargs)
        agent = Agent(**_actor_fields("agent", balance, total_earned, defaults))
        db_session.add(agent)
        await db_session.commit()
        return agent

    return _make


@pytest_asyncio.fixture
async def make_landlord(db_session):
    async def _make(balance=0, total_earned=None, **kwargs) -> Landlord:
        landlord = Landlord(**_actor_fields("landlord", balance, total_earned, kwargs))
        db_session.add(landlord)
        await db_session.commit()
        return landlord

    return _make


@pytest_asyncio.fixture
async def make_tenant(db_session):
    async def _make(balance=0, total_earned=None, **kwargs) -> Tenant:
        tenant = Tenant(**_actor_fields("tenant", balance, total_earned, kwargs))
        db_session.add(tenant)
        await db_session.commit()
        return tenant

    return _make


@pytest_asyncio.fixture
async def admin(db_session) -> Admin:
    admin = Admin(username="admin", display_name="Admin")
    db_session.add(admin)
    await db_session.commit()
    return admin


@pytest_asyncio.fixture
async def bronze_silver_tiers(db_session) -> list[RankingTier]:
    tiers = [
        RankingTier(name="Silver", minimum_earnings=Decimal("1000000"), bonus=Decimal("5"), order=1),
        RankingTier(name="Bronze", minimum_earnings=Decimal("500000"), bonus=Decimal("2.5"), order=2),
    ]
    db_session.add_all(tiers)
    await db_session.commit()
    return tiers
