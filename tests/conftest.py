"""Shared pytest fixtures for unit and integration tests."""

import os
import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest

# Settings are read at import time; keep test runs local and quiet
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./.test_billing.db")

from httpx import ASGITransport, AsyncClient

from app import models  # noqa: F401  (registers tables on Base.metadata)
from app.api import deps
from app.config import settings
from app.database import Base, build_engine, build_session_factory
from app.main import app
from app.models.enums import GymStatus, MembershipStatus, PricingPlanType
from app.models.tenant import Gym, Membership


@pytest.fixture
async def engine(tmp_path):
    """Fresh SQLite database file per test."""
    test_engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'billing_test.db'}")
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def unique_suffix() -> str:
    """Unique suffix for test data to avoid collisions."""
    return str(uuid.uuid4())[:8]


@pytest.fixture
def make_gym(session_factory, unique_suffix):
    """Create a gym with a billing profile and return it (detached)."""

    async def _make_gym(
        name: str = "Iron Temple",
        rate_per_member: str = "75.00",
        pricing_plan_type: PricingPlanType = PricingPlanType.STANDARD,
        billing_cycle_start: int = 1,
        status: GymStatus = GymStatus.ACTIVE,
        created_at: datetime = datetime(2023, 1, 1),
    ) -> Gym:
        gym = Gym(
            name=f"{name} {unique_suffix}",
            owner="Owner",
            email=f"owner_{unique_suffix}@gym.example.com",
            phone="+910000000000",
            status=status,
            pricing_plan_type=pricing_plan_type,
            rate_per_member=Decimal(rate_per_member),
            billing_cycle_start=billing_cycle_start,
            created_at=created_at,
            updated_at=created_at,
        )
        async with session_factory() as session:
            session.add(gym)
            await session.commit()
            await session.refresh(gym)
        return gym

    return _make_gym


@pytest.fixture
def add_members(session_factory):
    """Add memberships to a gym; active and far in the future by default."""

    async def _add_members(
        gym_id,
        count: int,
        status: MembershipStatus = MembershipStatus.ACTIVE,
        end_date: date = date(2099, 12, 31),
    ) -> None:
        async with session_factory() as session:
            session.add_all([
                Membership(
                    gym_id=gym_id,
                    member_name=f"Member {i}",
                    status=status,
                    start_date=date(2023, 1, 1),
                    end_date=end_date,
                )
                for i in range(count)
            ])
            await session.commit()

    return _add_members


def _get_api_base() -> str:
    return f"http://test{settings.API_V1_PREFIX}"


@pytest.fixture
def api_base() -> str:
    """Base URL for API requests."""
    return _get_api_base()


@pytest.fixture
async def async_client(session_factory, api_base: str):
    """Async HTTP client bound to the per-test database."""

    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[deps.get_db] = _get_db
    app.dependency_overrides[deps.get_session_factory] = lambda: session_factory

    transport = ASGITransport(app=app)
    client = AsyncClient(transport=transport, base_url=api_base, timeout=30.0)
    yield client
    await client.aclose()
    app.dependency_overrides.clear()
