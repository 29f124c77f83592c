"""
Test Configuration and Fixtures
================================

Central configuration for pytest with all shared fixtures.

Features:
- SQLite in-memory database (aiosqlite) for testing
- Static SLA configuration on a UTC business calendar
- Adjustable clock for the HTTP application
- Dependency overrides for database session, config and clock
"""

import os
from typing import AsyncGenerator

import httpx
import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Set testing environment before importing app modules
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SLA_EVALUATION_INTERVAL"] = "0"
os.environ.pop("RESEND_API_KEY", None)

from designdream.infrastructure.database import Base, get_session
from designdream.main import app as main_app
from designdream.sla.domain import SLAConfig, SLAStateMachine
from designdream.sla.infrastructure import models  # noqa: F401
from designdream.sla.interfaces.controllers import get_config_provider, get_now

from tests.helpers import MONDAY, Clock, StaticConfigProvider, utc


# =====================================
# Configuration Fixtures
# =====================================

@pytest.fixture
def sla_config() -> SLAConfig:
    """Mon-Fri 9-17 on UTC, default thresholds and severity cutoffs."""
    return SLAConfig(business_hours={"timezone": "UTC"})


@pytest.fixture
def business_hours(sla_config):
    return sla_config.get_business_hours()


@pytest.fixture
def thresholds(sla_config):
    return sla_config.get_warning_thresholds()


@pytest.fixture
def config_provider(sla_config) -> StaticConfigProvider:
    return StaticConfigProvider(sla_config)


@pytest.fixture
def new_record():
    """Factory for fresh active records."""
    def _make(request_id: str = "REQ-001", target_hours: float = 48.0, started_at=None):
        started_at = started_at or utc(*MONDAY, 9)
        return SLAStateMachine.create(request_id, target_hours, started_at)
    return _make


# =====================================
# Database Fixtures
# =====================================

@pytest.fixture
async def engine():
    """
    In-memory SQLite engine with all tables created.

    StaticPool keeps the single in-memory connection alive for the test.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Fresh database session for each test."""
    session_maker = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_maker() as session:
        yield session


# =====================================
# HTTP Fixtures
# =====================================

@pytest.fixture
def clock() -> Clock:
    return Clock(utc(*MONDAY, 9))


@pytest.fixture
async def client(db_session, config_provider, clock) -> AsyncGenerator[httpx.AsyncClient, None]:
    """
    Async HTTP client against the app with dependencies overridden.

    The lifespan is not run, so no scheduler or config watcher starts.
    """
    async def override_get_session():
        yield db_session

    main_app.dependency_overrides[get_session] = override_get_session
    main_app.dependency_overrides[get_config_provider] = lambda: config_provider
    main_app.dependency_overrides[get_now] = lambda: clock.now

    transport = httpx.ASGITransport(app=main_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client

    main_app.dependency_overrides.clear()
