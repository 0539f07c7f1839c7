"""
TDMS Analytics - Test Configuration

Pytest fixtures and configuration.

Tests run against an in-memory SQLite database by default; point
TEST_DATABASE_URL at a PostgreSQL database to run them against asyncpg.
"""

import os
from datetime import datetime
from types import SimpleNamespace
from typing import AsyncGenerator, Awaitable, Callable, List, Optional
from uuid import uuid4

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_async_session
from app.models.establishment import Establishment
from app.models.submission import Submission
from app.models.user import UserAccount, UserRole
from app.services.submission_service import SubmissionService
from main import app
from helpers import REGION, utc


TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")


def _engine_options() -> dict:
    if TEST_DATABASE_URL.startswith("sqlite"):
        return {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    return {"pool_pre_ping": True}


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test."""
    test_engine = create_async_engine(TEST_DATABASE_URL, echo=False, **_engine_options())
    TestSessionLocal = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database session override."""

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ===========================================
# DATA FIXTURES
# ===========================================

def _establishment(name: str, province: str, municipality: str, rooms: int, **kwargs) -> Establishment:
    return Establishment(
        id=uuid4(),
        company_name=name,
        region=kwargs.pop("region", REGION),
        province=province,
        municipality=municipality,
        number_of_rooms=rooms,
        is_approved=kwargs.pop("is_approved", True),
        is_active=kwargs.pop("is_active", True),
        **kwargs,
    )


@pytest_asyncio.fixture
async def establishments(db_session: AsyncSession) -> SimpleNamespace:
    """
    Region I with two provinces:
        Ilocos Norte: Laoag City (2 approved + 1 pending), Pagudpud (1)
        Ilocos Sur:   Vigan City (1)
    plus one establishment in another region.
    """
    data = SimpleNamespace(
        laoag_hotel=_establishment("Laoag Grand Hotel", "Ilocos Norte", "Laoag City", 10),
        laoag_inn=_establishment("Fort Ilocandia Inn", "Ilocos Norte", "Laoag City", 20),
        pagudpud_resort=_establishment("Saud Beach Resort", "Ilocos Norte", "Pagudpud", 30),
        vigan_pension=_establishment("Vigan Heritage Pension", "Ilocos Sur", "Vigan City", 8),
        laoag_pending=_establishment(
            "Pending Homestay", "Ilocos Norte", "Laoag City", 5, is_approved=False,
        ),
        baguio_hotel=_establishment(
            "Baguio Pines Hotel", "Benguet", "Baguio City", 40, region="CAR",
        ),
    )
    db_session.add_all(vars(data).values())
    await db_session.commit()
    return data


def _account(email: str, role: UserRole, **address) -> UserAccount:
    return UserAccount(
        id=uuid4(),
        email=email,
        full_name=email.split("@")[0].replace(".", " ").title(),
        role=role,
        is_active=True,
        **address,
    )


@pytest_asyncio.fixture
async def accounts(db_session: AsyncSession, establishments: SimpleNamespace) -> SimpleNamespace:
    """One account per role, all inside Region I."""
    data = SimpleNamespace(
        regional=_account("regional.office@tdms.test", UserRole.R_ADMIN, region=REGION),
        provincial=_account(
            "provincial.office@tdms.test", UserRole.P_ADMIN,
            region=REGION, province="Ilocos Norte",
        ),
        municipal=_account(
            "laoag.office@tdms.test", UserRole.ADMIN,
            region=REGION, province="Ilocos Norte", municipality="Laoag City",
        ),
        owner=_account(
            "front.desk@tdms.test", UserRole.USER,
            region=REGION, province="Ilocos Norte", municipality="Laoag City",
            establishment_id=establishments.laoag_hotel.id,
        ),
    )
    db_session.add_all(vars(data).values())
    await db_session.commit()
    return data


# ===========================================
# SUBMISSION HELPERS
# ===========================================

@pytest_asyncio.fixture
async def submit(db_session: AsyncSession) -> Callable[..., Awaitable[Submission]]:
    """
    Record a submission through the intake service.

    Usage:
        await submit(establishment, 2024, 4, april_2024_rows(), submitted_at=utc(2024, 5, 3))
    """
    service = SubmissionService(db_session)

    async def _submit(
        establishment: Establishment,
        year: int,
        month: int,
        rows: Optional[List[dict]] = None,
        submitted_at: Optional[datetime] = None,
        guests: Optional[List[dict]] = None,
        **kwargs,
    ) -> Submission:
        rows = rows if rows is not None else [{"day": 1, "check_ins": 0, "overnight": 0, "occupied": 0}]
        if guests:
            rows = [dict(row) for row in rows]
            rows[0]["guests"] = guests
        return await service.record_submission(
            establishment.id,
            month,
            year,
            rows,
            submitted_at=submitted_at or utc(year, month, 28, 8, 0, 0),
            **kwargs,
        )

    return _submit
