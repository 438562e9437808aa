"""
Shared test fixtures and configuration for pytest.
"""

from datetime import date, timedelta
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.api.dependencies import get_db
from app.core.security import TokenManager, get_password_hash
from app.db.base import Base
from app.main import app
from app.models.clinic_model import Clinic
from app.models.payment_model import PaymentRecord
from app.models.user_model import Administrator, HealthWorker, Mother
from app.schemas.payment_schemas import EligibilityReason, PaymentRecordStatus
from app.schemas.user_schemas import MotherPaymentStatus
from app.core.utils import utc_now


# Test database configuration
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# One shared connection so every session sees the same in-memory database
test_engine = create_async_engine(
    TEST_DATABASE_URL,
    poolclass=StaticPool,
    connect_args={"check_same_thread": False},
    echo=False,
)

TestSessionLocal = async_sessionmaker(
    test_engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

TEST_PASSWORD = "Test123!@#"

# Hashing is deliberately slow; hash once for every fixture user
TEST_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Create a fresh database session for each test.

    Creates all tables, yields a session and drops all tables afterwards.
    """
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def override_get_db(db_session: AsyncSession):
    """Override the get_db dependency for testing."""

    async def _override_get_db():
        yield db_session

    return _override_get_db


@pytest.fixture
async def client(override_get_db) -> AsyncGenerator[AsyncClient, None]:
    """Test client bound to the app with the database dependency overridden."""
    app.dependency_overrides[get_db] = override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def make_mother(db_session: AsyncSession):
    """Factory creating committed mothers with distinct phone numbers."""
    counter = {"n": 0}

    async def _make_mother(
        full_name: str = "Ama Mensah",
        phone: Optional[str] = None,
        email: Optional[str] = None,
        **fields,
    ) -> Mother:
        counter["n"] += 1
        mother = Mother(
            full_name=full_name,
            phone=phone or f"+23320{counter['n']:07d}",
            email=email,
            password=TEST_PASSWORD_HASH,
            edd=fields.pop("edd", date.today() + timedelta(days=120)),
            **fields,
        )
        db_session.add(mother)
        await db_session.commit()
        await db_session.refresh(mother)
        return mother

    return _make_mother


@pytest.fixture
async def mother(make_mother) -> Mother:
    return await make_mother(
        full_name="Ama Mensah", phone="+233201111111", email="ama@example.com"
    )


@pytest.fixture
async def health_worker(db_session: AsyncSession) -> HealthWorker:
    user = HealthWorker(
        full_name="Nurse Efua",
        phone="+233202222222",
        email="efua@example.com",
        password=TEST_PASSWORD_HASH,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def admin(db_session: AsyncSession) -> Administrator:
    user = Administrator(
        full_name="Admin Kofi",
        phone="+233203333333",
        email="kofi@example.com",
        password=TEST_PASSWORD_HASH,
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def clinic(db_session: AsyncSession) -> Clinic:
    clinic = Clinic(name="Ridge Maternity", address="Castle Road, Accra")
    db_session.add(clinic)
    await db_session.commit()
    await db_session.refresh(clinic)
    return clinic


def bearer(user) -> dict:
    return {"Authorization": f"Bearer {TokenManager.create_user_token(user)}"}


@pytest.fixture
def mother_headers(mother: Mother) -> dict:
    return bearer(mother)


@pytest.fixture
def health_worker_headers(health_worker: HealthWorker) -> dict:
    return bearer(health_worker)


@pytest.fixture
def admin_headers(admin: Administrator) -> dict:
    return bearer(admin)


@pytest.fixture
def make_payment_record(db_session: AsyncSession):
    """Factory inserting a payment record for a mother and marking her eligible."""

    async def _make_payment_record(
        owner: Mother,
        reason: EligibilityReason = EligibilityReason.ANC4,
        status: PaymentRecordStatus = PaymentRecordStatus.PENDING,
        eligibility_date=None,
    ) -> PaymentRecord:
        amount = 5000 if reason == EligibilityReason.ANC4 else 10000
        record = PaymentRecord(
            patient_id=owner.id,
            amount=amount,
            reason=reason,
            status=status,
            eligibility_date=eligibility_date or utc_now(),
            payment_method=owner.preferred_payment_method,
        )
        owner.payment_status = MotherPaymentStatus.ELIGIBLE
        owner.eligibility_reason = reason
        owner.cash_incentive_amount = amount
        owner.is_beneficiary = True
        db_session.add(record)
        await db_session.commit()
        await db_session.refresh(record)
        await db_session.refresh(owner)
        return record

    return _make_payment_record
