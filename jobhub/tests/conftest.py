import uuid
from collections.abc import AsyncGenerator
from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import JSON, event
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from jobhub.common.enums import AssignmentResponse, JobCategory, ProgressStage, UserRole
from jobhub.common.security import create_access_token
from jobhub.core.lifecycle.schemas import Actor, JobCreateData, QuoteData, QuoteLineItem
from jobhub.core.lifecycle.service import JobLifecycleService
from jobhub.db.base import Base
from jobhub.db.models import *  # noqa: F401,F403 - ensure all models loaded
from jobhub.db.models.user import User


# Make JSONB render as JSON for SQLite
@event.listens_for(Base.metadata, "before_create")
def _remap_jsonb(target, connection, **kw):
    if connection.dialect.name == "sqlite":
        for table in target.tables.values():
            for column in table.columns:
                if isinstance(column.type, JSONB):
                    column.type = JSON()


@pytest.fixture
async def test_engine(tmp_path):
    # File database so independent sessions can race against each other
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def client(db_session):
    from jobhub.api.deps import get_db
    from jobhub.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _make_user(db_session, role: UserRole, name: str) -> User:
    user = User(
        id=uuid.uuid4(),
        email=f"{role.value}_{uuid.uuid4().hex[:8]}@test.com",
        full_name=name,
        role=role.value,
    )
    db_session.add(user)
    await db_session.flush()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def customer_user(db_session):
    return await _make_user(db_session, UserRole.CUSTOMER, "Test Customer")


@pytest.fixture
async def other_customer(db_session):
    return await _make_user(db_session, UserRole.CUSTOMER, "Other Customer")


@pytest.fixture
async def vendor_user(db_session):
    return await _make_user(db_session, UserRole.VENDOR, "Test Vendor")


@pytest.fixture
async def other_vendor(db_session):
    return await _make_user(db_session, UserRole.VENDOR, "Other Vendor")


@pytest.fixture
async def admin_user(db_session):
    return await _make_user(db_session, UserRole.ADMIN, "Test Admin")


def _headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': str(user.id)})}"}


@pytest.fixture
def auth_headers(customer_user):
    return _headers(customer_user)


@pytest.fixture
def vendor_headers(vendor_user):
    return _headers(vendor_user)


@pytest.fixture
def admin_headers(admin_user):
    return _headers(admin_user)


@pytest.fixture
def other_vendor_headers(other_vendor):
    return _headers(other_vendor)


def as_actor(user: User) -> Actor:
    return Actor(id=user.id, role=UserRole(user.role))


def sink_job_data(**overrides) -> JobCreateData:
    data = {
        "title": "Fix sink",
        "description": "Kitchen sink is leaking under the basin",
        "category": JobCategory.PLUMBING,
        "estimated_budget": Decimal("250"),
        "requested_time_slot": {
            "date": (date.today() + timedelta(days=3)).isoformat(),
            "start_time": "09:00",
            "end_time": "12:00",
        },
    }
    data.update(overrides)
    return JobCreateData(**data)


def sink_quote() -> QuoteData:
    return QuoteData(
        breakdown=[
            QuoteLineItem(item="Parts", quantity=Decimal("2"), unit_price=Decimal("15")),
            QuoteLineItem(item="Labor", quantity=Decimal("1"), unit_price=Decimal("100")),
        ],
        description="Replace trap and reseal",
    )


class JobFlow:
    """Drives a job through the lifecycle to the state a test starts from."""

    job_data = staticmethod(sink_job_data)
    quote_data = staticmethod(sink_quote)

    def __init__(self, db: AsyncSession, customer: User, vendor: User, admin: User):
        self.service = JobLifecycleService(db)
        self.customer = as_actor(customer)
        self.vendor = as_actor(vendor)
        self.admin = as_actor(admin)
        self.job = None
        self.quote = None

    async def pending(self):
        self.job = await self.service.create_job(self.customer, sink_job_data())
        return self.job

    async def assigned(self):
        await self.pending()
        self.job = await self.service.assign_vendor(self.job.id, self.vendor.id, self.admin)
        return self.job

    async def in_discussion(self):
        await self.assigned()
        self.job = await self.service.respond_to_assignment(
            self.job.id, self.vendor, AssignmentResponse.ACCEPTED
        )
        return self.job

    async def quote_sent(self):
        await self.in_discussion()
        self.job, self.quote = await self.service.send_quote(self.job.id, self.vendor, sink_quote())
        return self.job

    async def quote_accepted(self):
        await self.quote_sent()
        self.job, self.quote = await self.service.accept_quote(self.job.id, self.quote.id, self.customer)
        return self.job

    async def paid(self):
        await self.quote_accepted()
        self.job = await self.service.confirm_payment(
            self.job.id, self.quote.id, Decimal("130.00"), Actor.system(), payment_reference="pi_test"
        )
        return self.job

    async def in_progress(self):
        await self.paid()
        self.job = await self.service.start_work(self.job.id, self.vendor)
        return self.job

    async def completed(self):
        await self.in_progress()
        self.job, _ = await self.service.post_progress_update(
            self.job.id, self.vendor, ProgressStage.WORK_COMPLETED, description="All done"
        )
        return self.job


@pytest.fixture
def flow(db_session, customer_user, vendor_user, admin_user):
    return JobFlow(db_session, customer_user, vendor_user, admin_user)


@pytest.fixture
async def committed_quote_job(session_factory):
    """A QUOTE_SENT job committed in its own session, for tests that open several sessions."""
    async with session_factory() as db:
        customer = await _make_user(db, UserRole.CUSTOMER, "Race Customer")
        vendor = await _make_user(db, UserRole.VENDOR, "Race Vendor")
        admin = await _make_user(db, UserRole.ADMIN, "Race Admin")
        flow = JobFlow(db, customer, vendor, admin)
        await flow.quote_sent()
        await db.commit()
    return flow
