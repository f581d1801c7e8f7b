"""Shared fixtures: an in-memory database seeded with two schools."""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["APP_SECRET_KEY"] = "test-secret-key"
os.environ["APP_ENV"] = "testing"

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from schoolpay.database import async_session_factory, engine
from schoolpay.models import (
    Base,
    ClassFeeDefault,
    ClassGroup,
    FeeCategory,
    FeeType,
    OptionalFeeDefinition,
    Role,
    Student,
    Tenant,
    TransportRoute,
    User,
)
from schoolpay.utils.security import create_access_token
from schoolpay.utils.tenant_context import ActorContext

CATALOG_START = date(2024, 1, 1)


@dataclass
class School:
    """Ids of one seeded school, and actors acting in it."""

    tenant: Tenant
    principal: User
    clerk: User
    teacher: User
    other_teacher: User
    grade1: ClassGroup
    grade2: ClassGroup
    tuition: FeeCategory
    transport: FeeCategory
    library: FeeCategory
    lab: FeeCategory
    trip: FeeCategory
    grade1_tuition: ClassFeeDefault
    grade2_tuition: ClassFeeDefault
    trip_fee: OptionalFeeDefinition
    route_a: TransportRoute
    route_b: TransportRoute
    student: Student

    def actor(self, user: User) -> ActorContext:
        return ActorContext(id=user.id, role=user.role, tenant_id=self.tenant.id)

    @property
    def as_principal(self) -> ActorContext:
        return self.actor(self.principal)

    @property
    def as_clerk(self) -> ActorContext:
        return self.actor(self.clerk)

    @property
    def as_teacher(self) -> ActorContext:
        return self.actor(self.teacher)

    def token(self, user: User) -> str:
        return create_access_token(user.id, self.tenant.id, user.role)

    def headers(self, user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token(user)}"}


def _user(tenant: Tenant, role: Role, first_name: str) -> User:
    return User(
        tenant_id=tenant.id,
        email=f"{first_name.lower()}@{tenant.slug}.test",
        first_name=first_name,
        last_name="Test",
        role=role.value,
        is_active=True,
    )


async def _seed_school(session, name: str, slug: str) -> School:
    tenant = Tenant(name=name, slug=slug, is_active=True)
    session.add(tenant)
    await session.flush()

    def scoped(obj):
        obj.tenant_id = tenant.id
        session.add(obj)
        return obj

    principal = scoped(_user(tenant, Role.PRINCIPAL, "Paula"))
    clerk = scoped(_user(tenant, Role.CLERK, "Carl"))
    teacher = scoped(_user(tenant, Role.TEACHER, "Tina"))
    other_teacher = scoped(_user(tenant, Role.TEACHER, "Theo"))

    grade1 = scoped(ClassGroup(name="Grade 1", is_active=True))
    grade2 = scoped(ClassGroup(name="Grade 2", is_active=True))

    tuition = scoped(FeeCategory(name="Tuition", fee_type=FeeType.TUITION.value, is_active=True))
    transport = scoped(FeeCategory(name="Transport", fee_type=FeeType.TRANSPORT.value, is_active=True))
    library = scoped(FeeCategory(name="Library", fee_type=FeeType.OTHER.value, is_active=True))
    lab = scoped(FeeCategory(name="Lab", fee_type=FeeType.OTHER.value, is_active=True))
    trip = scoped(FeeCategory(name="Field Trip", fee_type=FeeType.CUSTOM.value, is_active=True))

    route_a = scoped(TransportRoute(route_name="Route A", is_active=True))
    route_b = scoped(TransportRoute(route_name="Route B", is_active=True))
    await session.flush()

    student = scoped(
        Student(
            first_name="Sam",
            last_name="Student",
            class_group_id=grade1.id,
            admission_date=date(2024, 1, 1),
            is_active=True,
        )
    )
    await session.flush()

    return School(
        tenant=tenant,
        principal=principal,
        clerk=clerk,
        teacher=teacher,
        other_teacher=other_teacher,
        grade1=grade1,
        grade2=grade2,
        tuition=tuition,
        transport=transport,
        library=library,
        lab=lab,
        trip=trip,
        grade1_tuition=None,
        grade2_tuition=None,
        trip_fee=None,
        route_a=route_a,
        route_b=route_b,
        student=student,
    )


async def _seed_catalog(session, school: School) -> None:
    """Add prices once categories and classes have ids."""
    tid = school.tenant.id

    def price(model, **kwargs):
        row = model(tenant_id=tid, effective_from=CATALOG_START, is_active=True, **kwargs)
        session.add(row)
        return row

    school.grade1_tuition = price(
        ClassFeeDefault,
        class_group_id=school.grade1.id,
        fee_category_id=school.tuition.id,
        amount=Decimal("1000.00"),
    )
    school.grade2_tuition = price(
        ClassFeeDefault,
        class_group_id=school.grade2.id,
        fee_category_id=school.tuition.id,
        amount=Decimal("1200.00"),
    )
    price(
        ClassFeeDefault,
        class_group_id=school.grade1.id,
        fee_category_id=school.transport.id,
        amount=Decimal("500.00"),
    )
    price(
        OptionalFeeDefinition,
        class_group_id=None,
        fee_category_id=school.library.id,
        amount=Decimal("200.00"),
    )
    price(
        OptionalFeeDefinition,
        class_group_id=school.grade1.id,
        fee_category_id=school.lab.id,
        amount=Decimal("300.00"),
    )
    school.trip_fee = price(
        OptionalFeeDefinition,
        class_group_id=None,
        fee_category_id=school.trip.id,
        amount=Decimal("1500.00"),
    )
    await session.flush()


@pytest_asyncio.fixture
async def db():
    """A session on a freshly created schema."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as session:
        yield session

    # Dropping the only in-memory connection discards the database
    await engine.dispose()


async def _seed(db, name: str, slug: str) -> School:
    school = await _seed_school(db, name, slug)
    await _seed_catalog(db, school)
    await db.commit()
    return school


@pytest_asyncio.fixture
async def school(db) -> School:
    """The school every test acts in."""
    return await _seed(db, "Greenfield School", "greenfield")


@pytest_asyncio.fixture
async def other_school(db, school) -> School:
    """A second school whose ids must stay invisible to the first."""
    return await _seed(db, "Riverside School", "riverside")


@pytest_asyncio.fixture
async def client(db):
    """HTTP client for the application, sharing the test database."""
    from schoolpay.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
