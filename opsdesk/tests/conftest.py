"""
Centralized Test Configuration.
"""

import os
import tempfile
from datetime import timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import NullPool

from opsdesk.app.main import app
from opsdesk.app.db.session import get_db, Base
from opsdesk.app.db.store import RecordStore, get_store
from opsdesk.app.core.clock import utcnow
from opsdesk.app.core.security import get_password_hash
import opsdesk.app.core.redis_client as redis_client_module
from opsdesk.app.models.admin import AdminProfile
from opsdesk.app.models.enums import AdminRole
from opsdesk.app.models.technician import City, Technician
from opsdesk.app.models.order import Order
from opsdesk.app.models.order_enums import OrderStatus
from opsdesk.app.models.settlement import OrderSettlement
from opsdesk.app.models.settlement_account import TechnicianSettlementAccount

# File-backed so that concurrent store sessions each get their own connection
TEST_DB_PATH = os.path.join(tempfile.gettempdir(), f"opsdesk_test_{os.getpid()}.db")
TEST_DATABASE_URL = f"sqlite+aiosqlite:///{TEST_DB_PATH}"

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False, "timeout": 30},
    poolclass=NullPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

TEST_PASSWORD = "correct-horse-42"


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
    
    async def ping(self):
        return True
    
    async def get(self, key):
        return self.store.get(key)
    
    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True
    
    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True
    
    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0
    
    async def exists(self, key):
        return 1 if key in self.store else 0
    
    async def flushdb(self):
        self.store = {}


@pytest.fixture
def mock_redis():
    return MockRedis()


@pytest.fixture(autouse=True)
def apply_overrides(mock_redis):
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = mock_redis
    
    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session
    
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_store] = lambda: RecordStore(TestingSessionLocal)
    yield
    
    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database():
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    yield
    
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


@pytest.fixture
def store():
    return RecordStore(TestingSessionLocal)


# ============================================================================
# Staff accounts
# ============================================================================

async def create_admin(db_session, username: str, role: AdminRole, is_active: bool = True) -> AdminProfile:
    admin = AdminProfile(
        email=f"{username}@opsdesk.io",
        username=username,
        hashed_password=get_password_hash(TEST_PASSWORD),
        role=role,
        is_active=is_active,
    )
    db_session.add(admin)
    await db_session.commit()
    await db_session.refresh(admin)
    return admin


async def login(client, username: str) -> str:
    response = await client.post("/v1/auth/login", json={"username": username, "password": TEST_PASSWORD})
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def superadmin(db_session):
    return await create_admin(db_session, "root", AdminRole.SUPERADMIN)


@pytest.fixture
async def superadmin_token(client, superadmin):
    return await login(client, superadmin.username)


@pytest.fixture
async def finance_admin(db_session):
    return await create_admin(db_session, "ledger", AdminRole.FINANCE)


@pytest.fixture
async def finance_token(client, finance_admin):
    return await login(client, finance_admin.username)


@pytest.fixture
async def support_admin(db_session):
    return await create_admin(db_session, "helpdesk", AdminRole.SUPPORT)


@pytest.fixture
async def support_token(client, support_admin):
    return await login(client, support_admin.username)


# ============================================================================
# Business records
# ============================================================================

@pytest.fixture
async def technician(db_session):
    city = City(name="Bangkok")
    db_session.add(city)
    await db_session.commit()
    
    tech = Technician(technician_number=1001, name="Somchai", username="somchai", city_id=city.id)
    db_session.add(tech)
    await db_session.commit()
    await db_session.refresh(tech)
    return tech


async def create_order(db_session, number: str, technician_id=None, status=OrderStatus.COMPLETED, **fields) -> Order:
    order = Order(
        order_number=number,
        technician_id=technician_id,
        status=status,
        service_name=fields.pop("service_name", "Thai massage"),
        service_duration=fields.pop("service_duration", 60),
        total_amount=fields.pop("total_amount", 1200.0),
        created_at=fields.pop("created_at", utcnow() - timedelta(hours=2)),
        **fields,
    )
    db_session.add(order)
    await db_session.commit()
    await db_session.refresh(order)
    return order


async def create_settlement(db_session, technician_id: int, number: str, **fields) -> OrderSettlement:
    order = await create_order(db_session, number, technician_id=technician_id)
    settlement = OrderSettlement(
        order_id=order.id,
        technician_id=technician_id,
        service_fee=fields.pop("service_fee", 1000.0),
        extra_fee=fields.pop("extra_fee", 200.0),
        service_commission_rate=0.2,
        extra_commission_rate=0.1,
        platform_should_get=fields.pop("platform_should_get", 220.0),
        customer_paid_to_platform=fields.pop("customer_paid_to_platform", 0.0),
        **fields,
    )
    db_session.add(settlement)
    await db_session.commit()
    await db_session.refresh(settlement)
    return settlement


async def create_account(db_session, technician_id: int, balance: float, deposit: float) -> TechnicianSettlementAccount:
    account = TechnicianSettlementAccount(
        technician_id=technician_id,
        balance=balance,
        deposit_amount=deposit,
    )
    db_session.add(account)
    await db_session.commit()
    await db_session.refresh(account)
    return account
