"""
Pytest configuration and fixtures for the restaurant POS tests.

Every test gets a fresh in-memory SQLite database. The environment is set
before the package is imported so the module-level engine never points at
a real server.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/15")
os.environ.setdefault("EXPORT_BILLS_ENABLED", "true")

from types import SimpleNamespace  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from restaurant_pos.database import Base  # noqa: E402
from restaurant_pos.models import (  # noqa: E402
    Account,
    AccountType,
    DiningTable,
    Food,
    FoodCategory,
    TableStatus,
)
from restaurant_pos.services.account_service import AccountService  # noqa: E402
from restaurant_pos.services.menu_service import MenuService  # noqa: E402
from restaurant_pos.services.table_service import TableService  # noqa: E402

DEFAULT_SALT = "A1B2C3D4E5"
DEFAULT_PASSWORD = "123456"
LOCKED_PREFIX = "[KHÓA] "


@pytest.fixture
async def engine():
    """In-memory database shared by every session of one test."""
    test_engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def account_service():
    return AccountService(default_salt=DEFAULT_SALT, default_password=DEFAULT_PASSWORD)


@pytest.fixture
def table_service():
    return TableService(locked_prefix=LOCKED_PREFIX)


@pytest.fixture
def menu_service():
    return MenuService()


@pytest.fixture
async def seeded(db):
    """
    A small restaurant: two categories, three foods, four visible tables,
    one locked table and a sample admin account without a hash.
    """
    mains = FoodCategory(name="Mains")
    drinks = FoodCategory(name="Drinks")
    db.add_all([mains, drinks])
    await db.flush()

    pho = Food(name="Phở bò", category_id=mains.id, price=30000, unit="bowl", is_active=True)
    rice = Food(name="Cơm tấm", category_id=mains.id, price=35000, unit="plate", is_active=True)
    tea = Food(name="Trà đá", category_id=drinks.id, price=15000, unit="glass", is_active=True)
    db.add_all([pho, rice, tea])

    tables = [DiningTable(name=f"Table {i}", status=TableStatus.EMPTY) for i in range(1, 5)]
    locked = DiningTable(name=f"{LOCKED_PREFIX}Table 9", status=TableStatus.EMPTY)
    db.add_all(tables + [locked])

    admin = Account(
        user_name="admin",
        display_name="Administrator",
        password_hash="",
        salt=DEFAULT_SALT,
        account_type=AccountType.ADMIN.value,
        is_active=True,
    )
    db.add(admin)

    await db.commit()

    return SimpleNamespace(
        mains=mains,
        drinks=drinks,
        pho=pho,
        rice=rice,
        tea=tea,
        tables=tables,
        locked=locked,
        admin=admin,
    )


def pytest_collection_modifyitems(config, items):
    """Add markers to tests based on their module."""
    for item in items:
        if "test_passwords" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
