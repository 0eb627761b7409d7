"""Pytest configuration and fixtures"""
import os
from decimal import Decimal
from http.cookies import SimpleCookie

import pytest

# Set test environment variables before shopcart reads its settings
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("FREE_SHIPPING_CITY", "Baramati")
os.environ.setdefault("SHIPPING_CHARGE", "50")
os.environ.setdefault("DISPLAY_TIMEZONE", "Asia/Kolkata")

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from shopcart import models  # noqa: F401
from shopcart.auth import create_access_token
from shopcart.database import Base, get_session
from shopcart.main import create_app
from shopcart.models import Product
from shopcart.schemas import Address, UserCreate
from shopcart.users import UserDirectory


@pytest.fixture
async def db_engine(tmp_path):
    # file-backed so that separate sessions use separate connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False, class_=AsyncSession)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
def make_product(session_maker):
    """Insert a product in its own session and return its id."""
    async def _make(price="100.00", stock=10, name="Face Cream", **extra):
        async with session_maker() as s:
            product = Product(name=name, price=Decimal(str(price)), stock=stock, **extra)
            s.add(product)
            await s.commit()
            return product.id
    return _make


@pytest.fixture
def set_product(session_maker):
    """Change product columns outside the session under test (admin edits)."""
    async def _set(product_id, **values):
        async with session_maker() as s:
            product = await s.get(Product, product_id)
            for key, value in values.items():
                setattr(product, key, value)
            await s.commit()
    return _set


def user_payload(email="asha@example.com", phone="9876543210", city="Pune"):
    return UserCreate(
        first_name="Asha",
        last_name="Patil",
        email=email,
        password="secret123",
        phone=phone,
        address=Address(street="12 Market Yard", city=city, state="MH", postal_code="411037"),
    )


@pytest.fixture
def make_user(session_maker):
    async def _make(role="user", **kwargs):
        async with session_maker() as s:
            user = await UserDirectory(s).register(user_payload(**kwargs), role=role)
            return user
    return _make


@pytest.fixture
async def user_id(make_user):
    user = await make_user()
    return user.id


@pytest.fixture
def app(session_maker):
    application = create_app()

    async def override_session():
        async with session_maker() as s:
            yield s

    application.dependency_overrides[get_session] = override_session
    return application


@pytest.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c


def token_from(response) -> str:
    cookie = SimpleCookie()
    cookie.load(response.headers["set-cookie"])
    return cookie["token"].value


def bearer(user) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}
