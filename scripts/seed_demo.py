"""Seed the database with an admin, a demo customer and a few products.

Idempotent: existing users (by email) and products (by name) are left alone.

Usage:
    python scripts/seed_demo.py

Reads DATABASE_URL from the environment, same as the API.
"""
import asyncio
from decimal import Decimal

from sqlalchemy import select

from shopcart.database import Base, async_session_maker, engine
from shopcart.errors import Conflict
from shopcart.logging import get_logger
from shopcart.models import Product
from shopcart.schemas import Address, UserCreate
from shopcart.users import UserDirectory

logger = get_logger("seed_demo")

DEMO_USERS = [
    (
        "admin",
        UserCreate(
            first_name="Admin", last_name="User", email="admin@example.com",
            password="admin123", phone="9000000001",
            address=Address(street="1 MG Road", city="Pune", state="MH", postal_code="411001"),
        ),
    ),
    (
        "user",
        UserCreate(
            first_name="Demo", last_name="Customer", email="demo@example.com",
            password="password123", phone="9000000002",
            address=Address(street="Station Road", city="Baramati", state="MH", postal_code="413102"),
        ),
    ),
]

DEMO_PRODUCTS = [
    {"name": "Rose Face Serum", "category": "skincare", "brand": "Glow", "price": Decimal("499.00"), "stock": 25},
    {"name": "Matte Lipstick", "category": "makeup", "brand": "Velvet", "price": Decimal("299.00"), "stock": 40},
    {"name": "Herbal Shampoo", "category": "haircare", "brand": "Leaf", "price": Decimal("199.00"), "stock": 0},
    {"name": "Old Formula Cream", "category": "skincare", "brand": "Glow", "price": Decimal("150.00"), "stock": -1},
]


async def seed():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_maker() as session:
        directory = UserDirectory(session)
        for role, payload in DEMO_USERS:
            try:
                user = await directory.register(payload, role=role)
                logger.info("Created %s %s (id=%s)", role, payload.email, user.id)
            except Conflict:
                logger.info("User %s already exists, skipping", payload.email)

        for data in DEMO_PRODUCTS:
            res = await session.execute(select(Product.id).where(Product.name == data["name"]))
            if res.scalar_one_or_none() is not None:
                continue
            session.add(Product(**data))
        await session.commit()

    await engine.dispose()
    logger.info("Seeding done")


if __name__ == "__main__":
    asyncio.run(seed())
