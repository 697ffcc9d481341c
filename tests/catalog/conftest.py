"""Shared fixtures for catalog tests.

Each test gets its own SQLite file so queries run against a real
products table.
"""

from collections.abc import AsyncGenerator
from decimal import Decimal
from pathlib import Path

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tillpoint.catalog.models import ProductRecord
from tillpoint.domain.entities import Product
from tillpoint.domain.value_objects import Badge, ProductVariants, VariantOption
from tillpoint.infrastructure.database import Base


def make_product(
    product_id: str,
    name: str,
    category: str = "drinks",
    price: str = "2.00",
    **kwargs: object,
) -> Product:
    """Create a test product."""
    return Product(
        id=product_id,
        name=name,
        category=category,
        price=Decimal(price),
        **kwargs,  # type: ignore[arg-type]
    )


def sample_products() -> list[Product]:
    """Five drinks and two snacks."""
    return [
        make_product("d1", "Americano", price="2.20", brand="House", stock_quantity=10),
        make_product("d2", "Latte", price="2.80", brand="House", stock_quantity=5),
        make_product("d3", "Mocha", price="3.10", brand="Bean Co", stock_quantity=0),
        make_product(
            "d4",
            "Iced Tea",
            price="2.20",
            brand="Leaf",
            stock_quantity=3,
            badge=Badge.PERCENT_OFF,
        ),
        make_product(
            "d5",
            "Smoothie",
            price="4.50",
            stock_quantity=8,
            in_stock=False,
            variants=ProductVariants(
                flavors=(VariantOption("Mango"), VariantOption("Berry", Decimal("0.40")))
            ),
        ),
        make_product("s1", "Crisps 50% Extra", category="snacks", price="1.00", stock_quantity=20),
        make_product("s2", "Flapjack", category="snacks", price="1.80", brand="Leaf", stock_quantity=2),
    ]


@pytest_asyncio.fixture
async def session(tmp_path: Path) -> AsyncGenerator[AsyncSession, None]:
    """Create a session bound to a fresh SQLite database."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'catalog.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session

    await engine.dispose()


@pytest_asyncio.fixture
async def seeded_session(session: AsyncSession) -> AsyncSession:
    """Session whose database holds the sample products."""
    for product in sample_products():
        session.add(ProductRecord.from_domain(product))
    await session.commit()
    return session
