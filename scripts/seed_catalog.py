#!/usr/bin/env python3
"""Seed product catalog script.

Loads a catalog snapshot (the same JSON the in-memory catalog reads)
into the products table used by paginated queries.

Usage:
    python scripts/seed_catalog.py data/info.json
    python scripts/seed_catalog.py data/info.json --database-url sqlite+aiosqlite:///./till.db
"""

import argparse
import asyncio

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from tillpoint.catalog.seeding import seed_catalog
from tillpoint.infrastructure.config import settings
from tillpoint.infrastructure.database import Base
from tillpoint.infrastructure.logging import configure_logging


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed the product catalog from a snapshot")
    parser.add_argument("snapshot", help="Path to the catalog snapshot JSON")
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help=f"Database URL (default: {settings.database_url})",
    )
    args = parser.parse_args()

    configure_logging()

    print("=" * 60)
    print("Tillpoint Catalog Seeder")
    print("=" * 60)
    print(f"Snapshot: {args.snapshot}")
    print()

    engine = create_async_engine(args.database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        result = await seed_catalog(session, args.snapshot)
    await engine.dispose()

    print(f"  Saved: {result['products_saved']} products")
    print(f"  Categories: {result['categories_used']}")
    print(f"  Brands: {result['brands_used']}")
    for category, count in result["category_counts"].items():
        print(f"    {category}: {count}")
    print()
    print("=" * 60)
    print("Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
