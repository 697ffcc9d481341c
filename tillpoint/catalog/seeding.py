"""Loading catalog snapshots into the products table."""

from pathlib import Path
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from tillpoint.catalog.service import ProductQueryService
from tillpoint.catalog.store import CatalogStore

logger = structlog.get_logger()


async def seed_catalog(session: AsyncSession, snapshot_path: str | Path) -> dict[str, Any]:
    """Write every valid item of a snapshot file to the products table.

    Existing rows with the same id are replaced; other rows are kept.

    Args:
        session: Database session.
        snapshot_path: JSON snapshot with ``categories`` and ``items``.

    Returns:
        Seeding statistics.
    """
    store = CatalogStore.from_file(snapshot_path)
    service = ProductQueryService(session)
    saved = await service.save_products(store.items)
    counts = await service.get_category_counts()

    logger.info("Catalog seeded", path=str(snapshot_path), products=saved)
    return {
        "products_saved": saved,
        "categories_used": len({item.category for item in store.items}),
        "brands_used": len({item.brand for item in store.items if item.brand}),
        "category_counts": counts,
    }
