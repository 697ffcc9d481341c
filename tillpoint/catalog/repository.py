"""Product repository for database operations.

Provides filtered, sorted and paginated reads of the products table,
plus bulk upserts used for seeding.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from tillpoint.catalog.models import ProductRecord

# Sentinel category meaning "no category filter".
ALL_CATEGORIES = "all"

SORT_COLUMNS: dict[str, Any] = {
    "name": ProductRecord.name,
    "price": ProductRecord.price,
    "category": ProductRecord.category,
    "brand": ProductRecord.brand,
    "stock_quantity": ProductRecord.stock_quantity,
    "created_at": ProductRecord.created_at,
}

# Columns matched by free-text search
SEARCH_COLUMNS = (ProductRecord.name, ProductRecord.brand, ProductRecord.category)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the value matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


@dataclass
class ProductCriteria:
    """Filter conditions shared by page and count queries.

    Attributes:
        category: Exact category match; ``"all"`` or None disables it.
        search: Case-insensitive substring over name, brand and category.
        brand: Exact brand match.
        min_price: Inclusive lower price bound.
        max_price: Inclusive upper price bound.
        in_stock_only: Only products flagged in stock with units on hand.
    """

    category: str | None = None
    search: str | None = None
    brand: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    in_stock_only: bool = False

    def conditions(self) -> list[Any]:
        """Build SQLAlchemy filter conditions."""
        conditions = []

        if self.category and self.category != ALL_CATEGORIES:
            conditions.append(ProductRecord.category == self.category)

        if self.search:
            # casefold() is registered per connection in infrastructure.database
            pattern = f"%{escape_like(self.search.casefold())}%"
            conditions.append(
                or_(
                    *(
                        func.casefold(column).like(pattern, escape="\\")
                        for column in SEARCH_COLUMNS
                    )
                )
            )

        if self.brand is not None:
            conditions.append(ProductRecord.brand == self.brand)

        if self.min_price is not None:
            conditions.append(ProductRecord.price >= self.min_price)

        if self.max_price is not None:
            conditions.append(ProductRecord.price <= self.max_price)

        if self.in_stock_only:
            conditions.append(ProductRecord.in_stock.is_(True))
            conditions.append(ProductRecord.stock_quantity > 0)

        return conditions


class ProductRepository:
    """Repository for product database operations.

    Example usage:
        async with async_session_factory() as session:
            repo = ProductRepository(session)
            rows = await repo.find_page(
                ProductCriteria(category="drinks"),
                sort_by="price",
                limit=20,
            )
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session.
        """
        self.session = session

    async def save_all(self, records: Iterable[ProductRecord]) -> list[ProductRecord]:
        """Insert or update multiple products.

        Rows are merged by primary key, so re-seeding an existing id
        replaces its columns.

        Args:
            records: Products to save.

        Returns:
            Saved products.
        """
        saved = [await self.session.merge(record) for record in records]
        await self.session.flush()
        return saved

    async def get_by_id(self, product_id: str) -> ProductRecord | None:
        """Get product by ID.

        Args:
            product_id: Product ID.

        Returns:
            ProductRecord if found, None otherwise.
        """
        result = await self.session.execute(
            select(ProductRecord).where(ProductRecord.id == product_id)
        )
        return result.scalar_one_or_none()

    async def find_page(
        self,
        criteria: ProductCriteria,
        sort_by: str = "name",
        sort_order: str = "asc",
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[ProductRecord]:
        """Find products with filtering, sorting and pagination.

        Ties on the sort column are broken by id ascending so page
        boundaries are identical across repeated calls.

        Args:
            criteria: Filter conditions.
            sort_by: Sort field (name, price, category, brand, stock_quantity, created_at).
            sort_order: Sort order (asc, desc).
            limit: Maximum results.
            offset: Result offset for pagination.

        Returns:
            Sequence of matching rows.
        """
        query = select(ProductRecord)

        conditions = criteria.conditions()
        if conditions:
            query = query.where(and_(*conditions))

        sort_column = self._get_sort_column(sort_by)
        if sort_order.lower() == "desc":
            query = query.order_by(sort_column.desc(), ProductRecord.id.asc())
        else:
            query = query.order_by(sort_column.asc(), ProductRecord.id.asc())

        query = query.limit(limit).offset(offset)

        result = await self.session.execute(query)
        return result.scalars().all()

    async def count(self, criteria: ProductCriteria) -> int:
        """Count products matching filters.

        Args:
            criteria: Filter conditions.

        Returns:
            Count of matching products.
        """
        query = select(func.count(ProductRecord.id))

        conditions = criteria.conditions()
        if conditions:
            query = query.where(and_(*conditions))

        result = await self.session.execute(query)
        return result.scalar_one()

    async def get_category_counts(self) -> dict[str, int]:
        """Get product counts per category.

        Returns:
            Mapping of category key to product count.
        """
        query = (
            select(ProductRecord.category, func.count(ProductRecord.id).label("product_count"))
            .group_by(ProductRecord.category)
            .order_by(ProductRecord.category)
        )
        result = await self.session.execute(query)
        return {row.category: row.product_count for row in result.all()}

    def _get_sort_column(self, sort_by: str) -> Any:
        """Get SQLAlchemy column for sorting.

        Args:
            sort_by: Sort field name.

        Returns:
            SQLAlchemy column.
        """
        return SORT_COLUMNS.get(sort_by, ProductRecord.name)
