"""Product query service.

Fronts the persisted product table: executes paginated, sorted and
filtered queries and returns a page plus pagination metadata. The
service is stateless per call; concatenating pages and discarding
stale responses is the caller's job (see ``tillpoint.catalog.feed``).
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Self

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tillpoint.catalog.cache import ProductQueryCache
from tillpoint.catalog.models import ProductRecord
from tillpoint.catalog.repository import SORT_COLUMNS, ProductCriteria, ProductRepository
from tillpoint.domain.entities import Product
from tillpoint.domain.events import CatalogQueryFailed
from tillpoint.domain.exceptions import InvalidQueryError, QueryFailureError
from tillpoint.domain.notifier import Notifier, NullNotifier

logger = structlog.get_logger()

SORT_ORDERS = ("asc", "desc")
DEFAULT_MAX_PAGE_SIZE = 200


@dataclass(frozen=True)
class ProductQuery:
    """Parameters of one catalog query.

    Instances are hashable and double as cache keys.

    Attributes:
        page: Page number (1-indexed).
        limit: Items per page.
        sort_by: Sort field.
        sort_order: Sort order (asc/desc).
        query: Substring matched against name, brand and category.
        category: Exact category; ``"all"`` means no filter.
        brand: Exact brand.
        min_price: Inclusive lower price bound.
        max_price: Inclusive upper price bound.
        in_stock_only: Only products with units on hand.
    """

    page: int = 1
    limit: int = 50
    sort_by: str = "name"
    sort_order: str = "asc"
    query: str | None = None
    category: str | None = None
    brand: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    in_stock_only: bool = False

    @property
    def offset(self) -> int:
        """Calculate offset from page number."""
        return (self.page - 1) * self.limit

    def next_page(self) -> Self:
        """Same query, one page further."""
        return self.with_page(self.page + 1)

    def with_page(self, page: int) -> Self:
        """Same query for another page."""
        return type(self)(**{**self.__dict__, "page": page})

    def validate(self, max_page_size: int = DEFAULT_MAX_PAGE_SIZE) -> None:
        """Check pagination and sort parameters.

        Args:
            max_page_size: Upper bound for ``limit``.

        Raises:
            InvalidQueryError: If a parameter is out of range.
        """
        if isinstance(self.page, bool) or not isinstance(self.page, int) or self.page < 1:
            raise InvalidQueryError("page", self.page, "must be an integer >= 1")
        if isinstance(self.limit, bool) or not isinstance(self.limit, int) or self.limit < 1:
            raise InvalidQueryError("limit", self.limit, "must be an integer > 0")
        if self.limit > max_page_size:
            raise InvalidQueryError("limit", self.limit, f"must not exceed {max_page_size}")
        if self.sort_by not in SORT_COLUMNS:
            raise InvalidQueryError("sort_by", self.sort_by, f"must be one of {sorted(SORT_COLUMNS)}")
        if self.sort_order.lower() not in SORT_ORDERS:
            raise InvalidQueryError("sort_order", self.sort_order, "must be 'asc' or 'desc'")
        if (
            self.min_price is not None
            and self.max_price is not None
            and self.min_price > self.max_price
        ):
            raise InvalidQueryError("min_price", self.min_price, "must not exceed max_price")

    def criteria(self) -> ProductCriteria:
        """Filter conditions of this query."""
        search = self.query.strip() if self.query else None
        return ProductCriteria(
            category=self.category or None,
            search=search or None,
            brand=self.brand or None,
            min_price=self.min_price,
            max_price=self.max_price,
            in_stock_only=self.in_stock_only,
        )


@dataclass(frozen=True)
class QueryPage:
    """One page of query results.

    Constructed fresh per query and never mutated.

    Attributes:
        items: Products on this page, at most ``limit`` long.
        page: Page number (1-indexed).
        total_pages: ceil(total_count / limit); 0 when nothing matches.
        has_next_page: Whether more rows exist after this page.
        total_count: Number of rows matching the filters.
        limit: Page size the query used.
    """

    items: tuple[Product, ...]
    page: int
    total_pages: int
    has_next_page: bool
    total_count: int
    limit: int

    @classmethod
    def build(cls, items: Iterable[Product], page: int, limit: int, total_count: int) -> Self:
        """Derive pagination metadata from a row count.

        Args:
            items: Products on this page.
            page: Page number.
            limit: Page size.
            total_count: Number of matching rows.

        Returns:
            QueryPage instance.
        """
        return cls(
            items=tuple(items),
            page=page,
            total_pages=math.ceil(total_count / limit),
            has_next_page=page * limit < total_count,
            total_count=total_count,
            limit=limit,
        )

    @property
    def has_previous_page(self) -> bool:
        """Check if there's a previous page."""
        return self.page > 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to the query response shape."""
        return {
            "products": [product.to_dict() for product in self.items],
            "page": self.page,
            "total_pages": self.total_pages,
            "has_next_page": self.has_next_page,
            "has_previous_page": self.has_previous_page,
            "total_count": self.total_count,
            "limit": self.limit,
        }


class ProductQueryService:
    """Service for catalog queries.

    Example usage:
        async with async_session_factory() as session:
            service = ProductQueryService(session, notifier=bus)
            page = await service.get_products_paginated(
                ProductQuery(category="drinks", limit=20, sort_by="price"),
            )
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier | None = None,
        cache: ProductQueryCache | None = None,
        max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
    ) -> None:
        """Initialize service with database session.

        Args:
            session: Async SQLAlchemy session.
            notifier: Receives query failure events.
            cache: Optional page cache shared between sessions.
            max_page_size: Upper bound for query limits.
        """
        self.session = session
        self.repository = ProductRepository(session)
        self.notifier = notifier or NullNotifier()
        self.cache = cache
        self.max_page_size = max_page_size

    async def get_products_paginated(self, query: ProductQuery | None = None) -> QueryPage:
        """Run a paginated catalog query.

        Args:
            query: Query parameters; defaults to page 1 of 50 by name.

        Returns:
            QueryPage with the requested slice.

        Raises:
            InvalidQueryError: If parameters are malformed.
            QueryFailureError: If the product store fails.
        """
        query = query or ProductQuery()
        query.validate(self.max_page_size)

        if self.cache is not None:
            cached = self.cache.get(query)
            if cached is not None:
                return cached

        criteria = query.criteria()
        try:
            total_count = await self.repository.count(criteria)
            records = await self.repository.find_page(
                criteria,
                sort_by=query.sort_by,
                sort_order=query.sort_order,
                limit=query.limit,
                offset=query.offset,
            )
            items = [record.to_domain() for record in records]
        except SQLAlchemyError as e:
            logger.error(
                "Product query failed",
                page=query.page,
                category=query.category,
                query=query.query,
                error=str(e),
            )
            error = QueryFailureError(cause=str(e))
            self.notifier.notify(
                CatalogQueryFailed(
                    aggregate_type="ProductQuery",
                    message=error.message,
                    page=query.page,
                )
            )
            raise error from e

        result = QueryPage.build(items, page=query.page, limit=query.limit, total_count=total_count)
        if self.cache is not None:
            self.cache.put(query, result)
        return result

    async def get_product(self, product_id: str) -> Product | None:
        """Get product by ID.

        Args:
            product_id: Product ID.

        Returns:
            Product if found.
        """
        record = await self.repository.get_by_id(product_id)
        return record.to_domain() if record else None

    async def save_products(self, products: Iterable[Product]) -> int:
        """Insert or replace products.

        Cached pages are dropped, since any of them may now be stale.

        Args:
            products: Products to store.

        Returns:
            Number of products written.
        """
        saved = await self.repository.save_all(ProductRecord.from_domain(p) for p in products)
        await self.session.commit()
        if self.cache is not None:
            self.cache.clear()
        logger.info("Products saved", count=len(saved))
        return len(saved)

    async def get_category_counts(self) -> dict[str, int]:
        """Get product counts per category, plus an ``"all"`` total.

        Returns:
            Mapping of category key to product count.
        """
        counts = await self.repository.get_category_counts()
        return {"all": sum(counts.values()), **counts}
