"""Incremental product loading for catalog screens.

``ProductFeed`` is the client side of ``ProductQueryService``: it loads
the first page for a set of filters, appends further pages on demand,
de-duplicates rows by id across pages and drops responses that were
superseded by a later request.
"""

from dataclasses import dataclass, field
from typing import Protocol

import structlog

from tillpoint.catalog.service import ProductQuery, QueryPage
from tillpoint.domain.entities import Product
from tillpoint.domain.exceptions import QueryFailureError

logger = structlog.get_logger()


class ProductSource(Protocol):
    """Anything that can answer a paginated catalog query."""

    async def get_products_paginated(self, query: ProductQuery | None = None) -> QueryPage:
        """Run a catalog query."""
        ...


class QuerySequencer:
    """Issues monotonically increasing sequence tokens.

    Only the most recently issued token is current: a response tagged
    with an older token is stale, whatever order responses arrive in.
    """

    def __init__(self) -> None:
        self._latest = 0

    @property
    def latest(self) -> int:
        """Most recently issued token (0 before the first request)."""
        return self._latest

    def issue(self) -> int:
        """Tag a new request.

        Returns:
            New sequence token.
        """
        self._latest += 1
        return self._latest

    def is_current(self, token: int) -> bool:
        """Check if a token belongs to the latest request."""
        return token == self._latest


@dataclass
class FeedState:
    """What a catalog screen renders.

    Attributes:
        products: Loaded products, in query order, unique by id.
        query: Query of the last applied page.
        total_pages: Total pages reported by the last applied page.
        total_count: Matching rows reported by the last applied page.
        has_next_page: Whether ``load_more`` can fetch anything.
        is_loading: A first-page load is in flight.
        is_loading_more: A next-page load is in flight.
        error: Operator-facing message of the last failure.
        can_retry: Whether ``retry`` would re-run the failed request.
    """

    products: list[Product] = field(default_factory=list)
    query: ProductQuery | None = None
    total_pages: int = 0
    total_count: int = 0
    has_next_page: bool = False
    is_loading: bool = False
    is_loading_more: bool = False
    error: str | None = None
    can_retry: bool = False


class ProductFeed:
    """Paginated, de-duplicated product list with stale-response protection.

    Example usage:
        feed = ProductFeed(service, page_size=50)
        await feed.load(ProductQuery(category="drinks"))
        while feed.state.has_next_page:
            await feed.load_more()
    """

    def __init__(self, source: ProductSource, page_size: int = 50) -> None:
        """Initialize feed.

        Args:
            source: Catalog query backend.
            page_size: Limit used for queries without an explicit one.
        """
        self.source = source
        self.page_size = page_size
        self.sequencer = QuerySequencer()
        self.state = FeedState()
        self._failed: tuple[str, ProductQuery] | None = None

    @property
    def products(self) -> list[Product]:
        """Loaded products."""
        return self.state.products

    async def load(self, query: ProductQuery | None = None) -> bool:
        """Load the first page for a set of filters, replacing the list.

        Args:
            query: Filters and sort; the page is forced to 1.

        Returns:
            True if the response was applied, False if it was stale or failed.
        """
        query = (query or ProductQuery(limit=self.page_size)).with_page(1)
        token = self.sequencer.issue()
        self.state.is_loading = True
        self.state.is_loading_more = False
        self.state.error = None

        try:
            page = await self._fetch(token, "load", query)
        finally:
            if self.sequencer.is_current(token):
                self.state.is_loading = False
        if page is None:
            return False

        self.state.products = _dedupe(page.items)
        self._apply(page, query)
        return True

    async def load_more(self) -> bool:
        """Append the next page of the current query.

        Returns:
            True if a page was appended.
        """
        query = self.state.query
        if (
            query is None
            or not self.state.has_next_page
            or self.state.is_loading
            or self.state.is_loading_more
        ):
            return False

        next_query = query.next_page()
        token = self.sequencer.issue()
        self.state.is_loading_more = True
        self.state.error = None

        try:
            page = await self._fetch(token, "load_more", next_query)
        finally:
            if self.sequencer.is_current(token):
                self.state.is_loading_more = False
        if page is None:
            return False

        self.state.products = _dedupe(page.items, existing=self.state.products)
        self._apply(page, next_query)
        return True

    async def retry(self) -> bool:
        """Re-run the request that last failed.

        Returns:
            True if the retried response was applied.
        """
        if self._failed is None:
            return False
        operation, query = self._failed
        if operation == "load":
            return await self.load(query)
        return await self.load_more()

    async def _fetch(self, token: int, operation: str, query: ProductQuery) -> QueryPage | None:
        """Run a query and filter out stale or failed responses."""
        try:
            page = await self.source.get_products_paginated(query)
        except QueryFailureError as e:
            if not self.sequencer.is_current(token):
                logger.debug("Discarding stale catalog failure", token=token, page=query.page)
                return None
            logger.error("Catalog load failed", operation=operation, page=query.page, error=e.message)
            self.state.error = e.message
            self.state.can_retry = e.retryable
            self._failed = (operation, query)
            return None

        if not self.sequencer.is_current(token):
            logger.debug(
                "Discarding stale catalog response",
                token=token,
                latest=self.sequencer.latest,
                page=page.page,
            )
            return None
        return page

    def _apply(self, page: QueryPage, query: ProductQuery) -> None:
        self.state.query = query
        self.state.total_pages = page.total_pages
        self.state.total_count = page.total_count
        self.state.has_next_page = page.has_next_page
        self.state.error = None
        self.state.can_retry = False
        self._failed = None


def _dedupe(items: tuple[Product, ...], existing: list[Product] | None = None) -> list[Product]:
    """Concatenate pages, keeping the first occurrence of every id."""
    merged = list(existing or [])
    seen = {product.id for product in merged}
    for product in items:
        if product.id in seen:
            logger.debug("Dropping duplicate catalog row", product_id=product.id)
            continue
        seen.add(product.id)
        merged.append(product)
    return merged
