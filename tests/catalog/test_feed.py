"""Tests for incremental product loading."""

import asyncio
from decimal import Decimal

import pytest

from tillpoint.catalog.feed import ProductFeed, QuerySequencer
from tillpoint.catalog.service import ProductQuery, QueryPage
from tillpoint.domain.entities import Product
from tillpoint.domain.exceptions import InvalidQueryError, QueryFailureError


# ============================================================================
# Test Fixtures
# ============================================================================


def make_product(product_id: str) -> Product:
    """Create a test product."""
    return Product(id=product_id, name=f"Item {product_id}", category="drinks", price=Decimal("1"))


def make_page(ids: list[str], page: int = 1, limit: int = 2, total: int = 4) -> QueryPage:
    """Create a page holding the given product ids."""
    return QueryPage.build([make_product(i) for i in ids], page=page, limit=limit, total_count=total)


class ScriptedSource:
    """Source answering queries from a script keyed by (category, page).

    A value may be a QueryPage, an exception to raise, or an
    asyncio.Event to wait on before answering with the page stored
    under the same key in ``gated``.
    """

    def __init__(self, script: dict[tuple[str | None, int], object]) -> None:
        self.script = script
        self.gated: dict[tuple[str | None, int], QueryPage] = {}
        self.calls: list[ProductQuery] = []

    async def get_products_paginated(self, query: ProductQuery | None = None) -> QueryPage:
        assert query is not None
        self.calls.append(query)
        key = (query.category, query.page)
        answer = self.script[key]
        if isinstance(answer, asyncio.Event):
            await answer.wait()
            return self.gated[key]
        if isinstance(answer, Exception):
            raise answer
        assert isinstance(answer, QueryPage)
        return answer


# ============================================================================
# Sequencer Tests
# ============================================================================


class TestQuerySequencer:
    """Tests for request tokens."""

    def test_only_latest_is_current(self) -> None:
        """Older tokens are stale once a newer one is issued."""
        sequencer = QuerySequencer()
        first = sequencer.issue()
        second = sequencer.issue()

        assert not sequencer.is_current(first)
        assert sequencer.is_current(second)
        assert sequencer.latest == second


# ============================================================================
# Feed Tests
# ============================================================================


class TestProductFeed:
    """Tests for ProductFeed."""

    @pytest.mark.asyncio
    async def test_load_then_load_more_appends(self) -> None:
        """Pages are concatenated in order."""
        source = ScriptedSource(
            {
                ("drinks", 1): make_page(["a", "b"]),
                ("drinks", 2): make_page(["c", "d"], page=2),
            }
        )
        feed = ProductFeed(source, page_size=2)

        assert await feed.load(ProductQuery(category="drinks", limit=2))
        assert feed.state.has_next_page
        assert await feed.load_more()

        assert [p.id for p in feed.products] == ["a", "b", "c", "d"]
        assert not feed.state.has_next_page
        assert feed.state.query is not None
        assert feed.state.query.page == 2

    @pytest.mark.asyncio
    async def test_load_more_without_next_page_is_noop(self) -> None:
        """Nothing is fetched past the last page."""
        source = ScriptedSource({("drinks", 1): make_page(["a"], total=1)})
        feed = ProductFeed(source)
        await feed.load(ProductQuery(category="drinks"))

        assert not await feed.load_more()
        assert len(source.calls) == 1

    @pytest.mark.asyncio
    async def test_duplicates_across_pages_dropped(self) -> None:
        """A row shifted onto the next page appears once."""
        source = ScriptedSource(
            {
                ("drinks", 1): make_page(["a", "b"], total=5),
                ("drinks", 2): make_page(["b", "c"], page=2, total=5),
            }
        )
        feed = ProductFeed(source, page_size=2)
        await feed.load(ProductQuery(category="drinks", limit=2))
        await feed.load_more()

        assert [p.id for p in feed.products] == ["a", "b", "c"]

    @pytest.mark.asyncio
    async def test_load_forces_first_page(self) -> None:
        """load always asks for page 1."""
        source = ScriptedSource({("drinks", 1): make_page(["a"], total=1)})
        feed = ProductFeed(source)

        await feed.load(ProductQuery(category="drinks", page=3))

        assert source.calls[0].page == 1

    @pytest.mark.asyncio
    async def test_stale_response_discarded(self) -> None:
        """A slow response for an old filter never overwrites a newer one."""
        gate = asyncio.Event()
        source = ScriptedSource(
            {
                ("drinks", 1): gate,
                ("snacks", 1): make_page(["s1"], total=1),
            }
        )
        source.gated[("drinks", 1)] = make_page(["d1", "d2"])
        feed = ProductFeed(source)

        slow = asyncio.create_task(feed.load(ProductQuery(category="drinks")))
        await asyncio.sleep(0)
        fast = await feed.load(ProductQuery(category="snacks"))
        gate.set()
        applied_slow = await slow

        assert fast is True
        assert applied_slow is False
        assert [p.id for p in feed.products] == ["s1"]
        assert feed.state.query is not None
        assert feed.state.query.category == "snacks"

    @pytest.mark.asyncio
    async def test_stale_load_more_discarded_after_filter_change(self) -> None:
        """A next page for the previous filter is not appended."""
        gate = asyncio.Event()
        source = ScriptedSource(
            {
                ("drinks", 1): make_page(["d1", "d2"]),
                ("drinks", 2): gate,
                ("snacks", 1): make_page(["s1"], total=1),
            }
        )
        source.gated[("drinks", 2)] = make_page(["d3", "d4"], page=2)
        feed = ProductFeed(source, page_size=2)
        await feed.load(ProductQuery(category="drinks", limit=2))

        more = asyncio.create_task(feed.load_more())
        await asyncio.sleep(0)
        await feed.load(ProductQuery(category="snacks"))
        gate.set()

        assert await more is False
        assert [p.id for p in feed.products] == ["s1"]
        assert not feed.state.is_loading_more

    @pytest.mark.asyncio
    async def test_failure_sets_retryable_error(self) -> None:
        """A failed load leaves a retryable error and keeps old products."""
        source = ScriptedSource(
            {
                ("drinks", 1): make_page(["a"], total=1),
                ("snacks", 1): QueryFailureError(),
            }
        )
        feed = ProductFeed(source)
        await feed.load(ProductQuery(category="drinks"))

        assert not await feed.load(ProductQuery(category="snacks"))

        assert feed.state.error == "Failed to load products"
        assert feed.state.can_retry
        assert not feed.state.is_loading
        assert [p.id for p in feed.products] == ["a"]

    @pytest.mark.asyncio
    async def test_rejected_load_clears_loading_flag(self) -> None:
        """A query the source rejects propagates and leaves the feed usable."""
        source = ScriptedSource(
            {
                ("drinks", 1): InvalidQueryError("limit", 500, "exceeds maximum page size"),
                ("snacks", 1): make_page(["s1", "s2"], total=3),
                ("snacks", 2): make_page(["s3"], page=2, total=3),
            }
        )
        feed = ProductFeed(source)

        with pytest.raises(InvalidQueryError):
            await feed.load(ProductQuery(category="drinks"))

        assert not feed.state.is_loading
        assert await feed.load(ProductQuery(category="snacks", limit=2))
        assert await feed.load_more()
        assert [p.id for p in feed.products] == ["s1", "s2", "s3"]

    @pytest.mark.asyncio
    async def test_rejected_load_more_clears_loading_flag(self) -> None:
        """A rejected next page does not block later load_more calls."""
        source = ScriptedSource(
            {
                ("drinks", 1): make_page(["a", "b"]),
                ("drinks", 2): InvalidQueryError("page", 2, "out of range"),
            }
        )
        feed = ProductFeed(source, page_size=2)
        await feed.load(ProductQuery(category="drinks", limit=2))

        with pytest.raises(InvalidQueryError):
            await feed.load_more()

        assert not feed.state.is_loading_more
        source.script[("drinks", 2)] = make_page(["c", "d"], page=2)
        assert await feed.load_more()
        assert [p.id for p in feed.products] == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_retry_reruns_failed_load(self) -> None:
        """Retry repeats the failed request and clears the error."""
        source = ScriptedSource({("snacks", 1): QueryFailureError()})
        feed = ProductFeed(source)
        await feed.load(ProductQuery(category="snacks"))

        source.script[("snacks", 1)] = make_page(["s1"], total=1)
        assert await feed.retry()

        assert feed.state.error is None
        assert not feed.state.can_retry
        assert [p.id for p in feed.products] == ["s1"]

    @pytest.mark.asyncio
    async def test_retry_reruns_failed_load_more(self) -> None:
        """A failed next page can be retried."""
        source = ScriptedSource(
            {
                ("drinks", 1): make_page(["a", "b"]),
                ("drinks", 2): QueryFailureError(),
            }
        )
        feed = ProductFeed(source, page_size=2)
        await feed.load(ProductQuery(category="drinks", limit=2))
        assert not await feed.load_more()
        assert not feed.state.is_loading_more

        source.script[("drinks", 2)] = make_page(["c", "d"], page=2)
        assert await feed.retry()

        assert [p.id for p in feed.products] == ["a", "b", "c", "d"]

    @pytest.mark.asyncio
    async def test_retry_without_failure_is_noop(self) -> None:
        """Nothing to retry returns False."""
        feed = ProductFeed(ScriptedSource({}))

        assert not await feed.retry()
