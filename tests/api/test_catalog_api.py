"""Tests for catalog endpoints."""

from decimal import Decimal
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from tillpoint.catalog.service import ProductQuery, QueryPage
from tillpoint.domain.entities import Product
from tillpoint.domain.exceptions import InvalidQueryError, QueryFailureError


def make_page(page: int = 1) -> QueryPage:
    """Create a two-item page out of five results."""
    items = [
        Product(id="d1", name="Americano", category="drinks", price=Decimal("2.20")),
        Product(id="d2", name="Latte", category="drinks", price=Decimal("2.80")),
    ]
    return QueryPage.build(items, page=page, limit=2, total_count=5)


class TestListProducts:
    """Tests for GET /products."""

    def test_returns_page_with_metadata(self, client: TestClient, query_service: AsyncMock) -> None:
        """Pagination metadata is returned alongside the products."""
        query_service.get_products_paginated.return_value = make_page()

        response = client.get("/products", params={"category": "drinks", "limit": 2})

        assert response.status_code == 200
        data = response.json()
        assert [p["id"] for p in data["products"]] == ["d1", "d2"]
        assert data["total_pages"] == 3
        assert data["has_next_page"] is True
        assert data["has_previous_page"] is False
        assert data["total_count"] == 5

    def test_query_parameters_forwarded(
        self, client: TestClient, query_service: AsyncMock
    ) -> None:
        """Every query parameter reaches the service."""
        query_service.get_products_paginated.return_value = make_page(page=2)

        client.get(
            "/products",
            params={
                "page": 2,
                "limit": 2,
                "sort_by": "price",
                "sort_order": "desc",
                "query": "lat",
                "brand": "House",
                "min_price": "1.50",
                "max_price": "3",
                "in_stock_only": "true",
            },
        )

        query = query_service.get_products_paginated.await_args.args[0]
        assert query == ProductQuery(
            page=2,
            limit=2,
            sort_by="price",
            sort_order="desc",
            query="lat",
            brand="House",
            min_price=Decimal("1.50"),
            max_price=Decimal("3"),
            in_stock_only=True,
        )

    def test_invalid_query_is_400(self, client: TestClient, query_service: AsyncMock) -> None:
        """Malformed parameters are reported with the offending field."""
        query_service.get_products_paginated.side_effect = InvalidQueryError(
            "page", 0, "must be an integer >= 1"
        )

        response = client.get("/products", params={"page": 0})

        assert response.status_code == 400
        data = response.json()
        assert data["error_code"] == "INVALID_QUERY"
        assert data["details"]["field"] == "page"

    def test_store_failure_is_503(self, client: TestClient, query_service: AsyncMock) -> None:
        """Store failures are retryable service errors."""
        query_service.get_products_paginated.side_effect = QueryFailureError(cause="locked")

        response = client.get("/products")

        assert response.status_code == 503
        data = response.json()
        assert data["error_code"] == "QUERY_FAILURE"
        assert data["message"] == "Failed to load products"
        assert data["details"]["retryable"] is True


class TestSnapshotCatalog:
    """Tests for the snapshot-backed catalog endpoints."""

    def test_categories_with_counts(self, client: TestClient) -> None:
        """Categories carry item counts."""
        response = client.get("/categories")

        counts = {c["id"]: c["count"] for c in response.json()["categories"]}
        assert counts == {"all": 3, "drinks": 2, "apparel": 1}

    def test_category_items(self, client: TestClient) -> None:
        """Category items come back in snapshot order."""
        response = client.get("/categories/drinks/items")

        data = response.json()
        assert [p["id"] for p in data["products"]] == ["latte", "promo"]
        assert data["count"] == 2

    def test_all_category(self, client: TestClient) -> None:
        """The "all" category lists everything."""
        response = client.get("/categories/all/items")

        assert response.json()["count"] == 3

    def test_search(self, client: TestClient) -> None:
        """Search matches brand case-insensitively."""
        response = client.get("/catalog/search", params={"q": "house"})

        assert [p["id"] for p in response.json()["products"]] == ["latte"]

    def test_product_variants_serialized(self, client: TestClient) -> None:
        """Variant surcharges are serialized as decimal strings."""
        response = client.get("/catalog/search", params={"q": "shirt"})

        product = response.json()["products"][0]
        assert product["has_variants"] is True
        sizes = {o["name"]: Decimal(o["price"]) for o in product["variants"]["sizes"]}
        assert sizes == {"M": Decimal("0"), "XL": Decimal("2")}
