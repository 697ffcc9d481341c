"""Shared fixtures for API tests.

The app's till singleton and query service are replaced with a till
built on a small catalog snapshot, a temp cart file and mock devices,
so no test touches the real database or state files.
"""

from collections.abc import Generator
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from tillpoint.api.dependencies import Till, get_query_service, get_till, reset_till
from tillpoint.catalog.service import ProductQueryService
from tillpoint.catalog.store import CatalogStore
from tillpoint.infrastructure.cart_storage import CartStateStore
from tillpoint.infrastructure.devices import MockDeviceProvider, default_mock_devices
from tillpoint.main import app


def catalog_snapshot() -> dict[str, Any]:
    """Catalog used by API tests."""
    return {
        "categories": [
            {"id": "all", "name": "All", "icon": "grid"},
            {"id": "drinks", "name": "Drinks", "icon": "cup"},
            {"id": "apparel", "name": "Apparel", "icon": "shirt"},
        ],
        "items": [
            {"id": "latte", "name": "Latte", "category": "drinks", "price": 2.5, "brand": "House"},
            {
                "id": "promo",
                "name": "Promo Juice",
                "category": "drinks",
                "price": 10,
                "badge": "percent-off",
            },
            {
                "id": "tee",
                "name": "T-Shirt",
                "category": "apparel",
                "price": 12,
                "variants": {
                    "colors": ["Red", "Blue"],
                    "sizes": [{"name": "M"}, {"name": "XL", "price": 2}],
                },
            },
        ],
    }


@pytest.fixture
def till(tmp_path: Path) -> Generator[Till, None, None]:
    """Create an isolated till."""
    till = Till.create(
        catalog=CatalogStore.from_snapshot(catalog_snapshot()),
        storage=CartStateStore(tmp_path / "cart.json"),
        devices=MockDeviceProvider(default_mock_devices()),
    )
    yield till
    till.close()


@pytest.fixture
def query_service() -> AsyncMock:
    """Create a query service stand-in that knows no products."""
    service = AsyncMock(spec=ProductQueryService)
    service.get_product.return_value = None
    return service


@pytest.fixture
def client(till: Till, query_service: AsyncMock) -> Generator[TestClient, None, None]:
    """Create test client bound to the isolated till."""
    app.dependency_overrides[get_till] = lambda: till
    app.dependency_overrides[get_query_service] = lambda: query_service
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def reset_singleton() -> Generator[None, None, None]:
    """Drop the till singleton between tests."""
    reset_till()
    yield
    reset_till()
