"""In-memory catalog for small or offline tills.

``CatalogStore`` holds a static category taxonomy and the items of a
snapshot, and answers category and substring lookups without touching
the database. It is the alternative to ``ProductQueryService`` for
catalogs small enough that pagination is unnecessary.
"""

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Self

import structlog

from tillpoint.domain.entities import Product
from tillpoint.domain.exceptions import InvalidProductDataError

logger = structlog.get_logger()

ALL_CATEGORY = "all"


@dataclass(frozen=True)
class CategoryFacet:
    """A category with the number of items currently in it.

    Attributes:
        id: Category key (``"all"`` counts every item).
        name: Display name.
        icon: Display icon reference.
        count: Number of items in the category.
    """

    id: str
    name: str
    icon: str = ""
    count: int = 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"id": self.id, "name": self.name, "icon": self.icon, "count": self.count}


def matches_query(product: Product, query: str) -> bool:
    """Case-insensitive substring match over name, brand and category.

    Args:
        product: Candidate product.
        query: Case-folded, stripped search text.

    Returns:
        True if any field contains the query.
    """
    fields = (product.name, product.brand or "", product.category)
    return any(query in value.casefold() for value in fields)


class CatalogStore:
    """Read-only facade over a catalog snapshot.

    Example usage:
        store = CatalogStore.from_file("data/info.json")
        drinks = store.get_items_by_category("drinks")
        hits = store.search_items("lat")
    """

    def __init__(
        self,
        categories: Iterable[Mapping[str, Any]] = (),
        items: Iterable[Product] = (),
    ) -> None:
        """Initialize store.

        Args:
            categories: Raw category entries with ``id``, ``name`` and ``icon``.
            items: Valid products.
        """
        self._raw_categories: list[Mapping[str, Any]] = []
        self._items: list[Product] = []
        self._by_id: dict[str, Product] = {}
        self._facets: list[CategoryFacet] = []
        self.replace_snapshot(categories, items)

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> Self:
        """Build a store from a snapshot document.

        Accepts ``{"categories": [...], "items": [...]}``, optionally
        wrapped in a ``"till"`` key. Invalid items are skipped with a
        warning.

        Args:
            data: Parsed snapshot.

        Returns:
            CatalogStore instance.
        """
        if isinstance(data.get("till"), Mapping):
            data = data["till"]

        items = []
        for index, raw in enumerate(data.get("items") or []):
            if not isinstance(raw, Mapping):
                logger.warning("Invalid catalog item", index=index, reason="not an object")
                continue
            try:
                items.append(Product.from_mapping(raw))
            except InvalidProductDataError as e:
                logger.warning("Invalid catalog item", index=index, reason=e.message)

        return cls(categories=data.get("categories") or [], items=items)

    @classmethod
    def from_file(cls, path: str | Path) -> Self:
        """Load a store from a JSON snapshot file.

        A missing or unreadable file yields an empty store.

        Args:
            path: Snapshot path.

        Returns:
            CatalogStore instance.
        """
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Catalog snapshot unreadable, starting empty", path=str(path), error=str(e))
            return cls()
        if not isinstance(data, Mapping):
            logger.warning("Catalog snapshot is not an object, starting empty", path=str(path))
            return cls()
        return cls.from_snapshot(data)

    def replace_snapshot(
        self,
        categories: Iterable[Mapping[str, Any]] | None = None,
        items: Iterable[Product] | None = None,
    ) -> None:
        """Swap in new categories and/or items and recompute facets.

        Args:
            categories: New raw categories; None keeps the current ones.
            items: New products; None keeps the current ones.
        """
        if categories is not None:
            self._raw_categories = list(categories)
        if items is not None:
            self._items = list(items)
            self._by_id = {item.id: item for item in self._items}
        self._facets = self._compute_facets()

    @property
    def items(self) -> tuple[Product, ...]:
        """All items in snapshot order."""
        return tuple(self._items)

    @property
    def categories(self) -> tuple[CategoryFacet, ...]:
        """Category facets with current counts."""
        return tuple(self._facets)

    def get_items_by_category(self, category_id: str) -> list[Product]:
        """Get the full, unfiltered item set of a category.

        Args:
            category_id: Category key, or ``"all"``.

        Returns:
            Items in snapshot order.
        """
        if category_id == ALL_CATEGORY:
            return list(self._items)
        return [item for item in self._items if item.category == category_id]

    def search_items(self, query: str) -> list[Product]:
        """Substring search over name, brand and category.

        Args:
            query: Search text; blank returns every item.

        Returns:
            Matching items in snapshot order.
        """
        needle = (query or "").strip().casefold()
        if not needle:
            return list(self._items)
        return [item for item in self._items if matches_query(item, needle)]

    def get_item_by_id(self, product_id: str) -> Product | None:
        """Get an item by ID."""
        return self._by_id.get(product_id)

    def _compute_facets(self) -> list[CategoryFacet]:
        facets = []
        for raw in self._raw_categories:
            category_id = raw.get("id") if isinstance(raw, Mapping) else None
            name = raw.get("name") if isinstance(raw, Mapping) else None
            if not category_id or not name:
                logger.warning("Invalid category data", category=str(raw))
                continue
            if category_id == ALL_CATEGORY:
                count = len(self._items)
            else:
                count = sum(1 for item in self._items if item.category == category_id)
            facets.append(
                CategoryFacet(id=category_id, name=name, icon=str(raw.get("icon") or ""), count=count)
            )
        return facets
