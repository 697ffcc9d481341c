"""Product catalog.

Two alternative backends, selected by deployment size:

- ``CatalogStore``: in-memory snapshot with category facets and search
- ``ProductQueryService``: paginated, filtered queries over the products table

``ProductFeed`` sits in front of the query service on the client side.
"""

from tillpoint.catalog.cache import ProductQueryCache
from tillpoint.catalog.feed import FeedState, ProductFeed, QuerySequencer
from tillpoint.catalog.models import ProductRecord
from tillpoint.catalog.repository import ProductCriteria, ProductRepository
from tillpoint.catalog.seeding import seed_catalog
from tillpoint.catalog.service import ProductQuery, ProductQueryService, QueryPage
from tillpoint.catalog.store import CatalogStore, CategoryFacet

__all__ = [
    # Snapshot catalog
    "CatalogStore",
    "CategoryFacet",
    # Models
    "ProductRecord",
    # Repository
    "ProductCriteria",
    "ProductRepository",
    # Service
    "ProductQuery",
    "ProductQueryCache",
    "ProductQueryService",
    "QueryPage",
    # Seeding
    "seed_catalog",
    # Feed
    "FeedState",
    "ProductFeed",
    "QuerySequencer",
]
