"""Catalog API endpoints.

Provides endpoints for browsing products:
- GET /products - paginated, filtered query over the products table
- GET /categories - category facets of the catalog snapshot
- GET /categories/{id}/items - all snapshot items of a category
- GET /catalog/search - substring search over the snapshot
"""

from decimal import Decimal
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from tillpoint.api.dependencies import Till, get_query_service, get_till
from tillpoint.api.schemas import (
    CategoriesResponse,
    CategoryFacetSchema,
    ErrorResponse,
    ProductListResponse,
    ProductPageResponse,
)
from tillpoint.catalog.service import ProductQuery, ProductQueryService
from tillpoint.infrastructure.config import settings

router = APIRouter(tags=["Catalog"])


@router.get(
    "/products",
    response_model=ProductPageResponse,
    responses={400: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Query products",
    description="Get one page of products with filtering and sorting.",
)
async def list_products(
    service: Annotated[ProductQueryService, Depends(get_query_service)],
    page: int = Query(default=1, description="Page number (1-based)"),
    limit: int = Query(default=settings.default_page_size, description="Items per page"),
    sort_by: str = Query(default="name", description="Sort field"),
    sort_order: str = Query(default="asc", description="asc or desc"),
    query: str | None = Query(default=None, description="Substring over name, brand, category"),
    category: str | None = Query(default=None, description="Category key or 'all'"),
    brand: str | None = Query(default=None),
    min_price: Decimal | None = Query(default=None),
    max_price: Decimal | None = Query(default=None),
    in_stock_only: bool = Query(default=False),
) -> ProductPageResponse:
    """Run a paginated catalog query.

    Malformed pagination is reported as INVALID_QUERY rather than
    request validation, so the error carries the offending field.

    Returns:
        One page of products with pagination metadata.
    """
    result = await service.get_products_paginated(
        ProductQuery(
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            query=query,
            category=category,
            brand=brand,
            min_price=min_price,
            max_price=max_price,
            in_stock_only=in_stock_only,
        )
    )
    return ProductPageResponse.from_page(result)


@router.get("/categories", response_model=CategoriesResponse, summary="List categories")
async def list_categories(till: Annotated[Till, Depends(get_till)]) -> CategoriesResponse:
    """List category facets with item counts."""
    return CategoriesResponse(
        categories=[CategoryFacetSchema.from_domain(f) for f in till.catalog.categories]
    )


@router.get(
    "/categories/{category_id}/items",
    response_model=ProductListResponse,
    summary="List category items",
)
async def list_category_items(
    category_id: str,
    till: Annotated[Till, Depends(get_till)],
) -> ProductListResponse:
    """List every snapshot item of a category (``all`` for everything)."""
    return ProductListResponse.from_products(till.catalog.get_items_by_category(category_id))


@router.get("/catalog/search", response_model=ProductListResponse, summary="Search catalog")
async def search_catalog(
    till: Annotated[Till, Depends(get_till)],
    q: str = Query(default="", description="Search text"),
) -> ProductListResponse:
    """Substring search over name, brand and category."""
    return ProductListResponse.from_products(till.catalog.search_items(q))
