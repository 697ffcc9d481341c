"""Cart API endpoints.

Provides the UI event surface of the cart engine:
- GET /cart - current lines and totals
- POST /cart/items - add a product without customization
- POST /cart/selections - route a product click through the variant resolver
- POST /cart/customizations - add a product with chosen options and note
- PATCH /cart/lines/{line_key} - set a line quantity (below 1 removes)
- DELETE /cart/lines/{line_key} - remove a line
- DELETE /cart - clear the cart
- POST /cart/discount, DELETE /cart/discount - order-level discount
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from tillpoint.api.dependencies import Till, get_query_service, get_till, resolve_product
from tillpoint.api.schemas import (
    AddItemRequest,
    CartLineSchema,
    CartResponse,
    CustomizationRequest,
    DiscountRequest,
    ErrorResponse,
    ProductSchema,
    SelectionRequest,
    SelectionResponse,
    UpdateQuantityRequest,
)
from tillpoint.catalog.service import ProductQueryService
from tillpoint.domain.exceptions import CartLineNotFoundError

router = APIRouter(prefix="/cart", tags=["Cart"])


@router.get("", response_model=CartResponse, summary="Get cart")
async def get_cart(till: Annotated[Till, Depends(get_till)]) -> CartResponse:
    """Get the active cart."""
    return CartResponse.from_engine(till.engine)


@router.post(
    "/items",
    response_model=CartResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Add item",
)
async def add_item(
    request: AddItemRequest,
    till: Annotated[Till, Depends(get_till)],
    service: Annotated[ProductQueryService, Depends(get_query_service)],
) -> CartResponse:
    """Add a product, merging into an identical line.

    Raises:
        ProductNotFoundError: If the product is unknown.
    """
    product = await resolve_product(request.product_id, till, service)
    till.engine.add_item(
        product,
        quantity=request.quantity,
        note=request.note,
        badge_override=request.badge_override,
    )
    return CartResponse.from_engine(till.engine)


@router.post(
    "/selections",
    response_model=SelectionResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Select product",
)
async def select_product(
    request: SelectionRequest,
    till: Annotated[Till, Depends(get_till)],
    service: Annotated[ProductQueryService, Depends(get_query_service)],
) -> SelectionResponse:
    """Handle a product click.

    Products without options are added straight away; for the others the
    response asks the front end to open its customization surface and
    then call ``POST /cart/customizations``.
    """
    product = await resolve_product(request.product_id, till, service)
    outcome = till.resolver.select(product)
    return SelectionResponse(
        decision=outcome.decision.value,
        requires_customization=outcome.requires_customization,
        product=ProductSchema.from_domain(product),
        line=CartLineSchema.from_domain(outcome.line) if outcome.line else None,
        cart=CartResponse.from_engine(till.engine),
    )


@router.post(
    "/customizations",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Add customized item",
)
async def add_customized_item(
    request: CustomizationRequest,
    till: Annotated[Till, Depends(get_till)],
    service: Annotated[ProductQueryService, Depends(get_query_service)],
) -> CartResponse:
    """Add a product with the options and note chosen by the operator.

    Raises:
        InvalidVariantSelectionError: If an option is not offered.
    """
    product = await resolve_product(request.product_id, till, service)
    pending = till.resolver.begin_customization(product)
    selection = request.selected_variant.to_domain() if request.selected_variant else None
    pending.confirm(selection, note=request.note, quantity=request.quantity)
    return CartResponse.from_engine(till.engine)


@router.patch(
    "/lines/{line_key}",
    response_model=CartResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Update line quantity",
)
async def update_line(
    line_key: str,
    request: UpdateQuantityRequest,
    till: Annotated[Till, Depends(get_till)],
) -> CartResponse:
    """Set a line quantity; a quantity below 1 removes the line.

    Raises:
        CartLineNotFoundError: If the line does not exist.
    """
    if till.engine.get_line(line_key) is None:
        raise CartLineNotFoundError(line_key)
    till.engine.update_quantity(line_key, request.quantity)
    return CartResponse.from_engine(till.engine)


@router.delete("/lines/{line_key}", response_model=CartResponse, summary="Remove line")
async def remove_line(line_key: str, till: Annotated[Till, Depends(get_till)]) -> CartResponse:
    """Remove a line; removing an absent line succeeds."""
    till.engine.remove_item(line_key)
    return CartResponse.from_engine(till.engine)


@router.delete("", response_model=CartResponse, summary="Clear cart")
async def clear_cart(till: Annotated[Till, Depends(get_till)]) -> CartResponse:
    """Empty the cart."""
    till.engine.clear()
    return CartResponse.from_engine(till.engine)


@router.post(
    "/discount",
    response_model=CartResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Apply order discount",
)
async def apply_discount(
    request: DiscountRequest,
    till: Annotated[Till, Depends(get_till)],
) -> CartResponse:
    """Apply an order-level discount on top of badge discounts."""
    till.engine.apply_discount(request.amount)
    return CartResponse.from_engine(till.engine)


@router.delete("/discount", response_model=CartResponse, summary="Remove order discount")
async def remove_discount(till: Annotated[Till, Depends(get_till)]) -> CartResponse:
    """Drop the order-level discount."""
    till.engine.remove_discount()
    return CartResponse.from_engine(till.engine)
