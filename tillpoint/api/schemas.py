"""API schemas for the till.

Pydantic models for request/response validation and serialization.
Money amounts are serialized as decimal strings.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from tillpoint.catalog.service import QueryPage
from tillpoint.catalog.store import CategoryFacet
from tillpoint.domain.cart import CartEngine
from tillpoint.domain.entities import CartLine, Product
from tillpoint.domain.value_objects import SelectedVariant, badge_value
from tillpoint.infrastructure.devices import Device


# ============================================================================
# Common Schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Standard error response.

    All API errors follow this format for consistency.
    """

    error_code: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Any = Field(default_factory=dict, description="Additional error details")
    request_id: str | None = Field(default=None, description="Request ID for correlation")


class VariantSelectionSchema(BaseModel):
    """Chosen color, size and flavor."""

    color: str | None = None
    size: str | None = None
    flavor: str | None = None

    def to_domain(self) -> SelectedVariant | None:
        """Convert to a domain selection (None when nothing is chosen)."""
        return SelectedVariant.from_raw(self.model_dump())


# ============================================================================
# Catalog Schemas
# ============================================================================


class VariantOptionSchema(BaseModel):
    """One variant option and its surcharge."""

    name: str
    price: Decimal


class ProductVariantsSchema(BaseModel):
    """Variant option sets of a product."""

    colors: list[VariantOptionSchema] = Field(default_factory=list)
    sizes: list[VariantOptionSchema] = Field(default_factory=list)
    flavors: list[VariantOptionSchema] = Field(default_factory=list)


class ProductSchema(BaseModel):
    """Catalog product."""

    id: str
    name: str
    category: str
    price: Decimal
    image: str = ""
    description: str = ""
    badge: str | None = None
    variants: ProductVariantsSchema = Field(default_factory=ProductVariantsSchema)
    has_variants: bool = False
    brand: str | None = None
    barcode: str | None = None
    reorder_qty: int | None = None
    in_stock: bool = True
    stock_quantity: int = 0

    @classmethod
    def from_domain(cls, product: Product) -> "ProductSchema":
        """Convert a domain product."""
        return cls.model_validate({**product.to_dict(), "has_variants": product.has_variants})


class ProductPageResponse(BaseModel):
    """One page of catalog query results."""

    products: list[ProductSchema]
    page: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool
    total_count: int
    limit: int

    @classmethod
    def from_page(cls, page: QueryPage) -> "ProductPageResponse":
        """Convert a query page."""
        return cls(
            products=[ProductSchema.from_domain(p) for p in page.items],
            page=page.page,
            total_pages=page.total_pages,
            has_next_page=page.has_next_page,
            has_previous_page=page.has_previous_page,
            total_count=page.total_count,
            limit=page.limit,
        )


class CategoryFacetSchema(BaseModel):
    """Category with its item count."""

    id: str
    name: str
    icon: str = ""
    count: int

    @classmethod
    def from_domain(cls, facet: CategoryFacet) -> "CategoryFacetSchema":
        """Convert a category facet."""
        return cls(**facet.to_dict())


class CategoriesResponse(BaseModel):
    """Category facets."""

    categories: list[CategoryFacetSchema]


class ProductListResponse(BaseModel):
    """Unpaginated product list."""

    products: list[ProductSchema]
    count: int

    @classmethod
    def from_products(cls, products: list[Product]) -> "ProductListResponse":
        """Convert a product list."""
        return cls(products=[ProductSchema.from_domain(p) for p in products], count=len(products))


# ============================================================================
# Cart Schemas
# ============================================================================


class CartLineSchema(BaseModel):
    """One cart line."""

    line_key: str
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    note: str
    selected_variant: VariantSelectionSchema | None = None
    variant_description: str = ""
    badge: str | None = None
    line_subtotal: Decimal
    added_at: datetime

    @classmethod
    def from_domain(cls, line: CartLine) -> "CartLineSchema":
        """Convert a cart line."""
        variant = line.selected_variant
        return cls(
            line_key=line.line_key,
            product_id=line.product_id,
            name=line.name,
            unit_price=line.unit_price,
            quantity=line.quantity,
            note=line.note,
            selected_variant=VariantSelectionSchema(**variant.to_dict()) if variant else None,
            variant_description=variant.describe() if variant else "",
            badge=badge_value(line.badge),
            line_subtotal=line.line_subtotal,
            added_at=line.added_at,
        )


class CartTotalsSchema(BaseModel):
    """Derived cart totals."""

    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    item_count: int


class CartResponse(BaseModel):
    """The active cart."""

    cart_id: str
    lines: list[CartLineSchema]
    totals: CartTotalsSchema
    manual_discount: Decimal
    item_count: int
    is_empty: bool

    @classmethod
    def from_engine(cls, engine: CartEngine) -> "CartResponse":
        """Snapshot the engine state."""
        totals = engine.totals
        return cls(
            cart_id=str(engine.id),
            lines=[CartLineSchema.from_domain(line) for line in engine.lines],
            totals=CartTotalsSchema(
                subtotal=totals.subtotal,
                discount=totals.discount,
                tax=totals.tax,
                total=totals.total,
                item_count=totals.item_count,
            ),
            manual_discount=engine.manual_discount,
            item_count=engine.item_count,
            is_empty=engine.is_empty,
        )


class AddItemRequest(BaseModel):
    """Request to add a product without customization."""

    product_id: str = Field(..., min_length=1)
    quantity: int = Field(default=1, description="Values below 1 count as 1")
    note: str = ""
    badge_override: str | None = None


class SelectionRequest(BaseModel):
    """Request to route a product click through the variant resolver."""

    product_id: str = Field(..., min_length=1)


class SelectionResponse(BaseModel):
    """Variant resolver decision."""

    decision: str
    requires_customization: bool
    product: ProductSchema
    line: CartLineSchema | None = None
    cart: CartResponse


class CustomizationRequest(BaseModel):
    """Confirmed customization of a product."""

    product_id: str = Field(..., min_length=1)
    selected_variant: VariantSelectionSchema | None = None
    note: str = ""
    quantity: int = Field(default=1, description="Values below 1 count as 1")


class UpdateQuantityRequest(BaseModel):
    """Request to set a line quantity; below 1 removes the line."""

    quantity: int


class DiscountRequest(BaseModel):
    """Order-level discount."""

    amount: Decimal = Field(..., ge=0)


# ============================================================================
# Device Schemas
# ============================================================================


class DeviceSchema(BaseModel):
    """A selectable peripheral."""

    id: str
    name: str
    model: str
    status: str
    type: str

    @classmethod
    def from_domain(cls, device: Device) -> "DeviceSchema":
        """Convert a device."""
        return cls(**device.to_dict())


class DevicesResponse(BaseModel):
    """Devices of one type."""

    device_type: str
    devices: list[DeviceSchema]
