"""SQLAlchemy models for the product catalog.

Defines the products table read by ``ProductQueryService``. Variants and
badge are stored as serialized structured data; optional columns
(brand, barcode, reorder threshold) may be null.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import structlog
from sqlalchemy import JSON, Boolean, DateTime, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tillpoint.domain.entities import Product
from tillpoint.domain.value_objects import Badge, ProductVariants, badge_value
from tillpoint.infrastructure.database import Base

logger = structlog.get_logger()


class ProductRecord(Base):
    """Product row in the catalog.

    Attributes:
        id: Unique product identifier.
        name: Display name.
        category: Category key.
        price: Base price in major currency units.
        image: Display image reference.
        description: Product description.
        badge: Stored badge string.
        variants: Serialized color/size/flavor option sets.
        brand: Brand name.
        barcode: Barcode.
        reorder_qty: Reorder threshold.
        in_stock: Whether product is available.
        stock_quantity: Available quantity.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    name: Mapped[str] = mapped_column(String(500), nullable=False, index=True)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    image: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    badge: Mapped[str | None] = mapped_column(String(50), nullable=True)
    variants: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    barcode: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reorder_qty: Mapped[int | None] = mapped_column(Integer, nullable=True)
    in_stock: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, index=True)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<ProductRecord(id={self.id}, name={self.name[:30]})>"

    def to_domain(self) -> Product:
        """Convert the row to a domain product.

        Variants may arrive as a JSON string from older rows; unreadable
        variant data is treated as no variants.

        Returns:
            Product instance.
        """
        variants = self.variants
        if isinstance(variants, str):
            try:
                variants = json.loads(variants)
            except ValueError:
                logger.warning("Unreadable variants column", product_id=self.id)
                variants = None

        return Product(
            id=self.id,
            name=self.name,
            category=self.category or "",
            price=Decimal(self.price),
            image=self.image or "",
            description=self.description or "",
            badge=Badge.parse(self.badge),
            variants=ProductVariants.from_raw(variants),
            brand=self.brand,
            barcode=self.barcode,
            reorder_qty=self.reorder_qty,
            in_stock=bool(self.in_stock) if self.in_stock is not None else True,
            stock_quantity=self.stock_quantity or 0,
        )

    @classmethod
    def from_domain(cls, product: Product) -> "ProductRecord":
        """Build a row from a domain product.

        Args:
            product: Product to store.

        Returns:
            Unsaved ProductRecord.
        """
        return cls(
            id=product.id,
            name=product.name,
            category=product.category,
            price=product.price,
            image=product.image,
            description=product.description,
            badge=badge_value(product.badge),
            variants=product.variants.to_dict() if product.has_variants else None,
            brand=product.brand,
            barcode=product.barcode,
            reorder_qty=product.reorder_qty,
            in_stock=product.in_stock,
            stock_quantity=product.stock_quantity,
        )
