"""Persistence of the active cart.

The till keeps a single active cart; it is written to a JSON file after
every mutation and restored on startup. Unreadable or invalid content
never blocks startup: the cart simply starts empty.
"""

import os
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from uuid import UUID

import structlog
from pydantic import BaseModel, Field, ValidationError

from tillpoint.domain.cart import CartEngine
from tillpoint.domain.entities import CartLine
from tillpoint.domain.exceptions import DomainError
from tillpoint.domain.value_objects import Badge, CartId, LineKey, SelectedVariant, badge_value

logger = structlog.get_logger()

SNAPSHOT_VERSION = 1


# ============================================================================
# Snapshot Schemas
# ============================================================================


class VariantSnapshot(BaseModel):
    """Stored variant selection."""

    color: str | None = None
    size: str | None = None
    flavor: str | None = None


class CartLineSnapshot(BaseModel):
    """Stored cart line."""

    product_id: str = Field(..., min_length=1)
    name: str
    unit_price: Decimal = Field(..., ge=0)
    quantity: int = Field(..., ge=1)
    note: str = ""
    selected_variant: VariantSnapshot | None = None
    badge: str | None = None
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_line(cls, line: CartLine) -> "CartLineSnapshot":
        """Snapshot a live cart line."""
        variant = line.selected_variant
        return cls(
            product_id=line.product_id,
            name=line.name,
            unit_price=line.unit_price,
            quantity=line.quantity,
            note=line.note,
            selected_variant=VariantSnapshot(**variant.to_dict()) if variant else None,
            badge=badge_value(line.badge),
            added_at=line.added_at,
        )

    def to_line(self) -> CartLine:
        """Rebuild the cart line, re-deriving its key."""
        variant = (
            SelectedVariant.from_raw(self.selected_variant.model_dump())
            if self.selected_variant
            else None
        )
        key = LineKey.for_selection(self.product_id, variant, self.note)
        return CartLine(
            id=key,
            product_id=self.product_id,
            name=self.name,
            unit_price=self.unit_price,
            quantity=self.quantity,
            note=key.note,
            selected_variant=key.variant,
            badge=Badge.parse(self.badge),
            added_at=self.added_at,
        )


class CartSnapshot(BaseModel):
    """Stored cart."""

    version: int = SNAPSHOT_VERSION
    cart_id: UUID | None = None
    manual_discount: Decimal = Field(default=Decimal("0"), ge=0)
    lines: list[CartLineSnapshot] = Field(default_factory=list)
    saved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ============================================================================
# Store
# ============================================================================


class CartStateStore:
    """Reads and writes the active cart as JSON.

    Example usage:
        storage = CartStateStore(settings.cart_state_path)
        engine = CartEngine(notifier=bus)
        storage.restore(engine)
        bus.subscribe(ALL_EVENTS, lambda event: storage.save(engine))
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize store.

        Args:
            path: JSON file holding the cart.
        """
        self.path = Path(path)

    def save(self, engine: CartEngine) -> None:
        """Write the cart atomically.

        Args:
            engine: Cart to persist.
        """
        snapshot = CartSnapshot(
            cart_id=engine.id.value,
            manual_discount=engine.manual_discount,
            lines=[CartLineSnapshot.from_line(line) for line in engine.lines],
        )
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)

    def load(self) -> CartSnapshot:
        """Read the stored cart.

        Returns:
            Stored snapshot, or an empty one if the file is missing or corrupt.
        """
        if not self.path.exists():
            return CartSnapshot()
        try:
            return CartSnapshot.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (OSError, ValidationError, ValueError) as e:
            logger.warning(
                "Stored cart unreadable, starting empty",
                path=str(self.path),
                error=str(e),
            )
            return CartSnapshot()

    def restore(self, engine: CartEngine) -> int:
        """Load the stored cart into an engine.

        Lines that cannot be rebuilt reset the whole cart to empty.

        Args:
            engine: Engine to fill.

        Returns:
            Number of restored lines.
        """
        snapshot = self.load()
        try:
            lines = [line.to_line() for line in snapshot.lines]
        except DomainError as e:
            logger.warning("Stored cart invalid, starting empty", path=str(self.path), error=e.message)
            lines = []
            snapshot = CartSnapshot()

        engine.restore(
            lines,
            manual_discount=snapshot.manual_discount,
            cart_id=CartId(snapshot.cart_id) if snapshot.cart_id is not None else None,
        )
        if lines:
            logger.info("Cart restored", lines=len(lines), item_count=engine.item_count)
        return len(lines)

    def clear(self) -> None:
        """Delete the stored cart."""
        self.path.unlink(missing_ok=True)
