"""Cart engine: the single active basket of the till.

The engine owns an ordered collection of cart lines keyed by
``LineKey`` (product, variant selection, note). Every mutation is
followed by a full re-derivation of the totals; nothing is patched
incrementally. All operations are synchronous and never touch the
catalog: callers pass in already-resolved products.
"""

from decimal import Decimal

import structlog

from tillpoint.domain.base import DomainEvent
from tillpoint.domain.entities import CartLine, CartTotals, Product, validate_product
from tillpoint.domain.events import (
    CartCleared,
    CartDiscountChanged,
    CartLineAdded,
    CartLineQuantityUpdated,
    CartLineRemoved,
)
from tillpoint.domain.exceptions import InvalidDiscountError, InvalidProductDataError
from tillpoint.domain.notifier import Notifier, NullNotifier
from tillpoint.domain.pricing import DEFAULT_TAX_RATE, compute_totals
from tillpoint.domain.value_objects import (
    Badge,
    CartId,
    LineKey,
    SelectedVariant,
    to_price,
    to_quantity,
    variant_surcharge,
)

logger = structlog.get_logger()


class CartEngine:
    """Owner of the active cart.

    Example usage:
        bus = EventBus()
        engine = CartEngine(notifier=bus)

        line = engine.add_item(product, quantity=2)
        engine.update_quantity(line.line_key, 3)
        print(engine.totals.total)

    Price protection: a line keeps the unit price and badge it was created
    with until it is removed. Re-adding after removal captures the
    product's current values.
    """

    def __init__(
        self,
        notifier: Notifier | None = None,
        tax_rate: Decimal = DEFAULT_TAX_RATE,
        cart_id: CartId | None = None,
    ) -> None:
        """Initialize an empty cart.

        Args:
            notifier: Receives an event for every mutation.
            tax_rate: Tax rate applied to the subtotal.
            cart_id: Optional pre-generated cart ID.
        """
        self.id = cart_id or CartId.generate()
        self.tax_rate = tax_rate
        self._notifier = notifier or NullNotifier()
        self._lines: dict[str, CartLine] = {}
        self._manual_discount = Decimal("0")
        self._totals = CartTotals.zero()

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    @property
    def lines(self) -> tuple[CartLine, ...]:
        """Cart lines in insertion order."""
        return tuple(self._lines.values())

    @property
    def totals(self) -> CartTotals:
        """Totals as of the last mutation."""
        return self._totals

    @property
    def manual_discount(self) -> Decimal:
        """Order-level discount applied by the operator."""
        return self._manual_discount

    @property
    def item_count(self) -> int:
        """Total number of units across all lines."""
        return sum(line.quantity for line in self._lines.values())

    @property
    def is_empty(self) -> bool:
        """Check if the cart has no lines."""
        return not self._lines

    def get_line(self, line_key: str | LineKey) -> CartLine | None:
        """Find a line by key.

        Args:
            line_key: Line key or its string token.

        Returns:
            CartLine if present, None otherwise.
        """
        return self._lines.get(str(line_key))

    def compute_totals(self) -> CartTotals:
        """Derive totals from the current lines.

        Pure: reads the lines, writes nothing.

        Returns:
            Freshly computed CartTotals.
        """
        return compute_totals(
            self._lines.values(),
            tax_rate=self.tax_rate,
            manual_discount=self._manual_discount,
        )

    # -------------------------------------------------------------------------
    # Line Operations
    # -------------------------------------------------------------------------

    def add_item(
        self,
        product: Product,
        quantity: int = 1,
        note: str = "",
        badge_override: Badge | str | None = None,
        selected_variant: SelectedVariant | None = None,
    ) -> CartLine | None:
        """Add a product to the cart or merge it into a matching line.

        A line matches when product, variant selection and note are all
        equal; its quantity is then increased. Otherwise a new line is
        appended with the unit price frozen at the product's current
        price plus selected variant surcharges.

        Invalid product data and non-integral quantities are logged and
        ignored.

        Args:
            product: Resolved catalog product.
            quantity: Units to add; values below 1 count as 1.
            note: Free-text note.
            badge_override: Badge to capture instead of the product's own.
            selected_variant: Chosen color/size/flavor, if any.

        Returns:
            The new or updated line, or None if the product was rejected.
        """
        try:
            validate_product(product)
        except InvalidProductDataError as e:
            logger.warning(
                "Ignoring invalid product on add",
                product_id=e.details.get("product_id"),
                reason=e.details.get("reason"),
            )
            return None

        try:
            quantity = max(to_quantity(quantity), 1)
        except ValueError:
            logger.warning(
                "Ignoring invalid quantity on add",
                product_id=product.id,
                quantity=repr(quantity),
            )
            return None

        key = LineKey.for_selection(product.id, selected_variant, note)
        existing = self._lines.get(key.token)

        if existing is not None:
            old_quantity = existing.update_quantity(existing.quantity + quantity)
            self._recompute()
            self._emit(
                CartLineQuantityUpdated(
                    aggregate_id=str(self.id),
                    aggregate_type="Cart",
                    line_key=existing.line_key,
                    product_id=existing.product_id,
                    product_name=existing.name,
                    old_quantity=old_quantity,
                    new_quantity=existing.quantity,
                )
            )
            return existing

        badge = Badge.parse(badge_override) if badge_override is not None else product.badge
        line = CartLine(
            id=key,
            product_id=product.id,
            name=product.name,
            unit_price=to_price(product.price) + variant_surcharge(product.variants, key.variant),
            quantity=quantity,
            note=key.note,
            selected_variant=key.variant,
            badge=badge,
        )
        self._lines[line.line_key] = line
        self._recompute()
        self._emit(
            CartLineAdded(
                aggregate_id=str(self.id),
                aggregate_type="Cart",
                line_key=line.line_key,
                product_id=line.product_id,
                product_name=line.name,
                quantity=line.quantity,
                unit_price=str(line.unit_price),
                note=line.note,
            )
        )
        return line

    def update_quantity(self, line_key: str | LineKey, new_quantity: int) -> CartLine | None:
        """Set the quantity of a line.

        A quantity below 1 removes the line, matching the single stepper
        control of the front end.

        Args:
            line_key: Line key or its string token.
            new_quantity: Desired quantity.

        Returns:
            The updated line (unchanged for a non-integral quantity), or
            None if it was removed or not found.
        """
        line = self._lines.get(str(line_key))
        if line is None:
            logger.warning("Quantity update for unknown line", line_key=str(line_key))
            return None

        try:
            new_quantity = to_quantity(new_quantity)
        except ValueError:
            logger.warning(
                "Ignoring invalid quantity update",
                line_key=line.line_key,
                quantity=repr(new_quantity),
            )
            return line

        if new_quantity < 1:
            self.remove_item(line.line_key)
            return None

        old_quantity = line.update_quantity(new_quantity)
        self._recompute()
        if old_quantity != new_quantity:
            self._emit(
                CartLineQuantityUpdated(
                    aggregate_id=str(self.id),
                    aggregate_type="Cart",
                    line_key=line.line_key,
                    product_id=line.product_id,
                    product_name=line.name,
                    old_quantity=old_quantity,
                    new_quantity=new_quantity,
                )
            )
        return line

    def remove_item(self, line_key: str | LineKey) -> CartLine | None:
        """Remove a line. Removing an absent key is a no-op.

        Args:
            line_key: Line key or its string token.

        Returns:
            The removed line, or None if there was none.
        """
        line = self._lines.pop(str(line_key), None)
        if line is None:
            return None

        self._recompute()
        self._emit(
            CartLineRemoved(
                aggregate_id=str(self.id),
                aggregate_type="Cart",
                line_key=line.line_key,
                product_id=line.product_id,
            )
        )
        return line

    def clear(self) -> int:
        """Empty the cart and reset totals to zero.

        Used when a sale completes or is cancelled.

        Returns:
            Number of lines removed.
        """
        count = len(self._lines)
        self._lines.clear()
        self._manual_discount = Decimal("0")
        self._recompute()
        self._emit(
            CartCleared(aggregate_id=str(self.id), aggregate_type="Cart", line_count=count)
        )
        return count

    # -------------------------------------------------------------------------
    # Order Discount
    # -------------------------------------------------------------------------

    def apply_discount(self, amount: Decimal | int | float) -> CartTotals:
        """Apply an order-level discount on top of badge discounts.

        Args:
            amount: Discount in major currency units.

        Returns:
            Updated totals.

        Raises:
            InvalidDiscountError: If amount is negative or not a number.
        """
        try:
            discount = to_price(amount)
        except ValueError as e:
            raise InvalidDiscountError(amount) from e

        self._manual_discount = discount
        self._recompute()
        self._emit(
            CartDiscountChanged(
                aggregate_id=str(self.id), aggregate_type="Cart", amount=str(discount)
            )
        )
        return self._totals

    def remove_discount(self) -> CartTotals:
        """Drop the order-level discount.

        Returns:
            Updated totals.
        """
        self._manual_discount = Decimal("0")
        self._recompute()
        self._emit(
            CartDiscountChanged(aggregate_id=str(self.id), aggregate_type="Cart", amount="0")
        )
        return self._totals

    # -------------------------------------------------------------------------
    # Persistence Support
    # -------------------------------------------------------------------------

    def restore(
        self,
        lines: list[CartLine],
        manual_discount: Decimal = Decimal("0"),
        cart_id: CartId | None = None,
    ) -> None:
        """Replace the cart contents with previously persisted lines.

        No events are emitted; the restored cart is not a new mutation.

        Args:
            lines: Lines to restore, in order.
            manual_discount: Persisted order-level discount.
            cart_id: Persisted cart ID; the current ID is kept when None.
        """
        if cart_id is not None:
            self.id = cart_id
        self._lines = {line.line_key: line for line in lines}
        self._manual_discount = manual_discount
        self._recompute()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _recompute(self) -> None:
        """Re-derive totals from scratch."""
        self._totals = self.compute_totals()

    def _emit(self, event: DomainEvent) -> None:
        """Deliver an event to the notifier."""
        self._notifier.notify(event)
