"""Badge-driven discount rules and total computation."""

from collections.abc import Callable, Iterable
from decimal import Decimal

from tillpoint.domain.entities import CartLine, CartTotals
from tillpoint.domain.value_objects import Badge, round_money

PERCENT_OFF_RATE = Decimal("0.20")
DEFAULT_TAX_RATE = Decimal("0.10")

DiscountRule = Callable[[Decimal], Decimal]

# Badges without an entry discount nothing. Loyalty and limited-time
# rules will be added here.
DISCOUNT_RULES: dict[Badge, DiscountRule] = {
    Badge.PERCENT_OFF: lambda line_subtotal: line_subtotal * PERCENT_OFF_RATE,
}


def line_discount(line: CartLine) -> Decimal:
    """Discount a single line earns from its captured badge.

    Args:
        line: Cart line.

    Returns:
        Unrounded discount amount.
    """
    if line.badge is None:
        return Decimal("0")
    rule = DISCOUNT_RULES.get(line.badge)
    if rule is None:
        return Decimal("0")
    return rule(line.line_subtotal)


def compute_totals(
    lines: Iterable[CartLine],
    tax_rate: Decimal = DEFAULT_TAX_RATE,
    manual_discount: Decimal = Decimal("0"),
) -> CartTotals:
    """Derive cart totals from scratch.

    Every component is rounded half-to-even to cents and the total is
    assembled from the rounded components, so repeated recomputation
    over the same lines always yields the same values.

    Args:
        lines: Current cart lines.
        tax_rate: Tax rate applied to the pre-discount subtotal.
        manual_discount: Order-level discount on top of badge discounts.

    Returns:
        CartTotals.
    """
    subtotal = Decimal("0")
    badge_discount = Decimal("0")
    item_count = 0
    for line in lines:
        subtotal += line.line_subtotal
        badge_discount += line_discount(line)
        item_count += line.quantity

    # discount never exceeds what is being discounted
    discount = min(badge_discount + manual_discount, subtotal)

    subtotal = round_money(subtotal)
    discount = round_money(discount)
    tax = round_money(subtotal * tax_rate)
    total = round_money(subtotal - discount + tax)

    return CartTotals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=total,
        item_count=item_count,
    )
