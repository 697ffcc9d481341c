"""Variant resolution for product selection.

Decides, per product click, whether the product can go straight into
the cart or whether the operator must first pick a color, size or
flavor. The resolver keeps no state between clicks: every selection
gets its own run of the ``VariantSelectionState`` machine.
"""

from dataclasses import dataclass, field
from decimal import Decimal

import structlog

from tillpoint.domain.cart import CartEngine
from tillpoint.domain.entities import CartLine, Product
from tillpoint.domain.exceptions import InvalidVariantSelectionError
from tillpoint.domain.state_machines import VariantSelectionState, validate_variant_transition
from tillpoint.domain.value_objects import SelectedVariant, to_price, variant_surcharge

logger = structlog.get_logger()


@dataclass
class SelectionRun:
    """State of one product-selection event.

    Attributes:
        product: Product that was clicked.
        state: Current machine state.
    """

    product: Product
    state: VariantSelectionState = VariantSelectionState.IDLE
    history: list[VariantSelectionState] = field(default_factory=list, repr=False)

    def transition(self, target: VariantSelectionState) -> None:
        """Move to a new state.

        Args:
            target: Target state.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed.
        """
        validate_variant_transition(self.state, target)
        self.history.append(self.state)
        self.state = target


class PendingCustomization:
    """A selection waiting for the customization surface.

    The surface either confirms with the chosen options (adding to the
    cart) or cancels (no cart mutation). Both end the run in IDLE.
    """

    def __init__(self, run: SelectionRun, engine: CartEngine) -> None:
        """Initialize pending customization.

        Args:
            run: Selection run in AWAIT_CUSTOMIZATION.
            engine: Cart engine to add to on confirmation.
        """
        self._run = run
        self._engine = engine

    @property
    def product(self) -> Product:
        """Product being customized."""
        return self._run.product

    @property
    def state(self) -> VariantSelectionState:
        """Current state of the underlying run."""
        return self._run.state

    def unit_price_for(self, selection: SelectedVariant | None) -> Decimal:
        """Preview the unit price with the given options.

        Args:
            selection: Options under consideration.

        Returns:
            Product price plus surcharges.
        """
        return to_price(self.product.price) + variant_surcharge(self.product.variants, selection)

    def confirm(
        self,
        selection: SelectedVariant | None,
        note: str = "",
        quantity: int = 1,
    ) -> CartLine | None:
        """Add the customized product to the cart.

        Args:
            selection: Chosen options.
            note: Free-text note.
            quantity: Units to add.

        Returns:
            The new or merged cart line.

        Raises:
            InvalidVariantSelectionError: If an option is not offered.
            InvalidStateTransitionError: If the run already ended.
        """
        if selection is not None:
            for dimension, name in selection.items():
                if self.product.variants.find(dimension, name) is None:
                    raise InvalidVariantSelectionError(self.product.id, dimension, name)

        self._run.transition(VariantSelectionState.IDLE)
        return self._engine.add_item(
            self.product,
            quantity=quantity,
            note=note,
            selected_variant=selection,
        )

    def cancel(self) -> None:
        """Abandon the customization without touching the cart.

        Raises:
            InvalidStateTransitionError: If the run already ended.
        """
        self._run.transition(VariantSelectionState.IDLE)
        logger.debug("Customization cancelled", product_id=self.product.id)


@dataclass
class SelectionOutcome:
    """Result of handing a product click to the resolver.

    Exactly one of ``line`` (direct add) or ``pending`` (customization
    required) is meaningful, depending on ``decision``.
    """

    product: Product
    decision: VariantSelectionState
    line: CartLine | None = None
    pending: PendingCustomization | None = None

    @property
    def requires_customization(self) -> bool:
        """Check if the operator must pick options first."""
        return self.decision == VariantSelectionState.AWAIT_CUSTOMIZATION


class VariantResolver:
    """Routes product clicks to a direct add or a customization step.

    Example usage:
        resolver = VariantResolver(engine)
        outcome = resolver.select(product)
        if outcome.requires_customization:
            outcome.pending.confirm(SelectedVariant(size="Large"), note="no ice")
    """

    def __init__(self, engine: CartEngine) -> None:
        """Initialize resolver.

        Args:
            engine: Cart engine receiving direct adds and confirmations.
        """
        self.engine = engine

    @staticmethod
    def evaluate(product: Product) -> VariantSelectionState:
        """Decide how a product must be added.

        DIRECT_ADD iff every variant dimension is absent or empty.

        Args:
            product: Clicked product.

        Returns:
            DIRECT_ADD or AWAIT_CUSTOMIZATION.
        """
        if product.variants.has_options:
            return VariantSelectionState.AWAIT_CUSTOMIZATION
        return VariantSelectionState.DIRECT_ADD

    def select(self, product: Product) -> SelectionOutcome:
        """Handle a product click.

        Products without options are added to the cart with quantity 1,
        an empty note and their own badge. Products with options yield a
        ``PendingCustomization`` and leave the cart untouched.

        Args:
            product: Clicked product.

        Returns:
            SelectionOutcome describing what happened.
        """
        run = SelectionRun(product=product)
        run.transition(VariantSelectionState.EVALUATING_VARIANTS)
        decision = self.evaluate(product)
        run.transition(decision)

        if decision == VariantSelectionState.AWAIT_CUSTOMIZATION:
            logger.debug("Product needs customization", product_id=product.id)
            return SelectionOutcome(
                product=product,
                decision=decision,
                pending=PendingCustomization(run, self.engine),
            )

        line = self.engine.add_item(product, quantity=1, note="", badge_override=product.badge)
        run.transition(VariantSelectionState.IDLE)
        return SelectionOutcome(product=product, decision=decision, line=line)

    def begin_customization(self, product: Product) -> PendingCustomization:
        """Open a customization run regardless of the product's options.

        Used when the operator long-presses a product to attach a note.

        Args:
            product: Product to customize.

        Returns:
            PendingCustomization in AWAIT_CUSTOMIZATION.
        """
        run = SelectionRun(product=product)
        run.transition(VariantSelectionState.EVALUATING_VARIANTS)
        run.transition(VariantSelectionState.AWAIT_CUSTOMIZATION)
        return PendingCustomization(run, self.engine)
