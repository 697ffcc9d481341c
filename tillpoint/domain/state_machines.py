"""State machines for domain components.

Deterministic state machines that define valid state transitions.
Each product click starts a fresh variant-selection run; no state is
carried between runs.
"""

from enum import Enum

from tillpoint.domain.exceptions import InvalidStateTransitionError


# ============================================================================
# Variant Selection State Machine
# ============================================================================


class VariantSelectionState(str, Enum):
    """States of a single product-selection event.

    State diagram:
        IDLE
          │ evaluate
          ▼
        EVALUATING_VARIANTS ───────────────┐
          │                                │ product has options
          │ no options                     ▼
          ▼                          AWAIT_CUSTOMIZATION
        DIRECT_ADD                         │
          │ added                          │ confirm / cancel
          ▼                                ▼
        IDLE ◄─────────────────────────────┘
    """

    IDLE = "idle"
    EVALUATING_VARIANTS = "evaluating_variants"
    DIRECT_ADD = "direct_add"
    AWAIT_CUSTOMIZATION = "await_customization"

    def can_transition_to(self, target: "VariantSelectionState") -> bool:
        """Check if transition to target state is valid.

        Args:
            target: Target state to transition to.

        Returns:
            True if transition is valid.
        """
        return target in _VARIANT_TRANSITIONS.get(self, set())

    def allowed_transitions(self) -> list["VariantSelectionState"]:
        """Get list of valid target states.

        Returns:
            List of states that can be transitioned to.
        """
        return list(_VARIANT_TRANSITIONS.get(self, set()))

    def is_pending(self) -> bool:
        """Check if the run is waiting on the operator.

        Returns:
            True while a customization surface owns the selection.
        """
        return self == VariantSelectionState.AWAIT_CUSTOMIZATION


# Transitions (defined outside enum to avoid Enum restrictions)
_VARIANT_TRANSITIONS: dict[VariantSelectionState, set[VariantSelectionState]] = {
    VariantSelectionState.IDLE: {VariantSelectionState.EVALUATING_VARIANTS},
    VariantSelectionState.EVALUATING_VARIANTS: {
        VariantSelectionState.DIRECT_ADD,
        VariantSelectionState.AWAIT_CUSTOMIZATION,
    },
    VariantSelectionState.DIRECT_ADD: {VariantSelectionState.IDLE},
    VariantSelectionState.AWAIT_CUSTOMIZATION: {VariantSelectionState.IDLE},
}


def validate_variant_transition(
    current: VariantSelectionState,
    target: VariantSelectionState,
) -> None:
    """Validate a variant-selection state transition.

    Args:
        current: Current state.
        target: Target state.

    Raises:
        InvalidStateTransitionError: If transition is not allowed.
    """
    if not current.can_transition_to(target):
        raise InvalidStateTransitionError(
            machine="VariantSelection",
            current_state=current.value,
            target_state=target.value,
            allowed_transitions=[s.value for s in current.allowed_transitions()],
        )
