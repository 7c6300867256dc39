"""Per-field validation state machine for FormaFlex.

Every field of a form carries a FieldStateMachine that tracks where its
validation stands and a generation counter used to discard stale results.

Lifecycle:
    UNTOUCHED -> VALIDATING -> {VALID, INVALID}
    VALID / INVALID -> VALIDATING      (next edit or validation pass)
    VALIDATING -> VALIDATING           (evaluation restarted by a newer edit)
    VALIDATING -> UNTOUCHED            (edited while validate_on_change is off)

The generation is bumped for every edit and every validation pass. An
evaluation captures the generation it started under and may only settle the
field while that generation is still current.

Usage:
    >>> sm = FieldStateMachine(key="email")
    >>> generation = sm.begin()
    >>> sm.state
    <FieldState.VALIDATING: 'validating'>
    >>> sm.settle(generation, valid=False)
    True
    >>> sm.state
    <FieldState.INVALID: 'invalid'>
"""

from dataclasses import dataclass
from typing import Any, Dict, Set

from formaflex.types import FieldState


class InvalidStateTransitionError(Exception):
    """Raised when attempting an invalid field state transition.

    Attributes:
        current_state: The current state before the attempted transition
        target_state: The target state that was attempted
        message: Human-readable error message
    """

    def __init__(self, current_state: FieldState, target_state: FieldState, message: str):
        self.current_state = current_state
        self.target_state = target_state
        super().__init__(message)


# Maps each state to the set of states it can transition to
VALID_TRANSITIONS: Dict[FieldState, Set[FieldState]] = {
    FieldState.UNTOUCHED: {
        FieldState.VALIDATING,
    },
    FieldState.VALIDATING: {
        FieldState.VALIDATING,
        FieldState.VALID,
        FieldState.INVALID,
        FieldState.UNTOUCHED,
    },
    FieldState.VALID: {
        FieldState.VALIDATING,
    },
    FieldState.INVALID: {
        FieldState.VALIDATING,
    },
}


@dataclass
class FieldStateMachine:
    """Validation state and generation counter of one field.

    Attributes:
        key: Field key this machine belongs to
        state: Current validation state
        generation: Monotonic counter, bumped on every edit and validation pass

    Examples:
        >>> sm = FieldStateMachine(key="password")
        >>> first = sm.begin()
        >>> second = sm.begin()
        >>> sm.settle(first, valid=True)
        False
        >>> sm.settle(second, valid=True)
        True
    """

    key: str
    state: FieldState = FieldState.UNTOUCHED
    generation: int = 0

    def can_transition_to(self, target_state: FieldState) -> bool:
        return target_state in VALID_TRANSITIONS.get(self.state, set())

    def transition_to(self, target_state: FieldState) -> None:
        """Move to target_state.

        Raises:
            InvalidStateTransitionError: If the transition is not allowed
        """
        if not self.can_transition_to(target_state):
            raise InvalidStateTransitionError(
                current_state=self.state,
                target_state=target_state,
                message=(
                    f"Invalid state transition for field '{self.key}': cannot transition "
                    f"from '{self.state.value}' to '{target_state.value}'. "
                    f"Valid transitions from '{self.state.value}' are: "
                    f"{', '.join(sorted(s.value for s in VALID_TRANSITIONS[self.state]))}"
                ),
            )
        self.state = target_state

    def bump(self) -> int:
        """Invalidate every evaluation started so far and return the new generation."""
        self.generation += 1
        return self.generation

    def begin(self) -> int:
        """Start a new evaluation: bump the generation and enter VALIDATING."""
        generation = self.bump()
        self.transition_to(FieldState.VALIDATING)
        return generation

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def settle(self, generation: int, valid: bool) -> bool:
        """Settle the evaluation started under generation.

        Returns:
            False if the evaluation is stale (a newer edit or pass happened,
            or the field is no longer validating); True if the state changed
        """
        if not self.is_current(generation) or self.state is not FieldState.VALIDATING:
            return False
        self.transition_to(FieldState.VALID if valid else FieldState.INVALID)
        return True

    def reset(self) -> None:
        """Abandon an in-flight evaluation after an edit that will not be validated."""
        if self.state is FieldState.VALIDATING:
            self.transition_to(FieldState.UNTOUCHED)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the state machine to a dictionary.

        Examples:
            >>> FieldStateMachine(key="email", state=FieldState.VALID, generation=3).to_dict()
            {'key': 'email', 'state': 'valid', 'generation': 3}
        """
        return {
            "key": self.key,
            "state": self.state.value,
            "generation": self.generation,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldStateMachine":
        """Deserialize a state machine from a dictionary."""
        state = data["state"]
        if isinstance(state, str):
            state = FieldState(state)
        return cls(
            key=data["key"],
            state=state,
            generation=data.get("generation", 0),
        )


__all__ = [
    "FieldStateMachine",
    "InvalidStateTransitionError",
    "VALID_TRANSITIONS",
]
