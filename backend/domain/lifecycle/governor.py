"""
Lifecycle Domain - Governor.

Finite-state machine over a part's lifecycle attribute. Forward moves come
from the transition table; any other move between known states is a
deviation that needs an authorization reference before it is committed.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Set, Tuple

from domain.shared.exceptions import ValidationException
from domain.shared.value_objects import LifecycleState, TransitionKind

from .entities import LifecycleTransitionRecord, TransitionOutcome, TransitionResult


# Valid forward transitions
DEFAULT_LIFECYCLE_TRANSITIONS: Dict[LifecycleState, Set[LifecycleState]] = {
    LifecycleState.DRAFT: {LifecycleState.PROTOTYPE, LifecycleState.ACTIVE, LifecycleState.OBSOLETE},
    LifecycleState.PROTOTYPE: {LifecycleState.ACTIVE, LifecycleState.OBSOLETE},
    LifecycleState.ACTIVE: {LifecycleState.NRND, LifecycleState.EOL, LifecycleState.OBSOLETE},
    LifecycleState.NRND: {LifecycleState.EOL, LifecycleState.OBSOLETE},
    LifecycleState.EOL: {LifecycleState.OBSOLETE},
    LifecycleState.OBSOLETE: set(),  # No transitions from obsolete
}


def _state(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, LifecycleState):
        return value.value
    return str(value).strip().upper()


class LifecycleGovernor:
    """
    Validates and commits lifecycle transitions.

    States are compared case-insensitively. The table must be closed: every
    target state has to be declared as a key, terminal states map to an
    empty set.
    """

    def __init__(
        self,
        transitions: Optional[Mapping[Any, Iterable[Any]]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        table = transitions if transitions is not None else DEFAULT_LIFECYCLE_TRANSITIONS
        self._table: Dict[str, FrozenSet[str]] = {}
        for state, targets in table.items():
            name = _state(state)
            if not name:
                raise ValidationException("Lifecycle state names cannot be blank", "transitions")
            self._table[name] = frozenset(_state(target) for target in targets or ())

        undeclared = sorted(
            target
            for targets in self._table.values()
            for target in targets
            if target not in self._table
        )
        if undeclared:
            raise ValidationException(
                f"Transition table targets undeclared states: {', '.join(undeclared)}",
                "transitions",
                undeclared
            )
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def states(self) -> List[str]:
        return list(self._table)

    @property
    def terminal_states(self) -> List[str]:
        return [state for state, targets in self._table.items() if not targets]

    @property
    def table(self) -> Dict[str, List[str]]:
        return {state: sorted(targets) for state, targets in self._table.items()}

    def is_recognized(self, state: Any) -> bool:
        return _state(state) in self._table

    def allowed_from(self, state: Any) -> Tuple[str, ...]:
        return tuple(sorted(self._table.get(_state(state), ())))

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate_transition(self, current: Any, next_state: Any) -> TransitionResult:
        current_name = _state(current)
        next_name = _state(next_state)

        if next_name and current_name == next_name:
            return TransitionResult(
                valid=True,
                message=f"Lifecycle already {next_name}",
                is_noop=True,
            )

        if not next_name or next_name not in self._table:
            return TransitionResult(
                valid=False,
                message=f"Unknown lifecycle state '{next_name or next_state}'",
                allowed=self.allowed_from(current_name),
            )

        if not current_name:
            return TransitionResult(
                valid=True,
                kind=TransitionKind.FORWARD,
                message=f"Initial lifecycle {next_name}",
            )

        if current_name not in self._table:
            return TransitionResult(
                valid=False,
                message=f"Unknown lifecycle state '{current_name}'",
            )

        allowed = self.allowed_from(current_name)
        if next_name in self._table[current_name]:
            return TransitionResult(
                valid=True,
                kind=TransitionKind.FORWARD,
                message=f"{current_name} -> {next_name}",
                allowed=allowed,
            )

        return TransitionResult(
            valid=False,
            is_deviation=True,
            message=(
                f"Cannot transition from '{current_name}' to '{next_name}' without "
                f"an authorization reference. Allowed: {', '.join(allowed) or 'none'}"
            ),
            allowed=allowed,
        )

    # =========================================================================
    # COMMANDS
    # =========================================================================

    def commit(
        self,
        part_id: str,
        current: Any,
        next_state: Any,
        actor: str,
        authorization_reference: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> TransitionOutcome:
        """
        Check a transition and produce its history record when accepted.

        No-ops and rejected transitions produce no record.
        """
        result = self.validate_transition(current, next_state)
        reference = (authorization_reference or "").strip() or None

        if result.is_noop:
            return TransitionOutcome(result)

        if result.is_deviation:
            if reference is None:
                return TransitionOutcome(result)
            result = TransitionResult(
                valid=True,
                is_deviation=True,
                kind=TransitionKind.DEVIATION,
                message=f"{_state(current)} -> {_state(next_state)} accepted under {reference}",
                allowed=result.allowed,
            )

        if not result.valid:
            return TransitionOutcome(result)

        record = LifecycleTransitionRecord(
            part_id=part_id,
            from_state=_state(current),
            to_state=_state(next_state),
            kind=result.kind,
            actor=actor,
            timestamp=timestamp or self._clock(),
            authorization_reference=reference,
        )
        return TransitionOutcome(result, record)


def validate_transition(current: Any, next_state: Any) -> TransitionResult:
    """Check a transition against the default table."""
    return LifecycleGovernor().validate_transition(current, next_state)
