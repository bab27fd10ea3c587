"""
Lifecycle Domain - Entities.

Results of lifecycle transition checks and the records committed
transitions leave for the history store.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple

from domain.shared.value_objects import TransitionKind


@dataclass(frozen=True)
class TransitionResult:
    """
    Outcome of checking one lifecycle transition.

    A rejected transition is reported here (valid=False) and never raised.
    is_deviation marks a move the table does not permit but that may be
    accepted against an authorization reference.
    """

    valid: bool
    is_deviation: bool = False
    kind: Optional[TransitionKind] = None
    message: str = ""
    allowed: Tuple[str, ...] = ()
    is_noop: bool = False


@dataclass(frozen=True)
class LifecycleTransitionRecord:
    """A committed lifecycle change of one part."""

    part_id: str
    from_state: str
    to_state: str
    kind: TransitionKind
    actor: str
    timestamp: datetime
    authorization_reference: Optional[str] = None

    @property
    def is_deviation(self) -> bool:
        return self.kind == TransitionKind.DEVIATION


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of a commit attempt; record is None when nothing was committed."""

    result: TransitionResult
    record: Optional[LifecycleTransitionRecord] = None

    @property
    def committed(self) -> bool:
        return self.record is not None
