"""
Lifecycle service.

Wraps the lifecycle governor with the configured transition table and logs
every commit attempt. Committed records are returned to the caller, which
owns the history store.
"""

from datetime import datetime
import logging
from typing import Optional

from domain.lifecycle.entities import TransitionOutcome, TransitionResult
from domain.lifecycle.governor import LifecycleGovernor

from .governance_settings import GovernanceSettings, governance_settings

logger = logging.getLogger(__name__)


def lifecycle_governor(governance: Optional[GovernanceSettings] = None) -> LifecycleGovernor:
    """Governor built from the LIFECYCLE_TRANSITIONS setting."""
    governance = governance or governance_settings()
    return LifecycleGovernor(governance.lifecycle_transitions)


class LifecycleService:

    def __init__(self, governor: Optional[LifecycleGovernor] = None):
        self.governor = governor or lifecycle_governor()

    def validate(self, current: Optional[str], next_state: str) -> TransitionResult:
        return self.governor.validate_transition(current, next_state)

    def commit(
        self,
        part_id: str,
        current: Optional[str],
        next_state: str,
        actor: str,
        authorization_reference: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> TransitionOutcome:
        outcome = self.governor.commit(
            part_id,
            current,
            next_state,
            actor,
            authorization_reference=authorization_reference,
            timestamp=timestamp,
        )
        if outcome.committed:
            record = outcome.record
            logger.info(
                "Lifecycle %s: %s %s -> %s by %s%s",
                record.kind.value, part_id, record.from_state or '-', record.to_state,
                actor, f" ({record.authorization_reference})" if record.authorization_reference else "",
            )
        elif not outcome.result.is_noop:
            logger.info(
                "Lifecycle transition rejected for %s: %s", part_id, outcome.result.message
            )
        return outcome
