"""
Governance settings.

Reads the BOM_GOVERNANCE dict from Django settings and fills in defaults,
so the domain layer gets plain values and never imports Django.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from django.conf import settings

from domain.lifecycle.governor import DEFAULT_LIFECYCLE_TRANSITIONS


DEFAULTS: Dict[str, Any] = {
    'LOCATION_SEPARATOR': '/',
    'NON_PRODUCTION_STATES': ['DRAFT', 'PROTOTYPE', 'NRND', 'EOL', 'OBSOLETE'],
    'NEW_PART_STATUSES': ['NEW', 'ADDED'],
    'REQUIRE_LIFECYCLE_COLUMN': True,
    'LIFECYCLE_TRANSITIONS': {
        state.value: sorted(target.value for target in targets)
        for state, targets in DEFAULT_LIFECYCLE_TRANSITIONS.items()
    },
}


@dataclass(frozen=True)
class GovernanceSettings:
    location_separator: str
    non_production_states: Tuple[str, ...]
    new_part_statuses: Tuple[str, ...]
    require_lifecycle_column: bool
    lifecycle_transitions: Dict[str, List[str]]


def _as_tuple(value: Any) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = value.split(',')
    return tuple(str(item).strip().upper() for item in value if str(item).strip())


def governance_settings() -> GovernanceSettings:
    """Current governance settings, user values over defaults."""
    user_settings = getattr(settings, 'BOM_GOVERNANCE', None) or {}
    merged = {**DEFAULTS, **user_settings}

    separator = str(merged['LOCATION_SEPARATOR'] or '')
    if not separator:
        separator = DEFAULTS['LOCATION_SEPARATOR']

    return GovernanceSettings(
        location_separator=separator,
        non_production_states=_as_tuple(merged['NON_PRODUCTION_STATES']),
        new_part_statuses=_as_tuple(merged['NEW_PART_STATUSES']),
        require_lifecycle_column=bool(merged['REQUIRE_LIFECYCLE_COLUMN']),
        lifecycle_transitions={
            str(state): list(targets or [])
            for state, targets in merged['LIFECYCLE_TRANSITIONS'].items()
        },
    )
