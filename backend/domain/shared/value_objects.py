"""
Shared Value Objects used across multiple domains.

Value Objects are immutable objects that describe characteristics of a thing.
Two value objects are equal if all their properties are equal.
"""

from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterator, Optional, Tuple


# =============================================================================
# ENUMERATIONS
# =============================================================================

class LifecycleState(str, Enum):
    """Production-readiness status of a part."""

    DRAFT = "DRAFT"
    PROTOTYPE = "PROTOTYPE"
    ACTIVE = "ACTIVE"
    NRND = "NRND"                # Not recommended for new designs
    EOL = "EOL"                  # End of life, last-time buy
    OBSOLETE = "OBSOLETE"


class ChangeKind(str, Enum):
    """Kind of change between two BOM trees."""

    ADDED = "ADDED"
    REMOVED = "REMOVED"
    MODIFIED = "MODIFIED"

    @property
    def mirror(self) -> ChangeKind:
        """Kind reported for the same change when the comparison is reversed."""
        if self == ChangeKind.ADDED:
            return ChangeKind.REMOVED
        if self == ChangeKind.REMOVED:
            return ChangeKind.ADDED
        return self


class Severity(str, Enum):
    """Severity of an audit finding."""

    ERROR = "ERROR"              # Blocks release of the BOM
    WARNING = "WARNING"          # Needs review


class TransitionKind(str, Enum):
    """How a lifecycle transition was accepted."""

    FORWARD = "FORWARD"          # Permitted by the transition table
    DEVIATION = "DEVIATION"      # Accepted against an authorization reference


# =============================================================================
# VALUE OBJECTS
# =============================================================================

ROOT_PARENT_KEY = ""


@dataclass(frozen=True)
class LocationKey:
    """
    Value object addressing a node position in a BOM tree.

    Example: A/B/C is part C used inside B, used inside top assembly A.
    """

    value: str
    separator: str = "/"

    def __post_init__(self):
        if not self.value:
            raise ValueError("Location key cannot be empty")
        if not self.separator:
            raise ValueError("Location separator cannot be empty")

    @classmethod
    def from_path(cls, path: Tuple[str, ...], separator: str = "/") -> LocationKey:
        return cls(separator.join(path), separator)

    @property
    def segments(self) -> Tuple[str, ...]:
        return tuple(self.value.split(self.separator))

    @property
    def part_id(self) -> str:
        """Part id of the addressed node (last segment)."""
        return self.segments[-1]

    @property
    def parent(self) -> Optional[LocationKey]:
        """Get parent key (one level up in hierarchy)."""
        parts = self.value.rsplit(self.separator, 1)
        if len(parts) > 1:
            return LocationKey(parts[0], self.separator)
        return None

    @property
    def parent_value(self) -> str:
        parent = self.parent
        return parent.value if parent else ROOT_PARENT_KEY

    @property
    def hierarchy_level(self) -> int:
        """Get hierarchy level (number of segments)."""
        return len(self.segments)

    def ancestors(self) -> Iterator[LocationKey]:
        """Yield every strict prefix, nearest first, stopping at the root."""
        current = self.parent
        while current is not None:
            yield current
            current = current.parent

    def is_descendant_of(self, other: LocationKey) -> bool:
        return self.value.startswith(other.value + self.separator)

    def __str__(self) -> str:
        return self.value


def canonical_quantity(value: Any) -> str:
    """
    Normalize a quantity cell so that 2, 2.0 and "2.00" compare equal.

    Blank cells become "", text that is not a number is kept as written.
    """
    if value is None or isinstance(value, bool):
        return "" if value is None else str(value)
    text = str(value).strip()
    if not text:
        return ""
    try:
        number = Decimal(text)
    except InvalidOperation:
        return text
    if not number.is_finite():
        return text
    if number == number.to_integral_value():
        return format(number.to_integral_value(), "f")
    return format(number.normalize(), "f")


def quantity_value(value: str) -> Optional[Decimal]:
    """Numeric value of a canonical quantity, None when not a number."""
    if not value:
        return None
    try:
        number = Decimal(value)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def clean_text(value: Any) -> str:
    """Cell value as a stripped string; None becomes ""."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()
