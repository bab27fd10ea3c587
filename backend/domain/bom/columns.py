"""
BOM Domain - Column mapping.

Tells the tree builder where each attribute lives in a row. Rows may be
sequences (columns are integer positions) or mappings (columns are keys).
All required columns are resolved before any row is read.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Hashable, List, Mapping, Optional, Sequence, Tuple

from domain.shared.exceptions import StructuralError


LEVEL = "level"
PART_ID = "part_id"
DESCRIPTION = "description"
REVISION = "revision"
QUANTITY = "quantity"
LIFECYCLE = "lifecycle"
STATUS = "status"
MANUFACTURER = "manufacturer"
MANUFACTURER_PART_NUMBER = "manufacturer_part_number"

REQUIRED_COLUMNS: Tuple[str, ...] = (LEVEL, PART_ID, DESCRIPTION, REVISION, QUANTITY)


def _is_blank_column(column: Any) -> bool:
    if column is None:
        return True
    if isinstance(column, str) and not column.strip():
        return True
    return False


def _as_columns(value: Any) -> Tuple[Hashable, ...]:
    if _is_blank_column(value):
        return ()
    if isinstance(value, (list, tuple)):
        return tuple(column for column in value if not _is_blank_column(column))
    return (value,)


@dataclass(frozen=True)
class ColumnMap:
    """Resolved column positions for one build or audit call."""

    level: Hashable
    part_id: Hashable
    description: Hashable
    revision: Hashable
    quantity: Hashable
    lifecycle: Optional[Hashable] = None
    status: Optional[Hashable] = None
    manufacturers: Tuple[Hashable, ...] = ()
    manufacturer_part_numbers: Tuple[Hashable, ...] = ()

    @classmethod
    def resolve(
        cls,
        mapping: Any,
        require_lifecycle: bool = True,
    ) -> ColumnMap:
        """
        Resolve a logical-name -> column mapping.

        Raises StructuralError listing every missing required column.
        """
        if isinstance(mapping, ColumnMap):
            if require_lifecycle and mapping.lifecycle is None:
                raise StructuralError(
                    "Required column is not mapped: lifecycle",
                    column=LIFECYCLE,
                    missing_columns=[LIFECYCLE],
                )
            return mapping

        if not isinstance(mapping, Mapping):
            raise StructuralError("Column map must be a mapping of field name to column")

        required = list(REQUIRED_COLUMNS)
        if require_lifecycle:
            required.append(LIFECYCLE)

        missing = [name for name in required if _is_blank_column(mapping.get(name))]
        if missing:
            raise StructuralError(
                f"Required column(s) not mapped: {', '.join(missing)}",
                column=missing[0],
                missing_columns=missing,
            )

        manufacturers = _as_columns(mapping.get(MANUFACTURER))
        part_numbers = _as_columns(mapping.get(MANUFACTURER_PART_NUMBER))
        if part_numbers and len(part_numbers) != len(manufacturers):
            raise StructuralError(
                "Manufacturer and manufacturer part number columns must pair up",
                column=MANUFACTURER_PART_NUMBER,
            )

        lifecycle = mapping.get(LIFECYCLE)
        status = mapping.get(STATUS)
        return cls(
            level=mapping[LEVEL],
            part_id=mapping[PART_ID],
            description=mapping[DESCRIPTION],
            revision=mapping[REVISION],
            quantity=mapping[QUANTITY],
            lifecycle=None if _is_blank_column(lifecycle) else lifecycle,
            status=None if _is_blank_column(status) else status,
            manufacturers=manufacturers,
            manufacturer_part_numbers=part_numbers,
        )

    @property
    def sourcing_pairs(self) -> List[Tuple[Hashable, Optional[Hashable]]]:
        """(manufacturer column, part number column) pairs, in row order."""
        if not self.manufacturer_part_numbers:
            return [(column, None) for column in self.manufacturers]
        return list(zip(self.manufacturers, self.manufacturer_part_numbers))

    def cell(self, row: Any, column: Optional[Hashable]) -> Any:
        """Read one cell; short rows and unmapped columns read as blank."""
        if column is None or row is None:
            return None
        if isinstance(row, Mapping):
            return row.get(column)
        if isinstance(row, Sequence) and not isinstance(row, str):
            if not isinstance(column, int):
                raise StructuralError(
                    f"Column {column!r} cannot index a positional row",
                    column=column,
                )
            if 0 <= column < len(row):
                return row[column]
            return None
        raise StructuralError(f"Unreadable row of type {type(row).__name__}")
