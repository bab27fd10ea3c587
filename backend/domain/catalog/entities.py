"""
Catalog Domain - Entities.

Parts and their approved manufacturer sources, as supplied by the
external part and sourcing dictionaries.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Sequence, Tuple

from domain.shared.exceptions import ValidationException
from domain.shared.value_objects import clean_text


@dataclass(frozen=True)
class Part:
    """
    A part master record.

    Owned by the part dictionary; the BOM core only reads it.
    """

    part_id: str
    description: str = ""
    revision: str = ""
    lifecycle: str = ""

    def __post_init__(self):
        if not self.part_id:
            raise ValidationException("Part id is required", "part_id")

    @classmethod
    def from_value(cls, part_id: str, value: Any) -> Part:
        """Build a part from a dictionary value (Part or mapping)."""
        if isinstance(value, Part):
            return value
        if value is None:
            return cls(part_id=part_id)
        if not isinstance(value, Mapping):
            raise ValidationException(
                f"Part '{part_id}' must be a mapping, got {type(value).__name__}",
                "part_dictionary",
                part_id
            )
        return cls(
            part_id=part_id,
            description=clean_text(value.get("description")),
            revision=clean_text(value.get("revision")),
            lifecycle=clean_text(value.get("lifecycle")).upper(),
        )


@dataclass(frozen=True)
class SourcingRecord:
    """An approved manufacturer and manufacturer part number for a part."""

    part_id: str
    manufacturer: str
    manufacturer_part_number: str = ""

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.manufacturer, self.manufacturer_part_number)

    @classmethod
    def from_value(cls, part_id: str, value: Any) -> SourcingRecord:
        """Build a record from a SourcingRecord, a mapping or a 2-item sequence."""
        if isinstance(value, SourcingRecord):
            return value
        if isinstance(value, Mapping):
            manufacturer = value.get("manufacturer")
            mpn = value.get("manufacturer_part_number", value.get("mpn"))
        elif isinstance(value, Sequence) and not isinstance(value, str) and len(value) == 2:
            manufacturer, mpn = value
        else:
            raise ValidationException(
                f"Sourcing entry for '{part_id}' is not readable",
                "sourcing_dictionary",
                value
            )
        return cls(
            part_id=part_id,
            manufacturer=clean_text(manufacturer),
            manufacturer_part_number=clean_text(mpn),
        )

    def __str__(self) -> str:
        if self.manufacturer_part_number:
            return f"{self.manufacturer} {self.manufacturer_part_number}"
        return self.manufacturer
