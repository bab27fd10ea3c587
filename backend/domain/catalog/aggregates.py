"""
Catalog Domain - Aggregates.

PartCatalog gives the BOM checks one read-only view over the part
dictionary and the sourcing dictionary.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from domain.shared.value_objects import clean_text

from .entities import Part, SourcingRecord


@dataclass(frozen=True)
class PartCatalog:
    """
    Read-only snapshot of the external part and sourcing dictionaries.

    Both dictionaries are keyed by part id. Values may be Part / SourcingRecord
    instances or plain mappings, so callers can pass JSON straight through.
    """

    parts: Mapping[str, Part] = field(default_factory=dict)
    sourcing: Mapping[str, Tuple[SourcingRecord, ...]] = field(default_factory=dict)

    @classmethod
    def from_dictionaries(
        cls,
        part_dictionary: Optional[Mapping[str, Any]] = None,
        sourcing_dictionary: Optional[Mapping[str, Iterable[Any]]] = None,
    ) -> PartCatalog:
        parts: Dict[str, Part] = {}
        for raw_id, value in (part_dictionary or {}).items():
            part_id = clean_text(raw_id)
            if part_id:
                parts[part_id] = Part.from_value(part_id, value)

        sourcing: Dict[str, Tuple[SourcingRecord, ...]] = {}
        for raw_id, entries in (sourcing_dictionary or {}).items():
            part_id = clean_text(raw_id)
            if not part_id:
                continue
            records: List[SourcingRecord] = [
                SourcingRecord.from_value(part_id, entry) for entry in entries or ()
            ]
            sourcing[part_id] = tuple(records)

        return cls(parts=MappingProxyType(parts), sourcing=MappingProxyType(sourcing))

    # =========================================================================
    # QUERIES
    # =========================================================================

    def has_part(self, part_id: str) -> bool:
        return part_id in self.parts

    def get_part(self, part_id: str) -> Optional[Part]:
        return self.parts.get(part_id)

    def sourcing_for(self, part_id: str) -> Tuple[SourcingRecord, ...]:
        """Approved sources for a part, in dictionary order."""
        return self.sourcing.get(part_id, ())

    def has_sourcing(self, part_id: str) -> bool:
        return bool(self.sourcing_for(part_id))

    def expected_source_count(self, part_id: str) -> int:
        return len(self.sourcing_for(part_id))
