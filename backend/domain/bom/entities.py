"""
BOM Domain - Entities.

AssemblyNode represents a single position in a BOM tree built from
depth-indented rows; BOMTree is the location-keyed collection of nodes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from domain.shared.value_objects import ROOT_PARENT_KEY, LocationKey


SCALAR_FIELDS: Tuple[str, ...] = ("description", "revision", "quantity", "lifecycle")


@dataclass(frozen=True)
class SourcingEntry:
    """A manufacturer / part number pair found on a BOM row."""

    manufacturer: str
    manufacturer_part_number: str = ""
    row_index: Optional[int] = None

    @property
    def pair(self) -> Tuple[str, str]:
        return (self.manufacturer, self.manufacturer_part_number)


@dataclass(frozen=True)
class AssemblyNode:
    """
    A single position in a BOM tree.

    Immutable snapshot of the row that opened it plus any sourcing
    continuation rows attached below it.
    """

    depth: int
    part_id: str
    location_key: str
    parent_key: str = ROOT_PARENT_KEY
    row_index: Optional[int] = None
    quantity: str = ""
    description: str = ""
    revision: str = ""
    lifecycle: str = ""
    status: str = ""
    sourcing: Tuple[SourcingEntry, ...] = ()

    @property
    def is_root(self) -> bool:
        """Check if this node has no parent inside the tree."""
        return self.parent_key == ROOT_PARENT_KEY

    @property
    def sourcing_pairs(self) -> Tuple[Tuple[str, str], ...]:
        return tuple(entry.pair for entry in self.sourcing)

    def attribute_snapshot(self) -> Dict[str, str]:
        """Scalar attributes compared between trees."""
        return {name: getattr(self, name) for name in SCALAR_FIELDS}

    def key(self, separator: str) -> LocationKey:
        return LocationKey(self.location_key, separator)


class RowKind(str, Enum):
    """How the tree builder classified a scanned row."""

    NODE = "node"                          # Opened an assembly node
    SOURCING = "sourcing"                  # Continuation row attached to a node
    INERT = "inert"                        # Blank identifier, no sourcing data
    OUTSIDE_HIERARCHY = "outside_hierarchy"  # Identifier but blank level marker


@dataclass(frozen=True)
class RowTrace:
    """What the builder saw on one row, in original row order."""

    row_index: int
    kind: RowKind
    depth: Optional[int] = None
    part_id: str = ""
    location_key: Optional[str] = None
    quantity: str = ""


@dataclass(frozen=True)
class BOMTree:
    """
    Ordered mapping from location key to assembly node.

    Built once per call by the tree builder and never modified afterwards.
    """

    nodes: Mapping[str, AssemblyNode] = field(default_factory=dict)
    separator: str = "/"
    start_index: int = 0
    base_depth: int = 0
    rows: Tuple[RowTrace, ...] = ()
    duplicate_keys: Tuple[Tuple[str, int], ...] = ()

    @classmethod
    def create(
        cls,
        nodes: Dict[str, AssemblyNode],
        separator: str = "/",
        start_index: int = 0,
        base_depth: int = 0,
        rows: Optional[List[RowTrace]] = None,
        duplicate_keys: Optional[List[Tuple[str, int]]] = None,
    ) -> BOMTree:
        return cls(
            nodes=MappingProxyType(dict(nodes)),
            separator=separator,
            start_index=start_index,
            base_depth=base_depth,
            rows=tuple(rows or ()),
            duplicate_keys=tuple(duplicate_keys or ()),
        )

    # =========================================================================
    # MAPPING ACCESS
    # =========================================================================

    def __len__(self) -> int:
        return len(self.nodes)

    def __iter__(self) -> Iterator[str]:
        return iter(self.nodes)

    def __contains__(self, key: object) -> bool:
        return key in self.nodes

    def __getitem__(self, key: str) -> AssemblyNode:
        return self.nodes[key]

    def get(self, key: str) -> Optional[AssemblyNode]:
        return self.nodes.get(key)

    def keys(self):
        return self.nodes.keys()

    def values(self):
        return self.nodes.values()

    def items(self):
        return self.nodes.items()

    # =========================================================================
    # TREE NAVIGATION
    # =========================================================================

    @property
    def roots(self) -> List[AssemblyNode]:
        """Nodes without a parent inside the tree."""
        return [node for node in self.nodes.values() if node.is_root]

    def get_children(self, location_key: str) -> List[AssemblyNode]:
        """Get all direct children of a node, in row order."""
        return [node for node in self.nodes.values() if node.parent_key == location_key]

    def children_index(self) -> Dict[str, List[AssemblyNode]]:
        """Parent key -> direct children, built in one pass."""
        index: Dict[str, List[AssemblyNode]] = {}
        for node in self.nodes.values():
            index.setdefault(node.parent_key, []).append(node)
        return index

    def get_path_to_root(self, location_key: str) -> List[AssemblyNode]:
        """Get the nodes from a position up to its top-level ancestor."""
        path = []
        key: Optional[LocationKey] = LocationKey(location_key, self.separator)
        while key is not None:
            node = self.nodes.get(key.value)
            if node is not None:
                path.append(node)
            key = key.parent
        return path

    def locations_of(self, part_id: str) -> List[str]:
        """Every location where a part id is used."""
        return [key for key, node in self.nodes.items() if node.part_id == part_id]

    def part_ids(self) -> List[str]:
        """Distinct part ids, in first-use order."""
        return list(dict.fromkeys(node.part_id for node in self.nodes.values()))
