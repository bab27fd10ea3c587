"""
BOM Domain - Diff engine.

Compares two BOM trees position by position (location key) and propagates
impact markers to every ancestor of a changed position.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from domain.shared.exceptions import DiffError, StructuralError
from domain.shared.value_objects import ChangeKind, LocationKey

from .builder import DEFAULT_SEPARATOR, TreeBuilder
from .entities import SCALAR_FIELDS, AssemblyNode, BOMTree


SOURCING_FIELD = "sourcing"


@dataclass(frozen=True)
class FieldChange:
    """Before/after values of one change. field is None for whole-node changes."""

    field: Optional[str]
    before: Any = None
    after: Any = None

    def mirrored(self) -> FieldChange:
        return FieldChange(self.field, self.after, self.before)


@dataclass(frozen=True)
class ChangeRecord:
    """A single change between two BOM trees."""

    id: int
    kind: ChangeKind
    location_key: str
    parent_key: str
    part_id: str
    detail: FieldChange

    @property
    def field(self) -> Optional[str]:
        return self.detail.field

    def describe(self) -> str:
        if self.kind == ChangeKind.ADDED:
            return f"Added {self.part_id} at {self.location_key}"
        if self.kind == ChangeKind.REMOVED:
            return f"Removed {self.part_id} from {self.location_key}"
        if self.detail.field == SOURCING_FIELD:
            if self.detail.before is None:
                return f"Added source {_format_pair(self.detail.after)} to {self.location_key}"
            return f"Removed source {_format_pair(self.detail.before)} from {self.location_key}"
        return (
            f"{self.detail.field} of {self.location_key} changed "
            f"from '{self.detail.before}' to '{self.detail.after}'"
        )


def _format_pair(pair: Tuple[str, str]) -> str:
    return " ".join(value for value in pair if value)


@dataclass(frozen=True)
class DiffResult:
    """Change set plus the keys a report should highlight."""

    changes: Tuple[ChangeRecord, ...] = ()
    direct_keys: FrozenSet[str] = field(default_factory=frozenset)
    impacted_keys: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def is_empty(self) -> bool:
        return not self.changes

    def by_kind(self, kind: ChangeKind) -> List[ChangeRecord]:
        return [change for change in self.changes if change.kind == kind]

    def keys_of_kind(self, kind: ChangeKind) -> Set[str]:
        return {change.location_key for change in self.changes if change.kind == kind}

    def changes_at(self, location_key: str) -> List[ChangeRecord]:
        return [change for change in self.changes if change.location_key == location_key]


class BOMDiffEngine:
    """
    Diff engine for BOM trees.

    Neither input tree is modified; matching works on a copy of the old
    tree's key set.
    """

    def diff(self, old_tree: BOMTree, new_tree: BOMTree) -> DiffResult:
        if old_tree.separator != new_tree.separator:
            raise DiffError(
                "new",
                StructuralError(
                    f"Trees use different location separators "
                    f"('{old_tree.separator}' and '{new_tree.separator}')"
                ),
            )

        changes: List[ChangeRecord] = []
        remaining: Dict[str, AssemblyNode] = dict(old_tree.items())

        def emit(kind: ChangeKind, node: AssemblyNode, detail: FieldChange) -> None:
            changes.append(ChangeRecord(
                id=len(changes) + 1,
                kind=kind,
                location_key=node.location_key,
                parent_key=node.parent_key,
                part_id=node.part_id,
                detail=detail,
            ))

        for key, new_node in new_tree.items():
            old_node = remaining.pop(key, None)
            if old_node is None:
                emit(ChangeKind.ADDED, new_node,
                     FieldChange(None, None, new_node.attribute_snapshot()))
                continue

            for field_name in SCALAR_FIELDS:
                before = getattr(old_node, field_name)
                after = getattr(new_node, field_name)
                if before != after:
                    emit(ChangeKind.MODIFIED, new_node, FieldChange(field_name, before, after))

            for detail in self._compare_sourcing(old_node, new_node):
                emit(ChangeKind.MODIFIED, new_node, detail)

        for old_node in remaining.values():
            emit(ChangeKind.REMOVED, old_node,
                 FieldChange(None, old_node.attribute_snapshot(), None))

        direct_keys = {change.location_key for change in changes}
        impacted_keys = self.propagate_impact(direct_keys, new_tree.separator)

        return DiffResult(
            changes=tuple(changes),
            direct_keys=frozenset(direct_keys),
            impacted_keys=frozenset(impacted_keys),
        )

    @staticmethod
    def propagate_impact(direct_keys: Set[str], separator: str = DEFAULT_SEPARATOR) -> Set[str]:
        """Strict prefixes of direct keys; a direct key is never also impacted."""
        impacted: Set[str] = set()
        for key in direct_keys:
            for ancestor in LocationKey(key, separator).ancestors():
                if ancestor.value in impacted:
                    break
                if ancestor.value not in direct_keys:
                    impacted.add(ancestor.value)
        return impacted

    @staticmethod
    def _compare_sourcing(old_node: AssemblyNode, new_node: AssemblyNode) -> List[FieldChange]:
        old_pairs = list(dict.fromkeys(old_node.sourcing_pairs))
        new_pairs = list(dict.fromkeys(new_node.sourcing_pairs))
        old_set, new_set = set(old_pairs), set(new_pairs)

        details = [FieldChange(SOURCING_FIELD, pair, None) for pair in old_pairs if pair not in new_set]
        details += [FieldChange(SOURCING_FIELD, None, pair) for pair in new_pairs if pair not in old_set]
        return details

    # =========================================================================
    # ROW ENTRY POINT
    # =========================================================================

    def diff_rows(
        self,
        old_rows: Sequence[Any],
        new_rows: Sequence[Any],
        column_map: Any,
        builder: Optional[TreeBuilder] = None,
        old_start_index: int = 0,
        new_start_index: int = 0,
        old_column_map: Any = None,
    ) -> DiffResult:
        """
        Build both trees and compare them.

        A StructuralError on either side is raised as DiffError naming the side.
        """
        builder = builder or TreeBuilder()
        old_tree = self._build_side(
            "old", builder, old_rows, old_column_map or column_map, old_start_index
        )
        new_tree = self._build_side("new", builder, new_rows, column_map, new_start_index)
        return self.diff(old_tree, new_tree)

    @staticmethod
    def _build_side(side: str, builder: TreeBuilder, rows, column_map, start_index: int) -> BOMTree:
        try:
            return builder.build(rows, column_map, start_index=start_index)
        except StructuralError as exc:
            raise DiffError(side, exc) from exc


def diff(old_tree: BOMTree, new_tree: BOMTree) -> DiffResult:
    """Compare two trees with a default engine."""
    return BOMDiffEngine().diff(old_tree, new_tree)
