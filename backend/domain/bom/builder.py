"""
BOM Domain - Tree builder.

Single forward pass over depth-indented rows producing a location-keyed
BOMTree. Serves both whole-sheet parsing (base_depth 0) and scoped
sub-assembly extraction (start at the parent's row, base_depth = its level).
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from domain.shared.exceptions import LevelFormatError, StructuralError
from domain.shared.value_objects import ROOT_PARENT_KEY, canonical_quantity, clean_text

from .columns import LEVEL, PART_ID, ColumnMap
from .entities import AssemblyNode, BOMTree, RowKind, RowTrace, SourcingEntry
from .levels import NOT_IN_HIERARCHY, normalize_level


DEFAULT_SEPARATOR = "/"


@dataclass
class _OpenNode:
    """Node still collecting sourcing continuation rows."""

    depth: int
    part_id: str
    location_key: str
    parent_key: str
    row_index: int
    attributes: Dict[str, str]
    sourcing: List[SourcingEntry] = field(default_factory=list)

    def finalize(self) -> AssemblyNode:
        return AssemblyNode(
            depth=self.depth,
            part_id=self.part_id,
            location_key=self.location_key,
            parent_key=self.parent_key,
            row_index=self.row_index,
            sourcing=tuple(self.sourcing),
            **self.attributes,
        )


class TreeBuilder:
    """
    Builds BOM trees from ordered rows.

    The builder holds only configuration; every build() call works on its
    own path stack and node map.
    """

    def __init__(self, separator: str = DEFAULT_SEPARATOR, require_lifecycle: bool = True):
        if not separator:
            raise ValueError("Location separator cannot be empty")
        self.separator = separator
        self.require_lifecycle = require_lifecycle

    # =========================================================================
    # BUILD
    # =========================================================================

    def build(
        self,
        rows: Sequence[Any],
        column_map: Any,
        start_index: int = 0,
        base_depth: int = 0,
    ) -> BOMTree:
        """
        Build a tree from rows[start_index:].

        Raises StructuralError for unmapped required columns (before reading
        any row), unreadable level markers and part ids that contain the
        location separator.
        """
        columns = ColumnMap.resolve(column_map, require_lifecycle=self.require_lifecycle)
        if start_index < 0:
            raise StructuralError(f"Start row {start_index} is out of range", row_index=start_index)

        nodes: Dict[str, AssemblyNode] = {}
        traces: List[RowTrace] = []
        duplicates: List[Tuple[str, int]] = []
        stack: List[Optional[str]] = []
        current: Optional[_OpenNode] = None
        processed_node = False

        def close(node: Optional[_OpenNode]) -> None:
            if node is None:
                return
            if node.location_key in nodes:
                duplicates.append((node.location_key, node.row_index))
                return
            nodes[node.location_key] = node.finalize()

        for row_index in range(start_index, len(rows)):
            row = rows[row_index]
            part_id = clean_text(columns.cell(row, columns.part_id))

            if not part_id:
                level = self._read_level(columns, row, row_index, strict=False)
                depth = None if level is NOT_IN_HIERARCHY else level - base_depth
                sourcing = self._read_sourcing(columns, row, row_index)
                if current is not None and sourcing:
                    current.sourcing.extend(sourcing)
                    traces.append(RowTrace(row_index, RowKind.SOURCING, depth,
                                           location_key=current.location_key))
                else:
                    traces.append(RowTrace(row_index, RowKind.INERT, depth))
                continue

            level = self._read_level(columns, row, row_index, strict=True)
            if level is NOT_IN_HIERARCHY:
                close(current)
                current = None
                traces.append(RowTrace(row_index, RowKind.OUTSIDE_HIERARCHY, part_id=part_id))
                continue

            depth = level - base_depth
            if depth < 0:
                break
            if depth == 0 and processed_node:
                break

            if self.separator in part_id:
                raise StructuralError(
                    f"Part id '{part_id}' contains the location separator '{self.separator}'",
                    row_index=row_index,
                    column=columns.part_id,
                )

            close(current)

            del stack[depth:]
            while len(stack) < depth:
                stack.append(None)
            stack.append(part_id)

            path = [segment for segment in stack if segment is not None]
            location_key = self.separator.join(path)
            parent_key = self.separator.join(path[:-1]) if len(path) > 1 else ROOT_PARENT_KEY

            current = _OpenNode(
                depth=depth,
                part_id=part_id,
                location_key=location_key,
                parent_key=parent_key,
                row_index=row_index,
                attributes=self._read_attributes(columns, row),
                sourcing=self._read_sourcing(columns, row, row_index),
            )
            processed_node = True
            traces.append(RowTrace(row_index, RowKind.NODE, depth, part_id, location_key,
                                   current.attributes["quantity"]))

        close(current)

        return BOMTree.create(
            nodes=nodes,
            separator=self.separator,
            start_index=start_index,
            base_depth=base_depth,
            rows=traces,
            duplicate_keys=duplicates,
        )

    def extract_subtree(
        self,
        rows: Sequence[Any],
        column_map: Any,
        anchor_index: int,
    ) -> BOMTree:
        """
        Build the sub-assembly rooted at rows[anchor_index].

        The anchor row's own level becomes the base depth, so the anchor is the
        single depth-0 node and the scan stops at its next sibling or ancestor.
        """
        columns = ColumnMap.resolve(column_map, require_lifecycle=self.require_lifecycle)
        if not 0 <= anchor_index < len(rows):
            raise StructuralError(f"Anchor row {anchor_index} is out of range", row_index=anchor_index)

        anchor = rows[anchor_index]
        if not clean_text(columns.cell(anchor, columns.part_id)):
            raise StructuralError(
                "Anchor row has no part id",
                row_index=anchor_index,
                column=PART_ID,
            )
        base_depth = self._read_level(columns, anchor, anchor_index, strict=True)
        if base_depth is NOT_IN_HIERARCHY:
            raise StructuralError(
                "Anchor row has no level marker",
                row_index=anchor_index,
                column=LEVEL,
            )
        return self.build(rows, columns, start_index=anchor_index, base_depth=base_depth)

    def find_anchor_rows(
        self,
        rows: Sequence[Any],
        column_map: Any,
        part_id: str,
        start_index: int = 0,
    ) -> List[int]:
        """Row indexes where a part id opens a node."""
        columns = ColumnMap.resolve(column_map, require_lifecycle=self.require_lifecycle)
        wanted = clean_text(part_id)
        return [
            row_index
            for row_index in range(max(start_index, 0), len(rows))
            if clean_text(columns.cell(rows[row_index], columns.part_id)) == wanted
        ]

    # =========================================================================
    # ROW READING
    # =========================================================================

    def _read_level(self, columns: ColumnMap, row: Any, row_index: int, strict: bool) -> Optional[int]:
        marker = columns.cell(row, columns.level)
        try:
            return normalize_level(marker)
        except LevelFormatError as exc:
            if not strict:
                return NOT_IN_HIERARCHY
            raise StructuralError(
                f"Row {row_index}: {exc.message}",
                row_index=row_index,
                column=columns.level,
            ) from exc

    def _read_attributes(self, columns: ColumnMap, row: Any) -> Dict[str, str]:
        return {
            "description": clean_text(columns.cell(row, columns.description)),
            "revision": clean_text(columns.cell(row, columns.revision)),
            "quantity": canonical_quantity(columns.cell(row, columns.quantity)),
            "lifecycle": clean_text(columns.cell(row, columns.lifecycle)).upper(),
            "status": clean_text(columns.cell(row, columns.status)),
        }

    def _read_sourcing(self, columns: ColumnMap, row: Any, row_index: int) -> List[SourcingEntry]:
        entries = []
        for manufacturer_column, mpn_column in columns.sourcing_pairs:
            manufacturer = clean_text(columns.cell(row, manufacturer_column))
            mpn = clean_text(columns.cell(row, mpn_column))
            if manufacturer or mpn:
                entries.append(SourcingEntry(manufacturer, mpn, row_index))
        return entries


def build(
    rows: Sequence[Any],
    column_map: Any,
    start_index: int = 0,
    base_depth: int = 0,
    separator: str = DEFAULT_SEPARATOR,
    require_lifecycle: bool = True,
) -> BOMTree:
    """Build a BOM tree with a one-off TreeBuilder."""
    builder = TreeBuilder(separator=separator, require_lifecycle=require_lifecycle)
    return builder.build(rows, column_map, start_index=start_index, base_depth=base_depth)
