"""
BOM analysis service.

Entry point used by the API and the Celery tasks: builds trees from row
snapshots, compares and audits them with the configured governance
settings, and puts results in report order.
"""

import logging
from typing import Any, BinaryIO, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from domain.bom.audit import Finding, IntegrityAuditor, summarize
from domain.bom.builder import TreeBuilder
from domain.bom.diff import BOMDiffEngine, ChangeRecord, DiffResult
from domain.bom.entities import BOMTree
from domain.shared.exceptions import DiffError, StructuralError, ValidationException
from domain.shared.value_objects import Severity
from infrastructure.spreadsheet.worksheet import WorksheetSnapshot, read_worksheet

from .governance_settings import GovernanceSettings, governance_settings

logger = logging.getLogger(__name__)


class BOMAnalysisService:
    """
    Builds, compares and audits BOM snapshots.

    Stateless apart from configuration; safe to create per request.
    """

    def __init__(self, governance: Optional[GovernanceSettings] = None):
        self.governance = governance or governance_settings()
        self.builder = TreeBuilder(
            separator=self.governance.location_separator,
            require_lifecycle=self.governance.require_lifecycle_column,
        )
        self.diff_engine = BOMDiffEngine()
        self.auditor = IntegrityAuditor(new_part_statuses=self.governance.new_part_statuses)

    # =========================================================================
    # TREES
    # =========================================================================

    def build_tree(
        self,
        rows: Sequence[Any],
        column_map: Any,
        start_index: int = 0,
        anchor_part_id: Optional[str] = None,
        occurrence: int = 0,
    ) -> BOMTree:
        """
        Build the whole sheet, or the sub-assembly under anchor_part_id.

        occurrence picks which use of the anchor part to extract when it
        appears more than once.
        """
        if anchor_part_id:
            tree = self._extract(rows, column_map, anchor_part_id, start_index, occurrence)
            if tree is None:
                raise StructuralError(
                    f"Part {anchor_part_id} not found in the BOM",
                    column='part_id',
                )
        else:
            tree = self.builder.build(rows, column_map, start_index=start_index)

        logger.info(
            "Built BOM tree: %d nodes from %d rows%s",
            len(tree), len(tree.rows),
            f" (scope {anchor_part_id})" if anchor_part_id else "",
        )
        if tree.duplicate_keys:
            logger.debug("Duplicate BOM positions ignored: %s", tree.duplicate_keys)
        return tree

    def _extract(
        self,
        rows: Sequence[Any],
        column_map: Any,
        anchor_part_id: str,
        start_index: int,
        occurrence: int,
    ) -> Optional[BOMTree]:
        anchors = self.builder.find_anchor_rows(rows, column_map, anchor_part_id, start_index)
        if not anchors:
            return None
        if not 0 <= occurrence < len(anchors):
            raise ValidationException(
                f"Part {anchor_part_id} is used {len(anchors)} time(s); "
                f"occurrence {occurrence} does not exist",
                'occurrence',
                occurrence
            )
        return self.builder.extract_subtree(rows, column_map, anchors[occurrence])

    # =========================================================================
    # DIFF
    # =========================================================================

    def diff(
        self,
        old_rows: Sequence[Any],
        new_rows: Sequence[Any],
        column_map: Any,
        old_column_map: Any = None,
        anchor_part_id: Optional[str] = None,
    ) -> DiffResult:
        """
        Compare two row snapshots.

        With anchor_part_id only that sub-assembly is compared; a side where
        the part is missing counts as an empty sub-assembly.
        """
        old_tree = self._build_side('old', old_rows, old_column_map or column_map, anchor_part_id)
        new_tree = self._build_side('new', new_rows, column_map, anchor_part_id)

        if anchor_part_id and old_tree is None and new_tree is None:
            raise ValidationException(
                f"Part {anchor_part_id} not found in either BOM",
                'anchor_part_id',
                anchor_part_id
            )
        empty = BOMTree.create({}, separator=self.governance.location_separator)

        result = self.diff_engine.diff(old_tree or empty, new_tree or empty)
        logger.info(
            "BOM diff: %d changes, %d direct, %d impacted positions",
            len(result.changes), len(result.direct_keys), len(result.impacted_keys),
        )
        return result

    def _build_side(
        self,
        side: str,
        rows: Sequence[Any],
        column_map: Any,
        anchor_part_id: Optional[str],
    ) -> Optional[BOMTree]:
        try:
            if anchor_part_id:
                return self._extract(rows, column_map, anchor_part_id, 0, 0)
            return self.builder.build(rows, column_map)
        except StructuralError as exc:
            raise DiffError(side, exc) from exc

    # =========================================================================
    # AUDIT
    # =========================================================================

    def audit(
        self,
        rows: Sequence[Any],
        column_map: Any,
        part_dictionary: Optional[Mapping[str, Any]] = None,
        sourcing_dictionary: Optional[Mapping[str, Iterable[Any]]] = None,
        non_production_states: Optional[Iterable[str]] = None,
        start_index: int = 0,
    ) -> List[Finding]:
        tree = self.build_tree(rows, column_map, start_index=start_index)
        return self.audit_tree(tree, part_dictionary, sourcing_dictionary, non_production_states)

    def audit_tree(
        self,
        tree: BOMTree,
        part_dictionary: Optional[Mapping[str, Any]] = None,
        sourcing_dictionary: Optional[Mapping[str, Iterable[Any]]] = None,
        non_production_states: Optional[Iterable[str]] = None,
    ) -> List[Finding]:
        if non_production_states is None:
            non_production_states = self.governance.non_production_states

        findings = self.auditor.audit(
            tree, part_dictionary, sourcing_dictionary, non_production_states
        )
        summary = summarize(findings)
        logger.info(
            "BOM audit: %d nodes, %d errors, %d warnings",
            len(tree), summary['errors'], summary['warnings'],
        )
        return findings

    def audit_workbook(
        self,
        source: Union[str, BinaryIO],
        part_dictionary: Optional[Mapping[str, Any]] = None,
        sourcing_dictionary: Optional[Mapping[str, Iterable[Any]]] = None,
        sheet_name: Optional[str] = None,
        header_row: int = 1,
    ) -> Tuple[WorksheetSnapshot, List[Finding]]:
        snapshot = read_worksheet(source, sheet_name=sheet_name, header_row=header_row)
        findings = self.audit(
            snapshot.rows,
            snapshot.column_map,
            part_dictionary,
            sourcing_dictionary,
            start_index=snapshot.first_data_index,
        )
        return snapshot, findings


# =============================================================================
# REPORT ORDERING
# =============================================================================

def ordered_changes(result: DiffResult) -> List[ChangeRecord]:
    """Change log order: parent key, then part id, then emission order."""
    return sorted(result.changes, key=lambda change: (change.parent_key, change.part_id, change.id))


def group_findings(findings: Iterable[Finding]) -> Dict[str, List[Finding]]:
    """Findings per check id, errors before warnings inside each group."""
    groups: Dict[str, List[Finding]] = {}
    for finding in findings:
        groups.setdefault(finding.check_id, []).append(finding)
    for items in groups.values():
        items.sort(key=lambda finding: finding.severity != Severity.ERROR)
    return groups
