"""
BOM Domain - Integrity auditor.

Runs independent read-only checks over one BOM tree and the part and
sourcing dictionaries. Every problem is returned as a Finding; a check
that fails unexpectedly is reported as a finding too, and the remaining
checks still run.
"""

from __future__ import annotations
from collections import Counter
from dataclasses import dataclass
import logging
from typing import (
    Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Set, Tuple
)

from domain.catalog.aggregates import PartCatalog
from domain.shared.value_objects import ROOT_PARENT_KEY, LocationKey, Severity, quantity_value

from .entities import AssemblyNode, BOMTree, RowKind

logger = logging.getLogger(__name__)


ORPHAN = "orphan"
MISSING_SOURCING = "missing_sourcing"
LEVEL_GAP = "level_gap"
STRUCTURAL_MISMATCH = "structural_mismatch"
LIFECYCLE_RISK = "lifecycle_risk"
CIRCULAR_DEPENDENCY = "circular_dependency"
BLANK_IDENTIFIER = "blank_identifier"
SOURCING_ROW_COUNT = "sourcing_row_count"
DUPLICATE_LOCATION = "duplicate_location"
INVALID_QUANTITY = "invalid_quantity"
ATTRIBUTE_DRIFT = "attribute_drift"

DEFAULT_NEW_PART_STATUSES = frozenset({"NEW", "ADDED"})


@dataclass(frozen=True)
class Finding:
    """A single integrity problem."""

    check_id: str
    severity: Severity
    location: Optional[str]
    part_id: Optional[str]
    message: str
    row_index: Optional[int] = None
    locations: Tuple[str, ...] = ()

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


@dataclass(frozen=True)
class AuditContext:
    """Everything a check may read. Shared by all checks of one audit call."""

    tree: BOMTree
    catalog: PartCatalog
    non_production_states: frozenset
    new_part_statuses: frozenset

    def is_pending_new_part(self, node: AssemblyNode) -> bool:
        return node.status.strip().upper() in self.new_part_statuses


Check = Callable[[AuditContext], Iterable[Finding]]


def _normalize_states(states: Optional[Iterable[Any]]) -> frozenset:
    return frozenset(str(state).strip().upper() for state in states or () if str(state).strip())


# =============================================================================
# CHECKS
# =============================================================================

def check_orphans(context: AuditContext) -> Iterator[Finding]:
    """Part ids missing from the part dictionary, unless marked as new parts."""
    for node in context.tree.values():
        if context.catalog.has_part(node.part_id) or context.is_pending_new_part(node):
            continue
        yield Finding(
            check_id=ORPHAN,
            severity=Severity.ERROR,
            location=node.location_key,
            part_id=node.part_id,
            message=f"Part {node.part_id} is not in the part dictionary",
            row_index=node.row_index,
        )


def check_missing_sourcing(context: AuditContext) -> Iterator[Finding]:
    """Known parts with no approved manufacturer."""
    for node in context.tree.values():
        if not context.catalog.has_part(node.part_id):
            continue
        if context.catalog.has_sourcing(node.part_id):
            continue
        yield Finding(
            check_id=MISSING_SOURCING,
            severity=Severity.WARNING,
            location=node.location_key,
            part_id=node.part_id,
            message=f"Part {node.part_id} has no sourcing record",
            row_index=node.row_index,
        )


def check_level_gaps(context: AuditContext) -> Iterator[Finding]:
    """Rows, in original order, that go more than one level deeper than the previous row."""
    previous = 0
    for trace in context.tree.rows:
        if trace.kind != RowKind.NODE:
            continue
        if trace.depth - previous > 1:
            yield Finding(
                check_id=LEVEL_GAP,
                severity=Severity.ERROR,
                location=trace.location_key,
                part_id=trace.part_id,
                message=(
                    f"Row {trace.row_index}: level jumps from {previous} to {trace.depth}"
                ),
                row_index=trace.row_index,
            )
        previous = trace.depth


def child_signature(entries: Iterable[str]) -> str:
    """Order-independent signature of (child id : quantity) entries, repeats kept."""
    return ", ".join(sorted(entries))


def _child_entries(tree: BOMTree) -> Dict[Tuple[str, int], List[str]]:
    """
    (parent location, parent row) -> one "child:qty" entry per node row.

    Read from the row trace, so a child repeated under the same parent
    counts twice even though the tree keeps only its first row.
    """
    entries: Dict[Tuple[str, int], List[str]] = {}
    opened: Dict[str, int] = {}
    for trace in tree.rows:
        if trace.kind != RowKind.NODE:
            continue
        opened[trace.location_key] = trace.row_index
        parent_key = LocationKey(trace.location_key, tree.separator).parent_value
        if parent_key == ROOT_PARENT_KEY or parent_key not in opened:
            continue
        occurrence = (parent_key, opened[parent_key])
        entries.setdefault(occurrence, []).append(f"{trace.part_id}:{trace.quantity}")
    return entries


def check_structural_mismatch(context: AuditContext) -> Iterator[Finding]:
    """Reused sub-assemblies whose children differ between occurrences."""
    signatures: Dict[str, Dict[str, List[str]]] = {}

    for (parent_key, _), entries in _child_entries(context.tree).items():
        node = context.tree.get(parent_key)
        if node is None:
            continue
        by_signature = signatures.setdefault(node.part_id, {})
        locations = by_signature.setdefault(child_signature(entries), [])
        if parent_key not in locations:
            locations.append(parent_key)

    for part_id, by_signature in signatures.items():
        if len(by_signature) < 2:
            continue
        for signature, locations in by_signature.items():
            yield Finding(
                check_id=STRUCTURAL_MISMATCH,
                severity=Severity.ERROR,
                location=locations[0],
                part_id=part_id,
                message=(
                    f"Assembly {part_id} has {len(by_signature)} different structures; "
                    f"[{signature}] used at {', '.join(locations)}"
                ),
                row_index=context.tree[locations[0]].row_index,
                locations=tuple(locations),
            )


def check_lifecycle_risk(context: AuditContext) -> Iterator[Finding]:
    """Parts whose lifecycle state is not cleared for production."""
    for node in context.tree.values():
        lifecycle = node.lifecycle
        if not lifecycle:
            part = context.catalog.get_part(node.part_id)
            lifecycle = part.lifecycle if part else ""
        if lifecycle.upper() not in context.non_production_states:
            continue
        yield Finding(
            check_id=LIFECYCLE_RISK,
            severity=Severity.WARNING,
            location=node.location_key,
            part_id=node.part_id,
            message=f"Part {node.part_id} is {lifecycle}",
            row_index=node.row_index,
        )


def _adjacency(tree: BOMTree) -> Dict[str, List[str]]:
    """Parent part id -> child part ids, from direct (depth + 1) relationships."""
    adjacency: Dict[str, Dict[str, None]] = {}
    for node in tree.values():
        adjacency.setdefault(node.part_id, {})
        if node.is_root:
            continue
        parent = tree.get(node.parent_key)
        if parent is None or node.depth != parent.depth + 1:
            continue
        adjacency.setdefault(parent.part_id, {})[node.part_id] = None
    return {part_id: list(children) for part_id, children in adjacency.items()}


def find_cycles(adjacency: Mapping[str, Sequence[str]]) -> List[List[str]]:
    """
    Iterative Tarjan search for strongly connected components.

    Returns every group of parts that reach each other (two or more parts,
    or a part listing itself), members in discovery order. Each part and
    edge is visited once, so the search is linear in parts plus edges.
    """
    index: Dict[str, int] = {}
    lowlink: Dict[str, int] = {}
    on_stack: Set[str] = set()
    component_stack: List[str] = []
    cycles: List[List[str]] = []

    def visit(part: str) -> Tuple[str, Iterator[str]]:
        index[part] = lowlink[part] = len(index)
        component_stack.append(part)
        on_stack.add(part)
        return part, iter(adjacency.get(part, ()))

    for root in adjacency:
        if root in index:
            continue
        work = [visit(root)]

        while work:
            part, children = work[-1]
            child = next(children, None)
            if child is not None:
                if child not in index:
                    work.append(visit(child))
                elif child in on_stack:
                    lowlink[part] = min(lowlink[part], index[child])
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[part])
            if lowlink[part] != index[part]:
                continue

            component: List[str] = []
            while True:
                member = component_stack.pop()
                on_stack.discard(member)
                component.append(member)
                if member == part:
                    break
            component.reverse()
            if len(component) > 1 or part in adjacency.get(part, ()):
                cycles.append(component)

    return cycles


def check_circular_dependencies(context: AuditContext) -> Iterator[Finding]:
    """Parts that appear among their own descendants. Reported once per part."""
    for cycle in find_cycles(_adjacency(context.tree)):
        members = ", ".join(cycle)
        for part_id in cycle:
            locations = context.tree.locations_of(part_id)
            yield Finding(
                check_id=CIRCULAR_DEPENDENCY,
                severity=Severity.ERROR,
                location=locations[0] if locations else None,
                part_id=part_id,
                message=f"Part {part_id} is part of a circular assembly with {members}",
                row_index=context.tree[locations[0]].row_index if locations else None,
                locations=tuple(locations),
            )


def check_blank_identifiers(context: AuditContext) -> Iterator[Finding]:
    """Rows with a level marker but no part id."""
    last_location: Optional[str] = None
    for trace in context.tree.rows:
        if trace.kind == RowKind.NODE:
            last_location = trace.location_key
            continue
        if trace.kind != RowKind.INERT or trace.depth is None or trace.depth == 0:
            continue
        yield Finding(
            check_id=BLANK_IDENTIFIER,
            severity=Severity.WARNING,
            location=last_location,
            part_id=None,
            message=f"Row {trace.row_index} has level {trace.depth} but no part id",
            row_index=trace.row_index,
        )


def check_sourcing_row_count(context: AuditContext) -> Iterator[Finding]:
    """Fewer sourcing rows under a node than the sourcing dictionary expects."""
    for node in context.tree.values():
        expected = context.catalog.expected_source_count(node.part_id)
        if expected <= 1:
            continue
        attached = len(node.sourcing)
        if attached >= expected:
            continue
        yield Finding(
            check_id=SOURCING_ROW_COUNT,
            severity=Severity.ERROR,
            location=node.location_key,
            part_id=node.part_id,
            message=(
                f"Part {node.part_id} has {attached} sourcing row(s), "
                f"{expected} expected"
            ),
            row_index=node.row_index,
        )


def check_duplicate_locations(context: AuditContext) -> Iterator[Finding]:
    """The same part listed twice directly under the same parent."""
    for location_key, row_index in context.tree.duplicate_keys:
        yield Finding(
            check_id=DUPLICATE_LOCATION,
            severity=Severity.WARNING,
            location=location_key,
            part_id=location_key.split(context.tree.separator)[-1],
            message=f"Row {row_index} repeats position {location_key}; only the first row is used",
            row_index=row_index,
        )


def check_invalid_quantities(context: AuditContext) -> Iterator[Finding]:
    """Blank, non-numeric, zero or negative quantities."""
    for node in context.tree.values():
        value = quantity_value(node.quantity)
        if value is not None and value > 0:
            continue
        shown = node.quantity or "blank"
        yield Finding(
            check_id=INVALID_QUANTITY,
            severity=Severity.ERROR,
            location=node.location_key,
            part_id=node.part_id,
            message=f"Part {node.part_id} has invalid quantity ({shown})",
            row_index=node.row_index,
        )


def check_attribute_drift(context: AuditContext) -> Iterator[Finding]:
    """Row description or revision differing from the part dictionary."""
    for node in context.tree.values():
        part = context.catalog.get_part(node.part_id)
        if part is None:
            continue
        for field_name in ("description", "revision"):
            row_value = getattr(node, field_name)
            master_value = getattr(part, field_name)
            if not row_value or not master_value or row_value == master_value:
                continue
            yield Finding(
                check_id=ATTRIBUTE_DRIFT,
                severity=Severity.WARNING,
                location=node.location_key,
                part_id=node.part_id,
                message=(
                    f"Part {node.part_id} {field_name} '{row_value}' "
                    f"differs from part dictionary '{master_value}'"
                ),
                row_index=node.row_index,
            )


DEFAULT_CHECKS: Tuple[Tuple[str, Check], ...] = (
    (ORPHAN, check_orphans),
    (MISSING_SOURCING, check_missing_sourcing),
    (LEVEL_GAP, check_level_gaps),
    (STRUCTURAL_MISMATCH, check_structural_mismatch),
    (LIFECYCLE_RISK, check_lifecycle_risk),
    (CIRCULAR_DEPENDENCY, check_circular_dependencies),
    (BLANK_IDENTIFIER, check_blank_identifiers),
    (SOURCING_ROW_COUNT, check_sourcing_row_count),
    (DUPLICATE_LOCATION, check_duplicate_locations),
    (INVALID_QUANTITY, check_invalid_quantities),
    (ATTRIBUTE_DRIFT, check_attribute_drift),
)


# =============================================================================
# AUDITOR
# =============================================================================

class IntegrityAuditor:
    """
    Runs a set of checks over one tree snapshot.

    Checks run in order and never see each other's results.
    """

    def __init__(
        self,
        new_part_statuses: Optional[Iterable[str]] = None,
        checks: Optional[Sequence[Tuple[str, Check]]] = None,
    ):
        if new_part_statuses is None:
            new_part_statuses = DEFAULT_NEW_PART_STATUSES
        self.new_part_statuses = _normalize_states(new_part_statuses)
        self.checks = tuple(checks if checks is not None else DEFAULT_CHECKS)

    @property
    def check_ids(self) -> List[str]:
        return [check_id for check_id, _ in self.checks]

    def audit(
        self,
        tree: BOMTree,
        part_dictionary: Any = None,
        sourcing_dictionary: Optional[Mapping[str, Iterable[Any]]] = None,
        non_production_states: Optional[Iterable[str]] = None,
    ) -> List[Finding]:
        if isinstance(part_dictionary, PartCatalog):
            catalog = part_dictionary
        else:
            catalog = PartCatalog.from_dictionaries(part_dictionary, sourcing_dictionary)

        context = AuditContext(
            tree=tree,
            catalog=catalog,
            non_production_states=_normalize_states(non_production_states),
            new_part_statuses=self.new_part_statuses,
        )

        findings: List[Finding] = []
        for check_id, check in self.checks:
            try:
                findings.extend(check(context))
            except Exception as exc:
                logger.exception("Audit check %s failed", check_id)
                findings.append(Finding(
                    check_id=check_id,
                    severity=Severity.ERROR,
                    location=None,
                    part_id=None,
                    message=f"Check could not complete: {exc}",
                ))
        return findings


def audit(
    tree: BOMTree,
    part_dictionary: Any = None,
    sourcing_dictionary: Optional[Mapping[str, Iterable[Any]]] = None,
    non_production_states: Optional[Iterable[str]] = None,
) -> List[Finding]:
    """Audit a tree with the default checks."""
    return IntegrityAuditor().audit(
        tree, part_dictionary, sourcing_dictionary, non_production_states
    )


def summarize(findings: Iterable[Finding]) -> Dict[str, Any]:
    """Counts per severity and per check id."""
    findings = list(findings)
    by_severity = Counter(finding.severity.value for finding in findings)
    by_check = Counter(finding.check_id for finding in findings)
    return {
        "total": len(findings),
        "errors": by_severity.get(Severity.ERROR.value, 0),
        "warnings": by_severity.get(Severity.WARNING.value, 0),
        "by_check": dict(by_check),
    }
