"""
Integrity auditor tests, one section per check.
"""

from domain.bom import audit as checks
from domain.bom.audit import IntegrityAuditor, audit, find_cycles, summarize
from domain.bom.builder import build
from domain.catalog.aggregates import PartCatalog
from domain.shared.value_objects import Severity


NON_PRODUCTION = ['DRAFT', 'PROTOTYPE', 'NRND', 'EOL', 'OBSOLETE']


def _by_check(findings, check_id):
    return [finding for finding in findings if finding.check_id == check_id]


def test_clean_bom_has_no_findings(example_rows, column_map, part_dictionary, sourcing_dictionary):
    tree = build(example_rows, column_map)

    findings = audit(tree, part_dictionary, sourcing_dictionary, NON_PRODUCTION)

    assert findings == []
    assert summarize(findings) == {'total': 0, 'errors': 0, 'warnings': 0, 'by_check': {}}


def test_orphan(example_rows, column_map, part_dictionary, sourcing_dictionary):
    del part_dictionary['D']

    findings = audit(build(example_rows, column_map), part_dictionary, sourcing_dictionary)

    orphans = _by_check(findings, checks.ORPHAN)
    assert [(f.location, f.part_id, f.severity) for f in orphans] == [('A/B/D', 'D', Severity.ERROR)]


def test_new_parts_are_not_orphans(column_map, row, part_dictionary, sourcing_dictionary):
    rows = [row(1, 'A'), row(2, 'NEW-1', status='new'), row(2, 'NEW-2', status='Added')]

    findings = audit(build(rows, column_map), part_dictionary, sourcing_dictionary)

    assert _by_check(findings, checks.ORPHAN) == []


def test_missing_sourcing(example_rows, column_map, part_dictionary, sourcing_dictionary):
    del sourcing_dictionary['E']
    sourcing_dictionary['C'] = []

    findings = audit(build(example_rows, column_map), part_dictionary, sourcing_dictionary)

    missing = _by_check(findings, checks.MISSING_SOURCING)
    assert {f.part_id for f in missing} == {'C', 'E'}
    assert all(f.severity == Severity.WARNING for f in missing)


def test_level_gap(column_map, row, part_dictionary, sourcing_dictionary):
    rows = [row(1, 'A'), row(2, 'B'), row(4, 'C'), row(2, 'D'), row(5, 'E')]

    findings = audit(build(rows, column_map), part_dictionary, sourcing_dictionary)

    gaps = _by_check(findings, checks.LEVEL_GAP)
    assert [(f.row_index, f.location) for f in gaps] == [(2, 'A/B/C'), (4, 'A/D/E')]
    assert all(f.is_error for f in gaps)


def test_level_gap_ignores_continuation_rows(column_map, row, source_row, part_dictionary, sourcing_dictionary):
    rows = [row(1, 'A'), source_row('Acme', 'A-2', level=4), row(2, 'B')]

    findings = audit(build(rows, column_map), part_dictionary, sourcing_dictionary)

    assert _by_check(findings, checks.LEVEL_GAP) == []
    assert _by_check(findings, checks.BLANK_IDENTIFIER) == []


# =============================================================================
# STRUCTURAL MISMATCH
# =============================================================================

def test_same_children_in_different_order_match(column_map, row):
    rows = [
        row(1, 'TOP'),
        row(2, 'X'),
        row(3, 'P1', quantity=2),
        row(3, 'P2', quantity=1),
        row(2, 'Y'),
        row(3, 'X'),
        row(4, 'P2', quantity=1),
        row(4, 'P1', quantity=2),
    ]

    findings = audit(build(rows, column_map))

    assert _by_check(findings, checks.STRUCTURAL_MISMATCH) == []


def test_different_children_one_finding_per_signature(column_map, row):
    rows = [
        row(1, 'TOP'),
        row(2, 'X'),
        row(3, 'P1', quantity=2),
        row(2, 'Y'),
        row(3, 'X'),
        row(4, 'P1', quantity=3),
        row(2, 'Z'),
        row(3, 'X'),
        row(4, 'P1', quantity=2),
    ]

    findings = audit(build(rows, column_map))

    mismatches = _by_check(findings, checks.STRUCTURAL_MISMATCH)
    assert len(mismatches) == 2
    assert {f.locations for f in mismatches} == {('TOP/X', 'TOP/Z/X'), ('TOP/Y/X',)}
    assert all(f.part_id == 'X' for f in mismatches)


def test_repeated_child_counts_in_signature(column_map, row):
    rows = [
        row(1, 'TOP'),
        row(2, 'X'),
        row(3, 'P1'),
        row(3, 'P1'),
        row(2, 'Y'),
        row(3, 'X'),
        row(4, 'P1'),
    ]

    findings = audit(build(rows, column_map))

    mismatches = _by_check(findings, checks.STRUCTURAL_MISMATCH)
    assert {f.locations for f in mismatches} == {('TOP/X',), ('TOP/Y/X',)}


def test_repeated_parent_with_same_children_matches(column_map, row):
    rows = [
        row(1, 'TOP'),
        row(2, 'X'),
        row(3, 'P1'),
        row(2, 'X'),
        row(3, 'P1'),
        row(2, 'Y'),
        row(3, 'X'),
        row(4, 'P1'),
    ]

    findings = audit(build(rows, column_map))

    assert _by_check(findings, checks.STRUCTURAL_MISMATCH) == []


# =============================================================================
# LIFECYCLE RISK
# =============================================================================

def test_lifecycle_risk(column_map, row, part_dictionary, sourcing_dictionary):
    part_dictionary['C']['lifecycle'] = 'EOL'
    rows = [row(1, 'A'), row(2, 'B', lifecycle='nrnd'), row(2, 'C', lifecycle='')]

    findings = audit(build(rows, column_map), part_dictionary, sourcing_dictionary, ['nrnd', 'EOL'])

    risks = _by_check(findings, checks.LIFECYCLE_RISK)
    assert [(f.part_id, f.severity) for f in risks] == [('B', Severity.WARNING), ('C', Severity.WARNING)]


def test_no_lifecycle_risk_without_states(column_map, row):
    findings = audit(build([row(1, 'A', lifecycle='OBSOLETE')], column_map))

    assert _by_check(findings, checks.LIFECYCLE_RISK) == []


# =============================================================================
# CIRCULAR DEPENDENCY
# =============================================================================

def test_two_part_cycle_reported_once_per_part(column_map, row):
    rows = [row(1, 'P1'), row(2, 'P2'), row(3, 'P1')]

    findings = audit(build(rows, column_map))

    cycles = _by_check(findings, checks.CIRCULAR_DEPENDENCY)
    assert sorted(f.part_id for f in cycles) == ['P1', 'P2']
    p1 = next(f for f in cycles if f.part_id == 'P1')
    assert p1.locations == ('P1', 'P1/P2/P1')


def test_long_cycle(column_map, row):
    length = 50
    rows = [row(level + 1, f'P{level}') for level in range(length)] + [row(length + 1, 'P0')]

    findings = audit(build(rows, column_map))

    cycles = _by_check(findings, checks.CIRCULAR_DEPENDENCY)
    assert len(cycles) == length
    assert len({f.part_id for f in cycles}) == length


def test_find_cycles_is_iterative():
    size = 20000
    adjacency = {f'N{i}': [f'N{i + 1}'] for i in range(size)}
    adjacency[f'N{size}'] = ['N0']

    cycles = find_cycles(adjacency)

    assert len(cycles) == 1
    assert cycles[0][0] == 'N0'
    assert len(cycles[0]) == size + 1


def test_find_cycles_self_loop_and_separate_groups():
    adjacency = {'A': ['A', 'B'], 'B': ['C'], 'C': ['B'], 'D': []}

    assert find_cycles(adjacency) == [['B', 'C'], ['A']]


def test_cycle_reached_through_two_branches(column_map, row):
    rows = [
        row(1, 'A'),
        row(2, 'B'),
        row(3, 'D'),
        row(4, 'A'),
        row(2, 'C'),
        row(3, 'D'),
        row(4, 'A'),
    ]

    findings = audit(build(rows, column_map))

    cycles = _by_check(findings, checks.CIRCULAR_DEPENDENCY)
    assert sorted(f.part_id for f in cycles) == ['A', 'B', 'C', 'D']


def test_acyclic_reuse_is_not_a_cycle(column_map, row):
    rows = [row(1, 'A'), row(2, 'B'), row(3, 'C'), row(2, 'D'), row(3, 'B'), row(4, 'C')]

    findings = audit(build(rows, column_map))

    assert _by_check(findings, checks.CIRCULAR_DEPENDENCY) == []


# =============================================================================
# BLANK IDENTIFIER / SOURCING ROWS
# =============================================================================

def test_blank_identifier_at_nonzero_depth(column_map, row, part_dictionary, sourcing_dictionary):
    rows = [row(1, 'A'), row(2, None), row(0, None), row(None, None), row(2, 'B')]

    findings = audit(build(rows, column_map), part_dictionary, sourcing_dictionary)

    blanks = _by_check(findings, checks.BLANK_IDENTIFIER)
    assert [(f.row_index, f.location, f.severity) for f in blanks] == [(1, 'A', Severity.WARNING)]


def test_sourcing_row_shortfall(column_map, row, source_row, part_dictionary, sourcing_dictionary):
    sourcing_dictionary['B'] = [('Acme', 'B-1'), ('Bolt', 'B-2'), ('Core', 'B-3')]
    sourcing_dictionary['C'] = [('Acme', 'C-1'), ('Bolt', 'C-2')]
    rows = [
        row(1, 'A', manufacturer='Acme', mpn='A-1'),
        row(2, 'B', manufacturer='Acme', mpn='B-1'),
        source_row('Bolt', 'B-2'),
        row(2, 'C', manufacturer='Acme', mpn='C-1'),
        source_row('Bolt', 'C-2'),
    ]

    findings = audit(build(rows, column_map), part_dictionary, sourcing_dictionary)

    shortfalls = _by_check(findings, checks.SOURCING_ROW_COUNT)
    assert [(f.part_id, f.severity) for f in shortfalls] == [('B', Severity.ERROR)]
    assert '2 sourcing row(s), 3 expected' in shortfalls[0].message


def test_single_expected_source_is_not_counted(column_map, row, part_dictionary, sourcing_dictionary):
    findings = audit(build([row(1, 'A')], column_map), part_dictionary, sourcing_dictionary)

    assert _by_check(findings, checks.SOURCING_ROW_COUNT) == []


# =============================================================================
# ADDITIONAL CHECKS
# =============================================================================

def test_duplicate_location(column_map, row):
    findings = audit(build([row(1, 'A'), row(2, 'B'), row(2, 'B')], column_map))

    duplicates = _by_check(findings, checks.DUPLICATE_LOCATION)
    assert [(f.location, f.part_id, f.row_index) for f in duplicates] == [('A/B', 'B', 2)]


def test_invalid_quantity(column_map, row):
    rows = [row(1, 'A'), row(2, 'B', quantity=0), row(2, 'C', quantity='many'),
            row(2, 'D', quantity=None), row(2, 'E', quantity=-1), row(2, 'F', quantity=0.5)]

    findings = audit(build(rows, column_map))

    invalid = _by_check(findings, checks.INVALID_QUANTITY)
    assert [f.part_id for f in invalid] == ['B', 'C', 'D', 'E']


def test_attribute_drift(column_map, row, part_dictionary, sourcing_dictionary):
    rows = [row(1, 'A', description='Renamed top', revision='B'), row(2, 'B', description='')]

    findings = audit(build(rows, column_map), part_dictionary, sourcing_dictionary)

    drift = _by_check(findings, checks.ATTRIBUTE_DRIFT)
    assert [(f.part_id, f.severity) for f in drift] == [('A', Severity.WARNING), ('A', Severity.WARNING)]


# =============================================================================
# AUDITOR
# =============================================================================

def test_failing_check_does_not_stop_others(example_rows, column_map):
    def broken(context):
        raise RuntimeError('boom')

    auditor = IntegrityAuditor(checks=[
        ('broken', broken),
        (checks.ORPHAN, checks.check_orphans),
    ])

    findings = auditor.audit(build(example_rows, column_map), {}, {})

    assert findings[0].check_id == 'broken'
    assert findings[0].severity == Severity.ERROR
    assert 'boom' in findings[0].message
    assert len(_by_check(findings, checks.ORPHAN)) == 5


def test_audit_does_not_modify_tree(example_rows, column_map):
    tree = build(example_rows, column_map)
    before = dict(tree.items())

    audit(tree, {}, {}, NON_PRODUCTION)

    assert dict(tree.items()) == before


def test_custom_new_part_statuses(column_map, row):
    auditor = IntegrityAuditor(new_part_statuses=['pending'])

    findings = auditor.audit(build([row(1, 'X', status='PENDING')], column_map), {}, {})

    assert _by_check(findings, checks.ORPHAN) == []


def test_catalog_instance_is_accepted(example_rows, column_map, part_dictionary, sourcing_dictionary):
    catalog = PartCatalog.from_dictionaries(part_dictionary, sourcing_dictionary)

    assert audit(build(example_rows, column_map), catalog) == []


def test_default_check_order():
    assert IntegrityAuditor().check_ids[:8] == [
        'orphan',
        'missing_sourcing',
        'level_gap',
        'structural_mismatch',
        'lifecycle_risk',
        'circular_dependency',
        'blank_identifier',
        'sourcing_row_count',
    ]
