"""
Celery task tests. Tasks run in-process through apply() or a direct call.
"""

from unittest import mock

import pytest
from openpyxl import Workbook

from application.tasks.bom_tasks import audit_bom_snapshot, audit_bom_workbook, diff_bom_snapshots
from conftest import COLUMNS, make_row


def test_audit_snapshot(example_rows, part_dictionary, sourcing_dictionary):
    del part_dictionary['C']

    result = audit_bom_snapshot.apply(args=({
        'rows': example_rows,
        'column_map': COLUMNS,
        'parts': part_dictionary,
        'sourcing': sourcing_dictionary,
    },)).get()

    assert result['valid'] is False
    assert result['summary']['by_check'] == {'orphan': 1}
    assert result['findings'][0] == {
        'check_id': 'orphan',
        'severity': 'ERROR',
        'location': 'A/B/C',
        'part_id': 'C',
        'message': 'Part C is not in the part dictionary',
        'row_index': 2,
        'locations': [],
    }


def test_audit_snapshot_reports_structural_error(example_rows):
    columns = {key: value for key, value in COLUMNS.items() if key != 'description'}

    result = audit_bom_snapshot({'rows': example_rows, 'column_map': columns})

    assert result['code'] == 'STRUCTURAL_ERROR'
    assert result['details']['missing_columns'] == ['description']


def test_diff_snapshots(example_rows):
    new_rows = example_rows[:2] + [make_row(3, 'C', quantity=5)] + example_rows[3:]

    result = diff_bom_snapshots(
        {'rows': example_rows, 'column_map': COLUMNS},
        {'rows': new_rows, 'column_map': COLUMNS},
    )

    assert result['changes'] == [{
        'id': 1,
        'kind': 'MODIFIED',
        'location_key': 'A/B/C',
        'parent_key': 'A/B',
        'part_id': 'C',
        'field': 'quantity',
        'before': '1',
        'after': '5',
        'message': "quantity of A/B/C changed from '1' to '5'",
    }]
    assert result['direct_keys'] == ['A/B/C']
    assert result['impacted_keys'] == ['A', 'A/B']


def test_diff_snapshots_scoped_to_missing_part(example_rows):
    result = diff_bom_snapshots(
        {'rows': example_rows, 'column_map': COLUMNS},
        {'rows': example_rows, 'column_map': COLUMNS},
        anchor_part_id='NOPE',
    )

    assert result['code'] == 'VALIDATION_ERROR'


def test_audit_workbook(tmp_path):
    wb = Workbook()
    ws = wb.active
    ws.append(['Level', 'Part Number', 'Description', 'Revision', 'Qty', 'Lifecycle'])
    ws.append([1, 'A', 'Top', 'A', 1, 'ACTIVE'])
    ws.append([2, 'B', 'Bracket', 'A', 0, 'EOL'])
    path = tmp_path / 'bom.xlsx'
    wb.save(path)

    result = audit_bom_workbook.apply(
        args=(str(path),),
        kwargs={'parts': {'A': {}, 'B': {}}, 'sourcing': {'A': [['Acme', '1']], 'B': [['Acme', '2']]}},
    ).get()

    assert result['rows_count'] == 2
    assert result['summary']['by_check'] == {'lifecycle_risk': 1, 'invalid_quantity': 1}
    assert result['valid'] is False


def test_audit_workbook_retries_on_io_error():
    with mock.patch(
        'application.services.bom_analysis.read_worksheet',
        side_effect=FileNotFoundError('not there yet'),
    ), mock.patch('celery.app.task.Task.retry', side_effect=RuntimeError('retry')) as retry:
        with pytest.raises(RuntimeError):
            audit_bom_workbook('/missing/bom.xlsx')

    retry.assert_called_once()
    assert retry.call_args.kwargs['countdown'] == 60
