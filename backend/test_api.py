"""
API tests for the BOM analysis and lifecycle endpoints.
"""

import io
import json

import pytest
from openpyxl import Workbook
from rest_framework.test import APIClient

from conftest import COLUMNS


BASE_URL = '/api/v1'


@pytest.fixture
def client():
    return APIClient()


# =============================================================================
# BOM
# =============================================================================

def test_tree(client, example_rows):
    response = client.post(f'{BASE_URL}/bom/tree/', {
        'rows': example_rows,
        'column_map': COLUMNS,
    }, format='json')

    assert response.status_code == 200
    keys = [node['location_key'] for node in response.data['nodes']]
    assert keys == ['A', 'A/B', 'A/B/C', 'A/B/D', 'A/E']
    assert response.data['nodes'][2]['parent_key'] == 'A/B'


def test_tree_for_anchor_part(client, example_rows):
    response = client.post(f'{BASE_URL}/bom/tree/', {
        'rows': example_rows,
        'column_map': COLUMNS,
        'anchor_part_id': 'B',
    }, format='json')

    assert response.status_code == 200
    assert [node['location_key'] for node in response.data['nodes']] == ['B', 'B/C', 'B/D']
    assert response.data['base_depth'] == 2


def test_tree_structural_error(client, example_rows):
    columns = {key: value for key, value in COLUMNS.items() if key not in ('quantity', 'revision')}

    response = client.post(f'{BASE_URL}/bom/tree/', {
        'rows': example_rows,
        'column_map': columns,
    }, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'STRUCTURAL_ERROR'
    assert response.data['details']['missing_columns'] == ['revision', 'quantity']


def test_tree_rejects_scalar_rows(client):
    response = client.post(f'{BASE_URL}/bom/tree/', {
        'rows': ['not a row'],
        'column_map': COLUMNS,
    }, format='json')

    assert response.status_code == 400
    assert 'rows' in response.data


def test_diff(client, example_rows):
    new_rows = [row for row in example_rows if row[1] != 'C']

    response = client.post(f'{BASE_URL}/bom/diff/', {
        'old': {'rows': example_rows, 'column_map': COLUMNS},
        'new': {'rows': new_rows, 'column_map': COLUMNS},
    }, format='json')

    assert response.status_code == 200
    assert len(response.data['changes']) == 1
    change = response.data['changes'][0]
    assert change['kind'] == 'REMOVED'
    assert change['location_key'] == 'A/B/C'
    assert change['after'] is None
    assert response.data['direct_keys'] == ['A/B/C']
    assert response.data['impacted_keys'] == ['A', 'A/B']
    assert response.data['summary'] == {'added': 0, 'removed': 1, 'modified': 0}


def test_diff_error_names_side(client, example_rows):
    response = client.post(f'{BASE_URL}/bom/diff/', {
        'old': {'rows': example_rows, 'column_map': COLUMNS},
        'new': {'rows': example_rows + [[-1, 'Z']], 'column_map': COLUMNS},
    }, format='json')

    assert response.status_code == 400
    assert response.data['error'] == 'DIFF_ERROR'
    assert response.data['details']['side'] == 'new'


def test_audit(client, example_rows, part_dictionary, sourcing_dictionary):
    del sourcing_dictionary['E']
    part_dictionary['D']['lifecycle'] = 'OBSOLETE'
    rows = [list(row) for row in example_rows]
    rows[3][5] = None

    response = client.post(f'{BASE_URL}/bom/audit/', {
        'rows': rows,
        'column_map': COLUMNS,
        'parts': part_dictionary,
        'sourcing': sourcing_dictionary,
    }, format='json')

    assert response.status_code == 200
    assert response.data['valid'] is True
    assert response.data['summary']['warnings'] == 2
    assert set(response.data['by_check']) == {'missing_sourcing', 'lifecycle_risk'}
    assert response.data['by_check']['lifecycle_risk'][0]['location'] == 'A/B/D'


def test_audit_workbook_upload(client):
    wb = Workbook()
    ws = wb.active
    ws.append(['Level', 'Part Number', 'Description', 'Revision', 'Qty', 'Lifecycle'])
    ws.append([1, 'A', 'Top', 'A', 1, 'ACTIVE'])
    ws.append([2, 'B', 'Bracket', 'A', 2, 'ACTIVE'])
    buffer = io.BytesIO()
    wb.save(buffer)
    buffer.seek(0)
    buffer.name = 'bom.xlsx'

    response = client.post(f'{BASE_URL}/bom/audit-workbook/', {
        'file': buffer,
        'parts': json.dumps({'A': {'description': 'Top'}}),
        'sourcing': json.dumps({'A': [['Acme', 'A-1']]}),
    }, format='multipart')

    assert response.status_code == 200
    assert response.data['rows_count'] == 2
    assert response.data['summary']['by_check'] == {'orphan': 1}
    assert response.data['findings'][0]['part_id'] == 'B'


def test_audit_workbook_rejects_other_files(client):
    upload = io.BytesIO(b'level,part\n1,A\n')
    upload.name = 'bom.csv'

    response = client.post(f'{BASE_URL}/bom/audit-workbook/', {'file': upload}, format='multipart')

    assert response.status_code == 400
    assert 'file' in response.data


# =============================================================================
# LIFECYCLE
# =============================================================================

def test_lifecycle_states(client):
    response = client.get(f'{BASE_URL}/lifecycle/states/')

    assert response.status_code == 200
    assert response.data['terminal_states'] == ['OBSOLETE']
    assert response.data['transitions']['DRAFT'] == ['ACTIVE', 'OBSOLETE', 'PROTOTYPE']


def test_lifecycle_validate(client):
    response = client.post(f'{BASE_URL}/lifecycle/validate/', {
        'current_state': 'ACTIVE',
        'next_state': 'DRAFT',
    }, format='json')

    assert response.status_code == 200
    assert response.data['valid'] is False
    assert response.data['is_deviation'] is True
    assert response.data['kind'] is None


def test_lifecycle_commit_forward(client):
    response = client.post(f'{BASE_URL}/lifecycle/commit/', {
        'part_id': 'P-1',
        'current_state': 'DRAFT',
        'next_state': 'ACTIVE',
        'actor': 'engineer',
    }, format='json')

    assert response.status_code == 200
    assert response.data['committed'] is True
    assert response.data['record']['kind'] == 'FORWARD'
    assert response.data['record']['authorization_reference'] is None


def test_lifecycle_commit_deviation(client):
    payload = {
        'part_id': 'P-1',
        'current_state': 'ACTIVE',
        'next_state': 'DRAFT',
        'actor': 'engineer',
    }

    rejected = client.post(f'{BASE_URL}/lifecycle/commit/', payload, format='json')
    accepted = client.post(f'{BASE_URL}/lifecycle/commit/',
                           {**payload, 'authorization_reference': 'ECO-7'}, format='json')

    assert rejected.status_code == 409
    assert rejected.data['record'] is None
    assert accepted.status_code == 200
    assert accepted.data['record']['kind'] == 'DEVIATION'
    assert accepted.data['record']['authorization_reference'] == 'ECO-7'


def test_schema_is_served(client):
    response = client.get('/api/schema/', HTTP_ACCEPT='application/json')

    assert response.status_code == 200
