"""
Shared fixtures for the BOM governance tests.

Rows are positional lists laid out as
[level, part id, description, revision, quantity, lifecycle, status, manufacturer, mpn].
"""

import pytest


COLUMNS = {
    'level': 0,
    'part_id': 1,
    'description': 2,
    'revision': 3,
    'quantity': 4,
    'lifecycle': 5,
    'status': 6,
    'manufacturer': 7,
    'manufacturer_part_number': 8,
}


def make_row(level, part_id, quantity=1, description=None, revision='A',
             lifecycle='ACTIVE', status='', manufacturer=None, mpn=None):
    if description is None:
        description = f'{part_id} description' if part_id else None
    return [level, part_id, description, revision, quantity, lifecycle, status, manufacturer, mpn]


def sourcing_row(manufacturer, mpn, level=None):
    return [level, None, None, None, None, None, None, manufacturer, mpn]


@pytest.fixture
def column_map():
    return dict(COLUMNS)


@pytest.fixture
def row():
    return make_row


@pytest.fixture
def source_row():
    return sourcing_row


@pytest.fixture
def example_rows():
    """A with children B (C, D) and E."""
    return [
        make_row(1, 'A'),
        make_row(2, 'B'),
        make_row(3, 'C'),
        make_row(3, 'D'),
        make_row(2, 'E'),
    ]


@pytest.fixture
def part_dictionary():
    return {
        'A': {'description': 'A description', 'revision': 'A', 'lifecycle': 'ACTIVE'},
        'B': {'description': 'B description', 'revision': 'A', 'lifecycle': 'ACTIVE'},
        'C': {'description': 'C description', 'revision': 'A', 'lifecycle': 'ACTIVE'},
        'D': {'description': 'D description', 'revision': 'A', 'lifecycle': 'ACTIVE'},
        'E': {'description': 'E description', 'revision': 'A', 'lifecycle': 'ACTIVE'},
    }


@pytest.fixture
def sourcing_dictionary():
    return {
        'A': [{'manufacturer': 'Acme', 'mpn': 'A-100'}],
        'B': [{'manufacturer': 'Acme', 'mpn': 'B-100'}],
        'C': [{'manufacturer': 'Acme', 'mpn': 'C-100'}],
        'D': [{'manufacturer': 'Acme', 'mpn': 'D-100'}],
        'E': [{'manufacturer': 'Acme', 'mpn': 'E-100'}],
    }
