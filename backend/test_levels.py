"""
Level marker normalization tests.
"""

import pytest

from domain.bom.levels import NOT_IN_HIERARCHY, is_in_hierarchy, normalize_level
from domain.shared.exceptions import LevelFormatError, ValidationException


@pytest.mark.parametrize('marker, expected', [
    (0, 0),
    (3, 3),
    (2.0, 2),
    ('4', 4),
    (' 3 ', 3),
    ('1.1', 2),
    ('2.1.1', 3),
    ('1.10.2.7', 4),
])
def test_normalize_level(marker, expected):
    assert normalize_level(marker) == expected


@pytest.mark.parametrize('marker', [None, '', '   '])
def test_blank_marker_is_outside_hierarchy(marker):
    level = normalize_level(marker)

    assert level is NOT_IN_HIERARCHY
    assert not is_in_hierarchy(level)
    # Sentinel is distinct from depth 0
    assert is_in_hierarchy(normalize_level(0))


@pytest.mark.parametrize('marker', [-1, 1.5, 'abc', '1..2', '1.2.', '.1', True, '١', [1]])
def test_unreadable_marker_raises(marker):
    with pytest.raises(LevelFormatError) as exc_info:
        normalize_level(marker)

    assert exc_info.value.code == 'INVALID_LEVEL'
    assert isinstance(exc_info.value, ValidationException)
