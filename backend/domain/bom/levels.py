"""
BOM Domain - Level markers.

Depth markers arrive either as plain numbers (1, 2, 3) or in dotted
outline notation ("2.1.1" is three levels deep).
"""

from __future__ import annotations
import re
from typing import Any, Optional

from domain.shared.exceptions import LevelFormatError


# Returned for blank markers: the row is not part of the hierarchy.
NOT_IN_HIERARCHY: Optional[int] = None

_INTEGER_RE = re.compile(r"\d+", re.ASCII)
_DOTTED_RE = re.compile(r"\d+(?:\.\d+)+", re.ASCII)


def normalize_level(marker: Any) -> Optional[int]:
    """
    Convert a depth marker to an integer depth.

    Integers and integer-valued strings map directly, dotted strings map to
    the number of separators plus one, blank markers map to NOT_IN_HIERARCHY.
    Raises LevelFormatError for anything else.
    """
    if marker is None:
        return NOT_IN_HIERARCHY

    if isinstance(marker, bool):
        raise LevelFormatError(marker)

    if isinstance(marker, int):
        if marker < 0:
            raise LevelFormatError(marker)
        return marker

    if isinstance(marker, float):
        if not marker.is_integer() or marker < 0:
            raise LevelFormatError(marker)
        return int(marker)

    if not isinstance(marker, str):
        raise LevelFormatError(marker)

    text = marker.strip()
    if not text:
        return NOT_IN_HIERARCHY

    if _INTEGER_RE.fullmatch(text):
        return int(text)

    if _DOTTED_RE.fullmatch(text):
        return text.count(".") + 1

    raise LevelFormatError(marker)


def is_in_hierarchy(level: Optional[int]) -> bool:
    return level is not NOT_IN_HIERARCHY
