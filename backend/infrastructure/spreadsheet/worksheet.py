"""
Worksheet reader.

Reads a BOM worksheet (.xlsx) into a row snapshot plus the column map the
tree builder needs, by matching header cells against known aliases.
"""

from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Any, BinaryIO, Dict, List, Optional, Tuple, Union
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from domain.bom import columns as bom_columns
from domain.shared.exceptions import StructuralError

logger = logging.getLogger(__name__)


# Header aliases per logical column (compared lower-case, trimmed)
HEADER_ALIASES: Dict[str, List[str]] = {
    bom_columns.LEVEL: ['level', 'lvl', 'bom level', 'уровень'],
    bom_columns.PART_ID: ['part number', 'part no', 'part id', 'item', 'item number', 'p/n', 'pn', 'обозначение', 'код'],
    bom_columns.DESCRIPTION: ['description', 'desc', 'наименование', 'name'],
    bom_columns.REVISION: ['revision', 'rev', 'ревизия'],
    bom_columns.QUANTITY: ['quantity', 'qty', 'количество', 'кол-во'],
    bom_columns.LIFECYCLE: ['lifecycle', 'lifecycle state', 'life cycle', 'status (lifecycle)'],
    bom_columns.STATUS: ['status', 'change status', 'статус'],
    bom_columns.MANUFACTURER: ['manufacturer', 'mfr', 'mfg', 'manufacturer name', 'производитель'],
    bom_columns.MANUFACTURER_PART_NUMBER: ['manufacturer part number', 'mfr part number', 'mfr pn', 'mpn'],
}

# Columns that may repeat (Manufacturer 1, MPN 1, Manufacturer 2, ...)
REPEATING_COLUMNS = (bom_columns.MANUFACTURER, bom_columns.MANUFACTURER_PART_NUMBER)


@dataclass(frozen=True)
class WorksheetSnapshot:
    """Rows of one worksheet with the header-derived column map."""

    rows: Tuple[Tuple[Any, ...], ...]
    column_map: Dict[str, Any]
    first_data_index: int
    headers: Tuple[str, ...]
    sheet_name: str = ""


def _normalize_header(value: Any) -> str:
    if value is None:
        return ""
    text = str(value).strip().lower()
    # "Manufacturer 2" / "MPN #2" match their unnumbered alias
    return text.rstrip("0123456789").rstrip(" #").strip()


def resolve_headers(headers: List[Any]) -> Dict[str, Any]:
    """Map logical column names to 0-based positions from header cells."""
    lookup: Dict[str, str] = {}
    for key, variants in HEADER_ALIASES.items():
        for variant in variants:
            lookup.setdefault(variant, key)

    column_map: Dict[str, Any] = {}
    for position, header in enumerate(headers):
        key = lookup.get(_normalize_header(header))
        if key is None:
            continue
        if key in REPEATING_COLUMNS:
            column_map.setdefault(key, []).append(position)
        else:
            column_map.setdefault(key, position)
    return column_map


def read_worksheet(
    source: Union[str, BinaryIO],
    sheet_name: Optional[str] = None,
    header_row: int = 1,
) -> WorksheetSnapshot:
    """
    Load a worksheet as a snapshot.

    header_row is 1-based as in Excel. The returned rows start right after
    the header row, so first_data_index is always 0.
    """
    if header_row < 1:
        raise StructuralError("Header row must be 1 or greater", row_index=header_row)

    try:
        wb = load_workbook(filename=source, read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile) as exc:
        raise StructuralError(f"Not a readable .xlsx workbook: {exc}") from exc

    try:
        if sheet_name:
            if sheet_name not in wb.sheetnames:
                raise StructuralError(f'Worksheet "{sheet_name}" not found')
            ws = wb[sheet_name]
        else:
            ws = wb.active

        header_cells = next(
            ws.iter_rows(min_row=header_row, max_row=header_row, values_only=True),
            (),
        )
        headers = tuple('' if cell is None else str(cell).strip() for cell in header_cells)
        column_map = resolve_headers(list(headers))

        rows = tuple(
            tuple(row)
            for row in ws.iter_rows(min_row=header_row + 1, values_only=True)
        )
        title = ws.title
    finally:
        wb.close()

    logger.info(
        "Read worksheet %s: %d rows, columns %s",
        title, len(rows), ', '.join(sorted(column_map)),
    )

    return WorksheetSnapshot(
        rows=rows,
        column_map=column_map,
        first_data_index=0,
        headers=headers,
        sheet_name=title,
    )
