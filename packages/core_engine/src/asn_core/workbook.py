"""Excel export: one sheet per table, AppSheet notes on the header row."""

import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Set

from openpyxl import Workbook
from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.comments import Comment
from openpyxl.styles import Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from asn_core.loader import note_settings_from_request
from asn_core.notes import column_note_cells
from asn_core.sample_data import json_value_to_string

logger = logging.getLogger(__name__)

NOTE_AUTHOR = "asn"
MIN_COLUMN_WIDTH = 12
MAX_SHEET_TITLE = 31
_INVALID_TITLE_CHARS = re.compile(r"[\[\]:*?/\\]")

_THIN = Side(style="thin")
HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(fill_type="solid", fgColor="E5E7EB")
CELL_BORDER = Border(left=_THIN, right=_THIN, top=_THIN, bottom=_THIN)


def sheet_title(name: str, used: Set[str]) -> str:
    base = _INVALID_TITLE_CHARS.sub("_", name or "").strip("'") or "Sheet"
    base = base[:MAX_SHEET_TITLE]
    title = base
    suffix = 2
    while title.lower() in used:
        tail = f" ({suffix})"
        title = base[: MAX_SHEET_TITLE - len(tail)] + tail
        suffix += 1
    used.add(title.lower())
    return title


def _write_text(ws, row: int, col: int, text: str):
    cell = ws.cell(row=row, column=col)
    cell.value = ILLEGAL_CHARACTERS_RE.sub("", text)
    # Keep "=..." header names and sample values as literal text.
    cell.data_type = "s"
    return cell


def _write_table(
    ws,
    table: Dict[str, Any],
    tables: List[Dict[str, Any]],
    user_settings: Optional[Mapping[str, Any]],
    rows: Optional[List[Dict[str, Any]]],
) -> int:
    columns = table.get("columns") or []

    for col_idx, column in enumerate(columns):
        name = str(column.get("name", ""))
        ws.column_dimensions[get_column_letter(col_idx + 1)].width = max(len(name), MIN_COLUMN_WIDTH)
        cell = _write_text(ws, 1, col_idx + 1, name)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.border = CELL_BORDER

    cells = column_note_cells(table, tables, user_settings)
    for row, col, text in cells:
        ws.cell(row=row + 1, column=col + 1).comment = Comment(text, NOTE_AUTHOR)

    for row_idx, sample in enumerate(rows or []):
        if not isinstance(sample, dict):
            continue
        for col_idx, column in enumerate(columns):
            column_id = column.get("id")
            if column_id not in sample:
                continue
            cell = _write_text(ws, row_idx + 2, col_idx + 1, json_value_to_string(sample[column_id]))
            cell.border = CELL_BORDER

    return len(cells)


def build_workbook(request: Dict[str, Any], user_settings: Optional[Mapping[str, Any]] = None) -> Workbook:
    tables = request.get("tables") or []
    settings = user_settings if user_settings is not None else note_settings_from_request(request)
    include_data = bool(request.get("includeData", False))
    sample_data = request.get("sampleData") or {}

    workbook = Workbook()
    used_titles: Set[str] = set()

    for idx, table in enumerate(tables):
        title = sheet_title(str(table.get("name", "")), used_titles)
        if idx == 0:
            ws = workbook.active
            ws.title = title
        else:
            ws = workbook.create_sheet(title=title)
        rows = sample_data.get(table.get("id")) if include_data else None
        notes = _write_table(ws, table, tables, settings, rows)
        logger.debug("Sheet %s: %d columns, %d notes", ws.title, len(table.get("columns") or []), notes)

    return workbook


def export_to_excel(
    request: Dict[str, Any],
    file_path: str,
    user_settings: Optional[Mapping[str, Any]] = None,
) -> str:
    target = Path(file_path)
    target.parent.mkdir(parents=True, exist_ok=True)
    workbook = build_workbook(request, user_settings=user_settings)
    workbook.save(str(target))
    logger.info("Wrote workbook %s (%d sheets)", target, len(workbook.worksheets))
    return str(target)
