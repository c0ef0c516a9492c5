"""Spreadsheet codec — workbook bytes <-> row records."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date, datetime
from io import BytesIO
from typing import Any, Callable, Protocol, cast

import pandas as pd
from openpyxl import Workbook
from openpyxl.cell.cell import Cell
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from spreadsheet_intake.models import CellValue, Row

DEFAULT_SHEET_NAME = "Sheet1"
EMPTY_HEADER = "__EMPTY"

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

_AUTO_WIDTH_SAMPLE_ROWS = 300


class DecodeError(ValueError):
    """Raised when workbook bytes cannot be turned into rows."""


class Codec(Protocol):
    def decode(self, data: bytes, extension: str = "xlsx") -> list[Row]: ...

    def encode(self, rows: Sequence[Row], sheet_name: str = DEFAULT_SHEET_NAME) -> bytes: ...


# ── Cell helpers ─────────────────────────────────────────────────


def to_cell_value(value: Any) -> CellValue | None:
    """Coerce a decoded cell into a ``CellValue``; ``None`` means empty."""
    if value is None:
        return None
    if isinstance(value, str):
        return value if value != "" else None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass

    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    elif not isinstance(value, (bool, int, float, date)):
        item = getattr(value, "item", None)
        if callable(item):
            value = item()

    if isinstance(value, (bool, int, float, datetime)):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return str(value)


def collect_columns(rows: Iterable[Row]) -> list[str]:
    """Union of keys across *rows* in first-seen order."""
    seen: dict[str, None] = {}
    for row in rows:
        for name in row:
            seen.setdefault(name, None)
    return list(seen)


def _header_names(cells: Iterable[Any]) -> list[str]:
    names: list[str] = []
    counts: dict[str, int] = {}
    for cell in cells:
        value = to_cell_value(cell)
        base = EMPTY_HEADER if value is None else str(value)
        name = base
        counter = counts.get(base, 0)
        if counter:
            # skip suffixes that collide with a header already taken
            while name in counts:
                name = f"{base}_{counter}"
                counter += 1
            counts[base] = counter
        else:
            counts[base] = 1
        counts.setdefault(name, 1)
        names.append(name)
    return names


def frame_to_rows(frame: pd.DataFrame) -> list[Row]:
    """Turn a header-less sheet frame into row records.

    The first non-blank row supplies the headers. Blank rows are skipped and
    empty cells are left out of each record.
    """
    records = [list(values) for values in frame.itertuples(index=False, name=None)]
    records = [
        values for values in records
        if any(to_cell_value(v) is not None for v in values)
    ]
    if not records:
        return []

    headers = _header_names(records[0])
    rows: list[Row] = []
    for values in records[1:]:
        row: Row = {}
        for name, raw in zip(headers, values):
            value = to_cell_value(raw)
            if value is not None:
                row[name] = value
        if row:
            rows.append(row)
    return rows


def _excel_value(val: CellValue) -> CellValue:
    if isinstance(val, datetime) and val.tzinfo:
        return val.replace(tzinfo=None)
    return val


def _write_cell(ws: Worksheet, row: int, column: int, value: CellValue) -> Cell:
    cell = ws.cell(row=row, column=column, value=_excel_value(value))
    if isinstance(value, str) and value.startswith("="):
        # keep formula-looking text as text
        cell.data_type = "s"
    return cell


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            cell = row[0]
            width = max(width, len(str(cell.value or "")))
        width += 4
        ws.column_dimensions[letter].width = min(width, 30)


# ── Codec ───────────────────────────────────────────────────────


class ExcelCodec:
    """Decode with pandas (openpyxl/xlrd engines), encode with openpyxl."""

    def decode(self, data: bytes, extension: str = "xlsx") -> list[Row]:
        """Decode the first sheet of a workbook into row records.

        Raises
        ------
        DecodeError
            If the bytes are not a readable workbook, or ``.xls`` support
            (xlrd) is not installed.
        """
        engine = "xlrd" if extension.lower() == "xls" else "openpyxl"
        read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
        try:
            frame = read_excel(
                BytesIO(data),
                sheet_name=0,
                header=None,
                dtype=object,
                engine=engine,
                keep_default_na=False,
            )
        except ImportError as exc:
            raise DecodeError(
                "Unsupported .xls input unless 'xlrd' is installed. "
                "Either convert to .xlsx or add dependency: pip install xlrd"
            ) from exc
        except Exception as exc:
            raise DecodeError(f"Could not read workbook ({exc})") from exc
        return frame_to_rows(frame)

    def encode(self, rows: Sequence[Row], sheet_name: str = DEFAULT_SHEET_NAME) -> bytes:
        """Write *rows* to a single-sheet ``.xlsx`` workbook and return its bytes."""
        columns = collect_columns(rows)

        wb = Workbook()
        ws = wb.active
        if ws is None:
            ws = wb.create_sheet()
        ws.title = sheet_name

        for c_idx, name in enumerate(columns, 1):
            _write_cell(ws, 1, c_idx, name)
        for r_idx, row in enumerate(rows, 2):
            for c_idx, name in enumerate(columns, 1):
                if name in row and row[name] is not None:
                    _write_cell(ws, r_idx, c_idx, row[name])

        if columns:
            _style_header(ws, len(columns))
            ws.freeze_panes = "A2"
            if rows:
                ws.auto_filter.ref = ws.dimensions
            _auto_width(ws)

        buffer = BytesIO()
        wb.save(buffer)
        return buffer.getvalue()
