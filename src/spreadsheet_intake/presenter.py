"""Table presenter — sortable, text-filterable rich tables."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import pandas as pd
from rich.table import Table as RichTable

from spreadsheet_intake.models import Row

ASC_MARK = "▲"
DESC_MARK = "▼"
UNSORTED_MARK = "↕"


@dataclass(frozen=True)
class SortKey:
    column: str
    descending: bool = False

    @classmethod
    def parse(cls, spec: str) -> SortKey:
        """Parse ``"Name"`` / ``"Name:desc"`` / ``"Name:asc"``."""
        column, sep, direction = spec.rpartition(":")
        if not sep or direction.strip().lower() not in {"asc", "desc"}:
            column, direction = spec, "asc"
        column = column.strip()
        if not column:
            raise ValueError(f"Invalid sort key: {spec!r}  (expected COLUMN or COLUMN:desc)")
        return cls(column=column, descending=direction.strip().lower() == "desc")


def format_cell(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat(sep=" ")
    return str(value)


def _sort_token(value: Any) -> tuple[int, Any]:
    if isinstance(value, (bool, int, float)):
        return (0, float(value))
    if isinstance(value, datetime):
        return (1, value.replace(tzinfo=None))
    return (2, str(value).lower())


def _rows_to_frame(rows: Sequence[Row], columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame.from_records(list(rows), columns=list(columns)).astype(object)


class TablePresenter:
    """Presentation-only sort/filter state over rows it never mutates."""

    def __init__(self) -> None:
        self.sorting: list[SortKey] = []
        self.global_filter = ""

    # ── State ────────────────────────────────────────────────────

    def set_sorting(self, keys: Sequence[SortKey]) -> None:
        self.sorting = list(keys)

    def set_global_filter(self, text: str) -> None:
        self.global_filter = text or ""

    def toggle_sorting(self, column: str) -> None:
        """Cycle *column*: unsorted -> ascending -> descending -> unsorted."""
        current = next((key for key in self.sorting if key.column == column), None)
        others = [key for key in self.sorting if key.column != column]
        if current is None:
            self.sorting = [SortKey(column)]
        elif not current.descending:
            self.sorting = [SortKey(column, descending=True)]
        else:
            self.sorting = others

    def sort_direction(self, column: str) -> str | None:
        for key in self.sorting:
            if key.column == column:
                return "desc" if key.descending else "asc"
        return None

    # ── Row model ────────────────────────────────────────────────

    def _filter_mask(self, frame: pd.DataFrame) -> pd.Series:
        needle = self.global_filter.strip().lower()
        if not needle or frame.empty:
            return pd.Series(True, index=frame.index)
        text = frame.apply(lambda col: col.map(format_cell).str.lower())
        return text.apply(lambda col: col.str.contains(needle, regex=False)).any(axis=1)

    def _sorted_positions(self, frame: pd.DataFrame, positions: list[int]) -> list[int]:
        order = list(positions)
        # stable sorts applied from the least significant key
        for key in reversed(self.sorting):
            if key.column not in frame.columns:
                continue
            values = frame[key.column]
            absent = values.isna()
            present = [i for i in order if not absent.iat[i]]
            missing = [i for i in order if absent.iat[i]]
            present.sort(key=lambda i: _sort_token(values.iat[i]), reverse=key.descending)
            order = present + missing
        return order

    def visible_rows(self, rows: Sequence[Row], columns: Sequence[str]) -> list[Row]:
        """Rows after the global filter and sorting, in display order."""
        if not rows:
            return []
        frame = _rows_to_frame(rows, columns)
        mask = self._filter_mask(frame)
        positions = [i for i, keep in enumerate(mask.tolist()) if keep]
        return [rows[i] for i in self._sorted_positions(frame, positions)]

    # ── Rendering ────────────────────────────────────────────────

    def _header_label(self, column: str) -> str:
        direction = self.sort_direction(column)
        mark = {"asc": ASC_MARK, "desc": DESC_MARK}.get(direction or "", UNSORTED_MARK)
        return f"{column} {mark}"

    def render(
        self,
        rows: Sequence[Row],
        columns: Sequence[str],
        *,
        title: str | None = None,
        limit: int | None = None,
    ) -> RichTable:
        visible = self.visible_rows(rows, columns)
        shown = visible if limit is None else visible[: max(limit, 0)]

        tbl = RichTable(title=title, show_lines=False)
        for column in columns:
            tbl.add_column(self._header_label(column), overflow="fold")
        for row in shown:
            tbl.add_row(*(format_cell(row.get(column)) for column in columns))

        caption = f"{len(shown)} of {len(rows)} rows"
        if self.global_filter:
            caption += f" (filter: {self.global_filter!r})"
        tbl.caption = caption
        return tbl
