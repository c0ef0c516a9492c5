"""Application shell — immutable view state, pure reducers, wiring.

Lifecycle::

    EMPTY --accepted--> PREVIEW --confirm--> CONFIRMED
    PREVIEW | CONFIRMED --accepted--> PREVIEW   (data replaced wholesale)

A rejected import never changes the mode or the owned rows; it only records
the errors for display. Every import is tagged with a sequence number and
only the most recently started one may commit.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from enum import Enum
from pathlib import Path

from rich.table import Table as RichTable

from spreadsheet_intake.codec import Codec, ExcelCodec
from spreadsheet_intake.controller import ImportController, SourceFile
from spreadsheet_intake.export import Download, export_rows
from spreadsheet_intake.models import (
    Accepted,
    HeaderPolicy,
    ImportOutcome,
    Row,
    ValidationError,
)
from spreadsheet_intake.presenter import TablePresenter


class ViewMode(str, Enum):
    empty = "empty"
    preview = "preview"
    confirmed = "confirmed"


class StateTransitionError(RuntimeError):
    """Raised for a transition the lifecycle does not allow."""


@dataclass(frozen=True)
class AppState:
    mode: ViewMode = ViewMode.empty
    rows: tuple[Row, ...] = ()
    headers: tuple[str, ...] = ()
    errors: tuple[ValidationError, ...] = ()
    is_loading: bool = False
    validated: bool = False
    last_issued: int = 0

    @property
    def has_data(self) -> bool:
        return self.mode is not ViewMode.empty


# ── Reducers ─────────────────────────────────────────────────────


def begin_import(state: AppState) -> tuple[AppState, int]:
    seq = state.last_issued + 1
    return (
        replace(state, is_loading=True, errors=(), validated=False, last_issued=seq),
        seq,
    )


def _is_stale(state: AppState, seq: int) -> bool:
    return seq != state.last_issued


def accept_import(
    state: AppState, seq: int, rows: Sequence[Row], headers: Sequence[str]
) -> AppState:
    if _is_stale(state, seq):
        return state
    return replace(
        state,
        mode=ViewMode.preview,
        rows=tuple(rows),
        headers=tuple(headers),
        errors=(),
        is_loading=False,
        validated=True,
    )


def reject_import(
    state: AppState, seq: int, errors: Sequence[ValidationError]
) -> AppState:
    if _is_stale(state, seq):
        return state
    return replace(state, errors=tuple(errors), is_loading=False, validated=False)


def apply_outcome(state: AppState, seq: int, outcome: ImportOutcome) -> AppState:
    if isinstance(outcome, Accepted):
        return accept_import(state, seq, outcome.rows, outcome.headers)
    return reject_import(state, seq, outcome.errors)


def end_import(state: AppState, seq: int) -> AppState:
    if _is_stale(state, seq) or not state.is_loading:
        return state
    return replace(state, is_loading=False)


def confirm_import(state: AppState) -> AppState:
    if state.mode is ViewMode.empty:
        raise StateTransitionError("Nothing to confirm: no data has been imported")
    if state.mode is ViewMode.confirmed:
        return state
    return replace(state, mode=ViewMode.confirmed)


# ── Shell ────────────────────────────────────────────────────────


class ApplicationShell:
    """Owns the current ``AppState`` and wires importer, table and export."""

    def __init__(
        self,
        policy: HeaderPolicy | None = None,
        *,
        codec: Codec | None = None,
        presenter: TablePresenter | None = None,
    ) -> None:
        self.codec: Codec = codec if codec is not None else ExcelCodec()
        self.controller = ImportController(policy, codec=self.codec)
        self.presenter = presenter if presenter is not None else TablePresenter()
        self.state = AppState()

    async def import_file(self, source: Path | SourceFile) -> ImportOutcome:
        self.state, seq = begin_import(self.state)

        def _commit(rows: list[Row], headers: list[str]) -> None:
            self.state = accept_import(self.state, seq, rows, headers)

        try:
            outcome = await self.controller.acquire(source, on_data_imported=_commit)
        finally:
            self.state = end_import(self.state, seq)
        if not isinstance(outcome, Accepted):
            self.state = reject_import(self.state, seq, outcome.errors)
        return outcome

    def confirm(self) -> AppState:
        self.state = confirm_import(self.state)
        return self.state

    def render(self, *, limit: int | None = None) -> RichTable:
        if not self.state.has_data:
            raise StateTransitionError("No data to display")
        title = "Data Preview" if self.state.mode is ViewMode.preview else "Imported Data"
        return self.presenter.render(
            self.state.rows, self.state.headers, title=title, limit=limit
        )

    def export(self) -> Download:
        if not self.state.has_data:
            raise StateTransitionError("No data to export")
        return export_rows(self.state.rows, codec=self.codec)
