"""View-state reducers and the application shell."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from io import BytesIO

import pytest
from openpyxl import load_workbook

from spreadsheet_intake.controller import SourceFile
from spreadsheet_intake.export import EXPORT_FILENAME
from spreadsheet_intake.models import (
    Accepted,
    ErrorKind,
    HeaderPolicy,
    Rejected,
    Row,
    ValidationError,
)
from spreadsheet_intake.state import (
    AppState,
    ApplicationShell,
    StateTransitionError,
    ViewMode,
    accept_import,
    apply_outcome,
    begin_import,
    confirm_import,
    end_import,
    reject_import,
)

ERR = ValidationError(ErrorKind.format, "Invalid file format. Please use .xlsx files.")


def test_initial_state_is_empty() -> None:
    state = AppState()

    assert state.mode is ViewMode.empty
    assert state.rows == ()
    assert not state.is_loading
    assert not state.has_data


def test_accept_moves_empty_to_preview() -> None:
    state, seq = begin_import(AppState())
    assert state.is_loading

    state = accept_import(state, seq, [{"A": 1}], ["A"])

    assert state.mode is ViewMode.preview
    assert state.rows == ({"A": 1},)
    assert state.headers == ("A",)
    assert state.validated
    assert not state.is_loading


def test_confirm_then_reimport_returns_to_preview_with_new_data() -> None:
    state, seq = begin_import(AppState())
    state = accept_import(state, seq, [{"A": 1}], ["A"])
    state = confirm_import(state)
    assert state.mode is ViewMode.confirmed

    state, seq = begin_import(state)
    state = accept_import(state, seq, [{"B": 2}, {"B": 3}], ["B"])

    assert state.mode is ViewMode.preview
    assert state.rows == ({"B": 2}, {"B": 3})
    assert state.headers == ("B",)


def test_reject_keeps_mode_and_data() -> None:
    state, seq = begin_import(AppState())
    state = accept_import(state, seq, [{"A": 1}], ["A"])
    state = confirm_import(state)

    state, seq = begin_import(state)
    state = reject_import(state, seq, [ERR])

    assert state.mode is ViewMode.confirmed
    assert state.rows == ({"A": 1},)
    assert state.errors == (ERR,)
    assert not state.validated
    assert not state.is_loading


def test_reject_from_empty_stays_empty() -> None:
    state, seq = begin_import(AppState())

    state = apply_outcome(state, seq, Rejected([ERR]))

    assert state.mode is ViewMode.empty
    assert state.errors == (ERR,)


def test_stale_outcome_cannot_commit() -> None:
    state, first = begin_import(AppState())
    state, second = begin_import(state)

    stale = apply_outcome(state, first, Accepted(rows=[{"Old": 1}], headers=["Old"]))
    assert stale is state

    state = apply_outcome(state, second, Accepted(rows=[{"New": 1}], headers=["New"]))
    assert state.headers == ("New",)
    assert apply_outcome(state, first, Rejected([ERR])) is state
    assert end_import(state, first) is state


def test_begin_import_clears_previous_errors() -> None:
    state, seq = begin_import(AppState())
    state = reject_import(state, seq, [ERR])

    state, _ = begin_import(state)

    assert state.errors == ()
    assert state.is_loading


def test_confirm_from_empty_raises_and_confirmed_is_idempotent() -> None:
    with pytest.raises(StateTransitionError):
        confirm_import(AppState())

    state, seq = begin_import(AppState())
    state = confirm_import(accept_import(state, seq, [{"A": 1}], ["A"]))
    assert confirm_import(state) is state


def test_reducers_do_not_mutate_input_state() -> None:
    original = AppState()

    begin_import(original)

    assert original == AppState()


# ── Shell ────────────────────────────────────────────────────────


class _GatedCodec:
    """Echoes the payload as a row; ``b"slow"`` blocks until released."""

    def __init__(self) -> None:
        self.release: asyncio.Event | None = None
        self.loop: asyncio.AbstractEventLoop | None = None
        self.encoded: list[list[Row]] = []

    def decode(self, data: bytes, extension: str = "xlsx") -> list[Row]:
        if data == b"slow":
            assert self.release is not None and self.loop is not None
            asyncio.run_coroutine_threadsafe(self.release.wait(), self.loop).result()
            return [{"Which": "slow"}]
        return [{"Which": data.decode()}]

    def encode(self, rows: Sequence[Row], sheet_name: str = "Sheet1") -> bytes:
        self.encoded.append(list(rows))
        return b"xlsx-bytes"


def test_shell_import_confirm_and_export() -> None:
    codec = _GatedCodec()
    shell = ApplicationShell(codec=codec)

    outcome = asyncio.run(shell.import_file(SourceFile("a.xlsx", b"fast")))

    assert isinstance(outcome, Accepted)
    assert shell.state.mode is ViewMode.preview
    assert shell.render().title == "Data Preview"

    shell.confirm()
    assert shell.render().title == "Imported Data"

    download = shell.export()
    assert download.filename == EXPORT_FILENAME
    assert download.content == b"xlsx-bytes"
    assert codec.encoded == [[{"Which": "fast"}]]


def test_shell_rejected_import_surfaces_errors() -> None:
    shell = ApplicationShell(HeaderPolicy(file_format=".xlsx"))

    outcome = asyncio.run(shell.import_file(SourceFile("a.csv", b"")))

    assert isinstance(outcome, Rejected)
    assert shell.state.mode is ViewMode.empty
    assert shell.state.errors[0].kind is ErrorKind.format
    assert not shell.state.is_loading
    with pytest.raises(StateTransitionError):
        shell.render()
    with pytest.raises(StateTransitionError):
        shell.export()


def test_shell_ignores_slow_import_finishing_after_newer_one() -> None:
    codec = _GatedCodec()
    shell = ApplicationShell(codec=codec)

    async def _scenario() -> None:
        codec.loop = asyncio.get_running_loop()
        codec.release = asyncio.Event()
        slow = asyncio.create_task(shell.import_file(SourceFile("slow.xlsx", b"slow")))
        await asyncio.sleep(0.05)
        await shell.import_file(SourceFile("fast.xlsx", b"fast"))
        codec.release.set()
        await slow

    asyncio.run(_scenario())

    assert shell.state.rows == ({"Which": "fast"},)
    assert shell.state.mode is ViewMode.preview
    assert not shell.state.is_loading


def test_shell_export_uses_real_codec() -> None:
    shell = ApplicationShell()
    shell.state = accept_import(*begin_import(shell.state), [{"A": 1}, {"B": "x"}], ["A"])

    download = shell.export()

    ws = load_workbook(BytesIO(download.content))["Sheet1"]
    assert [list(r) for r in ws.iter_rows(values_only=True)] == [
        ["A", "B"],
        [1, None],
        [None, "x"],
    ]
