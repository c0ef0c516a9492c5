"""CLI entry point for spreadsheet-intake."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table as RichTable

from spreadsheet_intake import __version__
from spreadsheet_intake.config import build_policy
from spreadsheet_intake.controller import ImportController
from spreadsheet_intake.export import save_download
from spreadsheet_intake.io import sha256_file, utcnow_iso
from spreadsheet_intake.models import (
    Accepted,
    HeaderPolicy,
    ImportManifest,
    ImportOutcome,
    Rejected,
)
from spreadsheet_intake.presenter import SortKey
from spreadsheet_intake.report import write_import_report
from spreadsheet_intake.state import ApplicationShell, ViewMode

app = typer.Typer(
    name="sintake",
    help="spreadsheet-intake — Import, validate, preview and re-export spreadsheets.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

_POLICY_HELP = "Policy file with required=/optional=/format= lines."


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {msg}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"spreadsheet-intake v{__version__}")
        raise typer.Exit()


def _configure_logging() -> None:
    logger = logging.getLogger("spreadsheet_intake")
    logger.setLevel(logging.DEBUG)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(
            RichHandler(console=Console(stderr=True), show_path=False, show_time=False)
        )


def _resolve_policy(
    required: list[str] | None,
    optional: list[str] | None,
    file_format: str | None,
    policy_path: Path | None,
) -> HeaderPolicy:
    try:
        return build_policy(
            required=required,
            optional=optional,
            file_format=file_format,
            policy_path=policy_path,
        )
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)


def _requirements_panel(policy: HeaderPolicy) -> Panel:
    lines: list[str] = []
    if policy.required_headers:
        lines.append(f"[red]*[/red] Required columns: {', '.join(policy.required_headers)}")
    if policy.optional_headers:
        lines.append(f"  Optional columns: {', '.join(policy.optional_headers)}")
    lines.append(f"  Accepted formats: {policy.file_format}")
    return Panel("\n".join(lines), title="File Requirements", border_style="cyan")


def _errors_table(outcome: Rejected) -> RichTable:
    tbl = RichTable(title="Validation Errors", show_lines=True)
    tbl.add_column("Kind", style="bold")
    tbl.add_column("Message")
    for error in outcome.errors:
        tbl.add_row(error.kind.value, f"[red]{error.message}[/red]")
    return tbl


def _write_report(out_dir: Path, input_file: Path, outcome: ImportOutcome) -> Path:
    sha256 = ""
    try:
        sha256 = sha256_file(input_file)
    except OSError:
        pass

    manifest = ImportManifest.from_outcome(
        outcome,
        version=__version__,
        input_path=str(input_file.resolve()),
        created_at_utc=utcnow_iso(),
        sha256=sha256,
    )
    return write_import_report(out_dir, manifest)


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Log import details to stderr.",
    ),
) -> None:
    """spreadsheet-intake CLI."""
    if verbose:
        _configure_logging()


# ── check command ────────────────────────────────────────────────


@app.command()
def check(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to the spreadsheet to validate.",
        exists=True, readable=True, dir_okay=False,
    ),
    required: list[str] | None = typer.Option(
        None, "--required", "-r",
        help="Required header (repeat or comma-separate).",
    ),
    optional: list[str] | None = typer.Option(
        None, "--optional",
        help="Optional header (repeat or comma-separate).",
    ),
    file_format: str | None = typer.Option(
        None, "--format", "-f",
        help="Accepted extensions, e.g. '.xlsx, .xls'.",
    ),
    policy_path: Path | None = typer.Option(None, "--policy", help=_POLICY_HELP),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for import_report.json.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes the report.",
    ),
) -> None:
    """Validate a spreadsheet against a header policy.

    Exit 0 = accepted, exit 2 = rejected.
    """
    echo = _printer(quiet)
    policy = _resolve_policy(required, optional, file_format, policy_path)
    if not quiet:
        console.print(_requirements_panel(policy))

    try:
        outcome = asyncio.run(ImportController(policy).acquire(input_file))
        report_path = _write_report(out_dir, input_file, outcome)
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)

    if not quiet:
        tbl = RichTable(title="Validation Summary", show_lines=True)
        tbl.add_column("Check", style="bold")
        tbl.add_column("Result")
        tbl.add_row("File", input_file.name)
        if isinstance(outcome, Accepted):
            tbl.add_row("Rows", str(len(outcome.rows)))
            tbl.add_row("Headers", ", ".join(outcome.headers))
            tbl.add_row("Status", "[green]PASS[/green]")
        else:
            for error in outcome.errors:
                tbl.add_row(error.kind.value, f"[yellow]{error.message}[/yellow]")
            tbl.add_row("Status", "[red]FAIL[/red]")
        console.print(tbl)
    echo(f"  Report -> {report_path}")

    if isinstance(outcome, Rejected):
        _err(f"{len(outcome.errors)} validation error(s) in {input_file.name}")
        raise typer.Exit(code=2)


# ── import command ───────────────────────────────────────────────


@app.command("import")
def import_(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to the spreadsheet to import.",
        exists=True, readable=True, dir_okay=False,
    ),
    required: list[str] | None = typer.Option(
        None, "--required", "-r",
        help="Required header (repeat or comma-separate).",
    ),
    optional: list[str] | None = typer.Option(
        None, "--optional",
        help="Optional header (repeat or comma-separate).",
    ),
    file_format: str | None = typer.Option(
        None, "--format", "-f",
        help="Accepted extensions, e.g. '.xlsx, .xls'.",
    ),
    policy_path: Path | None = typer.Option(None, "--policy", help=_POLICY_HELP),
    search: str | None = typer.Option(
        None, "--search", "-s",
        help="Only show rows where any cell contains this text.",
    ),
    sort: list[str] | None = typer.Option(
        None, "--sort",
        help="Sort by column: COLUMN or COLUMN:desc (repeatable).",
    ),
    limit: int | None = typer.Option(
        None, "--limit", min=0,
        help="Show at most this many rows.",
    ),
    confirm: bool = typer.Option(
        False, "--confirm",
        help="Confirm the import after previewing it.",
    ),
    export: bool = typer.Option(
        False, "--export",
        help="Write exported-data.xlsx into the output directory.",
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for import_report.json and exports.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress the table and informational output.",
    ),
) -> None:
    """Import a spreadsheet, preview it, optionally confirm and export it."""
    echo = _printer(quiet)
    policy = _resolve_policy(required, optional, file_format, policy_path)

    shell = ApplicationShell(policy)
    try:
        shell.presenter.set_sorting([SortKey.parse(spec) for spec in sort or []])
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)
    shell.presenter.set_global_filter(search or "")

    if not quiet:
        console.print(Panel(
            f"[bold]spreadsheet-intake[/bold] v{__version__}\nInput: {input_file}",
            title="Import", border_style="blue",
        ))
        console.print(_requirements_panel(policy))

    try:
        echo("[blue]>[/blue] Processing file …")
        outcome = asyncio.run(shell.import_file(input_file))
        report_path = _write_report(out_dir, input_file, outcome)

        if isinstance(outcome, Rejected):
            console.print(_errors_table(outcome))
            console.print(f"  Report -> {report_path}")
            _err(f"Import rejected: {len(outcome.errors)} validation error(s)")
            raise typer.Exit(code=2)

        echo("[green]✓[/green] File validated successfully!")
        if confirm:
            shell.confirm()

        if not quiet:
            if shell.state.mode is ViewMode.preview:
                console.print(Panel(
                    "Review your imported data before confirming the import.\n"
                    "Re-run with --confirm to confirm it.",
                    title="Preview Mode", border_style="blue",
                ))
            console.print(shell.render(limit=limit))
        echo(f"  Report -> {report_path}")

        if export:
            export_path = save_download(shell.export(), out_dir)
            echo(f"  Export -> {export_path}")

        if not quiet:
            status = "confirmed" if shell.state.mode is ViewMode.confirmed else "previewed"
            console.print(Panel(
                f"[green]Done[/green]: {len(shell.state.rows)} rows {status}",
                title="Import Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        _err(f"Unexpected internal error: {exc}")
        raise typer.Exit(code=1)
