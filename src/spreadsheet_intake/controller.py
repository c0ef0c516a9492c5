"""Import controller — file acquisition, decoding and validation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from spreadsheet_intake.codec import Codec, ExcelCodec
from spreadsheet_intake.models import (
    Accepted,
    ErrorKind,
    HeaderPolicy,
    ImportOutcome,
    Rejected,
    Row,
    ValidationError,
)
from spreadsheet_intake.validator import validate

logger = logging.getLogger(__name__)

INVALID_FILE_MESSAGE = "Error processing file. Please ensure it's a valid Excel file."

DataImportedCallback = Callable[[list[Row], list[str]], None]


@dataclass(frozen=True)
class SourceFile:
    """An in-memory upload: a file name and its bytes."""

    name: str
    data: bytes


def file_extension(name: str) -> str:
    """Return the lower-cased text after the last dot, or ``""``."""
    _, dot, ext = Path(name).name.rpartition(".")
    return ext.lower() if dot else ""


def _read_source(source: Path | SourceFile) -> bytes:
    if isinstance(source, SourceFile):
        return source.data
    return Path(source).read_bytes()


def _source_name(source: Path | SourceFile) -> str:
    if isinstance(source, SourceFile):
        return source.name
    return Path(source).name


class ImportController:
    """Turn a spreadsheet file into an ``ImportOutcome``.

    ``is_loading`` stays true while any :meth:`acquire` call is in flight;
    each call releases its hold on every exit path.
    """

    def __init__(
        self,
        policy: HeaderPolicy | None = None,
        *,
        codec: Codec | None = None,
        on_data_imported: DataImportedCallback | None = None,
    ) -> None:
        self.policy = policy if policy is not None else HeaderPolicy()
        self.codec: Codec = codec if codec is not None else ExcelCodec()
        self.on_data_imported = on_data_imported
        self._in_flight = 0

    @property
    def is_loading(self) -> bool:
        return self._in_flight > 0

    def check_extension(self, name: str) -> ValidationError | None:
        if file_extension(name) in self.policy.accepted_extensions:
            return None
        return ValidationError(
            ErrorKind.format,
            f"Invalid file format. Please use {self.policy.file_format} files.",
        )

    async def acquire(
        self,
        source: Path | SourceFile,
        on_data_imported: DataImportedCallback | None = None,
    ) -> ImportOutcome:
        """Read, decode and validate *source*.

        On success the callback (per-call, else the controller default) is
        invoked once with ``(rows, headers)`` before returning.
        """
        self._in_flight += 1
        try:
            name = _source_name(source)
            format_error = self.check_extension(name)
            if format_error is not None:
                logger.debug("rejected %s: extension not accepted", name)
                return Rejected([format_error])

            try:
                data = await asyncio.to_thread(_read_source, source)
                rows = await asyncio.to_thread(
                    self.codec.decode, data, file_extension(name)
                )
            except Exception:
                logger.debug("could not decode %s", name, exc_info=True)
                return Rejected([ValidationError(ErrorKind.format, INVALID_FILE_MESSAGE)])

            outcome = validate(rows, self.policy)
            if isinstance(outcome, Accepted):
                logger.debug("accepted %s: %d rows", name, len(outcome.rows))
                callback = on_data_imported or self.on_data_imported
                if callback is not None:
                    callback(outcome.rows, outcome.headers)
            else:
                logger.debug("rejected %s: %d errors", name, len(outcome.errors))
            return outcome
        finally:
            self._in_flight -= 1
