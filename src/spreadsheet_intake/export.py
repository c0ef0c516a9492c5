"""Export controller — rows back to a downloadable workbook."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from spreadsheet_intake.codec import DEFAULT_SHEET_NAME, Codec, ExcelCodec
from spreadsheet_intake.io import write_bytes
from spreadsheet_intake.models import Row

EXPORT_FILENAME = "exported-data.xlsx"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass(frozen=True)
class Download:
    filename: str
    content: bytes
    media_type: str = XLSX_MEDIA_TYPE


def export_rows(rows: Sequence[Row], codec: Codec | None = None) -> Download:
    """Encode *rows* as ``exported-data.xlsx``; encoding errors propagate."""
    codec = codec if codec is not None else ExcelCodec()
    content = codec.encode(list(rows), DEFAULT_SHEET_NAME)
    return Download(filename=EXPORT_FILENAME, content=content)


def save_download(download: Download, out_dir: Path) -> Path:
    """Deliver *download* into *out_dir* and return the written path."""
    return write_bytes(Path(out_dir) / download.filename, download.content)
