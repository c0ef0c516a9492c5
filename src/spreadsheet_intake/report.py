"""Import report persistence."""

from __future__ import annotations

from pathlib import Path

from spreadsheet_intake.io import write_json
from spreadsheet_intake.models import ImportManifest

REPORT_FILENAME = "import_report.json"


def write_import_report(out_dir: Path, manifest: ImportManifest) -> Path:
    """Write ``import_report.json`` into *out_dir* and return the path."""
    return write_json(Path(out_dir) / REPORT_FILENAME, manifest.to_dict())
