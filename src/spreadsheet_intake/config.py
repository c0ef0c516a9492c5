"""Header-policy configuration — policy files and CLI option merging."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from spreadsheet_intake import DEFAULT_FILE_FORMAT
from spreadsheet_intake.models import HeaderPolicy, parse_file_format

_LIST_KEYS = ("required", "optional")
_KNOWN_KEYS = (*_LIST_KEYS, "format")


def _split_names(raw: str) -> list[str]:
    return [name.strip() for name in raw.split(",") if name.strip()]


def load_policy_file(path: Path | None) -> dict[str, list[str]]:
    """Parse ``key=value`` lines from a policy file.

    ``required`` and ``optional`` take comma-separated header names and may
    repeat; ``format`` takes an extension list (last one wins).
    """
    if not path:
        return {}
    if not path.exists():
        raise ValueError(f"Policy not found: {path} (expected lines like required=Name, Email)")
    if path.is_dir():
        raise ValueError(f"Policy is a directory, not a file: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read policy {path}: {exc}") from exc

    entries: dict[str, list[str]] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            raise ValueError(f"Invalid policy line {lineno}: {stripped!r}  (expected key=value)")
        key, value = (part.strip() for part in stripped.split("=", 1))
        key = key.lower()
        if key not in _KNOWN_KEYS:
            raise ValueError(
                f"Unknown policy key {key!r} on line {lineno}. "
                f"Use one of: {', '.join(_KNOWN_KEYS)}"
            )
        if key == "format":
            if not parse_file_format(value):
                raise ValueError(f"Policy line {lineno}: format needs at least one extension")
            entries["format"] = [value]
        else:
            entries.setdefault(key, []).extend(_split_names(value))
    return entries


def build_policy(
    *,
    required: Sequence[str] | None = None,
    optional: Sequence[str] | None = None,
    file_format: str | None = None,
    policy_path: Path | None = None,
) -> HeaderPolicy:
    """Merge a policy file with CLI options; CLI names are appended."""
    entries = load_policy_file(policy_path)

    required_names = entries.get("required", []) + [
        name for raw in (required or []) for name in _split_names(raw)
    ]
    optional_names = entries.get("optional", []) + [
        name for raw in (optional or []) for name in _split_names(raw)
    ]

    if file_format is not None:
        if not parse_file_format(file_format):
            raise ValueError(f"Invalid --format value: {file_format!r}  (expected e.g. .xlsx, .xls)")
        resolved_format = file_format
    elif "format" in entries:
        resolved_format = entries["format"][-1]
    else:
        resolved_format = DEFAULT_FILE_FORMAT

    return HeaderPolicy(
        required_headers=tuple(required_names),
        optional_headers=tuple(optional_names),
        file_format=resolved_format,
    )
