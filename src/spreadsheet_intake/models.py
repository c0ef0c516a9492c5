"""Data models shared by the codec, validator, controller and shell."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from numbers import Integral
from typing import Any, Union

from spreadsheet_intake import DEFAULT_FILE_FORMAT

CellValue = Union[str, int, float, bool, datetime]
"""A decoded cell. Absent cells are missing keys, never ``None``."""

Row = dict[str, CellValue]


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


def _unique(values: list[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def parse_file_format(file_format: str) -> tuple[str, ...]:
    """Split ``".xlsx, .xls"`` into ``("xlsx", "xls")``."""
    extensions: list[str] = []
    for part in file_format.split(","):
        ext = part.strip().lower()
        if ext.startswith("."):
            ext = ext[1:]
        if ext:
            extensions.append(ext)
    return _unique(extensions)


# ── Header policy ────────────────────────────────────────────────


@dataclass(frozen=True)
class HeaderPolicy:
    """Which headers a file must/may carry and which extensions are accepted.

    Empty ``required_headers`` and ``optional_headers`` means any header
    shape is allowed.
    """

    required_headers: tuple[str, ...] = ()
    optional_headers: tuple[str, ...] = ()
    file_format: str = DEFAULT_FILE_FORMAT

    def __post_init__(self) -> None:
        required = _to_string_list(self.required_headers, "required_headers")
        optional = _to_string_list(self.optional_headers, "optional_headers")
        if not isinstance(self.file_format, str):
            raise TypeError("file_format must be a string")
        object.__setattr__(self, "required_headers", _unique(required))
        object.__setattr__(self, "optional_headers", _unique(optional))

    @property
    def accepted_extensions(self) -> tuple[str, ...]:
        return parse_file_format(self.file_format)

    @property
    def allowed_headers(self) -> frozenset[str]:
        return frozenset(self.required_headers) | frozenset(self.optional_headers)

    @property
    def is_restricted(self) -> bool:
        return bool(self.required_headers or self.optional_headers)


# ── Validation results ──────────────────────────────────────────


class ErrorKind(str, Enum):
    required = "required"
    format = "format"
    data = "data"


@dataclass(frozen=True)
class ValidationError:
    """One user-facing problem found while importing a file."""

    kind: ErrorKind
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"kind": self.kind.value, "message": self.message}


@dataclass(frozen=True)
class Accepted:
    """A file that passed validation."""

    rows: list[Row]
    headers: list[str]

    @property
    def errors(self) -> list[ValidationError]:
        return []


@dataclass(frozen=True)
class Rejected:
    """A file that failed validation; nothing from it reaches app state."""

    errors: list[ValidationError]

    def __post_init__(self) -> None:
        if not self.errors:
            raise ValueError("Rejected outcome requires at least one error")


ImportOutcome = Union[Accepted, Rejected]


# ── Audit record ────────────────────────────────────────────────


@dataclass
class ImportManifest:
    """Audit-trail record for a single import attempt."""

    tool: str = "spreadsheet-intake"
    version: str = ""
    input_path: str = ""
    created_at_utc: str = ""
    sha256: str = ""
    status: str = "accepted"
    rows: int = 0
    headers: list[str] = field(default_factory=list)
    errors: list[ValidationError] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rows = _to_non_negative_int(self.rows, "rows")
        self.headers = _to_string_list(self.headers, "headers")
        if self.status not in {"accepted", "rejected"}:
            raise ValueError("status must be 'accepted' or 'rejected'")
        if (self.status == "accepted") == bool(self.errors):
            raise ValueError("status must be 'rejected' exactly when errors are present")

    @classmethod
    def from_outcome(cls, outcome: ImportOutcome, **kwargs: Any) -> ImportManifest:
        if isinstance(outcome, Accepted):
            return cls(
                status="accepted",
                rows=len(outcome.rows),
                headers=list(outcome.headers),
                **kwargs,
            )
        return cls(status="rejected", errors=list(outcome.errors), **kwargs)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "input_path": self.input_path,
            "created_at_utc": self.created_at_utc,
            "sha256": self.sha256,
            "status": self.status,
            "rows": self.rows,
            "headers": list(self.headers),
            "errors": [error.to_dict() for error in self.errors],
        }
