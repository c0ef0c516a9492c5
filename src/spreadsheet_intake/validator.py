"""Import validation — pure functions, no side effects."""

from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

from spreadsheet_intake.models import (
    Accepted,
    ErrorKind,
    HeaderPolicy,
    ImportOutcome,
    Rejected,
    Row,
    ValidationError,
)

EMPTY_FILE_MESSAGE = "The file contains no data."


def is_blank(value: Any) -> bool:
    """Return True for cells that count as empty in a required column.

    ``0`` and ``False`` are values, not blanks.
    """
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return str(value).strip() == ""


# ── Header checks ───────────────────────────────────────────────


def check_headers(headers: Sequence[str], policy: HeaderPolicy) -> list[ValidationError]:
    """Missing required headers first, then headers outside the policy."""
    errors: list[ValidationError] = []

    present = set(headers)
    missing = [name for name in policy.required_headers if name not in present]
    if missing:
        errors.append(
            ValidationError(
                ErrorKind.required, f"Missing required headers: {', '.join(missing)}"
            )
        )

    if policy.is_restricted:
        allowed = policy.allowed_headers
        unknown = [name for name in headers if name not in allowed]
        if unknown:
            errors.append(
                ValidationError(
                    ErrorKind.format, f"Unrecognized headers found: {', '.join(unknown)}"
                )
            )

    return errors


# ── Row checks ──────────────────────────────────────────────────


def check_required_fields(rows: Sequence[Row], policy: HeaderPolicy) -> list[ValidationError]:
    errors: list[ValidationError] = []
    for index, row in enumerate(rows, start=1):
        for name in policy.required_headers:
            if is_blank(row.get(name)):
                errors.append(
                    ValidationError(
                        ErrorKind.data, f'Empty required field "{name}" in row {index}'
                    )
                )
    return errors


# ── Entry point ─────────────────────────────────────────────────


def validate(raw_rows: Sequence[Row], policy: HeaderPolicy) -> ImportOutcome:
    """Validate decoded rows against *policy*.

    Returns ``Accepted(rows, headers)`` when no errors were found, otherwise
    ``Rejected(errors)`` with header errors ahead of per-row errors.
    """
    if not raw_rows:
        return Rejected([ValidationError(ErrorKind.data, EMPTY_FILE_MESSAGE)])

    headers = list(raw_rows[0].keys())
    errors = check_headers(headers, policy) + check_required_fields(raw_rows, policy)
    if errors:
        return Rejected(errors)
    return Accepted(rows=list(raw_rows), headers=headers)
