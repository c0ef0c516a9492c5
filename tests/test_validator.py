"""Header and required-field validation contracts."""

from __future__ import annotations

import pytest

from spreadsheet_intake.models import Accepted, ErrorKind, HeaderPolicy, Rejected
from spreadsheet_intake.validator import EMPTY_FILE_MESSAGE, is_blank, validate

CONTACTS = HeaderPolicy(
    required_headers=("Name", "Email"), optional_headers=("Phone",), file_format=".xlsx"
)


@pytest.mark.parametrize(
    "policy",
    [HeaderPolicy(), CONTACTS, HeaderPolicy(required_headers=("A",))],
)
def test_empty_rows_yield_single_data_error(policy: HeaderPolicy) -> None:
    outcome = validate([], policy)

    assert isinstance(outcome, Rejected)
    assert len(outcome.errors) == 1
    assert outcome.errors[0].kind is ErrorKind.data
    assert outcome.errors[0].message == EMPTY_FILE_MESSAGE


def test_empty_required_field_reports_field_and_row_number() -> None:
    rows = [{"Name": "Ann", "Email": "a@x.com"}, {"Name": "Bob", "Email": ""}]

    outcome = validate(rows, CONTACTS)

    assert isinstance(outcome, Rejected)
    assert len(outcome.errors) == 1
    error = outcome.errors[0]
    assert error.kind is ErrorKind.data
    assert '"Email"' in error.message
    assert "row 2" in error.message


def test_unrestricted_policy_accepts_sparse_rows_unchanged() -> None:
    rows = [{"A": 1, "B": 2}, {"A": 3}]

    outcome = validate(rows, HeaderPolicy())

    assert isinstance(outcome, Accepted)
    assert outcome.rows == rows
    assert outcome.headers == ["A", "B"]
    assert outcome.errors == []


def test_unknown_header_is_format_error_when_required_present() -> None:
    policy = HeaderPolicy(required_headers=("Name",))

    outcome = validate([{"Name": "Ann", "Extra": "?"}], policy)

    assert isinstance(outcome, Rejected)
    assert [e.kind for e in outcome.errors] == [ErrorKind.format]
    assert outcome.errors[0].message == "Unrecognized headers found: Extra"


def test_missing_required_headers_come_first_in_policy_order() -> None:
    policy = HeaderPolicy(required_headers=("Email", "Name", "Id"), optional_headers=("Note",))
    rows = [{"Note": "x", "Name": "Ann"}]

    outcome = validate(rows, policy)

    assert isinstance(outcome, Rejected)
    first = outcome.errors[0]
    assert first.kind is ErrorKind.required
    assert first.message == "Missing required headers: Email, Id"


def test_error_order_is_headers_then_row_major_fields() -> None:
    policy = HeaderPolicy(required_headers=("A", "B"))
    rows = [{"A": "", "C": 1}, {"A": " ", "B": None}]

    outcome = validate(rows, policy)

    assert isinstance(outcome, Rejected)
    assert [e.message for e in outcome.errors] == [
        "Missing required headers: B",
        "Unrecognized headers found: C",
        'Empty required field "A" in row 1',
        'Empty required field "B" in row 1',
        'Empty required field "A" in row 2',
        'Empty required field "B" in row 2',
    ]


@pytest.mark.parametrize("value", [0, 0.0, False])
def test_zero_and_false_are_not_empty(value: object) -> None:
    policy = HeaderPolicy(required_headers=("Qty",))

    outcome = validate([{"Qty": value}], policy)

    assert isinstance(outcome, Accepted)


@pytest.mark.parametrize("row", [{"Qty": ""}, {"Qty": "   "}, {}, {"Qty": float("nan")}])
def test_blank_or_absent_required_field_is_reported(row: dict) -> None:
    policy = HeaderPolicy(required_headers=("Qty",))

    outcome = validate([{"Qty": 1}, row], policy)

    assert isinstance(outcome, Rejected)
    assert outcome.errors[-1].message == 'Empty required field "Qty" in row 2'


def test_validate_is_pure_and_repeatable() -> None:
    rows = [{"Name": "Ann", "Email": " "}, {"Name": "", "Other": 1}]

    first = validate(rows, CONTACTS)
    second = validate(rows, CONTACTS)

    assert first == second
    assert rows == [{"Name": "Ann", "Email": " "}, {"Name": "", "Other": 1}]


def test_is_blank_matrix() -> None:
    assert is_blank(None)
    assert is_blank("\t\n")
    assert not is_blank(0)
    assert not is_blank(False)
    assert not is_blank("0")
