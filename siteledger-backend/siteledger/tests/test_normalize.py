from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from siteledger.models import EmbeddedReference, IdReference
from siteledger.services.normalize import (
    display_text,
    normalize_assignment,
    normalize_invoice,
    normalize_many,
    normalize_mapping,
    normalize_material,
    normalize_project,
    normalize_transaction,
    normalize_transaction_summary,
    parse_datetime,
    safe_number,
    unwrap_rows,
)


@pytest.mark.parametrize(
    "value",
    [None, "", "   ", "abc", "NaN", "nan", "inf", "-Infinity", float("nan"), float("inf"), True, False, [], {}, object()],
)
def test_safe_number_returns_zero_for_unusable_values(value):
    assert safe_number(value) == 0.0


@pytest.mark.parametrize(
    ("value", "expected"),
    [("42.5", 42.5), (" 7 ", 7.0), (12, 12.0), (3.25, 3.25), (Decimal("19.99"), 19.99), ("-4", -4.0), ("1e3", 1000.0)],
)
def test_safe_number_parses_numeric_values(value, expected):
    assert safe_number(value) == pytest.approx(expected)


def test_parse_datetime_accepts_iso_and_date_values():
    assert parse_datetime("2024-03-31T23:00:00Z") == datetime(2024, 3, 31, 23, 0, tzinfo=timezone.utc)
    assert parse_datetime("2024-03-01") == datetime(2024, 3, 1, tzinfo=timezone.utc)
    assert parse_datetime(date(2024, 1, 2)) == datetime(2024, 1, 2, tzinfo=timezone.utc)
    assert parse_datetime(datetime(2024, 1, 2, 8, 30)).tzinfo is timezone.utc


def test_parse_datetime_converts_offsets_to_utc():
    parsed = parse_datetime("2024-03-01T05:30:00+05:30")
    assert parsed == datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", [None, "", "yesterday", "2024-13-45", 1700000000, True])
def test_parse_datetime_marks_invalid_values_unordered(value):
    assert parse_datetime(value) is None


def test_display_text_falls_back():
    assert display_text(None) == "N/A"
    assert display_text("  ") == "N/A"
    assert display_text({"name": "x"}) == "N/A"
    assert display_text(None, "Unknown Project") == "Unknown Project"
    assert display_text(" Mason ") == "Mason"


def test_normalize_project_accepts_field_variants():
    project = normalize_project({"_id": {"$oid": "abc123"}, "projectName": "Hill Road", "totalCost": "50000", "status": "on going"})
    assert project.id == "abc123"
    assert project.name == "Hill Road"
    assert project.estimated_budget == 50000.0
    assert project.status == "OnGoing"


def test_normalize_project_defaults_missing_fields():
    project = normalize_project({"id": 7})
    assert project.id == "7"
    assert project.name == "Unknown Project"
    assert project.estimated_budget == 0.0
    assert project.client is None


def test_normalize_transaction_keeps_reference_shapes():
    bare = normalize_transaction({"_id": "T1", "projectId": "P1", "type": "income", "amount": "abc"})
    embedded = normalize_transaction({"_id": "T2", "project": {"_id": "P1", "name": "Harbor View"}, "transactionType": "Expense"})

    assert isinstance(bare.project, IdReference)
    assert bare.project.value == "P1"
    assert bare.type == "Income"
    assert bare.amount == 0.0
    assert bare.date is None
    assert bare.category == "N/A"
    assert isinstance(embedded.project, EmbeddedReference)
    assert embedded.type == "Expense"


def test_normalize_transaction_keeps_unknown_types_as_text():
    transaction = normalize_transaction({"_id": "T9", "type": "Transfer", "amount": 10})
    assert transaction.type == "Transfer"


def test_normalize_invoice_reads_totals_and_dates():
    invoice = normalize_invoice({"_id": "I1", "invoiceNo": "INV-9", "projectId": "P1", "totalAmount": "1200.50", "date": "2024-02-01"})
    assert invoice.invoice_number == "INV-9"
    assert invoice.grand_total == 1200.5
    assert invoice.invoice_date == datetime(2024, 2, 1, tzinfo=timezone.utc)


def test_normalize_material_collects_names():
    material = normalize_material({"_id": "M1", "materialNames": ["Cement", "", "OPC"], "stockQuantity": "12"})
    assert material.names == ["Cement", "OPC"]
    assert material.display_name == "Cement"
    assert material.available_quantity == 12.0
    assert material.unit == "Units"

    unnamed = normalize_material({"_id": "M2"})
    assert unnamed.display_name == "Unknown Material"


def test_normalize_mapping_reads_legacy_fields():
    mapping = normalize_mapping({"_id": "MM1", "projectId": "P1", "materialName": "Steel", "quantity": 5, "amount": "20", "dateMapped": "2024-01-05"})
    assert mapping.material is None
    assert mapping.material_name == "Steel"
    assert mapping.quantity_issued == 5.0
    assert mapping.unit_price == 20.0
    assert mapping.date == datetime(2024, 1, 5, tzinfo=timezone.utc)


def test_normalize_assignment_reads_working_days():
    assignment = normalize_assignment({"_id": "E1", "workingDays": "15", "rate": 800, "salaryType": "daily", "expenditureType": "salary"})
    assert assignment.unit_count == 15.0
    assert assignment.pay_rate == 800.0
    assert assignment.pay_type == "Daily"
    assert assignment.expenditure_type == "Salary"


def test_unwrap_rows_accepts_envelopes():
    assert unwrap_rows([1, 2]) == [1, 2]
    assert unwrap_rows({"data": [1]}) == [1]
    assert unwrap_rows({"items": [2]}) == [2]
    assert unwrap_rows({"message": "nope"}) == []
    assert unwrap_rows(None) == []


def test_normalize_many_skips_non_object_rows(caplog):
    with caplog.at_level("WARNING"):
        projects = normalize_many(normalize_project, [{"_id": "P1", "name": "A"}, "junk", None, {"_id": "P2"}])
    assert [project.id for project in projects] == ["P1", "P2"]
    assert "Skipping non-object row" in caplog.text


def test_transaction_summary_accepts_both_shapes():
    wrapped = normalize_transaction_summary(
        {"summary": {"totalIncome": "10", "totalExpenses": 4}, "allTransactions": [{"_id": "T1", "type": "Income", "amount": 10}]}
    )
    bare = normalize_transaction_summary([{"_id": "T1", "type": "Income", "amount": 10}])
    totals_only = normalize_transaction_summary({"summary": {"totalIncome": 7}})

    assert wrapped.has_transaction_list
    assert wrapped.reported_income == 10.0
    assert wrapped.reported_expense == 4.0
    assert bare.has_transaction_list
    assert len(bare.transactions) == 1
    assert not totals_only.has_transaction_list
    assert totals_only.reported_income == 7.0
    assert totals_only.reported_expense is None
