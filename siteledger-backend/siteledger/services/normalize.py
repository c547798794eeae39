from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from ..models import (
    EXPENDITURE_TYPES,
    MATERIAL_STATUSES,
    PAY_TYPES,
    PROJECT_STATUSES,
    TRANSACTION_TYPES,
    Invoice,
    Manpower,
    ManpowerAssignment,
    MaterialMapping,
    MaterialRecord,
    MaterialUsage,
    Project,
    ProjectTransactionSummary,
    Transaction,
)
from .references import (
    MANPOWER,
    PROJECT,
    as_reference,
    record_identifier,
    unknown_label,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

NOT_AVAILABLE = "N/A"
LIST_ENVELOPE_KEYS = ("data", "items", "results")


def safe_number(value: Any) -> float:
    """Coerce a monetary/quantity field to a finite float, 0.0 on any failure."""
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        if isinstance(value, (Decimal, int, float)):
            number = float(value)
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return 0.0
            number = float(text)
        else:
            return 0.0
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return number


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse a date-like value; ``None`` marks the record as unordered."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return _as_utc(parsed)
    return None


def display_text(value: Any, fallback: str = NOT_AVAILABLE) -> str:
    if value is None or isinstance(value, (dict, list)):
        return fallback
    text = str(value).strip()
    return text or fallback


def _optional_text(value: Any) -> Optional[str]:
    text = display_text(value, "")
    return text or None


def first_value(raw: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return value
    return None


def _choice(value: Any, choices: Sequence[str]) -> Optional[str]:
    text = _optional_text(value)
    if text is None:
        return None
    folded = text.replace(" ", "").replace("_", "").lower()
    for choice in choices:
        if choice.lower() == folded:
            return choice
    return text


def _names(raw: Dict[str, Any]) -> List[str]:
    value = first_value(raw, "materialNames", "materialName", "name")
    if isinstance(value, (list, tuple)):
        candidates = value
    else:
        candidates = [value]
    return [text for text in (_optional_text(item) for item in candidates) if text]


def unwrap_rows(payload: Any) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in LIST_ENVELOPE_KEYS:
            rows = payload.get(key)
            if isinstance(rows, list):
                return rows
    return []


def normalize_many(normalizer: Callable[[Dict[str, Any]], T], payload: Any) -> List[T]:
    records: List[T] = []
    for position, row in enumerate(unwrap_rows(payload)):
        if not isinstance(row, dict):
            logger.warning("Skipping non-object row at position %s for %s", position, normalizer.__name__)
            continue
        records.append(normalizer(row))
    return records


def normalize_project(raw: Dict[str, Any]) -> Project:
    return Project(
        id=record_identifier(raw),
        name=display_text(first_value(raw, "name", "projectName"), unknown_label(PROJECT)),
        estimated_budget=safe_number(first_value(raw, "estimatedBudget", "totalCost", "budget", "totalBudget")),
        status=_choice(raw.get("status"), PROJECT_STATUSES),
        client=as_reference(first_value(raw, "clientId", "client")),
    )


def normalize_transaction(raw: Dict[str, Any]) -> Transaction:
    return Transaction(
        id=record_identifier(raw),
        project=as_reference(first_value(raw, "projectId", "project")),
        type=_choice(first_value(raw, "type", "transactionType"), TRANSACTION_TYPES),
        amount=safe_number(raw.get("amount")),
        date=parse_datetime(first_value(raw, "date", "transactionDate", "createdAt")),
        category=display_text(first_value(raw, "category", "paymentMode")),
        description=display_text(raw.get("description")),
    )


def normalize_invoice(raw: Dict[str, Any]) -> Invoice:
    return Invoice(
        id=record_identifier(raw),
        invoice_number=display_text(first_value(raw, "invoiceNumber", "invoiceNo")),
        project=as_reference(first_value(raw, "projectId", "project")),
        client=as_reference(first_value(raw, "clientId", "client")),
        invoice_date=parse_datetime(first_value(raw, "invoiceDate", "date", "createdAt")),
        due_date=parse_datetime(raw.get("dueDate")),
        grand_total=safe_number(first_value(raw, "grandTotal", "totalAmount", "total")),
    )


def normalize_manpower(raw: Dict[str, Any]) -> Manpower:
    return Manpower(
        id=record_identifier(raw),
        name=display_text(raw.get("name"), unknown_label(MANPOWER)),
        designation=display_text(first_value(raw, "designation", "role")),
        pay_type=_choice(first_value(raw, "payType", "salaryType"), PAY_TYPES),
        pay_rate=safe_number(first_value(raw, "payRate", "rate", "salary")),
    )


def normalize_assignment(raw: Dict[str, Any]) -> ManpowerAssignment:
    return ManpowerAssignment(
        id=record_identifier(raw),
        project=as_reference(first_value(raw, "projectId", "project")),
        manpower=as_reference(first_value(raw, "manpowerId", "manpower")),
        manpower_name=_optional_text(raw.get("manpowerName")),
        designation=display_text(raw.get("designation")),
        pay_type=_choice(first_value(raw, "payType", "salaryType"), PAY_TYPES),
        pay_rate=safe_number(first_value(raw, "payRate", "rate")),
        unit_count=safe_number(first_value(raw, "unitCount", "workingDays", "workingHours", "units")),
        from_date=parse_datetime(raw.get("fromDate")),
        to_date=parse_datetime(raw.get("toDate")),
        expenditure_type=_choice(raw.get("expenditureType"), EXPENDITURE_TYPES),
        amount=safe_number(first_value(raw, "amount", "totalWages")),
        description=display_text(first_value(raw, "description", "expenditureName")),
    )


def normalize_material(raw: Dict[str, Any]) -> MaterialRecord:
    return MaterialRecord(
        id=record_identifier(raw),
        names=_names(raw),
        unit=display_text(raw.get("unit"), "Units"),
        available_quantity=safe_number(first_value(raw, "availableQuantity", "stockQuantity", "quantity")),
        reorder_level=safe_number(raw.get("reorderLevel")),
        purchase_price=safe_number(first_value(raw, "purchasePrice", "unitPrice", "price")),
        supplier=display_text(first_value(raw, "supplier", "supplierName", "vendorName")),
        status=_choice(raw.get("status"), MATERIAL_STATUSES),
    )


def normalize_mapping(raw: Dict[str, Any]) -> MaterialMapping:
    return MaterialMapping(
        id=record_identifier(raw),
        project=as_reference(first_value(raw, "projectId", "project")),
        material=as_reference(first_value(raw, "materialId", "material")),
        material_name=_optional_text(raw.get("materialName")),
        quantity_issued=safe_number(first_value(raw, "quantityIssued", "quantity")),
        quantity_used=safe_number(first_value(raw, "quantityUsed", "usedQuantity")),
        unit_price=safe_number(first_value(raw, "unitPrice", "amount", "price")),
        unit=display_text(raw.get("unit"), "Units"),
        date=parse_datetime(first_value(raw, "date", "dateMapped", "purchaseDate", "createdAt")),
        vendor_name=display_text(raw.get("vendorName")),
        vendor_address=display_text(raw.get("vendorAddress")),
    )


def normalize_usage(raw: Dict[str, Any]) -> MaterialUsage:
    return MaterialUsage(
        id=record_identifier(raw),
        project=as_reference(first_value(raw, "projectId", "project")),
        material=as_reference(first_value(raw, "materialId", "material")),
        material_name=_optional_text(raw.get("materialName")),
        quantity_used=safe_number(first_value(raw, "quantityUsed", "quantity")),
        unit=display_text(raw.get("unit"), "Units"),
        from_date=parse_datetime(first_value(raw, "fromDate", "date", "usageDate")),
        to_date=parse_datetime(raw.get("toDate")),
    )


_SUMMARY_ROW_KEYS = ("allTransactions", "transactions", "data")


def _summary_rows(payload: Dict[str, Any]) -> Optional[List[Any]]:
    for key in _SUMMARY_ROW_KEYS:
        if isinstance(payload.get(key), list):
            return payload[key]
    return None


def is_transaction_summary(payload: Any) -> bool:
    """True for a bare transaction array or an object carrying rows or a ``summary``."""
    if isinstance(payload, list):
        return True
    if not isinstance(payload, dict):
        return False
    return _summary_rows(payload) is not None or isinstance(payload.get("summary"), dict)


def normalize_transaction_summary(payload: Any) -> ProjectTransactionSummary:
    """Accept either ``{summary, allTransactions}`` or a bare transaction array."""
    if isinstance(payload, list):
        return ProjectTransactionSummary(
            transactions=normalize_many(normalize_transaction, payload),
            has_transaction_list=True,
        )
    if not isinstance(payload, dict):
        return ProjectTransactionSummary()

    rows = _summary_rows(payload)

    summary = payload.get("summary") if isinstance(payload.get("summary"), dict) else {}
    income = first_value(summary, "totalIncome")
    expense = first_value(summary, "totalExpense", "totalExpenses")
    return ProjectTransactionSummary(
        transactions=normalize_many(normalize_transaction, rows) if rows is not None else [],
        has_transaction_list=rows is not None,
        reported_income=safe_number(income) if income is not None else None,
        reported_expense=safe_number(expense) if expense is not None else None,
    )
