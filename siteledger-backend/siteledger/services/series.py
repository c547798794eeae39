from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from ..models import Invoice, MonthlyBucket, Transaction
from .normalize import first_value, parse_datetime, safe_number

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _date_and_amount(record: Any) -> Tuple[Optional[datetime], float]:
    if isinstance(record, (tuple, list)):
        if len(record) < 2:
            return None, 0.0
        return parse_datetime(record[0]), safe_number(record[1])
    if isinstance(record, dict):
        when = first_value(record, "date", "transactionDate", "invoiceDate")
        return parse_datetime(when), safe_number(first_value(record, "amount", "grandTotal"))
    if isinstance(record, Invoice):
        return record.invoice_date, record.grand_total
    return parse_datetime(getattr(record, "date", None)), safe_number(getattr(record, "amount", None))


def _by_month(records: Iterable[Any], year: int) -> List[List[float]]:
    months: List[List[float]] = [[] for _ in MONTH_LABELS]
    for record in records:
        when, amount = _date_and_amount(record)
        if when is None or when.year != year:
            continue
        months[when.month - 1].append(amount)
    return months


def build_monthly_series(incomes: Iterable[Any], expenses: Iterable[Any], year: int) -> List[MonthlyBucket]:
    """Twelve calendar-month buckets for ``year``.

    Records are objects with ``date``/``amount``, ``Invoice`` records (by
    invoice date and grand total), dicts with either set of keys, or
    ``(date, amount)`` pairs. Other years and unparseable dates land nowhere.
    """
    income_months = _by_month(incomes, year)
    expense_months = _by_month(expenses, year)
    buckets = []
    for index, label in enumerate(MONTH_LABELS):
        income = math.fsum(income_months[index])
        expense = math.fsum(expense_months[index])
        buckets.append(MonthlyBucket(month=index + 1, label=label, income=income, expense=expense, profit=income - expense))
    return buckets


def series_from_transactions(transactions: Sequence[Transaction], year: int) -> List[MonthlyBucket]:
    incomes = [item for item in transactions if item.type == "Income"]
    expenses = [item for item in transactions if item.type == "Expense"]
    return build_monthly_series(incomes, expenses, year)
