"""Reconciliation engine: pure functions over normalized snapshots."""

from .date_range import DateWindow, end_of_day, filter_by_date, is_within_range
from .financial import (
    aggregate_cross_project,
    aggregate_dashboard_stats,
    collect_project_summaries,
    compute_profit_loss_report,
    profit_label,
    profit_margin,
    summarize_transactions,
)
from .materials import (
    compute_mapping_report,
    compute_material_mapping_derived,
    compute_stock_report,
    derive_material_status,
)
from .normalize import parse_datetime, safe_number
from .payroll import compute_salary_report, compute_wages, validate_assignment
from .references import LookupIndex, as_reference, reference_id, resolve_reference
from .series import build_monthly_series, series_from_transactions

__all__ = [
    "DateWindow",
    "LookupIndex",
    "aggregate_cross_project",
    "aggregate_dashboard_stats",
    "as_reference",
    "build_monthly_series",
    "collect_project_summaries",
    "compute_mapping_report",
    "compute_material_mapping_derived",
    "compute_profit_loss_report",
    "compute_salary_report",
    "compute_stock_report",
    "compute_wages",
    "derive_material_status",
    "end_of_day",
    "filter_by_date",
    "is_within_range",
    "parse_datetime",
    "profit_label",
    "profit_margin",
    "reference_id",
    "resolve_reference",
    "safe_number",
    "series_from_transactions",
    "summarize_transactions",
    "validate_assignment",
]
