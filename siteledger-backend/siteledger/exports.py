"""Run reconciliation reports over JSON exports of the ledger backend.

An export directory holds one file per collection, named after the backend
path (``projects.json``, ``material-usage.json``, ...). Missing files are
treated as empty collections.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import orjson
from pydantic import BaseModel

from .models import MonthlyBucket, ReportFilters
from .services.financial import compute_profit_loss_report
from .services.materials import compute_mapping_report, compute_stock_report
from .services.normalize import (
    normalize_assignment,
    normalize_invoice,
    normalize_many,
    normalize_manpower,
    normalize_mapping,
    normalize_material,
    normalize_project,
    normalize_transaction_summary,
    normalize_usage,
)
from .services.payroll import compute_salary_report
from .services.references import reference_id
from .services.series import series_from_transactions

logger = logging.getLogger(__name__)

REPORTS = ("profit-loss", "stock", "salary", "mappings", "monthly")


def load_collection(directory: Path, name: str) -> Any:
    path = directory / f"{name}.json"
    if not path.exists():
        logger.warning("Export %s not found; using an empty collection", path)
        return []
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def run_report(
    directory: Path,
    report: str,
    filters: Optional[ReportFilters] = None,
    year: Optional[int] = None,
) -> Any:
    filters = filters or ReportFilters()
    projects = normalize_many(normalize_project, load_collection(directory, "projects"))

    if report == "profit-loss":
        project = next((item for item in projects if item.id == filters.project_id), None)
        if project is None:
            raise ValueError(f"Project {filters.project_id} not found in {directory}")
        transactions = normalize_transaction_summary(load_collection(directory, "transactions")).transactions
        return compute_profit_loss_report(
            project,
            normalize_many(normalize_invoice, load_collection(directory, "invoices")),
            transactions,
            filters.from_date,
            filters.to_date,
            mappings=normalize_many(normalize_mapping, load_collection(directory, "projectMaterialMappings")),
            expenditures=normalize_many(normalize_assignment, load_collection(directory, "expenditures")),
        )
    if report == "stock":
        return compute_stock_report(
            normalize_many(normalize_material, load_collection(directory, "materials")),
            normalize_many(normalize_usage, load_collection(directory, "material-usage")),
            filters,
        )
    if report == "salary":
        return compute_salary_report(
            normalize_many(normalize_assignment, load_collection(directory, "expenditures")),
            normalize_many(normalize_manpower, load_collection(directory, "manpower")),
            projects,
            filters,
        )
    if report == "mappings":
        return compute_mapping_report(
            normalize_many(normalize_mapping, load_collection(directory, "projectMaterialMappings")),
            normalize_many(normalize_material, load_collection(directory, "materials")),
            projects,
            filters,
        )
    if report == "monthly":
        if year is None:
            raise ValueError("monthly report needs a year")
        transactions = normalize_transaction_summary(load_collection(directory, "transactions")).transactions
        if filters.project_id:
            transactions = [item for item in transactions if reference_id(item.project) == filters.project_id]
        return series_from_transactions(transactions, year)
    raise ValueError(f"Unknown report {report!r}; expected one of {', '.join(REPORTS)}")


def to_json(result: Any) -> str:
    if isinstance(result, BaseModel):
        return result.model_dump_json(by_alias=True, indent=2)
    buckets: List[Dict[str, Any]] = [
        item.model_dump(mode="json", by_alias=True) if isinstance(item, MonthlyBucket) else item for item in result
    ]
    return orjson.dumps(buckets, option=orjson.OPT_INDENT_2).decode()
