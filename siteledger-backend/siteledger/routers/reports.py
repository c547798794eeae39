from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from ..models import ProfitLossReport, SalaryReport, StockReport
from ..repos.ledger_repo import LedgerRepo, SourceFetchError, get_repo
from ..services.financial import compute_profit_loss_report
from ..services.materials import compute_stock_report
from ..services.payroll import compute_salary_report
from .common import report_filters, source_unavailable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


def _day(value: Optional[datetime]) -> Optional[str]:
    return value.date().isoformat() if value else None


@router.get("/profit-loss", response_model=ProfitLossReport)
async def profit_loss_report(
    project_id: str = Query(..., alias="projectId"),
    from_date: Optional[str] = Query(default=None, alias="fromDate"),
    to_date: Optional[str] = Query(default=None, alias="toDate"),
    repo: LedgerRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> ProfitLossReport:
    filters = report_filters(projectId=project_id, fromDate=from_date, toDate=to_date)
    if not filters.project_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="projectId is required")

    try:
        project = await repo.fetch_project(filters.project_id)
        if project is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Project {filters.project_id} not found")
        summary, invoices, mappings, expenditures = await asyncio.gather(
            repo.fetch_transaction_summary(filters.project_id),
            repo.fetch_invoices(project_id=filters.project_id),
            repo.fetch_material_mappings(
                project_id=filters.project_id,
                from_date=_day(filters.from_date),
                to_date=_day(filters.to_date),
            ),
            repo.fetch_expenditures(
                project_id=filters.project_id,
                from_date=_day(filters.from_date),
                to_date=_day(filters.to_date),
            ),
        )
    except SourceFetchError as exc:
        raise source_unavailable(exc) from exc

    report = compute_profit_loss_report(
        project,
        invoices,
        summary.transactions,
        filters.from_date,
        filters.to_date,
        mappings=mappings,
        expenditures=expenditures,
    )
    logger.info(
        "profit_loss project_id=%s invoices=%s expenses=%s skipped=%s issues=%s request_id=%s",
        report.project_id,
        report.invoice_count,
        report.expense_count,
        report.skipped_records,
        len(report.issues),
        x_request_id,
    )
    return report


@router.get("/stock", response_model=StockReport)
async def stock_report(
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    material_id: Optional[str] = Query(default=None, alias="materialId"),
    from_date: Optional[str] = Query(default=None, alias="fromDate"),
    to_date: Optional[str] = Query(default=None, alias="toDate"),
    repo: LedgerRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> StockReport:
    filters = report_filters(projectId=project_id, materialId=material_id, fromDate=from_date, toDate=to_date)
    try:
        materials, usage = await asyncio.gather(
            repo.fetch_materials(),
            repo.fetch_material_usage(project_id=filters.project_id),
        )
    except SourceFetchError as exc:
        raise source_unavailable(exc) from exc

    report = compute_stock_report(materials, usage, filters)
    logger.info(
        "stock_report project_id=%s material_id=%s materials=%s ignored=%s skipped=%s request_id=%s",
        filters.project_id,
        filters.material_id,
        len(report.stock_details),
        report.ignored_usage_records,
        report.skipped_records,
        x_request_id,
    )
    return report


@router.get("/salary", response_model=SalaryReport)
async def salary_report(
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    manpower_id: Optional[str] = Query(default=None, alias="manpowerId"),
    from_date: Optional[str] = Query(default=None, alias="fromDate"),
    to_date: Optional[str] = Query(default=None, alias="toDate"),
    repo: LedgerRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> SalaryReport:
    filters = report_filters(projectId=project_id, manpowerId=manpower_id, fromDate=from_date, toDate=to_date)
    try:
        assignments, manpower, projects = await asyncio.gather(
            repo.fetch_expenditures(
                project_id=filters.project_id,
                from_date=_day(filters.from_date),
                to_date=_day(filters.to_date),
            ),
            repo.fetch_manpower(),
            repo.fetch_projects(),
        )
    except SourceFetchError as exc:
        raise source_unavailable(exc) from exc

    report = compute_salary_report(assignments, manpower, projects, filters)
    logger.info(
        "salary_report project_id=%s manpower_id=%s rows=%s total=%.2f request_id=%s",
        filters.project_id,
        filters.manpower_id,
        len(report.rows),
        report.total_salary,
        x_request_id,
    )
    return report
