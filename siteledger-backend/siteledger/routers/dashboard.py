from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status

from ..config import settings
from ..models import DashboardStats, MonthlyBucket
from ..repos.ledger_repo import LedgerRepo, SourceFetchError, get_repo
from ..services.date_range import DateWindow
from ..services.financial import aggregate_dashboard_stats, collect_project_summaries
from ..services.references import reference_id
from ..services.series import series_from_transactions
from .common import report_filters, source_unavailable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/dashboard", tags=["dashboard"])


def _ensure_feature_enabled() -> None:
    if not settings.feature_cross_project_dashboard:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Cross-project dashboard is disabled")


@router.get("/stats", response_model=DashboardStats)
async def dashboard_stats(
    from_date: Optional[str] = Query(default=None, alias="fromDate"),
    to_date: Optional[str] = Query(default=None, alias="toDate"),
    repo: LedgerRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> DashboardStats:
    _ensure_feature_enabled()
    filters = report_filters(fromDate=from_date, toDate=to_date)
    try:
        projects, invoices = await asyncio.gather(repo.fetch_projects(), repo.fetch_invoices())
    except SourceFetchError as exc:
        raise source_unavailable(exc) from exc

    summaries = await collect_project_summaries(projects, repo.fetch_transaction_summary)
    stats = aggregate_dashboard_stats(
        projects,
        summaries,
        invoices,
        DateWindow(start=filters.from_date, end=filters.to_date),
    )
    logger.info(
        "dashboard_stats projects=%s transactions=%s failed=%s request_id=%s",
        stats.total_projects,
        len(stats.all_transactions),
        len(stats.failed_project_ids),
        x_request_id,
    )
    return stats


@router.get("/monthly", response_model=List[MonthlyBucket])
async def dashboard_monthly(
    year: Optional[int] = Query(default=None, ge=1900, le=2100),
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    repo: LedgerRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> List[MonthlyBucket]:
    selected_year = year or datetime.now(timezone.utc).year
    try:
        transactions = await repo.fetch_transactions(project_id=project_id or None)
    except SourceFetchError as exc:
        raise source_unavailable(exc) from exc
    if project_id:
        transactions = [item for item in transactions if reference_id(item.project) == project_id]

    buckets = series_from_transactions(transactions, selected_year)
    logger.info(
        "dashboard_monthly year=%s project_id=%s transactions=%s request_id=%s",
        selected_year,
        project_id,
        len(transactions),
        x_request_id,
    )
    return buckets
