from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Query

from ..models import MappingReport, MaterialMappingDerived
from ..repos.ledger_repo import LedgerRepo, SourceFetchError, get_repo
from ..services.materials import compute_mapping_report, compute_material_mapping_derived
from .common import report_filters, source_unavailable

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/materials", tags=["materials"])


@router.get("/mappings", response_model=MappingReport)
async def material_mappings(
    project_id: Optional[str] = Query(default=None, alias="projectId"),
    material_id: Optional[str] = Query(default=None, alias="materialId"),
    from_date: Optional[str] = Query(default=None, alias="fromDate"),
    to_date: Optional[str] = Query(default=None, alias="toDate"),
    repo: LedgerRepo = Depends(get_repo),
    x_request_id: Optional[str] = Header(default=None, alias="X-Request-Id"),
) -> MappingReport:
    filters = report_filters(projectId=project_id, materialId=material_id, fromDate=from_date, toDate=to_date)
    try:
        mappings, materials, projects = await asyncio.gather(
            repo.fetch_material_mappings(project_id=filters.project_id, material_id=filters.material_id),
            repo.fetch_materials(),
            repo.fetch_projects(),
        )
    except SourceFetchError as exc:
        raise source_unavailable(exc) from exc

    report = compute_mapping_report(mappings, materials, projects, filters)
    logger.info(
        "material_mappings project_id=%s material_id=%s rows=%s violations=%s request_id=%s",
        filters.project_id,
        filters.material_id,
        len(report.rows),
        sum(1 for row in report.rows if row.violations),
        x_request_id,
    )
    return report


@router.post("/mappings/derive", response_model=MaterialMappingDerived)
def derive_mapping(payload: Dict[str, Any] = Body(...)) -> MaterialMappingDerived:
    return compute_material_mapping_derived(payload)
