from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from fastapi import HTTPException, status
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..models import ReportFilters
from ..repos.ledger_repo import SourceFetchError
from ..services.date_range import end_of_day
from ..services.normalize import parse_datetime


class ReportQuery(BaseModel):
    project_id: Optional[str] = Field(default=None, alias="projectId")
    material_id: Optional[str] = Field(default=None, alias="materialId")
    manpower_id: Optional[str] = Field(default=None, alias="manpowerId")
    from_date: Optional[datetime] = Field(default=None, alias="fromDate")
    to_date: Optional[datetime] = Field(default=None, alias="toDate")

    @field_validator("project_id", "material_id", "manpower_id", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("from_date", "to_date", mode="before")
    @classmethod
    def _parse_date(cls, value: Any) -> Optional[datetime]:
        if value is None or (isinstance(value, str) and not value.strip()):
            return None
        parsed = parse_datetime(value)
        if parsed is None:
            raise ValueError("must be an ISO-8601 date")
        return parsed

    @model_validator(mode="after")
    def _ordered(self) -> "ReportQuery":
        if self.from_date and self.to_date and self.from_date > end_of_day(self.to_date):
            raise ValueError("fromDate must not be after toDate")
        return self


def report_filters(**values: Optional[str]) -> ReportFilters:
    """Validate query parameters (camelCase keys) into ``ReportFilters`` or raise 400."""
    try:
        query = ReportQuery(**values)
    except ValidationError as exc:
        detail = [f"{'.'.join(str(part) for part in err['loc']) or 'query'}: {err['msg']}" for err in exc.errors()]
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail) from exc
    return ReportFilters(**query.model_dump())


def source_unavailable(exc: SourceFetchError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"Ledger backend request failed: {exc}",
    )
