from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from ..models import ManpowerAssignment
from ..services.normalize import safe_number
from ..services.payroll import compute_wages, validate_assignment

router = APIRouter(prefix="/api/v1/payroll", tags=["payroll"])


class WageRequest(BaseModel):
    unit_count: Any = Field(default=None, alias="unitCount", description="Working days or hours, in the pay type's unit")
    pay_rate: Any = Field(default=None, alias="payRate")
    pay_type: Optional[str] = Field(default=None, alias="payType")

    class Config:
        populate_by_name = True


class WageResponse(BaseModel):
    total_wages: float = Field(alias="totalWages")
    pay_type: Optional[str] = Field(default=None, alias="payType")
    valid: bool
    errors: Dict[str, str] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


@router.post("/wages", response_model=WageResponse)
def wages(request: WageRequest) -> WageResponse:
    assignment = ManpowerAssignment(
        unit_count=safe_number(request.unit_count),
        pay_rate=safe_number(request.pay_rate),
        pay_type=request.pay_type,
    )
    errors = validate_assignment(assignment)
    return WageResponse(
        total_wages=compute_wages(request.unit_count, request.pay_rate),
        pay_type=request.pay_type,
        valid=not errors,
        errors=errors,
    )
