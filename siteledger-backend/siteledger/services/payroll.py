from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..models import (
    DataQualityIssue,
    Manpower,
    ManpowerAssignment,
    Project,
    ReportFilters,
    SalaryReport,
    SalaryRow,
    SalaryTotal,
)
from .date_range import DateWindow, filter_by_date
from .normalize import NOT_AVAILABLE, safe_number
from .references import MANPOWER, PROJECT, LookupIndex, reference_id, resolve_reference, unresolved_issue

SALARY = "Salary"


def compute_wages(unit_count: Any, pay_rate: Any) -> float:
    """Total wages for an allocation; the pay type never changes the arithmetic."""
    units = safe_number(unit_count)
    rate = safe_number(pay_rate)
    if units < 0 or rate <= 0:
        return 0.0
    wages = units * rate
    return wages if math.isfinite(wages) else 0.0


def assignment_wages(assignment: ManpowerAssignment) -> float:
    return compute_wages(assignment.unit_count, assignment.pay_rate)


def validate_assignment(assignment: ManpowerAssignment) -> Dict[str, str]:
    """Submission rules for the allocation form, keyed by offending field."""
    errors: Dict[str, str] = {}
    if assignment.unit_count <= 0:
        errors["unitCount"] = "Working days/hours must be greater than zero"
    if assignment.pay_rate <= 0:
        errors["payRate"] = "Pay rate must be greater than zero"
    if assignment_wages(assignment) <= 0:
        errors["totalWages"] = "Total wages must be greater than zero"
    return errors


def is_salary_expenditure(assignment: ManpowerAssignment) -> bool:
    return assignment.expenditure_type in (None, SALARY)


def _accumulate(totals: Dict[Tuple[Optional[str], str], List[float]], key: Tuple[Optional[str], str], amount: float) -> None:
    totals.setdefault(key, []).append(amount)


def _as_totals(totals: Dict[Tuple[Optional[str], str], List[float]]) -> List[SalaryTotal]:
    return [SalaryTotal(id=key[0], name=key[1], total=math.fsum(values)) for key, values in totals.items()]


def compute_salary_report(
    assignments: Sequence[ManpowerAssignment],
    manpower: Sequence[Manpower],
    projects: Sequence[Project],
    filters: Optional[ReportFilters] = None,
) -> SalaryReport:
    filters = filters or ReportFilters()
    project_index = LookupIndex.build(PROJECT, projects)
    manpower_index = LookupIndex.build(MANPOWER, manpower)

    candidates = [
        item
        for item in assignments
        if is_salary_expenditure(item)
        and (not filters.project_id or reference_id(item.project) == filters.project_id)
        and (not filters.manpower_id or reference_id(item.manpower) == filters.manpower_id)
    ]
    window = DateWindow.from_bounds(filters.from_date, filters.to_date)
    selected = filter_by_date(candidates, lambda item: item.start_date, window)

    rows: List[SalaryRow] = []
    issues: List[DataQualityIssue] = []
    by_project: Dict[Tuple[Optional[str], str], List[float]] = {}
    by_manpower: Dict[Tuple[Optional[str], str], List[float]] = {}

    for assignment in selected.kept:
        project = resolve_reference(assignment.project, project_index)
        worker = resolve_reference(assignment.manpower, manpower_index, fallback_name=assignment.manpower_name)
        if not project.matched:
            issues.append(unresolved_issue(PROJECT, assignment.id, "projectId", project.id))
        if not worker.matched:
            issues.append(unresolved_issue(MANPOWER, assignment.id, "manpowerId", worker.id))

        for field_name, message in validate_assignment(assignment).items():
            issues.append(
                DataQualityIssue(
                    kind="range_violation",
                    entity="ManpowerAssignment",
                    record_id=assignment.id,
                    field=field_name,
                    message=message,
                )
            )

        wages = assignment_wages(assignment)
        rows.append(
            SalaryRow(
                assignment_id=assignment.id,
                project_id=project.id,
                project_name=project.name,
                manpower_id=worker.id,
                manpower_name=worker.name,
                designation=assignment.designation,
                pay_type=assignment.pay_type or NOT_AVAILABLE,
                pay_rate=assignment.pay_rate,
                unit_count=assignment.unit_count,
                total_wages=wages,
                from_date=assignment.from_date,
                to_date=assignment.to_date,
            )
        )
        _accumulate(by_project, (project.id, project.name), wages)
        _accumulate(by_manpower, (worker.id, worker.name), wages)

    return SalaryReport(
        rows=rows,
        total_salary=math.fsum(row.total_wages for row in rows),
        project_totals=_as_totals(by_project),
        manpower_totals=_as_totals(by_manpower),
        skipped_records=selected.skipped,
        issues=issues,
    )
