from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Sequence, Union

from ..models import (
    DataQualityIssue,
    MappingReport,
    MappingRow,
    MaterialMapping,
    MaterialMappingDerived,
    MaterialRecord,
    MaterialUsage,
    Project,
    ReportFilters,
    StockDetail,
    StockReport,
)
from .date_range import DateWindow, filter_by_date
from .normalize import normalize_mapping, safe_number
from .references import (
    MATERIAL,
    PROJECT,
    LookupIndex,
    ResolvedReference,
    reference_id,
    resolve_reference,
    unknown_label,
    unresolved_issue,
)

AVAILABLE = "Available"
LOW_STOCK = "LowStock"
OUT_OF_STOCK = "OutOfStock"

USED_NEGATIVE = "Quantity used must not be negative"
PRICE_NEGATIVE = "Unit price must not be negative"
OVER_ISSUED = "Quantity used exceeds quantity issued"
_VIOLATION_FIELDS = {PRICE_NEGATIVE: "unitPrice"}


def compute_material_mapping_derived(mapping: Union[MaterialMapping, Dict[str, Any]]) -> MaterialMappingDerived:
    """Recompute ``totalCost`` and ``balanceQuantity`` for one mapping.

    Persisted derived values are never read. Out-of-range inputs are reported
    in ``violations`` and the figures are left as computed.
    """
    if isinstance(mapping, dict):
        mapping = normalize_mapping(mapping)

    issued = safe_number(mapping.quantity_issued)
    used = safe_number(mapping.quantity_used)
    price = safe_number(mapping.unit_price)

    violations: List[str] = []
    if used < 0:
        violations.append(USED_NEGATIVE)
    if price < 0:
        violations.append(PRICE_NEGATIVE)
    balance = issued - used
    if balance < 0:
        violations.append(OVER_ISSUED)

    return MaterialMappingDerived(total_cost=used * price, balance_quantity=balance, violations=violations)


def derive_material_status(available_quantity: Any, reorder_level: Any = 0) -> str:
    available = safe_number(available_quantity)
    reorder = safe_number(reorder_level)
    if available <= 0:
        return OUT_OF_STOCK
    if reorder > 0 and available <= reorder:
        return LOW_STOCK
    return AVAILABLE


def _name_index(materials: Sequence[MaterialRecord]) -> Dict[str, MaterialRecord]:
    by_name: Dict[str, MaterialRecord] = {}
    for material in materials:
        for name in material.names:
            by_name.setdefault(name.casefold(), material)
    return by_name


def _resolve_material(
    ref: Any,
    material_name: Optional[str],
    index: LookupIndex,
    by_name: Dict[str, MaterialRecord],
) -> ResolvedReference:
    # Older mappings carry only the material's name
    if ref is None and material_name:
        material = by_name.get(material_name.casefold())
        if material is not None:
            return ResolvedReference(material.id, material.display_name, True)
        return ResolvedReference(None, material_name, False)
    return resolve_reference(ref, index, fallback_name=material_name)


def _range_issue(entity: str, record_id: Optional[str], field: str, message: str) -> DataQualityIssue:
    return DataQualityIssue(kind="range_violation", entity=entity, record_id=record_id, field=field, message=message)


def compute_stock_report(
    materials: Sequence[MaterialRecord],
    usage_records: Sequence[MaterialUsage],
    filters: Optional[ReportFilters] = None,
) -> StockReport:
    """Stock-in from purchased quantity against stock-out from usage records.

    Usage pointing at a material outside the selected set contributes to
    neither side and is counted in ``ignored_usage_records``.
    """
    filters = filters or ReportFilters()
    all_materials = LookupIndex.build(MATERIAL, materials)
    by_name = _name_index(materials)

    selected = [m for m in materials if not filters.material_id or m.id == filters.material_id]
    selected_index = LookupIndex.build(MATERIAL, selected)

    candidates = [
        usage
        for usage in usage_records
        if not filters.project_id or reference_id(usage.project) == filters.project_id
    ]
    window = DateWindow.from_bounds(filters.from_date, filters.to_date)
    dated = filter_by_date(candidates, lambda usage: usage.usage_date, window)

    stock_out: Dict[str, List[float]] = {}
    ignored = 0
    reported_unknown = set()
    issues: List[DataQualityIssue] = []

    for usage in dated.kept:
        material = _resolve_material(usage.material, usage.material_name, all_materials, by_name)
        if material.id is None or material.id not in selected_index:
            ignored += 1
            if material.id not in all_materials and material.id not in reported_unknown:
                reported_unknown.add(material.id)
                issues.append(unresolved_issue(MATERIAL, usage.id, "materialId", material.id))
            continue
        stock_out.setdefault(material.id, []).append(safe_number(usage.quantity_used))

    details: List[StockDetail] = []
    seen = set()
    for material in selected:
        # First record wins on duplicate ids, matching the lookup index
        key = material.id if material.id is not None else id(material)
        if key in seen:
            continue
        seen.add(key)

        outgoing = stock_out.get(material.id, []) if material.id is not None else []
        stock_in = safe_number(material.available_quantity)
        used = math.fsum(outgoing)
        remaining = stock_in - used
        if remaining < 0:
            issues.append(
                _range_issue(
                    MATERIAL,
                    material.id,
                    "remaining",
                    f"Stock-out {used:g} exceeds stock-in {stock_in:g} for {material.display_name}",
                )
            )
        details.append(
            StockDetail(
                material_id=material.id,
                material_name=material.display_name,
                unit=material.unit,
                stock_in=stock_in,
                stock_out=used,
                remaining=remaining,
                usage_count=len(outgoing),
                status=derive_material_status(remaining, material.reorder_level),
            )
        )

    total_in = math.fsum(detail.stock_in for detail in details)
    total_out = math.fsum(detail.stock_out for detail in details)
    return StockReport(
        total_stock_in=total_in,
        total_stock_out=total_out,
        remaining_stock=total_in - total_out,
        stock_details=details,
        ignored_usage_records=ignored,
        skipped_records=dated.skipped,
        issues=issues,
    )


def compute_mapping_report(
    mappings: Sequence[MaterialMapping],
    materials: Sequence[MaterialRecord],
    projects: Sequence[Project],
    filters: Optional[ReportFilters] = None,
) -> MappingReport:
    filters = filters or ReportFilters()
    project_index = LookupIndex.build(PROJECT, projects)
    material_index = LookupIndex.build(MATERIAL, materials)
    by_name = _name_index(materials)

    resolved = []
    for mapping in mappings:
        project = resolve_reference(mapping.project, project_index)
        material = _resolve_material(mapping.material, mapping.material_name, material_index, by_name)
        if filters.project_id and project.id != filters.project_id:
            continue
        if filters.material_id and material.id != filters.material_id:
            continue
        resolved.append((mapping, project, material))

    window = DateWindow.from_bounds(filters.from_date, filters.to_date)
    dated = filter_by_date(resolved, lambda item: item[0].date, window)

    rows: List[MappingRow] = []
    issues: List[DataQualityIssue] = []
    for mapping, project, material in dated.kept:
        if not project.matched:
            issues.append(unresolved_issue(PROJECT, mapping.id, "projectId", project.id))
        if not material.matched:
            issues.append(unresolved_issue(MATERIAL, mapping.id, "materialId", material.id))

        derived = compute_material_mapping_derived(mapping)
        for message in derived.violations:
            issues.append(_range_issue("MaterialMapping", mapping.id, _VIOLATION_FIELDS.get(message, "quantityUsed"), message))

        rows.append(
            MappingRow(
                mapping_id=mapping.id,
                project_id=project.id,
                project_name=project.name,
                material_id=material.id,
                material_name=material.name or unknown_label(MATERIAL),
                unit=mapping.unit,
                quantity_issued=mapping.quantity_issued,
                quantity_used=mapping.quantity_used,
                unit_price=mapping.unit_price,
                total_cost=derived.total_cost,
                balance_quantity=derived.balance_quantity,
                date=mapping.date,
                vendor_name=mapping.vendor_name,
                violations=derived.violations,
            )
        )

    return MappingReport(
        rows=rows,
        total_cost=math.fsum(row.total_cost for row in rows),
        total_issued=math.fsum(row.quantity_issued for row in rows),
        total_used=math.fsum(row.quantity_used for row in rows),
        total_balance=math.fsum(row.balance_quantity for row in rows),
        skipped_records=dated.skipped,
        issues=issues,
    )
