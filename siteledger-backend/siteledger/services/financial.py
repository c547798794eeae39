from __future__ import annotations

import asyncio
import logging
import math
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Iterable, List, Optional, Sequence

from ..models import (
    CostBreakdown,
    CrossProjectSummary,
    DashboardStats,
    DataQualityIssue,
    Invoice,
    ManpowerAssignment,
    MaterialMapping,
    ProfitLossReport,
    Project,
    ProjectSummaryResult,
    ProjectTransactionSummary,
    TaggedTransaction,
    Transaction,
    TransactionTotals,
)
from .date_range import DateWindow, filter_by_date
from .materials import compute_material_mapping_derived
from .payroll import assignment_wages, is_salary_expenditure
from .references import reference_id

logger = logging.getLogger(__name__)

INCOME = "Income"
EXPENSE = "Expense"
COMPLETED = "Completed"
UNKNOWN_STATUS = "Unknown"

_UNDATED = datetime.min.replace(tzinfo=timezone.utc)

SummaryFetcher = Callable[[str], Awaitable[ProjectTransactionSummary]]


def profit_margin(profit_loss: float, revenue: float) -> float:
    if revenue > 0:
        return abs(profit_loss) / revenue * 100
    return 0.0


def profit_label(profit_loss: float) -> str:
    return "profit" if profit_loss >= 0 else "loss"


def _sum_by_type(transactions: Iterable[Transaction], kind: str) -> float:
    return math.fsum(item.amount for item in transactions if item.type == kind)


def summarize_transactions(
    transactions: Sequence[Transaction],
    window: Optional[DateWindow] = None,
) -> TransactionTotals:
    """Ledger totals for one project; types other than Income/Expense count nowhere."""
    selected = filter_by_date(transactions, lambda item: item.date, window)
    income = _sum_by_type(selected.kept, INCOME)
    expense = _sum_by_type(selected.kept, EXPENSE)
    return TransactionTotals(
        total_income=income,
        total_expense=expense,
        net_profit_loss=income - expense,
        skipped_records=selected.skipped,
    )


def _belongs_to(ref: Any, project_id: Optional[str]) -> bool:
    ref_id = reference_id(ref)
    return ref_id is None or ref_id == project_id


def _cost_breakdown(
    project_id: Optional[str],
    window: DateWindow,
    mappings: Optional[Sequence[MaterialMapping]],
    expenditures: Optional[Sequence[ManpowerAssignment]],
) -> CostBreakdown:
    scoped_mappings = [m for m in mappings or [] if reference_id(m.project) == project_id]
    scoped_spend = [e for e in expenditures or [] if reference_id(e.project) == project_id]

    material_cost = math.fsum(
        compute_material_mapping_derived(m).total_cost
        for m in filter_by_date(scoped_mappings, lambda item: item.date, window).kept
    )
    dated_spend = filter_by_date(scoped_spend, lambda item: item.start_date, window).kept
    salary_cost = math.fsum(assignment_wages(e) for e in dated_spend if is_salary_expenditure(e))
    other_cost = math.fsum(e.amount for e in dated_spend if not is_salary_expenditure(e))
    return CostBreakdown(
        material_cost=material_cost,
        salary_cost=salary_cost,
        other_cost=other_cost,
        total=math.fsum((material_cost, salary_cost, other_cost)),
    )


def compute_profit_loss_report(
    project: Project,
    invoices: Sequence[Invoice],
    transactions: Sequence[Transaction],
    from_date: Any = None,
    to_date: Any = None,
    *,
    mappings: Optional[Sequence[MaterialMapping]] = None,
    expenditures: Optional[Sequence[ManpowerAssignment]] = None,
) -> ProfitLossReport:
    """Budget-centric profit/loss for one project.

    Revenue is billed income (invoice grand totals); expenditure is Expense
    ledger entries. Ledger income is reported next to it as ``ledger_income``
    and is never part of revenue.
    """
    window = DateWindow.from_bounds(from_date, to_date)
    issues: List[DataQualityIssue] = []

    scoped_invoices: List[Invoice] = []
    for invoice in invoices:
        invoice_project = reference_id(invoice.project)
        if invoice_project is None:
            issues.append(
                DataQualityIssue(
                    kind="unresolved_reference",
                    entity="Invoice",
                    record_id=invoice.id,
                    field="projectId",
                    message="Invoice has no project reference and was left out of revenue",
                )
            )
        elif invoice_project == project.id:
            scoped_invoices.append(invoice)

    billed = filter_by_date(scoped_invoices, lambda item: item.invoice_date, window)
    # Transactions without a project reference count toward this project
    ledger = filter_by_date(
        [item for item in transactions if _belongs_to(item.project, project.id)],
        lambda item: item.date,
        window,
    )

    revenue = math.fsum(invoice.grand_total for invoice in billed.kept)
    expenses = [item for item in ledger.kept if item.type == EXPENSE]
    total_expenditures = math.fsum(item.amount for item in expenses)
    pl = revenue - total_expenditures

    breakdown = None
    if mappings is not None or expenditures is not None:
        breakdown = _cost_breakdown(project.id, window, mappings, expenditures)

    return ProfitLossReport(
        project_id=project.id,
        project_name=project.display_name,
        from_date=window.start,
        to_date=window.end,
        estimated_budget=project.estimated_budget,
        revenue_from_invoices=revenue,
        ledger_income=_sum_by_type(ledger.kept, INCOME),
        total_expenditures=total_expenditures,
        remaining_budget=project.estimated_budget - total_expenditures,
        profit_loss=pl,
        profit_margin=profit_margin(pl, revenue),
        profit_label=profit_label(pl),
        invoice_count=len(billed.kept),
        expense_count=len(expenses),
        skipped_records=billed.skipped + ledger.skipped,
        cost_breakdown=breakdown,
        issues=issues,
    )


async def _fetch_for(project: Project, fetch_summary: SummaryFetcher) -> ProjectTransactionSummary:
    if not project.id:
        raise ValueError("project has no identifier")
    return await fetch_summary(project.id)


async def collect_project_summaries(
    projects: Sequence[Project],
    fetch_summary: SummaryFetcher,
) -> List[ProjectSummaryResult]:
    """Fetch every project's summary concurrently; one failure never aborts the batch.

    Results line up with ``projects`` by position.
    """
    outcomes = await asyncio.gather(
        *(_fetch_for(project, fetch_summary) for project in projects),
        return_exceptions=True,
    )

    results: List[ProjectSummaryResult] = []
    for project, outcome in zip(projects, outcomes):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            logger.warning("Transaction summary unavailable for project %s: %s", project.id, outcome)
            results.append(
                ProjectSummaryResult(
                    project_id=project.id,
                    project_name=project.display_name,
                    error=str(outcome) or type(outcome).__name__,
                )
            )
            continue
        results.append(
            ProjectSummaryResult(project_id=project.id, project_name=project.display_name, summary=outcome)
        )
    return results


def _newest_first(transactions: List[TaggedTransaction]) -> List[TaggedTransaction]:
    return sorted(
        transactions,
        key=lambda item: (item.date is not None, item.date or _UNDATED),
        reverse=True,
    )


def aggregate_cross_project(
    results: Sequence[ProjectSummaryResult],
    window: Optional[DateWindow] = None,
) -> CrossProjectSummary:
    """Sum per-project summaries and build the tagged all-transactions list.

    A failed member contributes zero and is listed in ``failed_project_ids``.
    When a summary carries its transaction list the totals are recomputed from
    it; otherwise the totals the source reported are used.
    """
    window = window or DateWindow()
    incomes: List[float] = []
    expenses: List[float] = []
    tagged: List[TaggedTransaction] = []
    failed: List[str] = []
    issues: List[DataQualityIssue] = []
    skipped = 0

    for result in results:
        if result.failed:
            failed.append(result.project_id or result.project_name)
            issues.append(
                DataQualityIssue(
                    kind="partial_fetch_failure",
                    entity="Project",
                    record_id=result.project_id,
                    message=f"Transaction summary for {result.project_name} could not be fetched: {result.error}",
                )
            )
            continue

        summary = result.summary
        if not summary.has_transaction_list:
            incomes.append(summary.reported_income or 0.0)
            expenses.append(summary.reported_expense or 0.0)
            continue

        selected = filter_by_date(summary.transactions, lambda item: item.date, window)
        incomes.append(_sum_by_type(selected.kept, INCOME))
        expenses.append(_sum_by_type(selected.kept, EXPENSE))
        skipped += selected.skipped
        for item in selected.kept:
            tagged.append(
                TaggedTransaction(
                    id=item.id,
                    project_id=result.project_id,
                    project_name=result.project_name,
                    type=item.type,
                    amount=item.amount,
                    date=item.date,
                    category=item.category,
                    description=item.description,
                )
            )

    total_income = math.fsum(incomes)
    total_expense = math.fsum(expenses)
    return CrossProjectSummary(
        total_income=total_income,
        total_expense=total_expense,
        net_profit_loss=total_income - total_expense,
        all_transactions=_newest_first(tagged),
        failed_project_ids=failed,
        skipped_records=skipped,
        issues=issues,
    )


def aggregate_dashboard_stats(
    projects: Sequence[Project],
    transaction_summaries: Sequence[ProjectSummaryResult],
    invoices: Sequence[Invoice],
    window: Optional[DateWindow] = None,
) -> DashboardStats:
    """Headline figures for the console dashboard.

    ``total_income`` is ledger income; invoices are totalled separately as
    ``total_invoiced``.
    """
    window = window or DateWindow()
    cross = aggregate_cross_project(transaction_summaries, window)
    by_status = Counter(project.status or UNKNOWN_STATUS for project in projects)
    billed = filter_by_date(invoices, lambda item: item.invoice_date, window)

    return DashboardStats(
        total_projects=len(projects),
        completed_projects=by_status.get(COMPLETED, 0),
        projects_by_status=dict(by_status),
        total_income=cross.total_income,
        total_expense=cross.total_expense,
        net_profit_loss=cross.net_profit_loss,
        total_invoiced=math.fsum(invoice.grand_total for invoice in billed.kept),
        profit_margin=profit_margin(cross.net_profit_loss, cross.total_income),
        profit_label=profit_label(cross.net_profit_loss),
        all_transactions=cross.all_transactions,
        failed_project_ids=cross.failed_project_ids,
        skipped_records=cross.skipped_records + billed.skipped,
        issues=cross.issues,
    )
