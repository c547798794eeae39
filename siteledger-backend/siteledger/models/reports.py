from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .records import ProjectTransactionSummary


class DataQualityIssue(BaseModel):
    kind: str = Field(description="unresolved_reference | range_violation | partial_fetch_failure | undated_record")
    entity: str
    record_id: Optional[str] = Field(default=None, alias="recordId")
    field: Optional[str] = None
    message: str

    class Config:
        populate_by_name = True


class ReportFilters(BaseModel):
    project_id: Optional[str] = Field(default=None, alias="projectId")
    material_id: Optional[str] = Field(default=None, alias="materialId")
    manpower_id: Optional[str] = Field(default=None, alias="manpowerId")
    from_date: Optional[datetime] = Field(default=None, alias="fromDate")
    to_date: Optional[datetime] = Field(default=None, alias="toDate")

    class Config:
        populate_by_name = True


class TransactionTotals(BaseModel):
    total_income: float = Field(default=0.0, alias="totalIncome")
    total_expense: float = Field(default=0.0, alias="totalExpense")
    net_profit_loss: float = Field(default=0.0, alias="netProfitLoss")
    skipped_records: int = Field(default=0, alias="skippedRecords")

    class Config:
        populate_by_name = True


class TaggedTransaction(BaseModel):
    id: Optional[str] = None
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: str = Field(alias="projectName")
    type: Optional[str] = None
    amount: float = 0.0
    date: Optional[datetime] = None
    category: str = "N/A"
    description: str = "N/A"

    class Config:
        populate_by_name = True


class ProjectSummaryResult(BaseModel):
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: str = Field(alias="projectName")
    summary: Optional[ProjectTransactionSummary] = None
    error: Optional[str] = None

    class Config:
        populate_by_name = True

    @property
    def failed(self) -> bool:
        return self.summary is None


class CrossProjectSummary(BaseModel):
    total_income: float = Field(default=0.0, alias="totalIncome")
    total_expense: float = Field(default=0.0, alias="totalExpense")
    net_profit_loss: float = Field(default=0.0, alias="netProfitLoss")
    all_transactions: List[TaggedTransaction] = Field(default_factory=list, alias="allTransactions")
    failed_project_ids: List[str] = Field(default_factory=list, alias="failedProjectIds")
    skipped_records: int = Field(default=0, alias="skippedRecords")
    issues: List[DataQualityIssue] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class DashboardStats(BaseModel):
    total_projects: int = Field(default=0, alias="totalProjects")
    completed_projects: int = Field(default=0, alias="completedProjects")
    projects_by_status: Dict[str, int] = Field(default_factory=dict, alias="projectsByStatus")
    total_income: float = Field(default=0.0, alias="totalIncome")
    total_expense: float = Field(default=0.0, alias="totalExpense")
    net_profit_loss: float = Field(default=0.0, alias="netProfitLoss")
    total_invoiced: float = Field(default=0.0, alias="totalInvoiced", description="Billed income from invoices, never merged into totalIncome")
    profit_margin: float = Field(default=0.0, alias="profitMargin")
    profit_label: str = Field(default="profit", alias="profitLabel")
    all_transactions: List[TaggedTransaction] = Field(default_factory=list, alias="allTransactions")
    failed_project_ids: List[str] = Field(default_factory=list, alias="failedProjectIds")
    skipped_records: int = Field(default=0, alias="skippedRecords")
    issues: List[DataQualityIssue] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class MonthlyBucket(BaseModel):
    month: int
    label: str
    income: float = 0.0
    expense: float = 0.0
    profit: float = 0.0


class CostBreakdown(BaseModel):
    material_cost: float = Field(default=0.0, alias="materialCost")
    salary_cost: float = Field(default=0.0, alias="salaryCost")
    other_cost: float = Field(default=0.0, alias="otherCost")
    total: float = 0.0

    class Config:
        populate_by_name = True


class ProfitLossReport(BaseModel):
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: str = Field(alias="projectName")
    from_date: Optional[datetime] = Field(default=None, alias="fromDate")
    to_date: Optional[datetime] = Field(default=None, alias="toDate")
    estimated_budget: float = Field(default=0.0, alias="estimatedBudget")
    revenue_from_invoices: float = Field(default=0.0, alias="revenueFromInvoices")
    ledger_income: float = Field(default=0.0, alias="ledgerIncome", description="Cash-ledger income, reported separately from invoice revenue")
    total_expenditures: float = Field(default=0.0, alias="totalExpenditures")
    remaining_budget: float = Field(default=0.0, alias="remainingBudget")
    profit_loss: float = Field(default=0.0, alias="profitLoss")
    profit_margin: float = Field(default=0.0, alias="profitMargin")
    profit_label: str = Field(default="profit", alias="profitLabel")
    invoice_count: int = Field(default=0, alias="invoiceCount")
    expense_count: int = Field(default=0, alias="expenseCount")
    skipped_records: int = Field(default=0, alias="skippedRecords")
    cost_breakdown: Optional[CostBreakdown] = Field(default=None, alias="costBreakdown")
    issues: List[DataQualityIssue] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class MaterialMappingDerived(BaseModel):
    total_cost: float = Field(default=0.0, alias="totalCost")
    balance_quantity: float = Field(default=0.0, alias="balanceQuantity")
    violations: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class MappingRow(BaseModel):
    mapping_id: Optional[str] = Field(default=None, alias="mappingId")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: str = Field(alias="projectName")
    material_id: Optional[str] = Field(default=None, alias="materialId")
    material_name: str = Field(alias="materialName")
    unit: str = "Units"
    quantity_issued: float = Field(default=0.0, alias="quantityIssued")
    quantity_used: float = Field(default=0.0, alias="quantityUsed")
    unit_price: float = Field(default=0.0, alias="unitPrice")
    total_cost: float = Field(default=0.0, alias="totalCost")
    balance_quantity: float = Field(default=0.0, alias="balanceQuantity")
    date: Optional[datetime] = None
    vendor_name: str = Field(default="N/A", alias="vendorName")
    violations: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class MappingReport(BaseModel):
    rows: List[MappingRow] = Field(default_factory=list)
    total_cost: float = Field(default=0.0, alias="totalCost")
    total_issued: float = Field(default=0.0, alias="totalIssued")
    total_used: float = Field(default=0.0, alias="totalUsed")
    total_balance: float = Field(default=0.0, alias="totalBalance")
    skipped_records: int = Field(default=0, alias="skippedRecords")
    issues: List[DataQualityIssue] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class StockDetail(BaseModel):
    material_id: Optional[str] = Field(default=None, alias="materialId")
    material_name: str = Field(alias="materialName")
    unit: str = "Units"
    stock_in: float = Field(default=0.0, alias="stockIn")
    stock_out: float = Field(default=0.0, alias="stockOut")
    remaining: float = 0.0
    usage_count: int = Field(default=0, alias="usageCount")
    status: str = "Available"

    class Config:
        populate_by_name = True


class StockReport(BaseModel):
    total_stock_in: float = Field(default=0.0, alias="totalStockIn")
    total_stock_out: float = Field(default=0.0, alias="totalStockOut")
    remaining_stock: float = Field(default=0.0, alias="remainingStock")
    stock_details: List[StockDetail] = Field(default_factory=list, alias="stockDetails")
    ignored_usage_records: int = Field(default=0, alias="ignoredUsageRecords")
    skipped_records: int = Field(default=0, alias="skippedRecords")
    issues: List[DataQualityIssue] = Field(default_factory=list)

    class Config:
        populate_by_name = True


class SalaryRow(BaseModel):
    assignment_id: Optional[str] = Field(default=None, alias="assignmentId")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    project_name: str = Field(alias="projectName")
    manpower_id: Optional[str] = Field(default=None, alias="manpowerId")
    manpower_name: str = Field(alias="manpowerName")
    designation: str = "N/A"
    pay_type: str = Field(default="N/A", alias="payType")
    pay_rate: float = Field(default=0.0, alias="payRate")
    unit_count: float = Field(default=0.0, alias="unitCount")
    total_wages: float = Field(default=0.0, alias="totalWages")
    from_date: Optional[datetime] = Field(default=None, alias="fromDate")
    to_date: Optional[datetime] = Field(default=None, alias="toDate")

    class Config:
        populate_by_name = True


class SalaryTotal(BaseModel):
    id: Optional[str] = None
    name: str
    total: float = 0.0


class SalaryReport(BaseModel):
    rows: List[SalaryRow] = Field(default_factory=list)
    total_salary: float = Field(default=0.0, alias="totalSalary")
    project_totals: List[SalaryTotal] = Field(default_factory=list, alias="projectTotals")
    manpower_totals: List[SalaryTotal] = Field(default_factory=list, alias="manpowerTotals")
    skipped_records: int = Field(default=0, alias="skippedRecords")
    issues: List[DataQualityIssue] = Field(default_factory=list)

    class Config:
        populate_by_name = True
