from .records import (
    EXPENDITURE_TYPES,
    MATERIAL_STATUSES,
    PAY_TYPES,
    PROJECT_STATUSES,
    TRANSACTION_TYPES,
    EmbeddedReference,
    IdReference,
    Invoice,
    Manpower,
    ManpowerAssignment,
    MaterialMapping,
    MaterialRecord,
    MaterialUsage,
    Project,
    ProjectTransactionSummary,
    Reference,
    Transaction,
)
from .reports import (
    CostBreakdown,
    CrossProjectSummary,
    DashboardStats,
    DataQualityIssue,
    MappingReport,
    MappingRow,
    MaterialMappingDerived,
    MonthlyBucket,
    ProfitLossReport,
    ProjectSummaryResult,
    ReportFilters,
    SalaryReport,
    SalaryRow,
    SalaryTotal,
    StockDetail,
    StockReport,
    TaggedTransaction,
    TransactionTotals,
)
