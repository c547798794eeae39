from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field


PROJECT_STATUSES = ("OnGoing", "Completed", "OnHold", "Cancelled", "Active")
TRANSACTION_TYPES = ("Income", "Expense")
PAY_TYPES = ("Daily", "Monthly", "Hourly", "Weekly")
MATERIAL_STATUSES = ("Available", "LowStock", "OutOfStock")
EXPENDITURE_TYPES = ("Salary", "Other")


class IdReference(BaseModel):
    kind: Literal["id"] = "id"
    value: str


class EmbeddedReference(BaseModel):
    kind: Literal["embedded"] = "embedded"
    value: Dict[str, Any] = Field(default_factory=dict)


Reference = Annotated[Union[IdReference, EmbeddedReference], Field(discriminator="kind")]


class Project(BaseModel):
    id: Optional[str] = None
    name: str = "Unknown Project"
    estimated_budget: float = 0.0
    status: Optional[str] = None
    client: Optional[Reference] = None

    @property
    def display_name(self) -> str:
        return self.name


class Transaction(BaseModel):
    id: Optional[str] = None
    project: Optional[Reference] = None
    type: Optional[str] = None
    amount: float = 0.0
    date: Optional[datetime] = None
    category: str = "N/A"
    description: str = "N/A"


class Invoice(BaseModel):
    id: Optional[str] = None
    invoice_number: str = "N/A"
    project: Optional[Reference] = None
    client: Optional[Reference] = None
    invoice_date: Optional[datetime] = None
    due_date: Optional[datetime] = None
    grand_total: float = 0.0


class Manpower(BaseModel):
    id: Optional[str] = None
    name: str = "Unknown Manpower"
    designation: str = "N/A"
    pay_type: Optional[str] = None
    pay_rate: float = 0.0

    @property
    def display_name(self) -> str:
        return self.name


class ManpowerAssignment(BaseModel):
    """A salary expenditure: one manpower allocation to a project.

    ``amount`` is whatever the backend persisted; payroll figures are always
    recomputed from ``unit_count`` and ``pay_rate``.
    """

    id: Optional[str] = None
    project: Optional[Reference] = None
    manpower: Optional[Reference] = None
    manpower_name: Optional[str] = None
    designation: str = "N/A"
    pay_type: Optional[str] = None
    pay_rate: float = 0.0
    unit_count: float = 0.0
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None
    expenditure_type: Optional[str] = None
    amount: float = 0.0
    description: str = "N/A"

    @property
    def start_date(self) -> Optional[datetime]:
        return self.from_date or self.to_date


class MaterialRecord(BaseModel):
    id: Optional[str] = None
    names: List[str] = Field(default_factory=list)
    unit: str = "Units"
    available_quantity: float = 0.0
    reorder_level: float = 0.0
    purchase_price: float = 0.0
    supplier: str = "N/A"
    status: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.names[0] if self.names else "Unknown Material"


class MaterialMapping(BaseModel):
    id: Optional[str] = None
    project: Optional[Reference] = None
    material: Optional[Reference] = None
    material_name: Optional[str] = None
    quantity_issued: float = 0.0
    quantity_used: float = 0.0
    unit_price: float = 0.0
    unit: str = "Units"
    date: Optional[datetime] = None
    vendor_name: str = "N/A"
    vendor_address: str = "N/A"


class MaterialUsage(BaseModel):
    id: Optional[str] = None
    project: Optional[Reference] = None
    material: Optional[Reference] = None
    material_name: Optional[str] = None
    quantity_used: float = 0.0
    unit: str = "Units"
    from_date: Optional[datetime] = None
    to_date: Optional[datetime] = None

    @property
    def usage_date(self) -> Optional[datetime]:
        return self.from_date or self.to_date


class ProjectTransactionSummary(BaseModel):
    transactions: List[Transaction] = Field(default_factory=list)
    has_transaction_list: bool = False
    reported_income: Optional[float] = None
    reported_expense: Optional[float] = None
