from __future__ import annotations

import copy
from typing import Any, Dict, Iterable, Optional

import httpx
import pytest

from siteledger.repos.ledger_repo import LedgerRepo, clear_source_cache
from siteledger.services.normalize import (
    normalize_assignment,
    normalize_invoice,
    normalize_many,
    normalize_manpower,
    normalize_mapping,
    normalize_material,
    normalize_project,
    normalize_transaction_summary,
    normalize_usage,
)

PROJECTS = [
    {"_id": "P1", "name": "Harbor View", "estimatedBudget": "100000", "status": "OnGoing"},
    {"_id": "P2", "projectName": "Hill Road", "totalCost": 50000, "status": "Completed"},
    {"_id": "P3", "name": "Lake Park", "estimatedBudget": 75000, "status": "OnGoing"},
]

SUMMARIES = {
    "P1": {
        "summary": {"totalIncome": 5000, "totalExpense": 2000},
        "allTransactions": [
            {"_id": "T1", "projectId": "P1", "type": "Income", "amount": "5000", "date": "2024-03-05T10:00:00Z"},
            {"_id": "T2", "projectId": "P1", "type": "Expense", "amount": 2000, "date": "2024-03-20T10:00:00Z"},
        ],
    },
    "P2": [
        {"_id": "T3", "projectId": "P2", "type": "Income", "amount": 1000, "date": "2024-04-02"},
    ],
    "P3": {
        "summary": {"totalIncome": 300, "totalExpense": "abc"},
        "allTransactions": [
            {
                "_id": "T4",
                "projectId": {"_id": "P3", "name": "Lake Park"},
                "type": "Income",
                "amount": 300,
                "date": "2024-03-05T10:00:00Z",
            },
            {"_id": "T5", "projectId": "P3", "type": "Expense", "amount": "abc", "date": None},
        ],
    },
}

INVOICES = [
    {"_id": "I1", "invoiceNumber": "INV-1", "projectId": "P1", "grandTotal": "8000", "invoiceDate": "2024-03-10"},
    {"_id": "I2", "invoiceNumber": "INV-2", "projectId": {"_id": "P1", "name": "Harbor View"}, "grandTotal": 2000, "invoiceDate": "2024-04-15"},
    {"_id": "I3", "invoiceNumber": "INV-3", "projectId": "P2", "grandTotal": 500, "invoiceDate": "2024-03-12"},
    {"_id": "I4", "invoiceNumber": "INV-4", "grandTotal": 999, "invoiceDate": "2024-03-12"},
]

MATERIALS = [
    {
        "_id": "M1",
        "materialNames": ["Cement", "OPC Cement"],
        "unit": "Bags",
        "availableQuantity": 200,
        "reorderLevel": 50,
        "purchasePrice": 420,
    },
    {"_id": "M2", "materialName": "Steel", "unit": "Tons", "availableQuantity": "10", "purchasePrice": "65000"},
]

USAGE = [
    {"_id": "U1", "projectId": "P1", "materialId": "M1", "quantityUsed": 50, "fromDate": "2024-03-02"},
    {"_id": "U2", "projectId": "P1", "materialId": {"_id": "M1", "materialNames": ["Cement"]}, "quantityUsed": "30", "fromDate": "2024-03-15"},
    {"_id": "U3", "projectId": "P3", "materialId": "M2", "quantityUsed": 12, "fromDate": "2024-04-01"},
    {"_id": "U4", "projectId": "P3", "materialId": "M9", "quantityUsed": 5, "fromDate": "2024-04-01"},
]

MAPPINGS = [
    {"_id": "MM1", "projectId": "P1", "materialId": "M1", "quantityIssued": 100, "quantityUsed": 30, "unitPrice": 50, "date": "2024-03-03"},
    {"_id": "MM2", "projectId": "P1", "materialName": "Steel", "quantity": 5, "quantityUsed": 7, "unitPrice": "65000", "date": "2024-03-18"},
    {"_id": "MM3", "projectId": "P9", "materialId": "M1", "quantityIssued": 10, "quantityUsed": 10, "unitPrice": 420},
]

MANPOWER = [
    {"_id": "W1", "name": "Ravi", "designation": "Mason", "payType": "Daily", "payRate": 800},
    {"_id": "W2", "name": "Anita", "designation": "Engineer", "payType": "Monthly", "payRate": 45000},
]

EXPENDITURES = [
    {
        "_id": "E1",
        "expenditureType": "Salary",
        "projectId": "P1",
        "manpowerId": "W1",
        "designation": "Mason",
        "payType": "Daily",
        "payRate": 800,
        "unitCount": 15,
        "fromDate": "2024-03-01",
        "toDate": "2024-03-15",
        "amount": 1,
    },
    {
        "_id": "E2",
        "expenditureType": "Salary",
        "projectId": {"_id": "P3", "name": "Lake Park"},
        "manpowerId": {"_id": "W2", "name": "Anita"},
        "designation": "Engineer",
        "payType": "Monthly",
        "payRate": 45000,
        "unitCount": 1,
        "fromDate": "2024-04-01",
    },
    {"_id": "E3", "expenditureType": "Other", "projectId": "P1", "expenditureName": "Scaffolding rent", "amount": "2500", "fromDate": "2024-03-10"},
    {
        "_id": "E4",
        "expenditureType": "Salary",
        "projectId": "P1",
        "manpowerId": "W7",
        "manpowerName": "Temp Crew",
        "payType": "Hourly",
        "payRate": 0,
        "unitCount": 3,
        "fromDate": "2024-03-20",
    },
]


def ledger_routes() -> Dict[str, Any]:
    routes: Dict[str, Any] = {
        "projects": PROJECTS,
        "transactions": [row for summary in ("P1", "P3") for row in SUMMARIES[summary]["allTransactions"]] + SUMMARIES["P2"],
        "invoices": INVOICES,
        "materials": MATERIALS,
        "manpower": MANPOWER,
        "expenditures": EXPENDITURES,
        "projectMaterialMappings": MAPPINGS,
        "material-usage": USAGE,
        "material-usage/project/P1": [row for row in USAGE if row["projectId"] == "P1"],
    }
    for project in PROJECTS:
        routes[f"projects/{project['_id']}"] = project
        routes[f"transactions/summary/{project['_id']}"] = SUMMARIES[project["_id"]]
    return copy.deepcopy(routes)


def mock_client(
    routes: Optional[Dict[str, Any]] = None,
    failing: Iterable[str] = (),
    calls: Optional[list] = None,
) -> httpx.AsyncClient:
    routes = ledger_routes() if routes is None else routes
    failing = set(failing)

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path[len("/api/"):]
        if calls is not None:
            calls.append(path)
        if path in failing:
            return httpx.Response(500, json={"message": "backend exploded"})
        if path not in routes:
            return httpx.Response(404, json={"message": "not found"})
        return httpx.Response(200, json=routes[path])

    return httpx.AsyncClient(base_url="http://ledger.test/api", transport=httpx.MockTransport(handler))


@pytest.fixture(autouse=True)
def _reset_source_cache():
    clear_source_cache()
    yield
    clear_source_cache()


@pytest.fixture
def make_repo():
    def _make(**kwargs) -> LedgerRepo:
        return LedgerRepo(client=mock_client(**kwargs))

    return _make


@pytest.fixture
def projects():
    return normalize_many(normalize_project, copy.deepcopy(PROJECTS))


@pytest.fixture
def summaries():
    return {key: normalize_transaction_summary(copy.deepcopy(value)) for key, value in SUMMARIES.items()}


@pytest.fixture
def invoices():
    return normalize_many(normalize_invoice, copy.deepcopy(INVOICES))


@pytest.fixture
def materials():
    return normalize_many(normalize_material, copy.deepcopy(MATERIALS))


@pytest.fixture
def usage_records():
    return normalize_many(normalize_usage, copy.deepcopy(USAGE))


@pytest.fixture
def mappings():
    return normalize_many(normalize_mapping, copy.deepcopy(MAPPINGS))


@pytest.fixture
def manpower():
    return normalize_many(normalize_manpower, copy.deepcopy(MANPOWER))


@pytest.fixture
def expenditures():
    return normalize_many(normalize_assignment, copy.deepcopy(EXPENDITURES))
