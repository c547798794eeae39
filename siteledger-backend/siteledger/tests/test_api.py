from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from siteledger.config import settings
from siteledger.main import app
from siteledger.repos.ledger_repo import get_repo

client = TestClient(app)


@pytest.fixture
def use_repo(make_repo):
    def _use(**kwargs):
        repo = make_repo(**kwargs)
        app.dependency_overrides[get_repo] = lambda: repo
        return repo

    try:
        yield _use
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def enable_dashboard():
    original = settings.feature_cross_project_dashboard
    settings.feature_cross_project_dashboard = True
    try:
        yield
    finally:
        settings.feature_cross_project_dashboard = original


def test_health():
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True


def test_dashboard_stats_survives_partial_failure(use_repo):
    use_repo(failing={"transactions/summary/P2"})
    response = client.get("/api/v1/dashboard/stats")
    assert response.status_code == 200
    payload = response.json()
    assert payload["totalProjects"] == 3
    assert payload["totalIncome"] == 5300
    assert payload["totalExpense"] == 2000
    assert payload["totalInvoiced"] == 11499
    assert payload["failedProjectIds"] == ["P2"]
    assert payload["allTransactions"][0]["projectName"] == "Harbor View"
    assert payload["issues"][0]["kind"] == "partial_fetch_failure"


def test_dashboard_stats_rejects_bad_dates(use_repo):
    use_repo()
    bad = client.get("/api/v1/dashboard/stats", params={"fromDate": "yesterday"})
    reversed_range = client.get("/api/v1/dashboard/stats", params={"fromDate": "2024-04-01", "toDate": "2024-03-01"})
    assert bad.status_code == 400
    assert reversed_range.status_code == 400


def test_dashboard_stats_accepts_same_day_window(use_repo):
    use_repo()
    response = client.get(
        "/api/v1/dashboard/stats",
        params={"fromDate": "2024-03-20T09:00:00Z", "toDate": "2024-03-20"},
    )
    assert response.status_code == 200
    assert response.json()["totalExpense"] == 2000


def test_dashboard_stats_can_be_disabled(use_repo):
    use_repo()
    settings.feature_cross_project_dashboard = False
    assert client.get("/api/v1/dashboard/stats").status_code == 404


def test_dashboard_stats_reports_source_outage(use_repo):
    use_repo(failing={"projects"})
    response = client.get("/api/v1/dashboard/stats")
    assert response.status_code == 502


def test_dashboard_monthly(use_repo):
    use_repo()
    response = client.get("/api/v1/dashboard/monthly", params={"year": 2024})
    assert response.status_code == 200
    buckets = response.json()
    assert len(buckets) == 12
    assert buckets[2] == {"month": 3, "label": "Mar", "income": 5300, "expense": 2000, "profit": 3300}
    assert buckets[3]["income"] == 1000

    scoped = client.get("/api/v1/dashboard/monthly", params={"year": 2024, "projectId": "P2"}).json()
    assert scoped[2]["income"] == 0
    assert scoped[3]["income"] == 1000


def test_profit_loss_report(use_repo):
    use_repo()
    response = client.get(
        "/api/v1/reports/profit-loss",
        params={"projectId": "P1", "fromDate": "2024-03-01", "toDate": "2024-03-31"},
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["projectName"] == "Harbor View"
    assert payload["revenueFromInvoices"] == 8000
    assert payload["ledgerIncome"] == 5000
    assert payload["totalExpenditures"] == 2000
    assert payload["remainingBudget"] == 98000
    assert payload["profitLoss"] == 6000
    assert payload["profitMargin"] == 75
    assert payload["profitLabel"] == "profit"
    assert payload["costBreakdown"]["salaryCost"] == 12000
    assert payload["costBreakdown"]["materialCost"] == 456500


def test_profit_loss_unknown_project(use_repo):
    use_repo()
    response = client.get("/api/v1/reports/profit-loss", params={"projectId": "P404"})
    assert response.status_code == 404


def test_profit_loss_requires_project(use_repo):
    use_repo()
    assert client.get("/api/v1/reports/profit-loss").status_code == 422
    assert client.get("/api/v1/reports/profit-loss", params={"projectId": " "}).status_code == 400


def test_stock_report(use_repo):
    use_repo()
    response = client.get("/api/v1/reports/stock", params={"materialId": "M1"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["totalStockIn"] == 200
    assert payload["totalStockOut"] == 80
    assert payload["remainingStock"] == 120
    assert payload["stockDetails"][0]["materialName"] == "Cement"


def test_stock_report_for_project(use_repo):
    use_repo()
    payload = client.get("/api/v1/reports/stock", params={"projectId": "P1"}).json()
    assert payload["totalStockOut"] == 80
    assert payload["ignoredUsageRecords"] == 0


def test_salary_report(use_repo):
    use_repo()
    response = client.get("/api/v1/reports/salary", params={"projectId": "P1"})
    assert response.status_code == 200
    payload = response.json()
    assert payload["totalSalary"] == 12000
    assert [row["manpowerName"] for row in payload["rows"]] == ["Ravi", "Temp Crew"]


def test_material_mappings(use_repo):
    use_repo()
    response = client.get("/api/v1/materials/mappings", params={"projectId": "P1"})
    assert response.status_code == 200
    payload = response.json()
    assert [row["mappingId"] for row in payload["rows"]] == ["MM1", "MM2"]
    assert payload["rows"][1]["violations"]
    assert payload["totalCost"] == 456500


def test_derive_mapping():
    response = client.post(
        "/api/v1/materials/mappings/derive",
        json={"quantityIssued": 100, "quantityUsed": 30, "unitPrice": 50},
    )
    assert response.status_code == 200
    assert response.json() == {"totalCost": 1500, "balanceQuantity": 70, "violations": []}


def test_payroll_wages():
    ok = client.post("/api/v1/payroll/wages", json={"unitCount": 15, "payRate": 800, "payType": "Daily"})
    zero = client.post("/api/v1/payroll/wages", json={"unitCount": 0, "payRate": 800})
    garbage = client.post("/api/v1/payroll/wages", json={"unitCount": "abc", "payRate": "800"})

    assert ok.json()["totalWages"] == 12000
    assert ok.json()["valid"] is True
    assert zero.json()["totalWages"] == 0
    assert zero.json()["valid"] is False
    assert set(zero.json()["errors"]) == {"unitCount", "totalWages"}
    assert garbage.json()["totalWages"] == 0
