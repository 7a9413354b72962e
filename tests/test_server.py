"""Tests for the MCP tool functions with a stubbed dashboard client."""

import json
from datetime import date
from types import SimpleNamespace

import pytest

from tests.conftest import make_allocation, make_budget, make_transaction
from src.core.dashboard_client import DashboardAPIError
from src.core.errors import InputValidationError
from src.mcp.server import (
    _months_back,
    _parse_date,
    finance_analyze_budget,
    finance_cash_flow_report,
    finance_list_budgets,
    finance_spending_report,
)
from src.models.schemas import AnalyzeBudgetInput, CashFlowReportInput, SpendingReportInput


class FakeDashboard:
    def __init__(self, budgets=None, transactions=None, error=None):
        self.budgets = budgets or []
        self.transactions = transactions or []
        self.error = error
        self.calls = []

    async def get_budgets(self):
        if self.error:
            raise self.error
        return self.budgets

    async def get_budget(self, budget_id):
        return next(b for b in self.budgets if b.id == budget_id)

    async def get_transactions(self, start_date=None, end_date=None, *, type_=None, category=None):
        self.calls.append((start_date, end_date, type_))
        return self.transactions


def _ctx(client):
    return SimpleNamespace(
        request_context=SimpleNamespace(lifespan_context={"dashboard": client})
    )


class TestHelpers:
    def test_parse_date_default(self):
        assert _parse_date(None, date(2025, 1, 1), "start_date") == date(2025, 1, 1)

    def test_parse_date_value(self):
        assert _parse_date("2025-03-04", date(2025, 1, 1), "start_date") == date(2025, 3, 4)

    def test_parse_date_invalid(self):
        with pytest.raises(InputValidationError, match="start_date"):
            _parse_date("March", date(2025, 1, 1), "start_date")

    def test_months_back_crosses_year(self):
        assert _months_back(date(2025, 2, 17), 5) == date(2024, 9, 1)

    def test_months_back_zero(self):
        assert _months_back(date(2025, 2, 17), 0) == date(2025, 2, 1)


class TestAnalyzeBudgetTool:
    def _dashboard(self):
        budget = make_budget([make_allocation("Groceries", 500)], total_amount=500, id_="b1")
        return FakeDashboard(
            budgets=[budget],
            transactions=[make_transaction(450, category="Groceries")],
        )

    async def test_markdown(self):
        dashboard = self._dashboard()
        result = await finance_analyze_budget(AnalyzeBudgetInput(budget="jan"), _ctx(dashboard))
        assert "## Budget Analysis: January" in result
        assert "[!] | Groceries" in result
        assert dashboard.calls == [(date(2025, 1, 1), date(2025, 1, 30), None)]

    async def test_json(self):
        result = await finance_analyze_budget(
            AnalyzeBudgetInput(budget="b1", as_json=True), _ctx(self._dashboard())
        )
        payload = json.loads(result)
        assert payload["categoryAnalysis"][0]["status"] == "warning"
        assert payload["trendAnalysis"]["totalSpent"] == 450
        assert "healthScore" in payload
        assert "recommendations" in payload

    async def test_pending_excluded_unless_requested(self):
        dashboard = self._dashboard()
        dashboard.transactions.append(make_transaction(100, category="Groceries", status="pending"))

        result = await finance_analyze_budget(
            AnalyzeBudgetInput(budget="b1", as_json=True), _ctx(dashboard)
        )
        assert json.loads(result)["trendAnalysis"]["totalSpent"] == 450

        result = await finance_analyze_budget(
            AnalyzeBudgetInput(budget="b1", as_json=True, include_pending=True), _ctx(dashboard)
        )
        assert json.loads(result)["trendAnalysis"]["totalSpent"] == 550

    async def test_unknown_budget(self):
        result = await finance_analyze_budget(
            AnalyzeBudgetInput(budget="Vacation"), _ctx(self._dashboard())
        )
        assert "No budget found matching 'Vacation'" in result


class TestReportTools:
    async def test_list_budgets_api_error(self):
        dashboard = FakeDashboard(error=DashboardAPIError(401, "UNAUTHORIZED", "Invalid token"))
        result = await finance_list_budgets(_ctx(dashboard))
        assert result == "Dashboard API error: Invalid token"

    async def test_spending_fetches_previous_window(self):
        dashboard = FakeDashboard(transactions=[
            make_transaction(30, date="2025-01-10"),
            make_transaction(20, date="2024-12-10"),
        ])
        result = await finance_spending_report(
            SpendingReportInput(start_date="2025-01-01", end_date="2025-01-31"),
            _ctx(dashboard),
        )
        assert "$30.00 across 1 transactions" in result
        assert "$20.00 (+50.0%, increasing)" in result
        start, end, type_ = dashboard.calls[0]
        assert (start, end) == (date(2024, 12, 1), date(2025, 1, 31))
        assert type_.value == "expense"

    async def test_spending_inverted_range(self):
        result = await finance_spending_report(
            SpendingReportInput(start_date="2025-02-01", end_date="2025-01-01"),
            _ctx(FakeDashboard()),
        )
        assert result.startswith("Invalid input:")

    async def test_spending_from_earliest_date_is_invalid_input(self):
        result = await finance_spending_report(
            SpendingReportInput(start_date="0001-01-01", end_date="0001-01-31"),
            _ctx(FakeDashboard()),
        )
        assert result.startswith("Invalid input:")
        assert "no earlier period" in result

    async def test_cash_flow_starting_balance(self):
        dashboard = FakeDashboard(transactions=[
            make_transaction(1000, type_="income", category="Salary", date="2025-01-03"),
        ])
        result = await finance_cash_flow_report(
            CashFlowReportInput(
                start_date="2025-01-01", end_date="2025-01-31", starting_balance=250
            ),
            _ctx(dashboard),
        )
        assert "| 2025-01 | $1,000.00 | $0.00 | $1,000.00 | 100.0% | $1,250.00 |" in result
