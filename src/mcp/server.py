"""Finance Dashboard MCP Server.

Exposes budget analysis and spending, income and cash flow reports over
the finance dashboard API as MCP tools.
"""

import json
import logging
import os
import sys
from contextlib import asynccontextmanager
from datetime import date, timedelta
from pathlib import Path
from dotenv import load_dotenv
from mcp.server.fastmcp import Context, FastMCP

# Ensure project root is on sys.path so `src` is importable when loaded
# directly by tools like `mcp dev` (which use importlib, not `python -m`).
_project_root = str(Path(__file__).resolve().parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

load_dotenv()

from src.core.analyzers import analyze_budget, recommend, score_budget_health
from src.core.dashboard_client import DEFAULT_BASE_URL, DashboardClient
from src.core.errors import InputValidationError, validate_range
from src.core.reports import (
    generate_cash_flow_report,
    generate_income_report,
    generate_spending_report,
    previous_window,
)
from src.core.resolvers import resolve_budget
from src.mcp.error_handling import handle_tool_errors
from src.mcp.formatters import (
    analysis_to_payload,
    format_budget_analysis,
    format_budgets,
    format_cash_flow_report,
    format_income_report,
    format_spending_report,
)
from src.models.schemas import (
    AnalyzeBudgetInput,
    CashFlowReportInput,
    IncomeReportInput,
    SpendingReportInput,
    TransactionType,
)

logger = logging.getLogger("finance_mcp")


# --- Lifespan: initialize shared resources ---


@asynccontextmanager
async def app_lifespan(server: FastMCP):
    # stdout carries the MCP stdio protocol, so logs go to stderr
    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        stream=sys.stderr,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    token = os.environ.get("FINANCE_API_TOKEN", "")
    base_url = os.environ.get("FINANCE_API_URL", DEFAULT_BASE_URL)

    if not token:
        raise RuntimeError(
            "FINANCE_API_TOKEN environment variable is required. "
            "Use the JWT issued by the dashboard's /api/auth/login endpoint."
        )

    client = DashboardClient(api_token=token, base_url=base_url)
    logger.info("Using finance dashboard API at %s", client.base_url)

    yield {"dashboard": client}

    await client.close()


mcp = FastMCP("finance_mcp", lifespan=app_lifespan)


# --- Helpers ---


def _get_client(ctx) -> DashboardClient:
    return ctx.request_context.lifespan_context["dashboard"]


def _parse_date(value: str | None, default: date, field: str) -> date:
    if not value:
        return default
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InputValidationError(field, f"'{value}' is not a YYYY-MM-DD date") from e


def _months_back(today: date, months: int) -> date:
    d = today.replace(day=1)
    for _ in range(months):
        d = (d - timedelta(days=1)).replace(day=1)
    return d


# --- Tools ---


@mcp.tool(
    name="finance_list_budgets",
    annotations={
        "title": "List Budgets",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@handle_tool_errors
async def finance_list_budgets(ctx: Context) -> str:
    """List all budgets with their period and total amount."""
    client = _get_client(ctx)
    budgets = await client.get_budgets()
    return format_budgets(budgets)


@mcp.tool(
    name="finance_analyze_budget",
    annotations={
        "title": "Analyze Budget",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@handle_tool_errors
async def finance_analyze_budget(params: AnalyzeBudgetInput, ctx: Context) -> str:
    """Compare a budget's allocations with actual spending.

    Shows per-category status (good / warning / over), daily average,
    projected spend for the period, how much of the budget is used,
    a 0-100 health score and recommended actions. Only completed
    transactions count unless include_pending or include_cancelled is set.
    """
    client = _get_client(ctx)

    budgets = await client.get_budgets()
    summary = resolve_budget(budgets, params.budget)
    budget = await client.get_budget(summary.id) if summary.id else summary

    validate_range(budget.start_date, budget.end_date)
    transactions = await client.get_transactions(budget.start_date, budget.end_date)
    result = analyze_budget(
        transactions,
        budget,
        include_cancelled=params.include_cancelled,
        include_pending=params.include_pending,
    )
    health = score_budget_health(result)
    recommendations = recommend(result)

    if params.as_json:
        return json.dumps(
            analysis_to_payload(result, health, recommendations), indent=2
        )
    return format_budget_analysis(result, budget.name, health, recommendations)


@mcp.tool(
    name="finance_spending_report",
    annotations={
        "title": "Spending Report",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@handle_tool_errors
async def finance_spending_report(params: SpendingReportInput, ctx: Context) -> str:
    """Break down spending by category, time period and merchant, compared with the previous period."""
    client = _get_client(ctx)

    today = date.today()
    start = _parse_date(params.start_date, today.replace(day=1), "start_date")
    end = _parse_date(params.end_date, today, "end_date")
    validate_range(start, end)

    # Fetch the preceding window too, for the period comparison
    prev_start, _ = previous_window(start, end)
    transactions = await client.get_transactions(
        prev_start, end, type_=TransactionType.EXPENSE
    )
    report = generate_spending_report(
        transactions,
        start,
        end,
        categories=params.categories,
        group_by=params.group_by,
        top_n=params.top_n,
    )
    return format_spending_report(report)


@mcp.tool(
    name="finance_income_report",
    annotations={
        "title": "Income Report",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@handle_tool_errors
async def finance_income_report(params: IncomeReportInput, ctx: Context) -> str:
    """Summarize income sources, how diversified they are, growth and recurring payments."""
    client = _get_client(ctx)

    today = date.today()
    start = _parse_date(params.start_date, today.replace(day=1), "start_date")
    end = _parse_date(params.end_date, today, "end_date")
    validate_range(start, end)

    prev_start, _ = previous_window(start, end)
    transactions = await client.get_transactions(
        prev_start, end, type_=TransactionType.INCOME
    )
    report = generate_income_report(transactions, start, end)
    return format_income_report(report)


@mcp.tool(
    name="finance_cash_flow_report",
    annotations={
        "title": "Cash Flow Report",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True,
    },
)
@handle_tool_errors
async def finance_cash_flow_report(params: CashFlowReportInput, ctx: Context) -> str:
    """Month-by-month income vs expenses with savings rate, trend and running balance."""
    client = _get_client(ctx)

    today = date.today()
    start = _parse_date(params.start_date, _months_back(today, 5), "start_date")
    end = _parse_date(params.end_date, today, "end_date")
    validate_range(start, end)

    transactions = await client.get_transactions(start, end)
    report = generate_cash_flow_report(
        transactions, start, end, starting_balance=params.starting_balance
    )
    return format_cash_flow_report(report)


# --- Entry point ---

if __name__ == "__main__":
    mcp.run()
