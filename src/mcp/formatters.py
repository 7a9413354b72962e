"""Markdown formatters for MCP tool responses.

Pure functions that take domain objects and return human-readable Markdown strings.
"""

from __future__ import annotations

from typing import Any

from src.models.results import (
    AnalysisResult,
    BudgetHealth,
    BudgetStatus,
    CashFlowReport,
    IncomeReport,
    Recommendation,
    SpendingReport,
)
from src.models.schemas import BudgetDefinition

_STATUS_MARKERS = {
    BudgetStatus.GOOD: "OK",
    BudgetStatus.WARNING: "!",
    BudgetStatus.OVER: "!!",
}


def format_budgets(budgets: list[BudgetDefinition]) -> str:
    if not budgets:
        return "No budgets found."
    lines = ["## Your Budgets\n"]
    for b in budgets:
        lines.append(
            f"- **{b.name or 'Unnamed'}** (ID: `{b.id}`) "
            f"${b.total_amount:,.2f} | {b.start_date} to {b.end_date}"
        )
    return "\n".join(lines)


# --- Budget Analysis ---


def format_budget_analysis(
    result: AnalysisResult,
    budget_name: str | None = None,
    health: BudgetHealth | None = None,
    recommendations: list[Recommendation] | None = None,
) -> str:
    """Category table, trend projections and status tally.

    Health score and recommendations are appended when given.
    """
    trend = result.trend_analysis
    perf = result.performance_metrics

    title = "Budget Analysis"
    if budget_name:
        title += f": {budget_name}"
    lines = [f"## {title}\n"]

    if result.category_analysis:
        lines.append("| | Category | Budgeted | Spent | Remaining | Used |")
        lines.append("|---|---|---|---|---|---|")
        for c in result.category_analysis:
            name = f"{c.category_name} _(unbudgeted)_" if c.unbudgeted else c.category_name
            lines.append(
                f"| [{_STATUS_MARKERS[c.status]}] | {name} "
                f"| ${c.budgeted:,.2f} | ${c.spent:,.2f} "
                f"| ${c.remaining:,.2f} | {c.percentage:.0f}% |"
            )
    else:
        lines.append("_No categories allocated and no spending in this period._")

    lines.append("\n### Trend")
    lines.append(f"- **Spent:** ${trend.total_spent:,.2f} of ${trend.total_budget:,.2f}")
    lines.append(
        f"- **Daily average:** ${trend.average_daily_spending:,.2f}/day "
        f"over {trend.days_elapsed} day(s)"
    )
    lines.append(
        f"- **Projected:** ${trend.projected_spending:,.2f} "
        f"({trend.days_remaining} of {trend.total_days} days left)"
    )
    lines.append(f"- **Savings rate:** {trend.savings_rate * 100:.1f}%")
    if trend.total_income:
        lines.append(f"- **Income this period:** ${trend.total_income:,.2f}")

    lines.append("\n---")
    lines.append(
        f"**{perf.on_track_categories}** on track | "
        f"**{perf.warning_categories}** warning | "
        f"**{perf.over_budget_categories}** over "
        f"(of {perf.total_categories}) | "
        f"**{perf.budget_utilization:.1f}%** of budget used"
    )

    if health:
        lines.append(f"\n### Health: {health.score}/100 ({health.level.value})")
        for f in health.factors:
            lines.append(f"- {f.factor} ({f.impact:+.1f}): {f.description}")

    if recommendations:
        lines.append("\n### Recommendations")
        for r in recommendations:
            marker = "!" if r.kind == "warning" else "-"
            lines.append(f"- [{marker}] **{r.title}**: {r.description}. {r.action}.")
    return "\n".join(lines)


def analysis_to_payload(
    result: AnalysisResult,
    health: BudgetHealth | None = None,
    recommendations: list[Recommendation] | None = None,
) -> dict[str, Any]:
    """Render an analysis as the camelCase JSON shape the dashboard UI reads."""
    trend = result.trend_analysis
    perf = result.performance_metrics
    payload: dict[str, Any] = {
        "categoryAnalysis": [
            {
                "categoryName": c.category_name,
                "budgeted": c.budgeted,
                "spent": c.spent,
                "remaining": c.remaining,
                "percentage": c.percentage,
                "status": c.status.value,
                "unbudgeted": c.unbudgeted,
            }
            for c in result.category_analysis
        ],
        "trendAnalysis": {
            "totalBudget": trend.total_budget,
            "totalSpent": trend.total_spent,
            "totalIncome": trend.total_income,
            "averageDailySpending": trend.average_daily_spending,
            "projectedSpending": trend.projected_spending,
            "savingsRate": trend.savings_rate,
            "daysElapsed": trend.days_elapsed,
            "totalDays": trend.total_days,
            "daysRemaining": trend.days_remaining,
        },
        "performanceMetrics": {
            "totalCategories": perf.total_categories,
            "onTrackCategories": perf.on_track_categories,
            "warningCategories": perf.warning_categories,
            "overBudgetCategories": perf.over_budget_categories,
            "budgetUtilization": perf.budget_utilization,
        },
    }
    if health:
        payload["healthScore"] = {
            "score": health.score,
            "healthLevel": health.level.value,
            "factors": [
                {"factor": f.factor, "impact": f.impact, "description": f.description}
                for f in health.factors
            ],
        }
    if recommendations is not None:
        payload["recommendations"] = [
            {
                "type": r.kind,
                "category": r.topic,
                "title": r.title,
                "description": r.description,
                "action": r.action,
            }
            for r in recommendations
        ]
    return payload


# --- Reports ---


def format_spending_report(report: SpendingReport) -> str:
    """Summary, category breakdown, time series and top merchants."""
    if not report.transaction_count:
        return f"No spending found between {report.start_date} and {report.end_date}."

    lines = [
        f"## Spending Report ({report.start_date} to {report.end_date})\n",
        f"- **Total:** ${report.total_spending:,.2f} "
        f"across {report.transaction_count} transactions",
        f"- **Daily average:** ${report.average_daily_spending:,.2f}",
    ]
    if report.trends:
        t = report.trends
        lines.append(
            f"- **vs previous period:** ${t.previous_period:,.2f} "
            f"({t.percentage_change:+.1f}%, {t.trend})"
        )

    lines.append("\n### By Category")
    lines.append("| Category | Total | Count | Avg | Min | Max |")
    lines.append("|---|---|---|---|---|---|")
    for c in report.category_analysis:
        lines.append(
            f"| {c.category_name} | ${c.total_amount:,.2f} | {c.transaction_count} "
            f"| ${c.average_amount:,.2f} | ${c.min_amount:,.2f} | ${c.max_amount:,.2f} |"
        )

    lines.append(f"\n### By {report.group_by.capitalize()}")
    for b in report.time_based_analysis:
        lines.append(f"- {b.period}: ${b.total_amount:,.2f} ({b.transaction_count} txns)")

    if report.top_merchants:
        lines.append("\n### Top Merchants")
        for i, m in enumerate(report.top_merchants, 1):
            lines.append(f"{i}. **{m.name}**: ${m.total_amount:,.2f} ({m.transaction_count} txns)")

    return "\n".join(lines)


def format_income_report(report: IncomeReport) -> str:
    if not report.sources:
        return f"No income found between {report.start_date} and {report.end_date}."

    lines = [
        f"## Income Report ({report.start_date} to {report.end_date})\n",
        f"- **Total:** ${report.total_income:,.2f}",
        f"- **Diversification:** {report.diversification_score:.0f}/100",
    ]
    if report.growth:
        g = report.growth
        lines.append(
            f"- **vs previous period:** ${g.previous_period:,.2f} "
            f"({g.percentage_change:+.1f}%, {g.trend})"
        )

    lines.append("\n### Sources")
    for s in report.sources:
        lines.append(
            f"- **{s.name}**: ${s.total_amount:,.2f} "
            f"({s.transaction_count} payments, avg ${s.average_amount:,.2f})"
        )

    if report.recurring:
        lines.append("\n### Recurring")
        for r in report.recurring:
            lines.append(
                f"- {r.source}: ~${r.estimated_amount:,.2f} x{r.frequency} "
                f"(reliability {r.reliability * 100:.0f}%)"
            )
    return "\n".join(lines)


def format_cash_flow_report(report: CashFlowReport) -> str:
    if not report.months:
        return f"No income or expenses found between {report.start_date} and {report.end_date}."

    lines = [
        f"## Cash Flow ({report.start_date} to {report.end_date})\n",
        "| Month | Income | Expenses | Net | Saved | Balance |",
        "|---|---|---|---|---|---|",
    ]
    for m in report.months:
        lines.append(
            f"| {m.month} | ${m.income:,.2f} | ${m.expenses:,.2f} "
            f"| ${m.net_flow:,.2f} | {m.savings_rate:.1f}% | ${m.running_balance:,.2f} |"
        )

    lines.append("\n---")
    lines.append(
        f"**Totals:** ${report.total_income:,.2f} in | "
        f"${report.total_expenses:,.2f} out | "
        f"${report.net_cash_flow:,.2f} net"
    )
    sr = report.savings_rate
    lines.append(f"**Average savings rate:** {sr.average:.1f}%")
    if sr.best_month and sr.worst_month and sr.best_month != sr.worst_month:
        lines.append(
            f"Best month {sr.best_month} ({sr.best_rate:.1f}%), "
            f"worst {sr.worst_month} ({sr.worst_rate:.1f}%)"
        )
    trend = report.patterns.trend.replace("-", " ")
    lines.append(f"**Trend:** {trend}")
    if "seasonal-variation" in report.patterns.patterns:
        lines.append("_Net flow varies noticeably by month of year._")
    return "\n".join(lines)
