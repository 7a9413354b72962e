"""Pure analysis functions for budget data.

All functions take already-fetched domain objects and return result
dataclasses. No I/O, which keeps business logic testable without mocking.
"""

import logging
import math
from collections.abc import Iterable
from datetime import date

from src.core.errors import InputValidationError, validate_range
from src.models.results import (
    AnalysisResult,
    BudgetHealth,
    BudgetStatus,
    CategoryAnalysis,
    HealthFactor,
    HealthLevel,
    PerformanceMetrics,
    Recommendation,
    TrendAnalysis,
)
from src.models.schemas import (
    BudgetDefinition,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
)

logger = logging.getLogger(__name__)

# Status thresholds, in percent of the allocation consumed
WARNING_THRESHOLD = 80.0
OVER_THRESHOLD = 100.0

# Reported for spend against a zero allocation, where the ratio is undefined
UNBUDGETED_PERCENTAGE = 999.99

# Health score level floors, highest first
HEALTH_LEVELS = (
    (90, HealthLevel.EXCELLENT),
    (75, HealthLevel.GOOD),
    (60, HealthLevel.FAIR),
    (40, HealthLevel.POOR),
)


# --- Filtering ---


def filter_transactions(
    transactions: Iterable[TransactionRecord],
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    types: set[TransactionType] | None = None,
    categories: Iterable[str] | None = None,
    include_cancelled: bool = False,
    completed_only: bool = False,
) -> list[TransactionRecord]:
    """Filter transactions by multiple criteria (AND logic).

    Date bounds are inclusive. Cancelled transactions are dropped unless
    *include_cancelled* is set; *completed_only* also drops pending and
    scheduled ones.
    """
    wanted = set(categories) if categories else None
    result = []
    for t in transactions:
        if t.status == TransactionStatus.CANCELLED and not include_cancelled:
            continue
        if completed_only and t.status not in (
            TransactionStatus.COMPLETED, TransactionStatus.CANCELLED
        ):
            continue
        if start_date is not None and t.date < start_date:
            continue
        if end_date is not None and t.date > end_date:
            continue
        if types is not None and t.type not in types:
            continue
        if wanted is not None and t.category not in wanted:
            continue
        result.append(t)
    return result


# --- Status Classification ---


def classify_budget_status(percentage: float) -> BudgetStatus:
    """Map percent-of-allocation consumed to good / warning / over."""
    if percentage > OVER_THRESHOLD:
        return BudgetStatus.OVER
    if percentage > WARNING_THRESHOLD:
        return BudgetStatus.WARNING
    return BudgetStatus.GOOD


def _category_percentage(budgeted: float, spent: float) -> float:
    if budgeted > 0:
        return round(spent / budgeted * 100, 2)
    return UNBUDGETED_PERCENTAGE if spent > 0 else 0.0


def _build_category(
    name: str,
    budgeted: float,
    spent: float,
    unbudgeted: bool = False,
) -> CategoryAnalysis:
    budgeted = round(budgeted, 2)
    spent = round(spent, 2)
    # Classify from the reported (rounded) value so thresholds hold on output
    percentage = _category_percentage(budgeted, spent)
    return CategoryAnalysis(
        category_name=name,
        budgeted=budgeted,
        spent=spent,
        remaining=round(budgeted - spent, 2),
        percentage=percentage,
        status=classify_budget_status(percentage),
        unbudgeted=unbudgeted,
    )


# --- Budget Analysis ---


def _validate_budget(budget: BudgetDefinition) -> None:
    validate_range(budget.start_date, budget.end_date)
    if not math.isfinite(budget.total_amount) or budget.total_amount < 0:
        raise InputValidationError(
            "total amount", f"{budget.total_amount} must be a non-negative number"
        )
    for alloc in budget.allocations:
        if not math.isfinite(alloc.allocated) or alloc.allocated < 0:
            raise InputValidationError(
                "allocation",
                f"'{alloc.category}' has allocated amount {alloc.allocated}; "
                "it must be a non-negative number",
            )


def validate_amounts(transactions: list[TransactionRecord]) -> None:
    for t in transactions:
        if not math.isfinite(t.amount):
            raise InputValidationError(
                "transaction amount", f"{t.amount} on {t.date.isoformat()} is not a number"
            )


def analyze_budget(
    transactions: Iterable[TransactionRecord],
    budget: BudgetDefinition,
    *,
    include_cancelled: bool = False,
    include_pending: bool = False,
    reference_date: date | None = None,
) -> AnalysisResult:
    """Turn a budget and its transactions into category, trend and performance metrics.

    Spend is recomputed from expense transactions inside the budget period;
    the ``spent`` carried on allocations is ignored. Categories with spend
    but no allocation are appended as unbudgeted entries (largest first)
    so no spend is lost. Only completed transactions count unless
    *include_pending* or *include_cancelled* widen the set.

    Raises :class:`InputValidationError` for negative allocations or totals
    and :class:`InvalidRangeError` when the period starts after it ends.
    """
    _validate_budget(budget)
    today = reference_date or date.today()

    in_period = filter_transactions(
        transactions,
        start_date=budget.start_date,
        end_date=budget.end_date,
        include_cancelled=include_cancelled,
        completed_only=not include_pending,
    )
    validate_amounts(in_period)

    # Group spend by category; transfers count toward neither side
    spent_by_category: dict[str, float] = {}
    total_income = 0.0
    for t in in_period:
        amount = abs(t.amount)
        if t.type == TransactionType.EXPENSE:
            spent_by_category[t.category] = spent_by_category.get(t.category, 0.0) + amount
        elif t.type == TransactionType.INCOME:
            total_income += amount

    # Duplicate allocations merge into the first occurrence
    allocated: dict[str, float] = {}
    for alloc in budget.allocations:
        allocated[alloc.category] = allocated.get(alloc.category, 0.0) + alloc.allocated

    categories = [
        _build_category(name, amount, spent_by_category.get(name, 0.0))
        for name, amount in allocated.items()
    ]

    unbudgeted = sorted(
        ((name, spent) for name, spent in spent_by_category.items() if name not in allocated),
        key=lambda item: (-item[1], item[0]),
    )
    if unbudgeted:
        logger.debug(
            "Budget %s has spend in %d unbudgeted categories: %s",
            budget.id or budget.name,
            len(unbudgeted),
            ", ".join(name for name, _ in unbudgeted),
        )
    categories.extend(
        _build_category(name, 0.0, spent, unbudgeted=True) for name, spent in unbudgeted
    )

    trend = _compute_trend(categories, budget, total_income, today)
    performance = _compute_performance(categories, trend.total_budget, trend.total_spent)

    logger.debug(
        "Analyzed %d in-period transactions across %d categories",
        len(in_period),
        len(categories),
    )

    return AnalysisResult(
        category_analysis=tuple(categories),
        trend_analysis=trend,
        performance_metrics=performance,
    )


def _compute_trend(
    categories: list[CategoryAnalysis],
    budget: BudgetDefinition,
    total_income: float,
    today: date,
) -> TrendAnalysis:
    total_spent = round(sum(c.spent for c in categories), 2)
    total_budget = round(budget.total_amount, 2)

    elapsed_until = min(today, budget.end_date)
    days_elapsed = max(1, (elapsed_until - budget.start_date).days)
    total_days = (budget.end_date - budget.start_date).days + 1
    days_remaining = max(0, total_days - days_elapsed)

    average_daily = total_spent / days_elapsed
    projected = average_daily * total_days
    savings_rate = (total_budget - total_spent) / total_budget if total_budget > 0 else 0.0

    return TrendAnalysis(
        total_budget=total_budget,
        total_spent=total_spent,
        total_income=round(total_income, 2),
        average_daily_spending=round(average_daily, 2),
        projected_spending=round(projected, 2),
        savings_rate=round(savings_rate, 4),
        days_elapsed=days_elapsed,
        total_days=total_days,
        days_remaining=days_remaining,
    )


def _compute_performance(
    categories: list[CategoryAnalysis],
    total_budget: float,
    total_spent: float,
) -> PerformanceMetrics:
    counts = {status: 0 for status in BudgetStatus}
    for c in categories:
        counts[c.status] += 1
    utilization = total_spent / total_budget * 100 if total_budget > 0 else 0.0

    return PerformanceMetrics(
        total_categories=len(categories),
        on_track_categories=counts[BudgetStatus.GOOD],
        warning_categories=counts[BudgetStatus.WARNING],
        over_budget_categories=counts[BudgetStatus.OVER],
        budget_utilization=round(utilization, 2),
    )


# --- Budget Health ---


def _time_progress(trend: TrendAnalysis) -> float:
    """Percent of the budget period elapsed, capped at 100."""
    if trend.total_days <= 0:
        return 100.0
    return min(100.0, trend.days_elapsed / trend.total_days * 100)


def _allocated(result: AnalysisResult) -> list[CategoryAnalysis]:
    return [c for c in result.category_analysis if c.budgeted > 0]


def score_budget_health(result: AnalysisResult) -> BudgetHealth:
    """Score a budget from 0 to 100 and bucket it into a health level.

    Starts at 100 and deducts for overspending (or a large unused share
    late in the period), for spend pacing that runs ahead of or behind the
    calendar, and for allocations that are unevenly consumed.
    """
    utilization = result.performance_metrics.budget_utilization
    progress = _time_progress(result.trend_analysis)
    score = 100.0
    factors: list[HealthFactor] = []

    if utilization > 100:
        penalty = min(30.0, (utilization - 100) * 2)
        factors.append(HealthFactor(
            "Over Budget", -penalty, f"{utilization - 100:.1f}% over budget"
        ))
    elif utilization < 50 and progress > 75:
        factors.append(HealthFactor(
            "Under-Utilized", -10.0, "Significant unused budget allocation"
        ))

    burn_variance = utilization - progress
    if abs(burn_variance) > 20:
        penalty = min(20.0, abs(burn_variance) / 2)
        pace = "too fast" if burn_variance > 0 else "too slow"
        factors.append(HealthFactor("Poor Pacing", -penalty, f"Spending {pace}"))

    allocated = _allocated(result)
    if allocated:
        avg_variance = sum(abs(c.percentage - 100) for c in allocated) / len(allocated)
        if avg_variance > 25:
            penalty = min(15.0, avg_variance / 5)
            factors.append(HealthFactor(
                "Category Imbalance", -penalty, "Uneven spending across categories"
            ))

    score += sum(f.impact for f in factors)
    # half-up, so 72.5 scores 73
    final = max(0, math.floor(score + 0.5))
    level = next(
        (lvl for floor, lvl in HEALTH_LEVELS if final >= floor), HealthLevel.CRITICAL
    )
    return BudgetHealth(score=final, level=level, factors=tuple(factors))


def recommend(result: AnalysisResult) -> list[Recommendation]:
    """Suggest actions from an analysis: overspend, pacing and reallocation."""
    utilization = result.performance_metrics.budget_utilization
    progress = _time_progress(result.trend_analysis)
    recommendations: list[Recommendation] = []

    if utilization > 100:
        recommendations.append(Recommendation(
            kind="warning",
            topic="overspending",
            title="Budget Exceeded",
            description=f"Spending has exceeded the budget by {utilization - 100:.1f}%",
            action="Review spending in high-variance categories or increase the budget allocation",
        ))
    elif utilization > 90:
        recommendations.append(Recommendation(
            kind="warning",
            topic="approaching_limit",
            title="Approaching Budget Limit",
            description=f"Spending is at {utilization:.1f}% of the budget",
            action="Monitor spending closely to avoid exceeding the budget",
        ))

    burn_variance = utilization - progress
    if burn_variance > 20:
        recommendations.append(Recommendation(
            kind="warning",
            topic="high_burn_rate",
            title="High Spending Rate",
            description=f"Spending is running {burn_variance:.1f}% ahead of the calendar",
            action="Reduce the spending rate to stay on track",
        ))

    allocated = _allocated(result)
    over = sorted(
        (c for c in allocated if c.percentage > OVER_THRESHOLD),
        key=lambda c: (-c.percentage, c.category_name),
    )
    for c in over[:3]:
        recommendations.append(Recommendation(
            kind="warning",
            topic="category_overspend",
            title="Category Overspending",
            description=(
                f"Category \"{c.category_name}\" has exceeded its budget "
                f"by {c.percentage - 100:.1f}%"
            ),
            action="Review transactions in this category or reallocate from under-used categories",
        ))

    if progress > 75:
        under = [c for c in allocated if c.percentage < 50]
        if under:
            recommendations.append(Recommendation(
                kind="suggestion",
                topic="underutilized_categories",
                title="Underutilized Categories",
                description=f"{len(under)} categories are below 50% utilization",
                action="Consider reallocating funds from these categories to others that need it",
            ))
        if utilization < WARNING_THRESHOLD:
            recommendations.append(Recommendation(
                kind="suggestion",
                topic="budget_optimization",
                title="Budget Optimization",
                description="Spending is well under budget late in the period",
                action="Size the next budget from actual spending patterns",
            ))

    return recommendations
