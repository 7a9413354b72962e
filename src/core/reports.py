"""Period reports over transaction history: spending, income and cash flow.

Same contract as the analyzers: already-fetched transactions in, frozen
result dataclasses out. Cancelled transactions never count.
"""

import logging
import statistics
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, timedelta

from src.core.analyzers import filter_transactions, validate_amounts
from src.core.errors import InputValidationError, validate_range
from src.models.results import (
    CashFlowPatterns,
    CashFlowReport,
    CategorySpending,
    IncomeReport,
    IncomeSource,
    MerchantTotal,
    MonthlyCashFlow,
    PeriodComparison,
    RecurringIncome,
    SavingsRateSummary,
    SpendingReport,
    TimeBucket,
)
from src.models.schemas import GroupBy, TransactionRecord, TransactionType

logger = logging.getLogger(__name__)

_BUCKET_FORMATS = {
    GroupBy.DAY: "%Y-%m-%d",
    GroupBy.WEEK: "%Y-W%U",  # Sunday-based week of year
    GroupBy.MONTH: "%Y-%m",
    GroupBy.YEAR: "%Y",
}

# Coefficient of variation below which a source counts as recurring
_RECURRING_CV_LIMIT = 0.1


# --- Shared Helpers ---


def previous_window(start_date: date, end_date: date) -> tuple[date, date]:
    """Return the window of equal length ending the day before *start_date*."""
    length = (end_date - start_date).days + 1
    try:
        prev_end = start_date - timedelta(days=1)
        prev_start = prev_end - timedelta(days=length - 1)
    except OverflowError as e:
        raise InputValidationError(
            "date range",
            f"no earlier period of {length} day(s) before {start_date.isoformat()}",
        ) from e
    return prev_start, prev_end


def compare_periods(
    current: float,
    previous: float,
    labels: tuple[str, str, str] = ("increasing", "decreasing", "stable"),
) -> PeriodComparison:
    """Compare two period totals. *labels* name the up / down / flat trend."""
    current = round(current, 2)
    previous = round(previous, 2)
    change = round(current - previous, 2)
    pct = (change / previous) * 100 if previous > 0 else 0.0
    if change > 0:
        trend = labels[0]
    elif change < 0:
        trend = labels[1]
    else:
        trend = labels[2]
    return PeriodComparison(
        current_period=current,
        previous_period=previous,
        change=change,
        percentage_change=round(pct, 1),
        trend=trend,
    )


def _counterparty(t: TransactionRecord) -> str:
    return (t.description or t.payee or "Unknown").strip() or "Unknown"


def _group_amounts(
    transactions: Iterable[TransactionRecord],
    key,
) -> dict[str, list[float]]:
    grouped: dict[str, list[float]] = defaultdict(list)
    for t in transactions:
        grouped[key(t)].append(abs(t.amount))
    return grouped


# --- Spending Report ---


def generate_spending_report(
    transactions: Iterable[TransactionRecord],
    start_date: date,
    end_date: date,
    *,
    categories: list[str] | None = None,
    group_by: GroupBy | str = GroupBy.MONTH,
    top_n: int = 10,
) -> SpendingReport:
    """Break down expenses by category, time bucket and merchant.

    Also compares the period total with the preceding window of the same
    length.
    """
    validate_range(start_date, end_date)
    try:
        bucket = GroupBy(group_by)
    except ValueError as e:
        raise InputValidationError(
            "group_by", f"'{group_by}' is not one of day, week, month, year"
        ) from e

    transactions = list(transactions)
    expenses = filter_transactions(
        transactions,
        start_date=start_date,
        end_date=end_date,
        types={TransactionType.EXPENSE},
        categories=categories,
    )
    validate_amounts(expenses)

    by_category = _group_amounts(expenses, lambda t: t.category)
    category_analysis = sorted(
        (
            CategorySpending(
                category_name=name,
                total_amount=round(sum(amounts), 2),
                transaction_count=len(amounts),
                average_amount=round(sum(amounts) / len(amounts), 2),
                min_amount=round(min(amounts), 2),
                max_amount=round(max(amounts), 2),
            )
            for name, amounts in by_category.items()
        ),
        key=lambda c: (-c.total_amount, c.category_name),
    )

    fmt = _BUCKET_FORMATS[bucket]
    by_bucket = _group_amounts(expenses, lambda t: t.date.strftime(fmt))
    time_based = tuple(
        TimeBucket(
            period=period,
            total_amount=round(sum(amounts), 2),
            transaction_count=len(amounts),
            average_amount=round(sum(amounts) / len(amounts), 2),
        )
        for period, amounts in sorted(by_bucket.items())
    )

    prev_start, prev_end = previous_window(start_date, end_date)
    previous = filter_transactions(
        transactions,
        start_date=prev_start,
        end_date=prev_end,
        types={TransactionType.EXPENSE},
        categories=categories,
    )
    validate_amounts(previous)
    total = sum(abs(t.amount) for t in expenses)
    trends = compare_periods(total, sum(abs(t.amount) for t in previous))

    by_merchant = _group_amounts(expenses, _counterparty)
    top_merchants = sorted(
        (
            MerchantTotal(
                name=name,
                total_amount=round(sum(amounts), 2),
                transaction_count=len(amounts),
            )
            for name, amounts in by_merchant.items()
        ),
        key=lambda m: (-m.total_amount, m.name),
    )[:top_n]

    days = (end_date - start_date).days + 1
    logger.debug(
        "Spending report %s..%s: %d expenses in %d categories",
        start_date, end_date, len(expenses), len(category_analysis),
    )

    return SpendingReport(
        start_date=start_date.isoformat(),
        end_date=end_date.isoformat(),
        total_spending=round(total, 2),
        average_daily_spending=round(total / days, 2),
        transaction_count=len(expenses),
        categories_count=len(category_analysis),
        category_analysis=tuple(category_analysis),
        time_based_analysis=time_based,
        trends=trends,
        top_merchants=tuple(top_merchants),
        group_by=bucket.value,
    )


# --- Income Report ---


def diversification_score(totals: list[float]) -> float:
    """Score income spread from 0 (one source) to 100 (perfectly spread).

    Based on the Herfindahl-Hirschman index of source shares.
    """
    grand_total = sum(totals)
    if len(totals) <= 1 or grand_total <= 0:
        return 0.0
    hhi = sum((amount / grand_total * 100) ** 2 for amount in totals)
    return round(max(0.0, 100 - hhi / 100), 1)


def find_recurring_income(sources: dict[str, list[float]]) -> list[RecurringIncome]:
    """Flag sources paid at least twice with near-identical amounts."""
    recurring = []
    for name, amounts in sources.items():
        if len(amounts) < 2:
            continue
        mean = statistics.fmean(amounts)
        if mean <= 0:
            continue
        if statistics.pstdev(amounts) / mean >= _RECURRING_CV_LIMIT:
            continue
        mean_abs_dev = statistics.fmean(abs(a - mean) for a in amounts)
        recurring.append(RecurringIncome(
            source=name,
            estimated_amount=round(mean, 2),
            frequency=len(amounts),
            reliability=round(1 - mean_abs_dev / mean, 3),
        ))
    recurring.sort(key=lambda r: (-r.estimated_amount, r.source))
    return recurring


def generate_income_report(
    transactions: Iterable[TransactionRecord],
    start_date: date,
    end_date: date,
) -> IncomeReport:
    """Summarize income sources, concentration, growth and recurring pay."""
    validate_range(start_date, end_date)
    transactions = list(transactions)
    income = filter_transactions(
        transactions,
        start_date=start_date,
        end_date=end_date,
        types={TransactionType.INCOME},
    )
    validate_amounts(income)

    by_source = _group_amounts(income, _counterparty)
    sources = sorted(
        (
            IncomeSource(
                name=name,
                total_amount=round(sum(amounts), 2),
                transaction_count=len(amounts),
                average_amount=round(sum(amounts) / len(amounts), 2),
            )
            for name, amounts in by_source.items()
        ),
        key=lambda s: (-s.total_amount, s.name),
    )

    prev_start, prev_end = previous_window(start_date, end_date)
    previous = filter_transactions(
        transactions,
        start_date=prev_start,
        end_date=prev_end,
        types={TransactionType.INCOME},
    )
    validate_amounts(previous)
    total = sum(abs(t.amount) for t in income)

    return IncomeReport(
        start_date=start_date.isoformat(),
        end_date=end_date.isoformat(),
        total_income=round(total, 2),
        sources=tuple(sources),
        diversification_score=diversification_score(
            [sum(amounts) for amounts in by_source.values()]
        ),
        growth=compare_periods(
            total,
            sum(abs(t.amount) for t in previous),
            labels=("growing", "declining", "stable"),
        ),
        recurring=tuple(find_recurring_income(by_source)),
    )


# --- Cash Flow Report ---


def summarize_savings_rates(months: list[MonthlyCashFlow]) -> SavingsRateSummary:
    if not months:
        return SavingsRateSummary(average=0.0)
    best = max(months, key=lambda m: m.savings_rate)
    worst = min(months, key=lambda m: m.savings_rate)
    return SavingsRateSummary(
        average=round(statistics.fmean(m.savings_rate for m in months), 2),
        best_month=best.month,
        best_rate=best.savings_rate,
        worst_month=worst.month,
        worst_rate=worst.savings_rate,
    )


def identify_cash_flow_patterns(months: list[MonthlyCashFlow]) -> CashFlowPatterns:
    """Compare first-half and second-half net flow and look for seasonality.

    Needs at least three months of data.
    """
    if len(months) < 3:
        return CashFlowPatterns(trend="insufficient-data")

    half = len(months) // 2
    first_avg = statistics.fmean(m.net_flow for m in months[:half])
    second_avg = statistics.fmean(m.net_flow for m in months[half:])
    margin = abs(first_avg) * 0.1
    if second_avg > first_avg + margin:
        trend = "improving"
    elif second_avg < first_avg - margin:
        trend = "declining"
    else:
        trend = "stable"

    by_calendar_month: dict[int, list[float]] = defaultdict(list)
    for m in months:
        by_calendar_month[int(m.month[5:7])].append(m.net_flow)
    seasonal = {
        month: round(statistics.fmean(flows), 2)
        for month, flows in sorted(by_calendar_month.items())
    }

    patterns = []
    if len(seasonal) > 1:
        high = max(seasonal.values())
        low = min(seasonal.values())
        if high > low + abs(low) * 0.5:
            patterns.append("seasonal-variation")

    return CashFlowPatterns(
        trend=trend,
        patterns=tuple(patterns),
        seasonal_variation=seasonal,
    )


def generate_cash_flow_report(
    transactions: Iterable[TransactionRecord],
    start_date: date,
    end_date: date,
    *,
    starting_balance: float = 0.0,
) -> CashFlowReport:
    """Month-by-month income vs expenses with savings rate and running balance.

    Transfers move money between accounts and are left out.
    """
    validate_range(start_date, end_date)
    in_period = filter_transactions(
        transactions,
        start_date=start_date,
        end_date=end_date,
        types={TransactionType.INCOME, TransactionType.EXPENSE},
    )
    validate_amounts(in_period)

    totals: dict[str, dict[str, float]] = defaultdict(lambda: {"income": 0.0, "expenses": 0.0})
    for t in in_period:
        side = "income" if t.type == TransactionType.INCOME else "expenses"
        totals[t.date.strftime("%Y-%m")][side] += abs(t.amount)

    months: list[MonthlyCashFlow] = []
    balance = starting_balance
    for month in sorted(totals):
        income = round(totals[month]["income"], 2)
        expenses = round(totals[month]["expenses"], 2)
        net = round(income - expenses, 2)
        balance += net
        months.append(MonthlyCashFlow(
            month=month,
            income=income,
            expenses=expenses,
            net_flow=net,
            savings_rate=round(net / income * 100, 2) if income > 0 else 0.0,
            running_balance=round(balance, 2),
        ))

    total_income = round(sum(m.income for m in months), 2)
    total_expenses = round(sum(m.expenses for m in months), 2)

    return CashFlowReport(
        start_date=start_date.isoformat(),
        end_date=end_date.isoformat(),
        total_income=total_income,
        total_expenses=total_expenses,
        net_cash_flow=round(total_income - total_expenses, 2),
        months=tuple(months),
        savings_rate=summarize_savings_rates(months),
        patterns=identify_cash_flow_patterns(months),
    )
