"""Result dataclasses for analyzer and report outputs.

These are internal types consumed by formatters: lightweight dataclasses
rather than Pydantic models since they don't need validation. They are
frozen: every call produces a fresh snapshot.
"""

from dataclasses import dataclass, field
from enum import Enum


class BudgetStatus(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    OVER = "over"


# --- Budget Analysis ---


@dataclass(frozen=True)
class CategoryAnalysis:
    """Budget vs actual for a single category."""
    category_name: str
    budgeted: float        # dollars allocated for the period
    spent: float           # dollars, recomputed from transactions
    remaining: float       # budgeted - spent (negative = overspent)
    percentage: float      # spent / budgeted * 100
    status: BudgetStatus
    unbudgeted: bool = False  # spend with no matching allocation


@dataclass(frozen=True)
class TrendAnalysis:
    """Partial-period projections for the whole budget."""
    total_budget: float
    total_spent: float
    total_income: float
    average_daily_spending: float
    projected_spending: float
    savings_rate: float    # ratio, e.g. 0.8 means 80% of the budget unspent
    days_elapsed: int
    total_days: int
    days_remaining: int


@dataclass(frozen=True)
class PerformanceMetrics:
    """Status tally across categories."""
    total_categories: int
    on_track_categories: int
    warning_categories: int
    over_budget_categories: int
    budget_utilization: float  # percent of total budget spent


@dataclass(frozen=True)
class AnalysisResult:
    category_analysis: tuple[CategoryAnalysis, ...]
    trend_analysis: TrendAnalysis
    performance_metrics: PerformanceMetrics


# --- Budget Health ---


class HealthLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"


@dataclass(frozen=True)
class HealthFactor:
    """One penalty applied to the health score."""
    factor: str
    impact: float          # points deducted, negative
    description: str


@dataclass(frozen=True)
class BudgetHealth:
    score: int             # 0-100
    level: HealthLevel
    factors: tuple[HealthFactor, ...] = ()


@dataclass(frozen=True)
class Recommendation:
    kind: str              # "warning" or "suggestion"
    topic: str             # e.g. "overspending", "high_burn_rate"
    title: str
    description: str
    action: str


# --- Spending Report ---


@dataclass(frozen=True)
class CategorySpending:
    category_name: str
    total_amount: float
    transaction_count: int
    average_amount: float
    min_amount: float
    max_amount: float


@dataclass(frozen=True)
class TimeBucket:
    period: str            # "2025-01", "2025-W03", "2025-01-15" or "2025"
    total_amount: float
    transaction_count: int
    average_amount: float


@dataclass(frozen=True)
class PeriodComparison:
    """Current period total against the preceding window of equal length."""
    current_period: float
    previous_period: float
    change: float
    percentage_change: float
    trend: str             # increasing / decreasing / stable, or growing / declining / stable


@dataclass(frozen=True)
class MerchantTotal:
    name: str
    total_amount: float
    transaction_count: int


@dataclass(frozen=True)
class SpendingReport:
    start_date: str
    end_date: str
    total_spending: float
    average_daily_spending: float
    transaction_count: int
    categories_count: int
    category_analysis: tuple[CategorySpending, ...] = ()
    time_based_analysis: tuple[TimeBucket, ...] = ()
    trends: PeriodComparison | None = None
    top_merchants: tuple[MerchantTotal, ...] = ()
    group_by: str = "month"


# --- Income Report ---


@dataclass(frozen=True)
class IncomeSource:
    name: str
    total_amount: float
    transaction_count: int
    average_amount: float


@dataclass(frozen=True)
class RecurringIncome:
    source: str
    estimated_amount: float  # average per occurrence
    frequency: int           # number of occurrences in the period
    reliability: float       # 0-1, 1 = identical amounts


@dataclass(frozen=True)
class IncomeReport:
    start_date: str
    end_date: str
    total_income: float
    sources: tuple[IncomeSource, ...] = ()
    diversification_score: float = 0.0  # 0-100, higher = less concentrated
    growth: PeriodComparison | None = None
    recurring: tuple[RecurringIncome, ...] = ()


# --- Cash Flow Report ---


@dataclass(frozen=True)
class MonthlyCashFlow:
    month: str             # "YYYY-MM"
    income: float
    expenses: float
    net_flow: float
    savings_rate: float    # percent of income kept
    running_balance: float = 0.0


@dataclass(frozen=True)
class SavingsRateSummary:
    average: float
    best_month: str | None = None
    best_rate: float | None = None
    worst_month: str | None = None
    worst_rate: float | None = None


@dataclass(frozen=True)
class CashFlowPatterns:
    trend: str             # improving / declining / stable / insufficient-data
    patterns: tuple[str, ...] = ()
    seasonal_variation: dict[int, float] = field(default_factory=dict)


@dataclass(frozen=True)
class CashFlowReport:
    start_date: str
    end_date: str
    total_income: float
    total_expenses: float
    net_cash_flow: float
    months: tuple[MonthlyCashFlow, ...] = ()
    savings_rate: SavingsRateSummary = field(
        default_factory=lambda: SavingsRateSummary(average=0.0)
    )
    patterns: CashFlowPatterns = field(
        default_factory=lambda: CashFlowPatterns(trend="insufficient-data")
    )
