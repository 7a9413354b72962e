"""Pydantic models for finance dashboard data types."""

from datetime import date, datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


UNCATEGORIZED = "Uncategorized"


# --- Helpers ---

def coerce_date(value: Any) -> Any:
    """Truncate ISO datetime strings and datetimes to a calendar date.

    The dashboard API sends Mongo timestamps such as
    ``2025-01-15T10:30:00.000Z``; analysis only needs day precision.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and len(value) > 10:
        return value[:10]
    return value


def category_label(value: Any) -> Any:
    """Flatten a populated category document to its name."""
    if isinstance(value, dict):
        return value.get("name") or value.get("_id") or value.get("id")
    return value


# --- Enums ---

class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransactionStatus(str, Enum):
    COMPLETED = "completed"
    PENDING = "pending"
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"


class BudgetPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class GroupBy(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


# --- Domain Models ---

class TransactionRecord(BaseModel):
    model_config = ConfigDict(
        extra="ignore", alias_generator=to_camel, populate_by_name=True
    )

    id: Optional[str] = Field(None, alias="_id")
    amount: float  # magnitude; direction comes from type
    type: TransactionType
    category: str = UNCATEGORIZED
    date: date
    status: TransactionStatus = TransactionStatus.COMPLETED
    description: Optional[str] = None
    payee: Optional[str] = None

    @field_validator("type", "status", mode="before")
    @classmethod
    def _lowercase(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator("category", mode="before")
    @classmethod
    def _flatten_category(cls, v):
        v = category_label(v)
        return v or UNCATEGORIZED

    @field_validator("date", mode="before")
    @classmethod
    def _truncate_date(cls, v):
        return coerce_date(v)


class CategoryAllocation(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    category: str
    allocated: float = Field(..., alias="allocatedAmount")
    spent: float = Field(0.0, alias="spentAmount")

    @field_validator("category", mode="before")
    @classmethod
    def _flatten_category(cls, v):
        return category_label(v)

    @property
    def remaining(self) -> float:
        return self.allocated - self.spent


class BudgetDefinition(BaseModel):
    model_config = ConfigDict(
        extra="ignore", alias_generator=to_camel, populate_by_name=True
    )

    id: Optional[str] = Field(None, alias="_id")
    name: Optional[str] = None
    total_amount: float
    start_date: date
    end_date: date
    allocations: list[CategoryAllocation] = Field(
        default_factory=list, alias="categoryAllocations"
    )
    period: Optional[BudgetPeriod] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _truncate_date(cls, v):
        return coerce_date(v)

    @field_validator("period", mode="before")
    @classmethod
    def _lowercase(cls, v):
        return v.lower() if isinstance(v, str) else v


# --- MCP Tool Input Models ---


class AnalyzeBudgetInput(BaseModel):
    """Input for analyzing a budget against its transactions."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    budget: str = Field(..., description="Budget ID or name (partial match)")
    include_cancelled: bool = Field(
        default=False, description="Count cancelled transactions toward spending"
    )
    include_pending: bool = Field(
        default=False, description="Count pending and scheduled transactions toward spending"
    )
    as_json: bool = Field(
        default=False, description="Return the dashboard JSON payload instead of Markdown"
    )


class SpendingReportInput(BaseModel):
    """Input for a spending report over a date range."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    start_date: Optional[str] = Field(
        None, description="Start date (YYYY-MM-DD). Defaults to the first of this month."
    )
    end_date: Optional[str] = Field(
        None, description="End date (YYYY-MM-DD). Defaults to today."
    )
    categories: Optional[list[str]] = Field(
        None, description="Only include these categories"
    )
    group_by: GroupBy = Field(
        default=GroupBy.MONTH, description="Time bucket: day, week, month or year"
    )
    top_n: int = Field(default=10, ge=1, le=50, description="Number of top merchants")


class IncomeReportInput(BaseModel):
    """Input for an income report over a date range."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    start_date: Optional[str] = Field(
        None, description="Start date (YYYY-MM-DD). Defaults to the first of this month."
    )
    end_date: Optional[str] = Field(
        None, description="End date (YYYY-MM-DD). Defaults to today."
    )


class CashFlowReportInput(BaseModel):
    """Input for a month-by-month cash flow report."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    start_date: Optional[str] = Field(
        None, description="Start date (YYYY-MM-DD). Defaults to six months ago."
    )
    end_date: Optional[str] = Field(
        None, description="End date (YYYY-MM-DD). Defaults to today."
    )
    starting_balance: float = Field(
        default=0.0, description="Balance to start the running total from"
    )
