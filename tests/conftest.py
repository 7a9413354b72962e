"""Shared test fixtures for finance analytics tests."""

from src.models.schemas import (
    BudgetDefinition,
    CategoryAllocation,
    TransactionRecord,
    TransactionStatus,
    TransactionType,
)


def make_transaction(
    amount: float = 45.0,
    type_: str = "expense",
    category: str | None = "Groceries",
    date: str = "2025-01-15",
    status: str = "completed",
    description: str | None = "HEB",
    payee: str | None = None,
) -> TransactionRecord:
    return TransactionRecord(
        id=f"txn-{(description or 'x').lower().replace(' ', '-')}-{date}",
        amount=amount,
        type=TransactionType(type_),
        category=category,
        date=date,
        status=TransactionStatus(status),
        description=description,
        payee=payee,
    )


def make_allocation(
    category: str = "Groceries",
    allocated: float = 500.0,
    spent: float = 0.0,
) -> CategoryAllocation:
    return CategoryAllocation(category=category, allocated=allocated, spent=spent)


def make_budget(
    allocations: list[CategoryAllocation] | None = None,
    total_amount: float = 1000.0,
    start_date: str = "2025-01-01",
    end_date: str = "2025-01-30",
    name: str = "January",
    id_: str | None = "budget-1",
) -> BudgetDefinition:
    return BudgetDefinition(
        id=id_,
        name=name,
        total_amount=total_amount,
        start_date=start_date,
        end_date=end_date,
        allocations=allocations if allocations is not None else [],
    )


def budget_payload(
    budget_id: str = "b1",
    name: str = "January",
    total_amount: float = 1000.0,
    allocations: list[dict] | None = None,
) -> dict:
    """A budget document as the dashboard API returns it."""
    return {
        "_id": budget_id,
        "name": name,
        "totalAmount": total_amount,
        "period": "monthly",
        "startDate": "2025-01-01T00:00:00.000Z",
        "endDate": "2025-01-30T23:59:59.999Z",
        "categoryAllocations": allocations if allocations is not None else [
            {
                "category": {"_id": "c1", "name": "Groceries"},
                "allocatedAmount": 500,
                "spentAmount": 120,
            },
        ],
    }


def transaction_payload(
    amount: float = 45.0,
    type_: str = "expense",
    category_name: str = "Groceries",
    date: str = "2025-01-15T10:30:00.000Z",
    status: str = "completed",
    description: str = "HEB",
) -> dict:
    """A transaction document as the dashboard API returns it."""
    return {
        "_id": f"t-{description.lower()}-{date[:10]}",
        "amount": amount,
        "type": type_,
        "category": {"_id": f"c-{category_name.lower()}", "name": category_name},
        "date": date,
        "status": status,
        "description": description,
        "user": "u1",
    }
