"""Entity resolution helpers for dashboard resources.

Pure functions that resolve user-friendly names (partial, case-insensitive)
to domain objects. No I/O; they operate on already-fetched data.
"""

from __future__ import annotations

from src.models.schemas import BudgetDefinition


class ResolverError(Exception):
    """Raised when an entity cannot be resolved by name."""

    def __init__(
        self,
        entity_type: str,
        query: str,
        available: list[str] | None = None,
    ):
        self.entity_type = entity_type
        self.query = query
        self.available = available or []
        detail = f"No {entity_type} found matching '{query}'."
        if self.available:
            detail += f" Available: {', '.join(self.available)}"
        super().__init__(detail)


def resolve_budget(
    budgets: list[BudgetDefinition],
    query: str,
) -> BudgetDefinition:
    """Find a budget by exact ID, then by name (partial, case-insensitive).

    An exact name match wins over a partial one.

    Raises :class:`ResolverError` if nothing matches.
    """
    for b in budgets:
        if b.id and b.id == query:
            return b

    q = query.strip().lower()
    if q:
        named = [b for b in budgets if b.name]
        for b in named:
            if b.name.lower() == q:
                return b
        for b in named:
            if q in b.name.lower():
                return b

    raise ResolverError(
        "budget",
        query,
        available=[b.name or b.id or "?" for b in budgets[:20]],
    )
