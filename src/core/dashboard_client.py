"""Finance dashboard API client wrapper.

Async HTTP client for the dashboard backend REST API (``/api``).
Handles bearer authentication, the ``{success, data, meta}`` response
envelope, pagination and error translation.
"""

import logging
from datetime import date
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from src.models.schemas import BudgetDefinition, TransactionRecord, TransactionType

DEFAULT_BASE_URL = "http://localhost:5000/api"
DEFAULT_TIMEOUT = 30.0
MAX_PAGE_SIZE = 500  # server rejects larger limits

logger = logging.getLogger(__name__)


class DashboardAPIError(Exception):
    """Base exception for dashboard API errors."""

    def __init__(self, status_code: int, code: str, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"Dashboard API Error [{status_code}] {code}: {message}")


class DashboardClient:
    """Async client for the finance dashboard API."""

    def __init__(self, api_token: str, base_url: str = DEFAULT_BASE_URL):
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"Authorization": f"Bearer {self.api_token}"},
                timeout=DEFAULT_TIMEOUT,
            )
        return self._client

    async def close(self):
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """Make an authenticated request and return the full response envelope."""
        try:
            response = await self.client.request(method=method, url=path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            try:
                body = e.response.json() if e.response.content else {}
            except ValueError:
                body = {}
            logger.warning("%s %s failed with %d", method, path, e.response.status_code)
            raise DashboardAPIError(
                status_code=e.response.status_code,
                code=body.get("code") or str(e.response.status_code),
                message=body.get("message") or str(e),
            ) from e
        except httpx.TimeoutException as e:
            logger.warning("%s %s timed out", method, path)
            raise DashboardAPIError(
                status_code=408,
                code="TIMEOUT",
                message="Request to the dashboard API timed out. Please try again.",
            ) from e

        try:
            envelope = response.json()
        except ValueError as e:
            raise DashboardAPIError(
                status_code=response.status_code,
                code="INVALID_RESPONSE",
                message=f"Expected JSON from {path}",
            ) from e

        if not isinstance(envelope, dict) or envelope.get("success") is False:
            message = envelope.get("message") if isinstance(envelope, dict) else None
            raise DashboardAPIError(
                status_code=response.status_code,
                code="INVALID_RESPONSE",
                message=message or f"Unexpected response body from {path}",
            )
        return envelope

    @staticmethod
    def _parse(model, payload: Any, path: str):
        try:
            return model.model_validate(payload)
        except ValidationError as e:
            raise DashboardAPIError(
                status_code=200,
                code="INVALID_RESPONSE",
                message=f"{path} returned {e.error_count()} invalid field(s)",
            ) from e

    # --- Budgets ---

    async def get_budgets(self) -> list[BudgetDefinition]:
        """Get all budgets for the authenticated user."""
        envelope = await self._request("GET", "/budgets")
        data = envelope.get("data") or []
        if isinstance(data, dict):
            data = data.get("budgets", [])
        return [self._parse(BudgetDefinition, b, "/budgets") for b in data]

    async def get_budget(self, budget_id: str) -> BudgetDefinition:
        """Get a specific budget with its category allocations."""
        path = f"/budgets/{budget_id}"
        envelope = await self._request("GET", path)
        data = envelope.get("data") or {}
        if "budget" in data:
            data = data["budget"]
        return self._parse(BudgetDefinition, data, path)

    # --- Transactions ---

    async def get_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        *,
        type_: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> list[TransactionRecord]:
        """Get all transactions matching the filter, following pagination."""
        params: dict[str, Any] = {"limit": MAX_PAGE_SIZE}
        if start_date:
            params["startDate"] = start_date.isoformat()
        if end_date:
            # inclusive of the whole last day; a bare date means midnight UTC
            params["endDate"] = f"{end_date.isoformat()}T23:59:59.999Z"
        if type_:
            params["type"] = type_.value
        if category:
            params["category"] = category

        transactions: list[TransactionRecord] = []
        page = 1
        while True:
            envelope = await self._request(
                "GET", "/transactions", params={**params, "page": page}
            )
            transactions.extend(
                self._parse(TransactionRecord, t, "/transactions")
                for t in envelope.get("data") or []
            )
            pagination = (envelope.get("meta") or {}).get("pagination") or {}
            if not pagination.get("hasNext"):
                break
            page += 1

        logger.debug("Fetched %d transactions over %d page(s)", len(transactions), page)
        return transactions
