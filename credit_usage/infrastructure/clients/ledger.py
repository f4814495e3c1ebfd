"""Debt Manager API client for reading ledger transactions, credit accounts and limits"""

import logging
from decimal import Decimal
from typing import Any, Dict, List

import httpx

from credit_usage.config import settings
from credit_usage.domain.exceptions import LedgerAPIError
from credit_usage.domain.models import (
    DEFAULT_ALERT_THRESHOLD,
    CreditAccount,
    LimitDefinition,
    LimitType,
    Transaction,
)
from credit_usage.infrastructure.observability.metrics import (
    ledger_fetch_failures_counter,
    ledger_fetch_latency_histogram,
)
from credit_usage.utils.amounts import to_decimal
from credit_usage.utils.date_utils import parse_instant

logger = logging.getLogger(__name__)


def _as_id(value: Any) -> str | None:
    # 0 is a valid id, only a missing value is not
    if value is None or value == "":
        return None
    return str(value)


def parse_transaction(row: Dict[str, Any]) -> Transaction:
    """
    Map an API transaction row to a Transaction.

    Unusable amounts and dates become None rather than failing, so one bad
    row never aborts a whole feed; the engine skips them.
    """
    return Transaction(
        id=_as_id(row.get("id")) or "",
        account_id=_as_id(row.get("credit_account_id")),
        amount=to_decimal(row.get("amount")),
        kind=row.get("transaction_type") or "",
        occurred_at=parse_instant(row.get("transaction_date")),
        category=row.get("category") or row.get("type") or None,
        recorded_at=parse_instant(row.get("created_at")),
        description=row.get("description"),
    )


def parse_credit_account(row: Dict[str, Any]) -> CreditAccount:
    """Map an API credit account row; used_credit is the stored running figure"""
    stored_used = row.get("used_credit", row.get("amount"))
    return CreditAccount(
        id=_as_id(row.get("id")) or "",
        name=row.get("account_name") or row.get("creditor_name") or "",
        credit_limit=to_decimal(row.get("credit_limit")) or Decimal("0"),
        stored_used=to_decimal(stored_used),
        category=row.get("type") or row.get("category") or None,
    )


def parse_limit(row: Dict[str, Any]) -> LimitDefinition:
    """
    Map an API limit row to a LimitDefinition.

    Fields are passed through as-is where resolve_window validates them, so a
    structurally broken limit surfaces as InvalidLimitError at evaluation time.
    """
    return LimitDefinition(
        id=_as_id(row.get("id")) or "",
        name=row.get("name") or "",
        limit_amount=to_decimal(row.get("limit_amount")),
        limit_type=row.get("limit_type") or LimitType.MONTHLY,
        start_date=row.get("start_date"),
        end_date=row.get("end_date") or None,
        alert_threshold=to_decimal(row.get("alert_threshold")) or DEFAULT_ALERT_THRESHOLD,
        category=row.get("category") or None,
    )


def _extract_rows(data: Any, key: str) -> List[Dict[str, Any]]:
    """Endpoints answer either a bare list or an object wrapping the list under `key`"""
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        raise LedgerAPIError(f"Expected a list of {key} from Debt Manager API")

    rows = [row for row in data if isinstance(row, dict)]
    if len(rows) != len(data):
        logger.warning(f"Dropped {len(data) - len(rows)} non-object {key} rows from API response")
    return rows


class LedgerClient:
    """Client for the Debt Manager credit endpoints (the engine's transaction and limit source)"""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.ledger_api_base).rstrip("/")
        self.token = token if token is not None else settings.ledger_api_token
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _get(self, path: str, resource: str, params: Dict[str, Any] | None = None) -> Any:
        """
        GET a JSON resource.

        Raises:
            LedgerAPIError: On timeout, network failure, HTTP errors, or invalid JSON
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                with ledger_fetch_latency_histogram.labels(resource=resource).time():
                    response = await client.get(
                        f"{self.base_url}{path}",
                        params=params,
                        headers=self._headers(),
                    )
                    response.raise_for_status()
                    return response.json()

            except httpx.TimeoutException as e:
                ledger_fetch_failures_counter.labels(resource=resource).inc()
                raise LedgerAPIError(f"Debt Manager API timeout after {self.timeout}s") from e
            except httpx.HTTPStatusError as e:
                ledger_fetch_failures_counter.labels(resource=resource).inc()
                raise LedgerAPIError(f"Debt Manager API error: {e.response.status_code}") from e
            except httpx.RequestError as e:
                ledger_fetch_failures_counter.labels(resource=resource).inc()
                raise LedgerAPIError(f"Debt Manager API unreachable: {e}") from e
            except ValueError as e:
                ledger_fetch_failures_counter.labels(resource=resource).inc()
                raise LedgerAPIError(f"Invalid JSON from Debt Manager API: {e}") from e

    async def get_transactions(self, limit: int | None = None) -> List[Transaction]:
        """Fetch the most recent credit transactions (the API clamps limit to 1..500)"""
        data = await self._get(
            "/credits/transactions/recent",
            resource="transactions",
            params={"limit": limit or settings.transactions_fetch_limit},
        )
        return [parse_transaction(row) for row in _extract_rows(data, "transactions")]

    async def get_credit_accounts(self) -> List[CreditAccount]:
        """Fetch credit accounts with their stored used amounts"""
        data = await self._get("/credits/accounts", resource="accounts")
        return [parse_credit_account(row) for row in _extract_rows(data, "accounts")]

    async def get_limits(self) -> List[LimitDefinition]:
        """Fetch credit limit definitions"""
        data = await self._get("/credits/limits", resource="limits")
        return [parse_limit(row) for row in _extract_rows(data, "limits")]
