"""Teller API client.

Every authenticated read goes through `TellerClient._get`, which owns URL
building, Basic auth, JSON decoding and error classification.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from functools import partial
from typing import Any
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

from backend.providers.teller.balance import BALANCE_WINDOW_SIZE, reconcile_balance
from backend.providers.teller.errors import ProviderError, classify_provider_error, is_enrollment_failure
from backend.providers.teller.transform import (
    account_id,
    transform_account,
    transform_institution,
    transform_transaction,
)
from shared.concurrency import run_all
from shared.models import Account, Balance, BankTransaction, ConnectionStatus, Institution


logger = logging.getLogger(__name__)

LATEST_TRANSACTIONS_COUNT = 100
PENDING_STATUS = "pending"

Opener = Callable[[Request], Any]


@dataclass(slots=True)
class TellerSettings:
    base_url: str = "https://api.teller.io"
    default_currency: str = "USD"
    max_workers: int = 8


def _basic_auth(access_token: str) -> str:
    encoded = base64.b64encode(f"{access_token}:".encode("utf-8")).decode("ascii")
    return f"Basic {encoded}"


class TellerClient:
    def __init__(self, settings: TellerSettings, opener: Opener | None = None) -> None:
        self.settings = settings
        self._opener = opener

    def _open(self, request: Request) -> Any:
        opener = self._opener or urlopen
        return opener(request)  # noqa: S310 - URL comes from trusted env config

    def _build_url(self, path: str, params: dict[str, str | int | None] | None = None) -> str:
        url = f"{self.settings.base_url.rstrip('/')}/{path.lstrip('/')}"
        query = [(key, str(value)) for key, value in (params or {}).items() if value]
        if query:
            url = f"{url}?{urlencode(query)}"
        return url

    @staticmethod
    def _headers(access_token: str | None) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if access_token:
            headers["Authorization"] = _basic_auth(access_token)
        return headers

    def _get(
        self,
        path: str,
        access_token: str | None = None,
        params: dict[str, str | int | None] | None = None,
    ) -> Any:
        request = Request(url=self._build_url(path, params), headers=self._headers(access_token), method="GET")

        try:
            with self._open(request) as response:
                body = response.read()
        except HTTPError as exc:
            with exc:
                body = exc.read()
            logger.info("teller_http_status path=%s status=%s", path, exc.code)

        data = json.loads(body.decode("utf-8"))
        error = classify_provider_error(data)
        if error is not None:
            logger.warning("teller_provider_error path=%s code=%s", path, error.code)
            raise ProviderError(error)

        return data

    def healthcheck(self) -> bool:
        request = Request(url=self._build_url("/health"), method="GET")
        try:
            with self._open(request):
                return True
        except HTTPError:
            return True
        except (URLError, OSError):
            logger.warning("teller_healthcheck_unreachable base_url=%s", self.settings.base_url)
            return False

    def list_accounts(self, access_token: str) -> list[Account]:
        rows = self._get("/accounts", access_token) or []

        balances = run_all(
            [partial(self.get_account_balance, account_id(row), access_token) for row in rows],
            max_workers=self.settings.max_workers,
        )

        return [
            transform_account(row, balance=balance, default_currency=self.settings.default_currency)
            for row, balance in zip(rows, balances)
        ]

    def list_transactions(
        self,
        account_id: str,
        access_token: str,
        *,
        latest: bool = False,
        count: int | None = None,
    ) -> list[BankTransaction]:
        rows = self._get(
            f"/accounts/{quote(account_id, safe='')}/transactions",
            access_token,
            {"count": LATEST_TRANSACTIONS_COUNT if latest else count},
        ) or []

        # Pending rows are dropped until the ledger upsert can reconcile them.
        return [
            transform_transaction(row, default_currency=self.settings.default_currency)
            for row in rows
            if row.get("status") != PENDING_STATUS
        ]

    def get_account_balance(self, account_id: str, access_token: str) -> Balance:
        transactions = self.list_transactions(account_id, access_token, count=BALANCE_WINDOW_SIZE)
        return reconcile_balance(transactions, self.settings.default_currency)

    def list_institutions(self) -> list[Institution]:
        rows = self._get("/institutions") or []
        return [transform_institution(row) for row in rows]

    def get_connection_status(self, access_token: str) -> ConnectionStatus:
        try:
            self._get("/accounts", access_token)
        except Exception as exc:  # noqa: BLE001
            error = classify_provider_error(exc)
            if error is None:
                logger.info("teller_connection_status_unclassified error=%s", type(exc).__name__)
                return ConnectionStatus.CONNECTED

            if is_enrollment_failure(error):
                logger.info("teller_connection_status_disconnected code=%s", error.code)
                return ConnectionStatus.DISCONNECTED

            # Institution-side errors do not mean the enrollment is gone.
            logger.info("teller_connection_status_provider_error code=%s", error.code)

        return ConnectionStatus.CONNECTED

    def disconnect(self, access_token: str) -> None:
        request = Request(url=self._build_url("/accounts"), headers=self._headers(access_token), method="DELETE")
        try:
            with self._open(request):
                pass
        except HTTPError as exc:
            exc.close()
            logger.warning("teller_disconnect_http_status status=%s", exc.code)
