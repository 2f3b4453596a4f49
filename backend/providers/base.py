"""Bank provider interface consumed by the ledger sync and account screens."""

from __future__ import annotations

from typing import Protocol

from shared.models import Account, Balance, BankTransaction, ConnectionStatus, Institution


class BankProvider(Protocol):
    def healthcheck(self) -> bool:
        """Return whether the provider API answers at all."""

    def list_accounts(self, access_token: str) -> list[Account]:
        """Return the connection's accounts with their current balance."""

    def list_transactions(
        self,
        account_id: str,
        access_token: str,
        *,
        latest: bool = False,
        count: int | None = None,
    ) -> list[BankTransaction]:
        """Return settled transactions for one account, most recent first."""

    def get_account_balance(self, account_id: str, access_token: str) -> Balance:
        """Return the current balance for one account."""

    def list_institutions(self) -> list[Institution]:
        """Return the institutions the provider can connect to."""

    def get_connection_status(self, access_token: str) -> ConnectionStatus:
        """Return whether the bank connection still works."""

    def disconnect(self, access_token: str) -> None:
        """Revoke provider access for the connection."""
