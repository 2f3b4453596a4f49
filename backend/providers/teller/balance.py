"""Balance derivation for providers that do not expose a balance on the account."""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from backend.providers.teller.transform import parse_decimal
from shared.models import Balance, BankTransaction

BALANCE_WINDOW_SIZE = 20


def normalize_balance(amount: object, currency: str) -> Balance:
    """Return a Balance from a provider-supplied amount; a missing amount is zero."""

    if amount is None or amount == "":
        return Balance(currency=currency, amount=Decimal("0"))
    return Balance(currency=currency, amount=parse_decimal(amount))


def reconcile_balance(transactions: Iterable[BankTransaction], currency: str) -> Balance:
    """Use the running balance of the most recent transaction that reports one.

    ``transactions`` must be in provider order (most recent first). When none
    of them carries a running balance the balance is zero.
    """

    running_balance = next(
        (
            transaction.running_balance
            for transaction in transactions
            if transaction.running_balance is not None
        ),
        None,
    )
    return normalize_balance(running_balance, currency)
