"""Mapping of raw Teller payloads to shared models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from shared.models import Account, Balance, BankTransaction, Institution


def _required(row: dict[str, Any], field: str) -> Any:
    value = row.get(field)
    if value is None or value == "":
        raise ValueError(f"Missing required field '{field}' in provider payload")
    return value


def account_id(row: dict[str, Any]) -> str:
    return str(_required(row, "id"))


def _optional_str(value: object) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def parse_decimal(value: object) -> Decimal:
    """Coerce a provider amount (string or number) to Decimal."""

    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid provider amount: {value!r}") from exc


def _parse_date(value: object) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def transform_institution(row: dict[str, Any]) -> Institution:
    capabilities = row.get("capabilities") or []
    return Institution(
        id=str(_required(row, "id")),
        name=str(row.get("name") or row.get("id")),
        capabilities=[str(item) for item in capabilities if item],
    )


def transform_account(row: dict[str, Any], *, balance: Balance, default_currency: str) -> Account:
    institution = row.get("institution")
    return Account(
        id=str(_required(row, "id")),
        name=str(row.get("name") or ""),
        currency=str(row.get("currency") or default_currency).upper(),
        institution=transform_institution(institution) if isinstance(institution, dict) else None,
        type=_optional_str(row.get("type")),
        subtype=_optional_str(row.get("subtype")),
        last_four=_optional_str(row.get("last_four")),
        enrollment_id=_optional_str(row.get("enrollment_id")),
        status=_optional_str(row.get("status")),
        balance=balance,
    )


def transform_transaction(row: dict[str, Any], *, default_currency: str) -> BankTransaction:
    details = row.get("details") if isinstance(row.get("details"), dict) else {}
    counterparty = details.get("counterparty") if isinstance(details.get("counterparty"), dict) else {}
    running_balance = row.get("running_balance")

    return BankTransaction(
        id=str(_required(row, "id")),
        account_id=str(_required(row, "account_id")),
        amount=parse_decimal(_required(row, "amount")),
        currency=str(row.get("currency") or default_currency).upper(),
        date=_parse_date(_required(row, "date")),
        name=str(row.get("description") or counterparty.get("name") or ""),
        status=str(row.get("status") or ""),
        running_balance=parse_decimal(running_balance) if running_balance is not None else None,
        category=_optional_str(details.get("category")),
        method=_optional_str(row.get("type")),
    )
