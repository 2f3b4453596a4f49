"""Transactions repository adapters over the team ledger.

Every query is scoped by an explicit `team_id`. Page queries return the exact
match count, and the total amount is computed over the whole filtered set with
a second, unpaginated query.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal
from functools import partial
from typing import Any, Protocol

from backend.db.supabase_client import SupabaseClient
from backend.repositories.pagination import get_pagination
from shared.concurrency import run_all
from shared.models import (
    Attachment,
    Fulfillment,
    LedgerTransaction,
    PresenceFilter,
    QueryFilter,
    QueryMeta,
    QueryResult,
    SimilarTransaction,
    SimilarTransactionsResult,
    SortDirection,
    SortSpec,
    SpendingResult,
    TransactionsQuery,
)


logger = logging.getLogger(__name__)

TRANSACTIONS_TABLE = "transactions"
DEFAULT_ORDER_COLUMN = "order"
DEFAULT_TOTAL_AMOUNT_CEILING = 10_000_000
SPENDING_ROW_LIMIT = 100_001

_LIST_SELECT = "*,assigned:assigned_id(*),attachments(id,size,name)"
_DETAIL_SELECT = "*,account:bank_account_id(*),assigned:assigned_id(*),attachments(*)"
_WORD_RE = re.compile(r"\w+")


class TransactionsRepository(Protocol):
    def get_transactions(self, query: TransactionsQuery) -> QueryResult:
        """Return one page of team transactions with totals over every matching row."""

    def get_transaction(self, *, team_id: str, transaction_id: str) -> LedgerTransaction:
        """Return one transaction with its account, assignee and attachments."""

    def get_similar_transactions(self, *, team_id: str, transaction_id: str) -> SimilarTransactionsResult:
        """Return uncategorized team transactions sharing the transaction's name."""

    def get_spending(self, *, team_id: str, date_from: date | None, date_to: date | None) -> SpendingResult:
        """Return transactions in a date window with count, sum and currency."""


def _sum_amounts(amounts: Iterable[object]) -> Decimal:
    return sum((Decimal(str(amount)) for amount in amounts if amount is not None), Decimal("0"))


def _build_meta(data: list[LedgerTransaction], count: int | None, total_amount: Decimal) -> QueryMeta:
    return QueryMeta(
        count=count,
        total_amount=total_amount,
        currency=data[0].currency if data else None,
    )


class InMemoryTransactionsRepository:
    """In-memory ledger used for local dev/tests when Supabase is not configured."""

    def __init__(self, rows: list[LedgerTransaction] | None = None) -> None:
        self._rows: list[LedgerTransaction] = list(rows or [])

    def add(self, row: LedgerTransaction) -> None:
        self._rows.append(row)

    @staticmethod
    def _matches_search(name: str | None, search: str) -> bool:
        needles = _WORD_RE.findall(search.lower())
        words = set(_WORD_RE.findall((name or "").lower()))
        return all(needle in words for needle in needles)

    def _apply_filter(self, team_id: str, filters: QueryFilter | None) -> list[LedgerTransaction]:
        rows = [row for row in self._rows if row.team_id == team_id]
        if filters is None:
            return rows

        if filters.date.is_bounded:
            rows = [row for row in rows if filters.date.from_ <= row.date <= filters.date.to]

        if filters.search:
            rows = [row for row in rows if self._matches_search(row.name, filters.search)]

        if filters.status == Fulfillment.FULFILLED:
            rows = [row for row in rows if row.attachment is not None and row.vat is not None]
        elif filters.status == Fulfillment.UNFULFILLED:
            rows = [row for row in rows if row.attachment is None and row.vat is None]

        if filters.attachments == PresenceFilter.INCLUDE:
            rows = [row for row in rows if row.attachment is not None]
        elif filters.attachments == PresenceFilter.EXCLUDE:
            rows = [row for row in rows if row.attachment is None]

        if filters.category == PresenceFilter.INCLUDE:
            rows = [row for row in rows if row.category is not None]
        elif filters.category == PresenceFilter.EXCLUDE:
            rows = [row for row in rows if row.category is None]

        return rows

    @staticmethod
    def _sorted(rows: list[LedgerTransaction], sort: SortSpec | None) -> list[LedgerTransaction]:
        column = sort.column if sort is not None else DEFAULT_ORDER_COLUMN
        descending = sort is not None and sort.direction == SortDirection.DESC

        def _key(row: LedgerTransaction) -> tuple[bool, Any]:
            value = getattr(row, column, None)
            return (value is None, value if value is not None else 0)

        # Nulls sort last ascending and first descending, as in Postgres.
        return sorted(rows, key=_key, reverse=descending)

    def get_transactions(self, query: TransactionsQuery) -> QueryResult:
        matching = self._sorted(self._apply_filter(query.team_id, query.filter), query.sort)
        row_range = get_pagination(query.page, query.page_size)
        data = matching[row_range.start : row_range.start + row_range.limit]

        if query.filter is not None and query.filter.has_constraints():
            total_amount = _sum_amounts(row.amount for row in matching)
        else:
            total_amount = Decimal("0")

        return QueryResult(data=data, meta=_build_meta(data, len(matching), total_amount))

    def _find(self, team_id: str, transaction_id: str) -> LedgerTransaction:
        for row in self._rows:
            if row.team_id == team_id and row.id == transaction_id:
                return row
        raise ValueError("Transaction not found")

    def get_transaction(self, *, team_id: str, transaction_id: str) -> LedgerTransaction:
        return self._find(team_id, transaction_id)

    def get_similar_transactions(self, *, team_id: str, transaction_id: str) -> SimilarTransactionsResult:
        source = self._find(team_id, transaction_id)
        if not source.name:
            return SimilarTransactionsResult(items=[], count=0)

        items = [
            SimilarTransaction(id=row.id, amount=row.amount)
            for row in self._rows
            if row.team_id == team_id
            and row.id != source.id
            and row.name == source.name
            and row.category is None
        ]
        return SimilarTransactionsResult(items=items, count=len(items))

    def get_spending(self, *, team_id: str, date_from: date | None, date_to: date | None) -> SpendingResult:
        rows = [row for row in self._rows if row.team_id == team_id]
        if date_from and date_to:
            rows = [row for row in rows if date_from <= row.date <= date_to]
        rows = self._sorted(rows, None)[:SPENDING_ROW_LIMIT]
        return SpendingResult(data=rows, meta=_build_meta(rows, len(rows), _sum_amounts(row.amount for row in rows)))


class SupabaseTransactionsRepository:
    """Supabase repository reading the `transactions` table through PostgREST."""

    def __init__(
        self,
        client: SupabaseClient,
        *,
        total_amount_ceiling: int = DEFAULT_TOTAL_AMOUNT_CEILING,
    ) -> None:
        self._client = client
        self._total_amount_ceiling = total_amount_ceiling

    @staticmethod
    def _build_query(team_id: str, filters: QueryFilter | None) -> list[tuple[str, str | int]]:
        query: list[tuple[str, str | int]] = [("team_id", f"eq.{team_id}")]
        if filters is None:
            return query

        if filters.date.is_bounded:
            query.append(("date", f"gte.{filters.date.from_}"))
            query.append(("date", f"lte.{filters.date.to}"))

        if filters.search:
            query.append(("name", f"wfts(english).{filters.search}"))

        if filters.status == Fulfillment.FULFILLED:
            query.append(("attachment", "not.is.null"))
            query.append(("vat", "not.is.null"))
        elif filters.status == Fulfillment.UNFULFILLED:
            query.append(("attachment", "is.null"))
            query.append(("vat", "is.null"))

        if filters.attachments == PresenceFilter.EXCLUDE:
            query.append(("attachment", "is.null"))
        elif filters.attachments == PresenceFilter.INCLUDE:
            query.append(("attachment", "not.is.null"))

        if filters.category == PresenceFilter.EXCLUDE:
            query.append(("category", "is.null"))
        elif filters.category == PresenceFilter.INCLUDE:
            query.append(("category", "not.is.null"))

        return query

    @staticmethod
    def _order(sort: SortSpec | None) -> str:
        if sort is None:
            return f"{DEFAULT_ORDER_COLUMN}.asc"
        return f"{sort.column}.{sort.direction.value}"

    @staticmethod
    def _parse_row(row: dict[str, Any]) -> LedgerTransaction:
        for field in ("id", "date", "amount"):
            if row.get(field) is None:
                raise ValueError(f"Missing required field '{field}' in transaction row")

        raw_date = row["date"]
        if isinstance(raw_date, datetime):
            parsed_date = raw_date.date()
        elif isinstance(raw_date, date):
            parsed_date = raw_date
        else:
            parsed_date = date.fromisoformat(str(raw_date)[:10])

        attachments = [
            Attachment(
                id=str(item["id"]),
                name=item.get("name"),
                size=int(item["size"]) if item.get("size") is not None else None,
            )
            for item in row.get("attachments") or []
            if isinstance(item, dict) and item.get("id") is not None
        ]

        vat = row.get("vat")
        order = row.get("order")
        assigned = row.get("assigned")
        account = row.get("account")

        return LedgerTransaction(
            id=str(row["id"]),
            team_id=str(row["team_id"]) if row.get("team_id") is not None else None,
            bank_account_id=str(row["bank_account_id"]) if row.get("bank_account_id") is not None else None,
            name=row.get("name"),
            amount=Decimal(str(row["amount"])),
            currency=row.get("currency"),
            date=parsed_date,
            status=row.get("status"),
            category=row.get("category"),
            vat=Decimal(str(vat)) if vat is not None else None,
            attachment=str(row["attachment"]) if row.get("attachment") is not None else None,
            assigned_id=str(row["assigned_id"]) if row.get("assigned_id") is not None else None,
            assigned=assigned if isinstance(assigned, dict) else None,
            account=account if isinstance(account, dict) else None,
            attachments=attachments,
            order=int(order) if order is not None else None,
        )

    def get_transactions(self, query: TransactionsQuery) -> QueryResult:
        row_range = get_pagination(query.page, query.page_size)
        predicates = self._build_query(query.team_id, query.filter)

        fetch_page = partial(
            self._client.get_rows,
            table=TRANSACTIONS_TABLE,
            query=[
                *predicates,
                ("select", _LIST_SELECT),
                ("order", self._order(query.sort)),
                ("offset", row_range.start),
                ("limit", row_range.limit),
            ],
            with_count=True,
        )
        tasks = [fetch_page]

        with_total = query.filter is not None and query.filter.has_constraints()
        if with_total:
            tasks.append(
                partial(
                    self._client.get_rows,
                    table=TRANSACTIONS_TABLE,
                    query=[
                        *predicates,
                        ("select", "amount"),
                        ("offset", 0),
                        ("limit", self._total_amount_ceiling),
                    ],
                    with_count=False,
                )
            )

        results = run_all(tasks, max_workers=len(tasks))
        rows, count = results[0]
        data = [self._parse_row(row) for row in rows]

        if with_total:
            total_rows, _ = results[1]
            total_amount = _sum_amounts(row.get("amount") for row in total_rows)
        else:
            # TODO: replace with a Postgres sum function so unfiltered pages get a total.
            logger.debug("transactions_total_amount_skipped team_id=%s", query.team_id)
            total_amount = Decimal("0")

        return QueryResult(data=data, meta=_build_meta(data, count, total_amount))

    def get_transaction(self, *, team_id: str, transaction_id: str) -> LedgerTransaction:
        row = self._client.get_single_row(
            table=TRANSACTIONS_TABLE,
            query=[
                ("select", _DETAIL_SELECT),
                ("id", f"eq.{transaction_id}"),
                ("team_id", f"eq.{team_id}"),
            ],
        )
        if row is None:
            raise ValueError("Transaction not found")
        return self._parse_row(row)

    def get_similar_transactions(self, *, team_id: str, transaction_id: str) -> SimilarTransactionsResult:
        source = self._client.get_single_row(
            table=TRANSACTIONS_TABLE,
            query=[
                ("select", "name,category"),
                ("id", f"eq.{transaction_id}"),
                ("team_id", f"eq.{team_id}"),
            ],
        )
        if source is None:
            raise ValueError("Transaction not found")

        name = source.get("name")
        if not name:
            return SimilarTransactionsResult(items=[], count=0)

        rows, count = self._client.get_rows(
            table=TRANSACTIONS_TABLE,
            query=[
                ("select", "id,amount"),
                ("team_id", f"eq.{team_id}"),
                ("name", f"eq.{name}"),
                ("category", "is.null"),
                ("id", f"neq.{transaction_id}"),
            ],
            with_count=True,
        )
        items = [SimilarTransaction(id=str(row["id"]), amount=Decimal(str(row["amount"]))) for row in rows]
        return SimilarTransactionsResult(items=items, count=count if count is not None else len(items))

    def get_spending(self, *, team_id: str, date_from: date | None, date_to: date | None) -> SpendingResult:
        query: list[tuple[str, str | int]] = [("team_id", f"eq.{team_id}")]
        if date_from and date_to:
            query.append(("date", f"gte.{date_from}"))
            query.append(("date", f"lte.{date_to}"))

        rows, count = self._client.get_rows(
            table=TRANSACTIONS_TABLE,
            query=[
                *query,
                ("select", "*"),
                ("order", f"{DEFAULT_ORDER_COLUMN}.asc"),
                ("offset", 0),
                ("limit", SPENDING_ROW_LIMIT),
            ],
            with_count=True,
        )
        data = [self._parse_row(row) for row in rows]
        return SpendingResult(data=data, meta=_build_meta(data, count, _sum_amounts(row.amount for row in data)))
