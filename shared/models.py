"""Pydantic contracts shared across provider and ledger layers."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ConnectionStatus(str, Enum):
    """Health of a bank connection as seen through the provider."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ProviderErrorInfo(BaseModel):
    model_config = ConfigDict(extra="forbid")

    code: str | None = None
    message: str


class Balance(BaseModel):
    model_config = ConfigDict(extra="forbid")

    currency: str = Field(min_length=3, max_length=3)
    amount: Decimal


class Institution(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    capabilities: list[str] = Field(default_factory=list)


class Account(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    currency: str = Field(min_length=3, max_length=3)
    institution: Institution | None = None
    type: str | None = None
    subtype: str | None = None
    last_four: str | None = None
    enrollment_id: str | None = None
    status: str | None = None
    balance: Balance


class BankTransaction(BaseModel):
    """Transaction normalized from the provider payload."""

    model_config = ConfigDict(extra="forbid")

    id: str
    account_id: str
    amount: Decimal
    currency: str = Field(min_length=3, max_length=3)
    date: date
    name: str
    status: str
    running_balance: Decimal | None = None
    category: str | None = None
    method: str | None = None


class Attachment(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    name: str | None = None
    size: int | None = None


class LedgerTransaction(BaseModel):
    """Transaction row read from the ledger store."""

    model_config = ConfigDict(extra="forbid")

    id: str
    team_id: str | None = None
    bank_account_id: str | None = None
    name: str | None = None
    amount: Decimal
    currency: str | None = None
    date: date
    status: str | None = None
    category: str | None = None
    vat: Decimal | None = None
    attachment: str | None = None
    assigned_id: str | None = None
    assigned: dict[str, object] | None = None
    account: dict[str, object] | None = None
    attachments: list[Attachment] = Field(default_factory=list)
    order: int | None = None


class Fulfillment(str, Enum):
    """Fulfillment selector; a transaction is fulfilled when it has an attachment and a VAT value."""

    ANY = "any"
    FULFILLED = "fullfilled"
    UNFULFILLED = "unfullfilled"


class PresenceFilter(str, Enum):
    INCLUDE = "include"
    EXCLUDE = "exclude"


SortColumn = Literal[
    "id",
    "name",
    "amount",
    "currency",
    "date",
    "status",
    "category",
    "vat",
    "attachment",
    "assigned_id",
    "order",
]


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class DateFilter(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    from_: date | None = Field(default=None, alias="from")
    to: date | None = None

    @property
    def is_bounded(self) -> bool:
        return self.from_ is not None and self.to is not None


class QueryFilter(BaseModel):
    model_config = ConfigDict(extra="forbid")

    search: str | None = None
    date: DateFilter = Field(default_factory=DateFilter)
    status: Fulfillment = Fulfillment.ANY
    attachments: PresenceFilter | None = None
    category: PresenceFilter | None = None

    @field_validator("search")
    @classmethod
    def normalize_search(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    def has_constraints(self) -> bool:
        """Return whether any field narrows the matching rows."""
        return bool(
            self.search
            or self.date.is_bounded
            or self.status != Fulfillment.ANY
            or self.attachments is not None
            or self.category is not None
        )


class SortSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    column: SortColumn
    direction: SortDirection = SortDirection.ASC


class TransactionsQuery(BaseModel):
    model_config = ConfigDict(extra="forbid")

    team_id: str
    page: int = Field(default=0, ge=0)
    page_size: int = Field(default=20, ge=0)
    sort: SortSpec | None = None
    filter: QueryFilter | None = None


class QueryMeta(BaseModel):
    model_config = ConfigDict(extra="forbid")

    count: int | None = None
    total_amount: Decimal = Decimal("0")
    currency: str | None = None


class QueryResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data: list[LedgerTransaction]
    meta: QueryMeta


class SpendingResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    data: list[LedgerTransaction]
    meta: QueryMeta


class SimilarTransaction(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    amount: Decimal


class SimilarTransactionsResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    items: list[SimilarTransaction]
    count: int


class BankConnection(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    team_id: str
    institution_id: str | None = None
    name: str | None = None
    logo_url: str | None = None
    provider: str | None = None


class TeamBankAccount(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    team_id: str
    name: str | None = None
    currency: str | None = None
    enabled: bool = True
    bank: BankConnection | None = None


class TeamMember(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str
    user_id: str | None = None
    full_name: str | None = None
    avatar_url: str | None = None
