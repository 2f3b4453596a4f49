"""Team-scoped read lookups for bank connections, bank accounts and members."""

from __future__ import annotations

from typing import Any, Protocol

from backend.db.supabase_client import SupabaseClient
from shared.models import BankConnection, TeamBankAccount, TeamMember


class TeamsRepository(Protocol):
    def list_bank_connections(self, team_id: str) -> list[BankConnection]:
        """Return the bank connections owned by one team."""

    def list_bank_accounts(self, team_id: str) -> list[TeamBankAccount]:
        """Return the team bank accounts with their connection embedded."""

    def list_members(self, team_id: str) -> list[TeamMember]:
        """Return the users on one team."""


class SupabaseTeamsRepository:
    def __init__(self, client: SupabaseClient) -> None:
        self._client = client

    def list_bank_connections(self, team_id: str) -> list[BankConnection]:
        rows, _ = self._client.get_rows(
            table="bank_connections",
            query=[("select", "*"), ("team_id", f"eq.{team_id}")],
            with_count=False,
        )
        return [BankConnection.model_validate(row) for row in rows]

    def list_bank_accounts(self, team_id: str) -> list[TeamBankAccount]:
        rows, _ = self._client.get_rows(
            table="bank_accounts",
            query=[("select", "*,bank:bank_connection_id(*)"), ("team_id", f"eq.{team_id}")],
            with_count=False,
        )
        return [TeamBankAccount.model_validate(row) for row in rows]

    @staticmethod
    def _parse_member(row: dict[str, Any]) -> TeamMember:
        user = row.get("user") if isinstance(row.get("user"), dict) else {}
        return TeamMember(
            id=str(row["id"]),
            user_id=str(user["id"]) if user.get("id") is not None else None,
            full_name=user.get("full_name"),
            avatar_url=user.get("avatar_url"),
        )

    def list_members(self, team_id: str) -> list[TeamMember]:
        rows, _ = self._client.get_rows(
            table="users_on_team",
            query=[("select", "id,user:users(id,full_name,avatar_url)"), ("team_id", f"eq.{team_id}")],
            with_count=False,
        )
        return [self._parse_member(row) for row in rows]
