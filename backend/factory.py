"""Composition root for backend services."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from backend.db.supabase_client import SupabaseClient, SupabaseSettings
from backend.providers.base import BankProvider
from backend.providers.teller.client import TellerClient, TellerSettings
from backend.repositories.teams_repository import SupabaseTeamsRepository, TeamsRepository
from backend.repositories.transactions_repository import (
    InMemoryTransactionsRepository,
    SupabaseTransactionsRepository,
    TransactionsRepository,
)
from shared import config


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class BackendServices:
    provider: BankProvider
    transactions_repository: TransactionsRepository
    teams_repository: TeamsRepository | None = None


def build_teller_client() -> TellerClient:
    return TellerClient(
        settings=TellerSettings(
            base_url=config.teller_base_url(),
            default_currency=config.teller_default_currency(),
            max_workers=config.teller_max_workers(),
        )
    )


def build_backend_services() -> BackendServices:
    """Build the provider client and ledger repositories from the environment.

    Without Supabase credentials the ledger falls back to an empty in-memory
    repository and team lookups are unavailable.
    """

    provider = build_teller_client()

    supabase_url = config.supabase_url()
    supabase_key = config.supabase_service_role_key()
    if not (supabase_url and supabase_key):
        logger.warning("supabase_not_configured app_env=%s; using in-memory ledger", config.app_env())
        return BackendServices(provider=provider, transactions_repository=InMemoryTransactionsRepository())

    supabase_client = SupabaseClient(
        settings=SupabaseSettings(
            url=supabase_url,
            service_role_key=supabase_key,
            anon_key=config.supabase_anon_key(),
        )
    )
    return BackendServices(
        provider=provider,
        transactions_repository=SupabaseTransactionsRepository(
            client=supabase_client,
            total_amount_ceiling=config.ledger_total_amount_ceiling(),
        ),
        teams_repository=SupabaseTeamsRepository(client=supabase_client),
    )
