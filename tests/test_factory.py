"""Tests for the backend composition root."""

from __future__ import annotations

from backend.factory import build_backend_services
from backend.repositories.teams_repository import SupabaseTeamsRepository
from backend.repositories.transactions_repository import (
    InMemoryTransactionsRepository,
    SupabaseTransactionsRepository,
)


def test_build_backend_services_falls_back_to_in_memory_ledger(monkeypatch) -> None:
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.setenv("TELLER_BASE_URL", "https://sandbox.teller.test")

    services = build_backend_services()

    assert isinstance(services.transactions_repository, InMemoryTransactionsRepository)
    assert services.teams_repository is None
    assert services.provider.settings.base_url == "https://sandbox.teller.test"


def test_build_backend_services_uses_supabase_when_configured(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://example.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-role")
    monkeypatch.setenv("LEDGER_TOTAL_AMOUNT_CEILING", "5000")
    monkeypatch.setenv("TELLER_MAX_WORKERS", "2")

    services = build_backend_services()

    assert isinstance(services.transactions_repository, SupabaseTransactionsRepository)
    assert services.transactions_repository._total_amount_ceiling == 5000
    assert isinstance(services.teams_repository, SupabaseTeamsRepository)
    assert services.provider.settings.max_workers == 2
