"""Configuration helpers for environment variables."""

from __future__ import annotations

import os
import logging

from dotenv import load_dotenv


logger = logging.getLogger(__name__)


_DEFAULT_TELLER_BASE_URL = "https://api.teller.io"
_DEFAULT_CURRENCY = "USD"
_DEFAULT_MAX_WORKERS = 8
_DEFAULT_TOTAL_AMOUNT_CEILING = 10_000_000


def _should_load_dotenv() -> bool:
    """Return whether local dotenv loading should run."""
    app_env = os.getenv("APP_ENV", "dev").strip().lower()
    return app_env in {"dev", "local"}


if _should_load_dotenv():
    load_dotenv()


def get_env(name: str, default: str | None = None) -> str | None:
    """Return a raw environment value or default."""
    return os.getenv(name, default)


def _positive_int(name: str, default: int) -> int:
    raw_value = (get_env(name, "") or "").strip()
    if not raw_value:
        return default

    try:
        value = int(raw_value)
    except ValueError:
        value = 0

    if value < 1:
        logger.warning("config_invalid_positive_int name=%s value=%s default=%s", name, raw_value, default)
        return default

    return value


def app_env() -> str:
    """Return the current application environment."""
    return (get_env("APP_ENV", "dev") or "dev").strip() or "dev"


def teller_base_url() -> str:
    """Return the Teller API base URL without trailing slash."""
    raw_value = (get_env("TELLER_BASE_URL", "") or "").strip()
    return (raw_value or _DEFAULT_TELLER_BASE_URL).rstrip("/")


def teller_default_currency() -> str:
    """Return the currency used when the provider does not report one."""
    raw_value = (get_env("TELLER_DEFAULT_CURRENCY", "") or "").strip().upper()
    return raw_value or _DEFAULT_CURRENCY


def teller_max_workers() -> int:
    """Return the concurrency cap for per-account balance fan-out."""
    return _positive_int("TELLER_MAX_WORKERS", _DEFAULT_MAX_WORKERS)


def ledger_total_amount_ceiling() -> int:
    """Return the row ceiling used when summing a filtered ledger query."""
    return _positive_int("LEDGER_TOTAL_AMOUNT_CEILING", _DEFAULT_TOTAL_AMOUNT_CEILING)


def supabase_url() -> str | None:
    """Return Supabase URL when configured."""
    return get_env("SUPABASE_URL")


def supabase_service_role_key() -> str | None:
    """Return Supabase service role key when configured."""
    return get_env("SUPABASE_SERVICE_ROLE_KEY")


def supabase_anon_key() -> str | None:
    """Return Supabase anon key when configured."""
    return get_env("SUPABASE_ANON_KEY")
