"""Read-only Supabase PostgREST client used by ledger repositories."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any
from urllib.error import HTTPError
from urllib.parse import urlencode
from urllib.request import Request, urlopen


logger = logging.getLogger(__name__)

QueryParams = dict[str, str | int] | list[tuple[str, str | int]]


@dataclass(slots=True)
class SupabaseSettings:
    url: str
    service_role_key: str
    anon_key: str | None = None


def _parse_content_range_total(content_range: str | None) -> int | None:
    """Return the total from a `content-range` header like `0-9/42` or `*/0`."""

    if not content_range or "/" not in content_range:
        return None
    _, total_str = content_range.split("/", maxsplit=1)
    if not total_str.isdigit():
        return None
    return int(total_str)


class SupabaseClient:
    def __init__(self, settings: SupabaseSettings) -> None:
        self.settings = settings

    def get_rows(
        self,
        *,
        table: str,
        query: QueryParams,
        with_count: bool,
        use_anon_key: bool = False,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """Fetch rows from PostgREST and optionally parse exact row count."""

        encoded_query = urlencode(query, doseq=True)
        api_key = self.settings.anon_key if use_anon_key else self.settings.service_role_key
        if not api_key:
            raise ValueError("Missing Supabase API key for requested mode")
        request = Request(
            url=f"{self.settings.url.rstrip('/')}/rest/v1/{table}?{encoded_query}",
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Accept": "application/json",
                "Prefer": "count=exact" if with_count else "return=representation",
            },
            method="GET",
        )
        try:
            with urlopen(request) as response:  # noqa: S310 - URL comes from trusted env config
                rows = json.loads(response.read().decode("utf-8"))
                total: int | None = None
                if with_count:
                    total = _parse_content_range_total(response.headers.get("content-range"))
                return rows, total
        except HTTPError as exc:
            body = exc.read().decode("utf-8", errors="replace")[:500]
            logger.warning("supabase_request_failed table=%s status=%s", table, exc.code)
            raise RuntimeError(
                f"Supabase request failed with status {exc.code}: {body}"
            ) from exc

    def get_single_row(
        self,
        *,
        table: str,
        query: QueryParams,
        use_anon_key: bool = False,
    ) -> dict[str, Any] | None:
        """Return the first row matching ``query`` or None."""

        params = list(query.items()) if isinstance(query, dict) else list(query)
        params.append(("limit", 1))
        rows, _ = self.get_rows(table=table, query=params, with_count=False, use_anon_key=use_anon_key)
        return rows[0] if rows else None
