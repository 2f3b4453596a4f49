"""Page number to store row range conversion."""

from __future__ import annotations

from typing import NamedTuple

DEFAULT_PAGE_SIZE = 3


class RowRange(NamedTuple):
    """Inclusive row range, as used by PostgREST `Range` semantics."""

    start: int
    end: int

    @property
    def limit(self) -> int:
        return max(self.end - self.start + 1, 0)


def get_pagination(page: int | None, size: int | None) -> RowRange:
    """Return the inclusive row range for ``page`` of ``size`` rows.

    ``start`` uses ``size`` with the default applied while ``end`` uses the raw
    ``size``; existing callers rely on this exact arithmetic.
    """

    raw_size = size or 0
    limit = raw_size if raw_size else DEFAULT_PAGE_SIZE
    start = page * limit if page else 0
    end = start + raw_size - 1 if page else raw_size - 1
    return RowRange(start=start, end=end)
