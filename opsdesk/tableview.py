"""Search, filter and paginate in-memory record lists for the list screens.

Every list page runs the same three steps on each request: filter the full
record set by the typed query, cut out one fixed-size page, and report how many
pages exist so the pager can render. Screens only supply which fields are
searchable and the page size.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

Record = Dict[str, object]


@dataclass(frozen=True)
class PageWindow:
    """One rendered page of a filtered record set."""

    page_items: List[Record]
    page_number: int
    page_count: int
    total_matches: int
    page_size: int

    @property
    def first_index(self) -> int:
        """1-based position of the first visible record (0 when empty)."""
        if not self.page_items:
            return 0
        return (self.page_number - 1) * self.page_size + 1

    @property
    def last_index(self) -> int:
        if not self.page_items:
            return 0
        return self.first_index + len(self.page_items) - 1

    @property
    def has_previous(self) -> bool:
        return self.page_number > 1

    @property
    def has_next(self) -> bool:
        return self.page_number < self.page_count


def stringify_search_value(value: object) -> str:
    if value is None:
        return ""
    # bool is checked before int because bool subclasses int.
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def record_matches(record: Mapping[str, object], needle: str, searchable_fields: Sequence[str]) -> bool:
    """Return True when any searchable field contains ``needle``.

    ``needle`` must already be lowercased.
    """
    for field in searchable_fields:
        if needle in stringify_search_value(record.get(field)).lower():
            return True
    return False


def filter_records(
    records: Sequence[Record],
    search_text: str,
    searchable_fields: Sequence[str],
) -> List[Record]:
    if not (search_text or "").strip():
        return list(records)
    needle = search_text.lower()
    return [record for record in records if record_matches(record, needle, searchable_fields)]


def count_pages(total: int, page_size: int) -> int:
    return max(1, math.ceil(total / page_size))


def clamp_page(page_number: int, page_count: int) -> int:
    return max(1, min(page_count, page_number))


def paginate(
    records: Sequence[Record],
    search_text: str,
    page_number: int,
    page_size: int,
    searchable_fields: Sequence[str],
) -> PageWindow:
    """Filter ``records`` and return the requested page.

    Out-of-range page numbers snap to the nearest valid page instead of failing,
    since pager links can point past the end after the query narrows. A
    non-positive ``page_size`` is a caller bug and raises ``ValueError``.
    """
    if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
        raise ValueError(f"page_size must be a positive integer, got {page_size!r}")

    matches = filter_records(records, search_text, searchable_fields)
    page_count = count_pages(len(matches), page_size)
    current = clamp_page(page_number, page_count)
    start = (current - 1) * page_size
    return PageWindow(
        page_items=matches[start : start + page_size],
        page_number=current,
        page_count=page_count,
        total_matches=len(matches),
        page_size=page_size,
    )


def page_links(window: PageWindow, max_links: int = 5) -> List[int]:
    """Page numbers to show in the pager: a sliding window around the current page."""
    span = min(max_links, window.page_count)
    first = window.page_number - span // 2
    first = max(1, min(first, window.page_count - span + 1))
    return list(range(first, first + span))


def _parse_page(raw: Optional[object]) -> int:
    if raw in (None, ""):
        return 1
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return 1


@dataclass(frozen=True)
class ListQuery:
    """Search text and page cursor held by a list screen between requests.

    A new search always starts back on page 1; the engine itself is stateless and
    cannot tell that the query changed.
    """

    search_text: str = ""
    page_number: int = 1

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "ListQuery":
        return cls(search_text=params.get("q", "") or "", page_number=_parse_page(params.get("page")))

    def with_search(self, search_text: str) -> "ListQuery":
        return ListQuery(search_text=search_text, page_number=1)

    def with_page(self, page_number: int) -> "ListQuery":
        return ListQuery(search_text=self.search_text, page_number=page_number)

    def run(self, records: Sequence[Record], page_size: int, searchable_fields: Sequence[str]) -> PageWindow:
        return paginate(records, self.search_text, self.page_number, page_size, searchable_fields)
