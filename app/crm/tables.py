from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

DEFAULT_PAGE_SIZE = 10
ALL = "all"


def _raw(row: Any, key: str) -> Any:
    if isinstance(row, Mapping):
        return row.get(key)
    return getattr(row, key, None)


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass(frozen=True)
class Column:
    key: str
    header: str
    accessor: Callable[[Any], Any] | None = None
    render: Callable[[Any], str] | None = None
    render_row: Callable[[Any], str] | None = None
    badge: Callable[[Any], str] | None = None
    css: str = ""

    def value(self, row: Any) -> Any:
        if self.accessor is not None:
            return self.accessor(row)
        return _raw(row, self.key)

    def text(self, row: Any) -> str:
        # Display only; search and filters always see the raw value.
        if self.render_row is not None:
            return self.render_row(row)
        v = self.value(row)
        if self.render is not None:
            return self.render(v)
        return _as_text(v) or "-"

    def variant(self, row: Any) -> str | None:
        if self.badge is None:
            return None
        v = self.value(row)
        if v is None or v == "":
            return None
        return self.badge(v)


@dataclass(frozen=True)
class SelectFilter:
    """Dropdown filter on one row field; the `all` option clears it."""

    key: str
    label: str
    options: tuple[tuple[str, str], ...]

    def normalize(self, raw: str | None) -> str | None:
        v = (raw or "").strip()
        if not v or v == ALL:
            return None
        allowed = {value for value, _ in self.options}
        return v if v in allowed else None


@dataclass(frozen=True)
class TableState:
    q: str = ""
    filters: dict[str, str] = field(default_factory=dict)
    page: int = 1

    @property
    def is_filtered(self) -> bool:
        return bool(self.q) or bool(self.filters)

    def args(self, **overrides: Any) -> dict[str, Any]:
        """Query-string arguments for links that keep the current filters."""
        out: dict[str, Any] = {}
        if self.q:
            out["q"] = self.q
        out.update(self.filters)
        if self.page > 1:
            out["page"] = self.page
        for k, v in overrides.items():
            if v is None:
                out.pop(k, None)
            else:
                out[k] = v
        return out


@dataclass(frozen=True)
class TablePage:
    rows: list[Any]
    page: int
    page_count: int
    total: int

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.page_count


class DataTable:
    def __init__(
        self,
        columns: Iterable[Column],
        *,
        filters: Iterable[SelectFilter] = (),
        page_size: int = DEFAULT_PAGE_SIZE,
        search_placeholder: str = "Search all columns...",
    ) -> None:
        self.columns = list(columns)
        self.filters = list(filters)
        self.page_size = page_size
        self.search_placeholder = search_placeholder

    def state_from_args(self, args: Mapping[str, str]) -> TableState:
        q = (args.get("q") or "").strip()
        filters: dict[str, str] = {}
        for f in self.filters:
            v = f.normalize(args.get(f.key))
            if v is not None:
                filters[f.key] = v
        try:
            page = int(args.get("page") or "1")
        except ValueError:
            page = 1
        return TableState(q=q, filters=filters, page=max(page, 1))

    def matches(self, row: Any, state: TableState) -> bool:
        for key, wanted in state.filters.items():
            if _as_text(_raw(row, key)) != wanted:
                return False
        if state.q:
            needle = state.q.lower()
            return any(needle in _as_text(c.value(row)).lower() for c in self.columns)
        return True

    def apply(self, rows: Iterable[Any], state: TableState) -> TablePage:
        filtered = [r for r in rows if self.matches(r, state)]
        total = len(filtered)
        page_count = max(1, -(-total // self.page_size))
        page = min(max(state.page, 1), page_count)
        start = (page - 1) * self.page_size
        return TablePage(
            rows=filtered[start : start + self.page_size],
            page=page,
            page_count=page_count,
            total=total,
        )
