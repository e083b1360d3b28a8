from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT


@dataclass(frozen=True)
class PageParams:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class PageMeta:
    total: int
    page: int
    limit: int
    pages: int
    has_next: bool
    has_prev: bool

    def as_dict(self) -> dict:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "pages": self.pages,
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
        }


def _to_int(value: object) -> Optional[int]:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def page_params(
    page: object = None,
    limit: object = None,
    *,
    default_limit: int = DEFAULT_PAGE_LIMIT,
    max_limit: int = MAX_PAGE_LIMIT,
) -> PageParams:
    """Clamp raw query values: page >= 1, 1 <= limit <= max_limit."""
    p = _to_int(page) or 1
    lim = _to_int(limit) or default_limit
    return PageParams(page=max(1, p), limit=min(max_limit, max(1, lim)))


def page_meta(total: int, params: PageParams) -> PageMeta:
    pages = math.ceil(total / params.limit) if params.limit else 0
    return PageMeta(
        total=int(total),
        page=params.page,
        limit=params.limit,
        pages=pages,
        has_next=params.page < pages,
        has_prev=params.page > 1,
    )
