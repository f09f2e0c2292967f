"""Page/page-size normalization and offset/limit pagination with a total count."""

from __future__ import annotations

import logging
import math
from typing import TypeVar

from queryhelper.core.config import settings as app_settings
from queryhelper.db.backend import AsyncQueryBackend, QueryBackend
from queryhelper.schemas.query import PaginationInfo, PaginationRequest

logger = logging.getLogger(__name__)

Q = TypeVar("Q", QueryBackend, AsyncQueryBackend)


def normalize_pagination(
    request: PaginationRequest | None,
    *,
    default_page: int | None = None,
    default_page_size: int | None = None,
    max_page_size: int | None = None,
) -> PaginationRequest:
    """Clamp a raw page request into ``page >= 1`` and ``1 <= page_size <= max``.

    The page itself has no upper bound; a page past the end yields no rows.
    """
    default_page = default_page or app_settings.DEFAULT_PAGE
    default_page_size = default_page_size or app_settings.DEFAULT_PAGE_SIZE
    max_page_size = max_page_size or app_settings.MAX_PAGE_SIZE

    if request is None:
        request = PaginationRequest()

    page = request.page if request.page > 0 else default_page
    page_size = request.page_size if request.page_size > 0 else default_page_size
    page_size = min(page_size, max_page_size)
    return PaginationRequest(page=page, page_size=page_size)


def count_total_pages(total: int, page_size: int) -> int:
    """``ceil(total / page_size)``, except that an empty result is one page."""
    if total <= 0:
        return 1
    return math.ceil(total / page_size)


class PaginationHandle:
    """Request-scoped pagination state.

    Normalizes the request on construction, then :meth:`apply` counts the
    already-filtered query and narrows it to the requested page.
    """

    def __init__(self, request: PaginationRequest | None = None, **limits: int | None) -> None:
        normalized = normalize_pagination(request, **limits)
        self.info = PaginationInfo(page=normalized.page, page_size=normalized.page_size)

    @property
    def page(self) -> int:
        return self.info.page

    @property
    def page_size(self) -> int:
        return self.info.page_size

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def total(self) -> int | None:
        return self.info.total

    @property
    def total_pages(self) -> int | None:
        return self.info.total_pages

    def _record_total(self, total: int) -> None:
        self.info.total = total
        self.info.total_pages = count_total_pages(total, self.page_size)
        logger.debug(
            "Counted %d rows: page %d of %d (page_size=%d)",
            total, self.page, self.info.total_pages, self.page_size,
        )

    def _narrow(self, query: Q) -> Q:
        return query.offset(self.offset).limit(self.page_size)

    def apply(self, query: QueryBackend | None) -> QueryBackend | None:
        """Count *query*, record the totals, and apply OFFSET/LIMIT.

        Raises :class:`~queryhelper.core.errors.CountError` when the count
        round-trip fails; nothing is retried.
        """
        if query is None:
            return None
        self._record_total(query.count())
        return self._narrow(query)

    async def apply_async(self, query: AsyncQueryBackend | None) -> AsyncQueryBackend | None:
        if query is None:
            return None
        self._record_total(await query.count())
        return self._narrow(query)

    def current_info(self) -> PaginationInfo:
        return self.info
