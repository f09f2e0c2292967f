"""Request-scoped orchestration: sanitize, filter, count, paginate.

Typical use inside a request handler::

    helper = QueryHelper.from_payload(body)
    query = helper.apply(PRODUCT_QUERY_SETTINGS, StatementQuery(select(Product), session, Product))
    rows = session.exec(query.statement).all()
    return build_response(helper.info(), items=rows)
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from queryhelper.db.backend import AsyncQueryBackend, QueryBackend
from queryhelper.db.query import parse_request
from queryhelper.schemas.query import (
    FilterCondition,
    QueryHelperInfo,
    QueryRequest,
    QuerySettings,
    RejectedEntry,
)
from queryhelper.services.conditions import ConditionsHandle
from queryhelper.services.pagination import PaginationHandle


class QueryHelper:
    """Builds a request, then applies it to one query.

    Create one per request; the handles it keeps after :meth:`apply` back
    :meth:`info` and :attr:`rejected`.
    """

    def __init__(self, request: QueryRequest | None = None) -> None:
        self.request = request if request is not None else QueryRequest()
        self.conditions: ConditionsHandle | None = None
        self.pagination: PaginationHandle | None = None

    @classmethod
    def from_payload(cls, payload: str | bytes | Mapping[str, Any] | None) -> QueryHelper:
        return cls(parse_request(payload))

    def _set(self, **field: Any) -> QueryHelper:
        self.request = self.request.model_copy(update=field)
        return self

    def with_page(self, page: int) -> QueryHelper:
        return self._set(page=page)

    def with_page_size(self, page_size: int) -> QueryHelper:
        return self._set(page_size=page_size)

    def with_search_text(self, text: str) -> QueryHelper:
        return self._set(search_text=text)

    def with_search_fields(self, fields: list[str]) -> QueryHelper:
        return self._set(search_fields=list(fields))

    def with_order_by(self, fields: list[str]) -> QueryHelper:
        return self._set(order_by=list(fields))

    def with_sort_factor(self, factor: int) -> QueryHelper:
        return self._set(sort_factor=factor)

    def with_filters(self, filters: list[FilterCondition]) -> QueryHelper:
        return self._set(filters=list(filters))

    def _prepare(self, settings: QuerySettings | None) -> None:
        self.conditions = ConditionsHandle(settings)
        self.conditions.update_conditions(self.request.to_conditions())
        self.pagination = PaginationHandle(self.request.to_pagination())

    def apply(self, settings: QuerySettings | None, query: QueryBackend | None) -> QueryBackend | None:
        """Sanitize the request against *settings* and constrain *query*.

        Filters, search and ordering are attached before the count so the
        totals describe the filtered rows. With ``query=None`` only the
        sanitization runs and ``None`` is returned.
        """
        self._prepare(settings)
        query = self.conditions.apply(query)
        return self.pagination.apply(query)

    async def apply_async(
        self,
        settings: QuerySettings | None,
        query: AsyncQueryBackend | None,
    ) -> AsyncQueryBackend | None:
        self._prepare(settings)
        query = self.conditions.apply(query)
        return await self.pagination.apply_async(query)

    def info(self) -> QueryHelperInfo | None:
        """What was applied, for echoing back to the client; ``None`` before :meth:`apply`."""
        if self.conditions is None or self.pagination is None:
            return None
        return QueryHelperInfo(
            pagination=self.pagination.current_info().model_copy(),
            conditions=self.conditions.current_info(),
        )

    @property
    def rejected(self) -> list[RejectedEntry]:
        if self.conditions is None:
            return []
        return list(self.conditions.rejected)
