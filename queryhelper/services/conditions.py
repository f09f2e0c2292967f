"""Whitelist validation and query translation for search/filter/sort requests.

Default-deny: any search field, order-by field, filter field or operator
the policy does not list is dropped without an error. Callers who want to
see what was dropped pass ``on_reject`` to :func:`sanitize` or read
:attr:`ConditionsHandle.rejected`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any, TypeVar

from queryhelper.core.errors import ConditionsNotSetError
from queryhelper.db.backend import AsyncQueryBackend, QueryBackend
from queryhelper.schemas.query import (
    COMPARISON_OPS,
    DEFAULT_QUERY_SETTINGS,
    FilterCondition,
    FilterOp,
    QueryConditions,
    QuerySettings,
    RejectedEntry,
    clamp_sort_factor,
)

logger = logging.getLogger(__name__)

RejectHook = Callable[[RejectedEntry], None]

Q = TypeVar("Q", QueryBackend, AsyncQueryBackend)


def _is_unspecified(fields: Sequence[str]) -> bool:
    """An empty list, or a single empty string, means "use the policy"."""
    return len(fields) == 0 or (len(fields) == 1 and fields[0] == "")


def _allowed_fields(
    requested: Sequence[str],
    allowed: Sequence[str],
    kind: str,
    reject: RejectHook,
) -> list[str]:
    if _is_unspecified(requested):
        return list(allowed)

    permitted = set(allowed)
    kept: list[str] = []
    for field in requested:
        if field in permitted:
            kept.append(field)
        else:
            reject(RejectedEntry(kind=kind, field=field, reason="field not allowed"))
    return kept


def _token(operator: FilterOp | str) -> str:
    return operator.value if isinstance(operator, FilterOp) else str(operator)


def _allowed_filters(
    filters: Sequence[FilterCondition],
    settings: QuerySettings,
    reject: RejectHook,
) -> list[FilterCondition]:
    kept: list[FilterCondition] = []
    for condition in filters:
        allowed_ops = settings.allowed_filters.get(condition.field)
        if allowed_ops is None:
            reject(RejectedEntry(
                kind="filter",
                field=condition.field,
                operator=_token(condition.operator),
                reason="field not allowed",
            ))
            continue

        # FilterOp is a str enum, so raw tokens compare equal to members.
        if condition.operator not in allowed_ops:
            reject(RejectedEntry(
                kind="filter",
                field=condition.field,
                operator=_token(condition.operator),
                reason="operator not allowed",
            ))
            continue

        kept.append(condition.model_copy(update={
            "field": settings.real_column(condition.field),
            "operator": FilterOp(condition.operator),
        }))
    return kept


def sanitize(
    settings: QuerySettings | None,
    conditions: QueryConditions,
    *,
    on_reject: RejectHook | None = None,
) -> QueryConditions:
    """Return *conditions* reduced to what *settings* allows.

    Fields are checked against the whitelist under their client-facing
    names and only then rewritten through ``column_alias``. The input is
    never modified; a new :class:`QueryConditions` is returned.
    """
    if settings is None:
        settings = DEFAULT_QUERY_SETTINGS

    def reject(entry: RejectedEntry) -> None:
        logger.debug("Dropped %s %r (%s)", entry.kind, entry.field, entry.reason)
        if on_reject is not None:
            on_reject(entry)

    search_fields = _allowed_fields(conditions.search_fields, settings.allowed_search, "search_field", reject)
    order_by = _allowed_fields(conditions.order_by, settings.allowed_order_by, "order_by", reject)

    return QueryConditions(
        search_text=conditions.search_text.strip(),
        search_fields=settings.real_columns(search_fields),
        order_by=settings.real_columns(order_by),
        sort_factor=clamp_sort_factor(conditions.sort_factor, default=settings.default_sort_factor),
        filters=_allowed_filters(conditions.filters, settings, reject),
    )


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple, set, frozenset))


def apply_filter(query: Q, condition: FilterCondition) -> Q:
    """Attach one sanitized filter to *query*.

    Values whose shape does not fit the operator (BETWEEN without exactly
    two bounds, IN/NOT IN without a list) are skipped.
    """
    op = FilterOp(condition.operator)
    field, value = condition.field, condition.value

    if op in COMPARISON_OPS:
        return query.where_compare(field, op, value)
    if op in (FilterOp.in_, FilterOp.not_in):
        if not _is_sequence(value):
            logger.debug("Skipped %s filter on %r: value is not a list", op.value, field)
            return query
        return query.where_in(field, list(value), negate=op == FilterOp.not_in)
    if op == FilterOp.between:
        if not isinstance(value, (list, tuple)) or len(value) != 2:
            logger.debug("Skipped BETWEEN filter on %r: expected two bounds", field)
            return query
        return query.where_between(field, value[0], value[1])
    if op == FilterOp.like:
        return query.where_like(field, value)
    return query


def apply_conditions(query: Q, conditions: QueryConditions) -> Q:
    """Attach sanitized filters, search and ordering to *query*.

    Filters and the search group are AND-ed; the search group ORs a
    ``LIKE '%text%'`` across every search field. All order-by columns
    share the one direction given by ``sort_factor``.
    """
    for condition in conditions.filters:
        query = apply_filter(query, condition)

    keywords = conditions.search_text.strip()
    if keywords and conditions.search_fields:
        query = query.where_any_like(conditions.search_fields, f"%{keywords}%")

    if conditions.order_by:
        descending = conditions.sort_factor < 0
        query = query.order_by([(field, descending) for field in conditions.order_by])

    return query


class ConditionsHandle:
    """Request-scoped holder of one policy and the sanitized conditions.

    Not safe to share between requests: :meth:`update_conditions` stores
    state that :meth:`apply` and :meth:`current_info` read back.
    """

    def __init__(self, settings: QuerySettings | None = None) -> None:
        self.settings = settings if settings is not None else DEFAULT_QUERY_SETTINGS
        self.conditions: QueryConditions | None = None
        self.rejected: list[RejectedEntry] = []

    def update_conditions(self, conditions: QueryConditions) -> QueryConditions:
        self.rejected = []
        self.conditions = sanitize(self.settings, conditions, on_reject=self.rejected.append)
        return self.conditions

    def current_info(self) -> QueryConditions | None:
        return self.conditions

    def apply(self, query: Q | None) -> Q | None:
        # No query target: sanitization only.
        if query is None:
            return None
        if self.conditions is None:
            raise ConditionsNotSetError()
        return apply_conditions(query, self.conditions)
