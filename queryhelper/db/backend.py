"""Query backends the conditions and pagination handles write into.

:class:`QueryBackend` is the whole surface the translation layer needs:
parameterized predicates, one disjunctive group, ordering, offset/limit
and a count round-trip. Every method returns a new handle, mirroring
SQLAlchemy's generative ``Select``.

:class:`StatementQuery` and :class:`AsyncStatementQuery` implement it on
top of a SQLAlchemy/SQLModel ``Select`` bound to a sync or async session.
"""

from __future__ import annotations

import logging
import operator
from collections.abc import Sequence
from typing import Any, Protocol, Self, runtime_checkable

from sqlalchemy import Select, asc, column, desc, func, or_, table
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, select
from sqlmodel.ext.asyncio.session import AsyncSession

from queryhelper.core.errors import CountError
from queryhelper.schemas.query import FilterOp

logger = logging.getLogger(__name__)

# (column name, descending)
OrderColumn = tuple[str, bool]


class _FilterBackend(Protocol):
    def where_compare(self, field: str, op: FilterOp, value: Any) -> Self: ...

    def where_in(self, field: str, values: Sequence[Any], *, negate: bool = False) -> Self: ...

    def where_between(self, field: str, low: Any, high: Any) -> Self: ...

    def where_like(self, field: str, pattern: Any) -> Self: ...

    def where_any_like(self, fields: Sequence[str], pattern: str) -> Self: ...

    def order_by(self, columns: Sequence[OrderColumn]) -> Self: ...

    def offset(self, offset: int) -> Self: ...

    def limit(self, limit: int) -> Self: ...


@runtime_checkable
class QueryBackend(_FilterBackend, Protocol):
    def count(self) -> int: ...


@runtime_checkable
class AsyncQueryBackend(_FilterBackend, Protocol):
    async def count(self) -> int: ...


_COMPARATORS = {
    FilterOp.eq: operator.eq,
    FilterOp.ne: operator.ne,
    FilterOp.gt: operator.gt,
    FilterOp.lt: operator.lt,
    FilterOp.ge: operator.ge,
    FilterOp.le: operator.le,
}


class _StatementBackend:
    """Generative wrapper around a ``Select``.

    Field names only ever come out of the whitelist/alias step. With a
    ``model`` they resolve to its mapped attributes; otherwise (or for
    names the model lacks, e.g. joined columns) they become quoted
    ``column()`` references, with ``"table.column"`` split into a
    ``table().c`` lookup. Nothing is rendered as raw SQL text.
    """

    def __init__(self, statement: Select, session: Any = None, model: Any = None) -> None:
        self.statement = statement
        self.session = session
        self.model = model

    def _derive(self, statement: Select):
        return type(self)(statement, session=self.session, model=self.model)

    def resolve_column(self, field: str) -> Any:
        if self.model is not None:
            attr = getattr(self.model, field, None)
            if isinstance(attr, ColumnElement) or hasattr(attr, "__clause_element__"):
                return attr
        if "." in field:
            table_name, _, column_name = field.rpartition(".")
            return table(table_name, column(column_name)).c[column_name]
        return column(field)

    def where_compare(self, field: str, op: FilterOp, value: Any):
        comparator = _COMPARATORS[FilterOp(op)]
        return self._derive(self.statement.where(comparator(self.resolve_column(field), value)))

    def where_in(self, field: str, values: Sequence[Any], *, negate: bool = False):
        col = self.resolve_column(field)
        values = tuple(values)
        clause = col.not_in(values) if negate else col.in_(values)
        return self._derive(self.statement.where(clause))

    def where_between(self, field: str, low: Any, high: Any):
        return self._derive(self.statement.where(self.resolve_column(field).between(low, high)))

    def where_like(self, field: str, pattern: Any):
        return self._derive(self.statement.where(self.resolve_column(field).like(pattern)))

    def where_any_like(self, fields: Sequence[str], pattern: str):
        clauses = [self.resolve_column(field).like(pattern) for field in fields]
        if not clauses:
            return self
        return self._derive(self.statement.where(or_(*clauses)))

    def order_by(self, columns: Sequence[OrderColumn]):
        if not columns:
            return self
        clauses = [
            desc(self.resolve_column(name)) if descending else asc(self.resolve_column(name))
            for name, descending in columns
        ]
        return self._derive(self.statement.order_by(*clauses))

    def offset(self, offset: int):
        return self._derive(self.statement.offset(offset))

    def limit(self, limit: int):
        return self._derive(self.statement.limit(limit))

    def count_statement(self):
        """``SELECT count(*)`` over the current statement as a subquery."""
        return select(func.count()).select_from(self.statement.subquery())

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.statement!s})"


class StatementQuery(_StatementBackend):
    """Query handle over a sync SQLModel :class:`~sqlmodel.Session`."""

    session: Session | None

    def count(self) -> int:
        if self.session is None:
            raise CountError("query has no session to count with")
        try:
            total = self.session.exec(self.count_statement()).one()
        except SQLAlchemyError as exc:
            logger.warning("Count round-trip failed: %s", exc)
            raise CountError(detail={"error": str(exc)}) from exc
        return int(total)


class AsyncStatementQuery(_StatementBackend):
    """Query handle over a SQLModel :class:`AsyncSession`."""

    session: AsyncSession | None

    async def count(self) -> int:
        if self.session is None:
            raise CountError("query has no session to count with")
        try:
            total = (await self.session.exec(self.count_statement())).one()
        except SQLAlchemyError as exc:
            logger.warning("Count round-trip failed: %s", exc)
            raise CountError(detail={"error": str(exc)}) from exc
        return int(total)
