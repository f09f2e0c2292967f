"""
Whitelisted search, filter, sort and pagination for SQL queries.

Re-exports the public surface:
    from queryhelper import QueryHelper, QuerySettings, StatementQuery
"""

from queryhelper.core.errors import (
    ConditionsNotSetError,
    CountError,
    QueryHelperError,
    RequestParseError,
)
from queryhelper.db.backend import AsyncQueryBackend, AsyncStatementQuery, QueryBackend, StatementQuery
from queryhelper.db.query import build_response, parse_filters, parse_request
from queryhelper.schemas.query import (
    DEFAULT_QUERY_SETTINGS,
    FilterCondition,
    FilterOp,
    PaginationInfo,
    PaginationRequest,
    QueryConditions,
    QueryHelperInfo,
    QueryRequest,
    QuerySettings,
    RejectedEntry,
)
from queryhelper.services.conditions import ConditionsHandle, sanitize
from queryhelper.services.pagination import PaginationHandle, count_total_pages, normalize_pagination
from queryhelper.services.query_helper import QueryHelper

__version__ = "0.1.0"

__all__ = [
    "AsyncQueryBackend",
    "AsyncStatementQuery",
    "ConditionsHandle",
    "ConditionsNotSetError",
    "CountError",
    "DEFAULT_QUERY_SETTINGS",
    "FilterCondition",
    "FilterOp",
    "PaginationHandle",
    "PaginationInfo",
    "PaginationRequest",
    "QueryBackend",
    "QueryConditions",
    "QueryHelper",
    "QueryHelperError",
    "QueryHelperInfo",
    "QueryRequest",
    "QuerySettings",
    "RejectedEntry",
    "RequestParseError",
    "StatementQuery",
    "build_response",
    "count_total_pages",
    "normalize_pagination",
    "parse_filters",
    "parse_request",
    "sanitize",
]
