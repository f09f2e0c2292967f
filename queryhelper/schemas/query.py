"""Query schemas for whitelisted search, filtering, sorting, and pagination."""

from __future__ import annotations

from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class FilterOp(str, Enum):
    """Operators a filter condition may use.

    Values are the wire tokens clients send and policies list.
    """
    eq = "="
    ne = "!="
    gt = ">"
    lt = "<"
    ge = ">="
    le = "<="
    between = "BETWEEN"
    in_ = "IN"
    not_in = "NOT IN"
    like = "LIKE"


COMPARISON_OPS = frozenset({FilterOp.eq, FilterOp.ne, FilterOp.gt, FilterOp.lt, FilterOp.ge, FilterOp.le})


def clamp_sort_factor(value: int, default: int = 1) -> int:
    """Normalize a sort factor to ``1`` (ascending) or ``-1`` (descending)."""
    if value == 0:
        return default
    if value > 1:
        return 1
    if value < -1:
        return -1
    return value


class FilterCondition(BaseModel):
    """A single ``field <operator> value`` predicate.

    The operator stays a plain string on input so an unknown token is
    dropped by the whitelist instead of failing validation::

        FilterCondition(field="price", operator=">=", value=100)
        FilterCondition(field="created_at", operator="BETWEEN", value=["2024-01-01", "2024-12-31"])
        FilterCondition(field="status", operator="NOT IN", value=["archived", "deleted"])
    """
    model_config = ConfigDict(frozen=True)

    field: str
    operator: FilterOp | str
    value: Any = None


class QueryConditions(BaseModel):
    """Search, sort and filter part of a request.

    Raw client input before sanitization; the sanitized value returned by
    :func:`queryhelper.services.conditions.sanitize` is a new instance.
    """
    model_config = ConfigDict(frozen=True)

    search_text: str = ""
    search_fields: list[str] = Field(default_factory=list)
    order_by: list[str] = Field(default_factory=list)
    sort_factor: int = 0
    filters: list[FilterCondition] = Field(default_factory=list)


class QuerySettings(BaseModel):
    """Per-endpoint whitelist policy.

    ``allowed_filters`` maps a client-facing field name to the operators it
    accepts; ``column_alias`` rewrites client-facing names to storage
    columns after the whitelist check.
    """
    model_config = ConfigDict(frozen=True)

    column_alias: dict[str, str] = Field(default_factory=dict)
    allowed_order_by: list[str] = Field(default_factory=list)
    allowed_search: list[str] = Field(default_factory=list)
    allowed_filters: dict[str, list[FilterOp]] = Field(default_factory=dict)
    default_sort_factor: int = 1

    @field_validator("default_sort_factor")
    @classmethod
    def normalize_default_sort_factor(cls, value: int) -> int:
        return clamp_sort_factor(value, default=1)

    def real_column(self, field: str) -> str:
        return self.column_alias.get(field, field)

    def real_columns(self, fields: list[str]) -> list[str]:
        return [self.real_column(field) for field in fields]


DEFAULT_QUERY_SETTINGS = QuerySettings(
    allowed_order_by=["created_at"],
    default_sort_factor=1,
)


class PaginationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int = 0
    page_size: int = 0


class PaginationInfo(BaseModel):
    """Pagination metadata echoed back to the client.

    ``total`` and ``total_pages`` stay ``None`` until a count round-trip
    has run (dry runs never count).
    """
    page: int
    page_size: int
    total: int | None = None
    total_pages: int | None = None


class QueryRequest(BaseModel):
    """Transport-agnostic client payload.

    Every field is optional; zero values mean "use the policy/default".
    """
    page: int = Field(default=0, description="1-based page; <= 0 falls back to the first page")
    page_size: int = Field(default=0, description="rows per page; <= 0 falls back to the default size")
    search_text: str = Field(default="", description="free text matched with LIKE across search fields")
    search_fields: list[str] = Field(default_factory=list, description="fields to search; empty means all allowed")
    order_by: list[str] = Field(default_factory=list, description="fields to order by; empty means the policy default")
    sort_factor: int = Field(default=0, description="1 ascending, -1 descending, 0 policy default")
    filters: list[FilterCondition] = Field(default_factory=list, description="AND-ed filter predicates")

    @field_validator(
        "page", "page_size", "search_text", "search_fields", "order_by", "sort_factor", "filters",
        mode="before",
    )
    @classmethod
    def null_means_unspecified(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return value

    def to_conditions(self) -> QueryConditions:
        return QueryConditions(
            search_text=self.search_text,
            search_fields=list(self.search_fields),
            order_by=list(self.order_by),
            sort_factor=self.sort_factor,
            filters=list(self.filters),
        )

    def to_pagination(self) -> PaginationRequest:
        return PaginationRequest(page=self.page, page_size=self.page_size)


class RejectedEntry(BaseModel):
    """A request entry dropped by the whitelist."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["search_field", "order_by", "filter"]
    field: str
    operator: str | None = None
    reason: str


class QueryHelperInfo(BaseModel):
    pagination: PaginationInfo
    conditions: QueryConditions

    def to_response(self) -> dict[str, Any]:
        """Render the ``{"pagination": ..., "conditions": ...}`` response body."""
        return self.model_dump(mode="json")
