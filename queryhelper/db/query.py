"""Decoding of raw client payloads and encoding of the echoed response.

- parse_request: safely turns a JSON string/bytes or mapping into a QueryRequest
- parse_filters: safely parses a JSON array of filter conditions (query-string transports)
- build_response: renders pagination info and sanitized conditions for the client
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from queryhelper.core.config import settings
from queryhelper.core.errors import RequestParseError
from queryhelper.schemas.query import FilterCondition, QueryHelperInfo, QueryRequest


def _decode(raw: str | bytes, what: str, max_length: int) -> Any:
    if len(raw) > max_length:
        raise RequestParseError(f"{what} payload exceeds size limit")
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError, ValueError, RecursionError) as exc:
        raise RequestParseError(f"{what} is not valid JSON") from exc


def _check_list_limit(items: Any, name: str, limit: int) -> None:
    if isinstance(items, list) and len(items) > limit:
        raise RequestParseError(f"too many {name} (max {limit})")


def parse_request(
    raw: str | bytes | Mapping[str, Any] | None,
    *,
    max_filters: int | None = None,
    max_fields: int | None = None,
    max_length: int | None = None,
) -> QueryRequest:
    """Safely build a :class:`QueryRequest` from an untrusted payload.

    Size and count limits are checked before the payload is validated so a
    crafted body cannot exhaust memory or CPU. Returns a default request
    when *raw* is ``None`` or empty.

    Raises :class:`RequestParseError` (a :class:`ValueError`) on any failure.
    """
    max_filters = max_filters or settings.MAX_FILTERS
    max_fields = max_fields or settings.MAX_FIELDS
    max_length = max_length or settings.MAX_PAYLOAD_LENGTH

    if not raw:
        return QueryRequest()

    data = _decode(raw, "request", max_length) if isinstance(raw, (str, bytes)) else raw
    if not isinstance(data, Mapping):
        raise RequestParseError("request must be a JSON object")

    _check_list_limit(data.get("filters"), "filters", max_filters)
    _check_list_limit(data.get("search_fields"), "search fields", max_fields)
    _check_list_limit(data.get("order_by"), "order by fields", max_fields)

    try:
        return QueryRequest.model_validate(dict(data))
    except ValidationError as exc:
        raise RequestParseError(
            "invalid request structure",
            detail={"errors": exc.errors(include_url=False, include_input=False)},
        ) from exc


def parse_filters(
    raw: str | None,
    *,
    max_filters: int | None = None,
    max_length: int | None = None,
) -> list[FilterCondition]:
    """Safely parse a JSON-encoded list of filter conditions.

    Returns an empty list when *raw* is ``None`` or empty.
    Raises :class:`RequestParseError` on any validation failure.
    """
    max_filters = max_filters or settings.MAX_FILTERS
    max_length = max_length or settings.MAX_PAYLOAD_LENGTH

    if not raw:
        return []

    items = _decode(raw, "filters", max_length)
    if not isinstance(items, list):
        raise RequestParseError("filters must be a JSON array")
    _check_list_limit(items, "filters", max_filters)

    try:
        return [FilterCondition.model_validate(item) for item in items]
    except ValidationError as exc:
        raise RequestParseError("invalid filter structure") from exc


def build_response(
    info: QueryHelperInfo | None,
    items: list | None = None,
    **extra: Any,
) -> dict[str, Any]:
    """Build the response body echoing what was applied.

    ``items`` is only included when given; extra keyword arguments are
    merged in last.
    """
    body: dict[str, Any] = info.to_response() if info is not None else {"pagination": None, "conditions": None}
    if items is not None:
        body["items"] = items
    return {**body, **extra}
