"""Errors raised by the query helper.

Invalid client input is never an error here: disallowed fields, operators
and malformed filter values are dropped by the whitelist.
"""

from __future__ import annotations

from typing import Any


class QueryHelperError(Exception):
    """Root error for the package."""

    def __init__(self, message: str, *, detail: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail: dict[str, Any] = detail or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(message={self.message!r})"


class ConditionsNotSetError(QueryHelperError):
    """Conditions were applied to a query before they were validated."""

    def __init__(self, message: str = "conditions not set", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class CountError(QueryHelperError):
    """The count round-trip against the filtered query failed."""

    def __init__(self, message: str = "failed to count query results", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class RequestParseError(QueryHelperError, ValueError):
    """A raw client payload could not be decoded into a request."""
