"""
Test doubles for code built on the query helper.

    from queryhelper.testing import MemoryQuery
"""

from queryhelper.testing.memory import AsyncMemoryQuery, MemoryQuery, like_to_regex

__all__ = [
    "AsyncMemoryQuery",
    "MemoryQuery",
    "like_to_regex",
]
