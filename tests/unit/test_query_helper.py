"""
Unit tests for the QueryHelper orchestrator.

Tests the full sanitize -> filter -> count -> paginate sequence including:
- The documented end-to-end sanitization scenario
- Dry runs without a query target
- Request building through setters and payloads
- Echoed info and response shape
"""

import pytest

from queryhelper.core.errors import CountError, RequestParseError
from queryhelper.db.query import build_response
from queryhelper.schemas.query import FilterCondition, FilterOp, QueryRequest, QuerySettings
from queryhelper.services.query_helper import QueryHelper
from queryhelper.testing import AsyncMemoryQuery, MemoryQuery
from tests.factories import PRODUCT_ROWS, PRODUCT_SETTINGS


SCENARIO_SETTINGS = QuerySettings(
    allowed_search=["name"],
    allowed_order_by=["created_at"],
    allowed_filters={"price": [">=", "<="]},
    default_sort_factor=1,
)

SCENARIO_PAYLOAD = {
    "page": 0,
    "page_size": 0,
    "search_text": " phone ",
    "search_fields": [],
    "order_by": [],
    "sort_factor": 0,
    "filters": [
        {"field": "price", "operator": ">=", "value": 100},
        {"field": "price", "operator": ">", "value": 50},
    ],
}


@pytest.mark.unit
class TestScenario:
    """The documented sanitization walk-through."""

    def test_dry_run_sanitizes_request(self):
        helper = QueryHelper.from_payload(SCENARIO_PAYLOAD)
        assert helper.apply(SCENARIO_SETTINGS, None) is None

        info = helper.info()
        assert info.pagination.page == 1
        assert info.pagination.page_size == 10
        assert info.pagination.total is None

        conditions = info.conditions
        assert conditions.search_text == "phone"
        assert conditions.search_fields == ["name"]
        assert conditions.order_by == ["created_at"]
        assert conditions.sort_factor == 1
        assert conditions.filters == [FilterCondition(field="price", operator=FilterOp.ge, value=100)]

        assert [(r.field, r.operator) for r in helper.rejected] == [("price", ">")]

    def test_against_memory_rows(self):
        helper = QueryHelper.from_payload(SCENARIO_PAYLOAD)
        query = helper.apply(SCENARIO_SETTINGS, MemoryQuery(PRODUCT_ROWS))

        # name LIKE '%phone%' is case-sensitive here: no name contains lowercase "phone"
        assert query.all() == []
        assert helper.info().pagination.total == 0
        assert helper.info().pagination.total_pages == 1


@pytest.mark.unit
class TestQueryHelperApply:
    """Tests for QueryHelper.apply sequencing."""

    def test_info_none_before_apply(self):
        assert QueryHelper().info() is None
        assert QueryHelper().rejected == []

    def test_filters_search_order_and_page(self):
        helper = (
            QueryHelper()
            .with_search_text("phone")
            .with_order_by(["price"])
            .with_sort_factor(-1)
            .with_page(1)
            .with_page_size(2)
        )
        query = helper.apply(PRODUCT_SETTINGS, MemoryQuery(PRODUCT_ROWS))

        assert [row["id"] for row in query.all()] == [4, 1]
        info = helper.info()
        assert info.pagination.total == 4
        assert info.pagination.total_pages == 2

    def test_total_reflects_filters_not_table(self):
        helper = QueryHelper().with_filters([
            FilterCondition(field="category", operator="=", value=3),
        ])
        helper.apply(PRODUCT_SETTINGS, MemoryQuery(PRODUCT_ROWS))
        assert helper.info().pagination.total == 2

    def test_none_settings_uses_default_policy(self):
        helper = QueryHelper().with_search_text("phone").with_sort_factor(-1)
        query = helper.apply(None, MemoryQuery(PRODUCT_ROWS))
        # default policy has no search fields and orders by created_at
        assert [row["id"] for row in query.all()] == [6, 5, 4, 3, 2, 1]
        assert helper.info().conditions.search_fields == []

    def test_info_is_detached_from_handle_state(self):
        helper = QueryHelper()
        helper.apply(PRODUCT_SETTINGS, MemoryQuery(PRODUCT_ROWS))

        echoed = helper.info()
        echoed.pagination.total = 99
        echoed.pagination.page = 7

        assert helper.info().pagination.total == 6
        assert helper.info().pagination.page == 1
        assert helper.pagination.total == 6

    def test_count_error_propagates(self):
        class FailingQuery(MemoryQuery):
            def count(self) -> int:
                raise CountError("boom")

        helper = QueryHelper()
        with pytest.raises(CountError):
            helper.apply(PRODUCT_SETTINGS, FailingQuery(PRODUCT_ROWS))

    def test_reapply_starts_fresh(self):
        helper = QueryHelper().with_order_by(["nope"])
        helper.apply(PRODUCT_SETTINGS, None)
        assert len(helper.rejected) == 1
        helper.with_order_by(["price"]).apply(PRODUCT_SETTINGS, None)
        assert helper.rejected == []

    async def test_apply_async(self):
        helper = QueryHelper().with_filters([
            FilterCondition(field="status", operator="=", value="active"),
        ]).with_page_size(3)
        query = await helper.apply_async(PRODUCT_SETTINGS, AsyncMemoryQuery(PRODUCT_ROWS))
        assert helper.info().pagination.total == 4
        assert helper.info().pagination.total_pages == 2
        assert len(query.all()) == 3

    async def test_apply_async_dry_run(self):
        helper = QueryHelper()
        assert await helper.apply_async(PRODUCT_SETTINGS, None) is None
        assert helper.info().pagination.page == 1


@pytest.mark.unit
class TestRequestBuilding:
    """Tests for setters and payload construction."""

    def test_each_setter_changes_one_field(self):
        helper = QueryHelper()
        helper.with_page(3)
        assert helper.request == QueryRequest(page=3)
        helper.with_page_size(7).with_search_text("x")
        assert helper.request == QueryRequest(page=3, page_size=7, search_text="x")

    def test_setters_accept_any_sequence(self):
        helper = QueryHelper().with_search_fields(("name",)).with_order_by(("price",))
        assert helper.request.search_fields == ["name"]
        assert helper.request.order_by == ["price"]

    def test_from_json_payload(self):
        helper = QueryHelper.from_payload('{"page": 2, "filters": [{"field": "price", "operator": "<=", "value": 50}]}')
        assert helper.request.page == 2
        assert helper.request.filters[0].operator == "<="

    def test_from_empty_payload(self):
        assert QueryHelper.from_payload(None).request == QueryRequest()

    def test_from_invalid_payload(self):
        with pytest.raises(RequestParseError):
            QueryHelper.from_payload("[]")


@pytest.mark.unit
class TestResponse:
    """Tests for the echoed response body."""

    def test_response_shape(self):
        helper = QueryHelper.from_payload(SCENARIO_PAYLOAD)
        helper.apply(SCENARIO_SETTINGS, MemoryQuery(PRODUCT_ROWS))

        body = helper.info().to_response()
        assert body["pagination"] == {"page": 1, "page_size": 10, "total": 0, "total_pages": 1}
        assert body["conditions"] == {
            "search_text": "phone",
            "search_fields": ["name"],
            "order_by": ["created_at"],
            "sort_factor": 1,
            "filters": [{"field": "price", "operator": ">=", "value": 100}],
        }

    def test_build_response_with_items(self):
        helper = QueryHelper().with_page_size(2)
        query = helper.apply(PRODUCT_SETTINGS, MemoryQuery(PRODUCT_ROWS))
        body = build_response(helper.info(), items=[row["id"] for row in query.all()], took_ms=3)
        assert body["items"] == [1, 2]
        assert body["pagination"]["total_pages"] == 3
        assert body["took_ms"] == 3
