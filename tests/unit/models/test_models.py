"""Tests for the query and result models."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from bibsearch.models.query import Query, SearchFilters, SemanticField, SortOrder
from bibsearch.models.result import Author, Pagination, ResultItem, ResultSet


class TestQuery:
    def test_defaults(self) -> None:
        query = Query(keywords="cancer")

        assert query.start == 0
        assert query.per_page == 10
        assert query.sort == SortOrder.RELEVANCE
        assert query.filters == SearchFilters()
        assert query.is_multi_field is False

    def test_blank_keywords_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Query(keywords="   ")

    def test_empty_map_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Query(keywords={})

    def test_blank_map_value_rejected(self) -> None:
        with pytest.raises(ValidationError, match="title"):
            Query(keywords={"title": " ", "author": "chomsky"})

    def test_map_with_field_scope_is_ambiguous(self) -> None:
        with pytest.raises(ValidationError, match="multi-field"):
            Query(keywords={"title": "x"}, search_field="TI")
        with pytest.raises(ValidationError, match="multi-field"):
            Query(keywords={"title": "x"}, semantic_field=SemanticField.TITLE)

    @pytest.mark.parametrize("field,value", [("start", -1), ("per_page", 0)])
    def test_paging_bounds(self, field: str, value: int) -> None:
        with pytest.raises(ValidationError):
            Query(keywords="cancer", **{field: value})

    def test_frozen(self) -> None:
        query = Query(keywords="cancer")
        with pytest.raises(ValidationError):
            query.start = 5  # type: ignore[misc]

    def test_unknown_filter_rejected(self) -> None:
        with pytest.raises(ValidationError):
            SearchFilters(peer_reviewed=True)  # type: ignore[call-arg]


class TestResultItem:
    def test_blank_strings_become_none(self) -> None:
        item = ResultItem(title="  ", abstract="", doi=" 10.1/x ")

        assert item.title is None
        assert item.abstract is None
        assert item.doi == "10.1/x"

    def test_author_needs_no_parts(self) -> None:
        assert Author().display is None

    def test_frozen(self) -> None:
        item = ResultItem(title="A")
        with pytest.raises(ValidationError):
            item.title = "B"  # type: ignore[misc]

    def test_model_copy_leaves_original(self) -> None:
        item = ResultItem(title="A")
        stamped = item.model_copy(update={"engine_id": "e"})

        assert stamped.engine_id == "e"
        assert item.engine_id is None


class TestPagination:
    @pytest.mark.parametrize(
        "start_record,per_page,page",
        [(1, 10, 1), (10, 10, 1), (11, 10, 2), (11, 5, 3), (9999, 10, 1000)],
    )
    def test_current_page(self, start_record: int, per_page: int, page: int) -> None:
        assert Pagination.for_start_record(start_record, per_page).current_page == page


class TestResultSet:
    def test_failed_set_cannot_carry_items(self) -> None:
        with pytest.raises(ValidationError):
            ResultSet(failed=True, items=[ResultItem(title="A")], error={"error_info": "x"})

    def test_failure_helper(self) -> None:
        rs = ResultSet.failure({"error_info": "boom"}, engine_id="e")

        assert rs.failed is True
        assert rs.items == []
        assert rs.error == {"error_info": "boom"}
        assert rs.engine_id == "e"
        assert rs.first is None
        assert len(rs) == 0

    def test_frozen(self) -> None:
        rs = ResultSet(engine_id="e")
        with pytest.raises(ValidationError):
            rs.engine_id = "other"  # type: ignore[misc]

    def test_first(self) -> None:
        rs = ResultSet(items=[ResultItem(title="A"), ResultItem(title="B")])
        assert rs.first is not None
        assert rs.first.title == "A"
        assert len(rs) == 2
