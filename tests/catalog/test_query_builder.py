"""
Unit tests for query building from query-string parameters.
"""

import pytest
from bson import ObjectId

from catalog.errors import ValidationFailure
from catalog.query_builder import (
    build_author_query, build_author_search, build_book_query,
    build_nationality_query, parse_pagination, rating_range,
)


class TestPagination:
    """Test cases for page/limit parsing."""

    def test_defaults(self):
        pagination = parse_pagination({})
        assert pagination.page == 1
        assert pagination.limit == 10
        assert pagination.skip == 0

    def test_skip_is_page_minus_one_times_limit(self):
        pagination = parse_pagination({"page": "3", "limit": "7"})
        assert pagination.page == 3
        assert pagination.limit == 7
        assert pagination.skip == 14

    def test_custom_default_limit(self):
        assert parse_pagination({}, default_limit=25).limit == 25

    @pytest.mark.parametrize("params", [
        {"limit": "0"},
        {"limit": "-5"},
        {"page": "0"},
        {"page": "-1"},
        {"page": "two"},
        {"limit": "1.5"},
    ])
    def test_rejects_non_positive_or_non_integer(self, params):
        with pytest.raises(ValidationFailure):
            parse_pagination(params)

    def test_rejects_limit_above_maximum(self):
        with pytest.raises(ValidationFailure) as exc_info:
            parse_pagination({"limit": "101"})
        assert "must not exceed 100" in exc_info.value.message


class TestBookQuery:
    """Test cases for the book listing query."""

    def test_default_sort_is_newest_first(self):
        query = build_book_query({})
        assert query.filter == {}
        assert query.sort == [("createdAt", -1)]

    def test_genre_and_pagination(self):
        query = build_book_query({"genre": "Fantasy", "page": "2", "limit": "5"})
        assert query.filter == {"genre": "Fantasy"}
        assert query.pagination.skip == 5
        assert query.pagination.limit == 5

    def test_in_stock_literals(self):
        assert build_book_query({"inStock": "true"}).filter == {"inStock": True}
        assert build_book_query({"inStock": "false"}).filter == {"inStock": False}

    @pytest.mark.parametrize("value", ["True", "1", "yes", ""])
    def test_in_stock_rejects_other_strings(self, value):
        with pytest.raises(ValidationFailure):
            build_book_query({"inStock": value})

    def test_search_uses_text_index(self):
        query = build_book_query({"search": "desert planet"})
        assert query.filter == {"$text": {"$search": "desert planet"}}

    def test_rating_bounds_combine_into_one_predicate(self):
        query = build_book_query({"minRating": "3.5", "maxRating": "4.5"})
        assert query.filter == {"rating": {"$gte": 3.5, "$lte": 4.5}}

    def test_rating_bounds_are_independent(self):
        assert build_book_query({"minRating": "2"}).filter == {"rating": {"$gte": 2.0}}
        assert build_book_query({"maxRating": "4"}).filter == {"rating": {"$lte": 4.0}}

    def test_rating_must_be_numeric(self):
        with pytest.raises(ValidationFailure):
            build_book_query({"minRating": "high"})

    @pytest.mark.parametrize("params", [
        {"minRating": "nan"},
        {"maxRating": "inf"},
        {"minRating": "-Infinity"},
    ])
    def test_rating_must_be_finite(self, params):
        with pytest.raises(ValidationFailure) as exc_info:
            build_book_query(params)
        assert exc_info.value.message.endswith("must be a number")

    def test_category_filter_uses_object_id(self):
        category_id = ObjectId()
        query = build_book_query({"category": str(category_id)})
        assert query.filter == {"category": category_id}

    def test_malformed_category_is_rejected(self):
        with pytest.raises(ValidationFailure):
            build_book_query({"category": "not-an-id"})

    def test_unrecognized_keys_are_ignored(self):
        query = build_book_query({"color": "blue", "nationality": "French"})
        assert query.filter == {}

    def test_sort_by_rating_ascending(self):
        query = build_book_query({"sortBy": "rating", "order": "asc"})
        assert query.sort == [("rating", 1)]

    def test_unknown_sort_field_is_rejected(self):
        with pytest.raises(ValidationFailure):
            build_book_query({"sortBy": "$where"})


class TestAuthorQueries:
    """Test cases for author listing and search queries."""

    def test_default_sort_is_name_ascending(self):
        query = build_author_query({})
        assert query.sort == [("name", 1)]

    def test_search_is_escaped_case_insensitive_name_match(self):
        query = build_author_query({"search": "o'brien (jr.)", "nationality": "Irish"})
        assert query.filter["nationality"] == "Irish"
        assert query.filter["name"]["$options"] == "i"
        assert query.filter["name"]["$regex"] == r"o'brien\ \(jr\.\)"

    def test_order_desc(self):
        assert build_author_query({"sortBy": "birthDate", "order": "desc"}).sort == [("birthDate", -1)]

    def test_invalid_order_is_rejected(self):
        with pytest.raises(ValidationFailure):
            build_author_query({"order": "sideways"})

    def test_search_requires_query(self):
        with pytest.raises(ValidationFailure) as exc_info:
            build_author_search({"nationality": "British"})
        assert exc_info.value.message == "Search query is required"

    def test_search_matches_name_or_biography(self):
        query = build_author_search({"query": "tolkien", "nationality": "British", "limit": "3"})
        assert query.filter["$or"] == [
            {"name": {"$regex": "tolkien", "$options": "i"}},
            {"biography": {"$regex": "tolkien", "$options": "i"}},
        ]
        assert query.filter["nationality"] == "British"
        assert query.pagination.limit == 3
        assert query.sort == [("name", 1)]

    def test_nationality_listing(self):
        query = build_nationality_query("Japanese", {"page": "2"})
        assert query.filter == {"nationality": "Japanese"}
        assert query.sort == [("name", 1)]
        assert query.pagination.skip == 10


def test_rating_range_none_when_unbounded():
    assert rating_range(None, None) is None
