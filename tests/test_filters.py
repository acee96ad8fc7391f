"""
Unit tests for attribute filters, request parsing and query planning.
"""

import pytest
import pandas as pd
import sys
from pathlib import Path

# Add src to path
sys.path.append(str(Path(__file__).parent.parent))

from src.search.errors import InvalidRequest
from src.search.filters import AttributeFilters, RangeFilter, parse_range
from src.search.kinds import EntityKind, parse_kind_selector
from src.search.planner import QueryPlanner, Strategy
from src.search.request import SearchRequest
from src.store.geo import GeoPoint


class TestRangeFilter:
    """Test cases for range filter parsing."""

    def test_open_ended_range(self):
        """Test the N+ form."""
        assert parse_range("10+") == RangeFilter(minimum=10.0)
        assert parse_range(" 10 + ") == RangeFilter(minimum=10.0)

    def test_bounded_range(self):
        """Test the min-max form."""
        assert parse_range("3-5") == RangeFilter(minimum=3.0, maximum=5.0)
        assert parse_range("2.5 - 4") == RangeFilter(minimum=2.5, maximum=4.0)

    def test_bare_number_is_minimum(self):
        """Test that a bare number is a lower bound."""
        assert parse_range("4") == RangeFilter(minimum=4.0)
        assert parse_range(7) == RangeFilter(minimum=7.0)

    def test_malformed_values_are_absent(self):
        """Test that unparseable values are ignored, not rejected."""
        for raw in (None, "", "  ", "abc", "5-3", "-5", "3-", "ten+", True, -1, float("nan")):
            assert parse_range(raw) is None, raw

    def test_describe(self):
        """Test echo formatting."""
        assert RangeFilter(minimum=10.0).describe() == "10+"
        assert RangeFilter(minimum=3.0, maximum=5.0).describe() == "3-5"
        assert RangeFilter(minimum=4.5).describe() == "4.5+"

    def test_predicate_is_inclusive(self):
        """Test that both bounds are inclusive and non-numeric values fail."""
        df = pd.DataFrame({"experience": [2, 3, 5, 6, None, "n/a"]})
        mask = RangeFilter(minimum=3.0, maximum=5.0).to_predicate("experience")(df)
        assert mask.tolist() == [False, True, True, False, False, False]


class TestAttributeFilters:
    """Test cases for attribute filter parsing."""

    def test_from_params(self):
        """Test parsing of every declared filter."""
        filters = AttributeFilters.from_params({
            "specialization": " Cardiology ",
            "department": "cardio",
            "experience": "10+",
            "fee": "200-500",
            "rating": "4",
        })

        assert filters.specialization == "Cardiology"
        assert filters.category == "cardio"
        assert filters.experience == RangeFilter(minimum=10.0)
        assert filters.fee == RangeFilter(minimum=200.0, maximum=500.0)
        assert filters.rating == RangeFilter(minimum=4.0)

    def test_category_alias(self):
        """Test that category is accepted in place of department."""
        assert AttributeFilters.from_params({"category": "Neurology"}).category == "Neurology"

    def test_echo(self):
        """Test echoed filter values."""
        echo = AttributeFilters.from_params({"experience": "bad", "rating": "4.5"}).echo()

        assert echo["experience"] is None
        assert echo["rating"] == "4.5+"
        assert echo["department"] is None


class TestSearchRequest:
    """Test cases for search request parsing."""

    def setup_method(self):
        """Setup test fixtures."""
        self.config = {
            "max_distance_km": 25,
            "default_page_size": 20,
            "max_page_size": 100,
        }

    def test_defaults(self):
        """Test an empty request."""
        request = SearchRequest.from_params({}, self.config)

        assert request.query == ""
        assert request.selector == "all"
        assert EntityKind.PATIENT not in request.kinds
        assert len(request.kinds) == 5
        assert request.geo is None
        assert request.place is None
        assert request.page == 1
        assert request.page_size == 20
        assert request.max_distance_km == 25
        assert request.skip == 0

    def test_paging(self):
        """Test page and limit parsing."""
        request = SearchRequest.from_params({"page": "3", "limit": "10"}, self.config)
        assert request.skip == 20
        assert request.page_size == 10

    def test_invalid_paging(self):
        """Test that bad paging values are rejected."""
        for params, parameter in (({"page": "0"}, "page"), ({"page": "x"}, "page"),
                                  ({"limit": "-2"}, "limit"), ({"limit": "500"}, "limit")):
            with pytest.raises(InvalidRequest) as excinfo:
                SearchRequest.from_params(params, self.config)
            assert excinfo.value.parameter == parameter

    def test_coordinates(self):
        """Test geo parsing."""
        request = SearchRequest.from_params({"lat": "12.97", "lng": "77.59"}, self.config)
        assert request.geo == GeoPoint(longitude=77.59, latitude=12.97)
        assert request.location_label() == "12.97,77.59"

    def test_partial_coordinates_ignored(self):
        """Test that a lone latitude does not make a geo search."""
        assert SearchRequest.from_params({"lat": "12.97"}, self.config).geo is None
        assert SearchRequest.from_params({"lat": "abc", "lng": "77"}, self.config).geo is None
        assert SearchRequest.from_params({"lat": "95", "lng": "77"}, self.config).geo is None

    def test_place_and_distance(self):
        """Test place and distance parsing."""
        request = SearchRequest.from_params({"city": " Springfield ", "distance": "10"}, self.config)
        assert request.place == "Springfield"
        assert request.max_distance_km == 10.0
        assert request.location_label() == "Springfield"

        request = SearchRequest.from_params({"distance": "far"}, self.config)
        assert request.max_distance_km == 25.0

    def test_unknown_type(self):
        """Test that an unknown type is rejected."""
        with pytest.raises(InvalidRequest) as excinfo:
            SearchRequest.from_params({"type": "hospitals"}, self.config)
        assert excinfo.value.parameter == "type"

    def test_text_with_geography_policy(self):
        """Test the optional rejection of text combined with a location."""
        params = {"q": "cardio", "city": "Springfield"}
        assert SearchRequest.from_params(params, self.config).query == "cardio"

        config = dict(self.config, reject_text_with_geography=True)
        with pytest.raises(InvalidRequest):
            SearchRequest.from_params(params, config)


class TestKindSelector:
    """Test cases for the type selector."""

    def test_subset(self):
        """Test a comma-separated subset in table order."""
        kinds = parse_kind_selector("clinics, doctors")
        assert kinds == [EntityKind.PRACTITIONER, EntityKind.CLINIC]

    def test_restricted_kind_needs_role(self):
        """Test that patients are only searchable for privileged roles."""
        assert parse_kind_selector("patients") == []
        assert parse_kind_selector("patients", role="user") == []
        assert parse_kind_selector("patients", role="admin") == [EntityKind.PATIENT]
        assert EntityKind.PATIENT in parse_kind_selector("all", role="superuser")


class TestQueryPlanner:
    """Test cases for the query planner."""

    def setup_method(self):
        """Setup test fixtures."""
        self.planner = QueryPlanner({"geo_text_overfetch_factor": 5})
        self.config = {"default_page_size": 20, "max_page_size": 100}

    def test_classify(self):
        """Test strategy selection from the request shape."""
        assert self.planner.classify(has_text=True, has_geo=True) == Strategy.GEO_TEXT
        assert self.planner.classify(has_text=True, has_geo=False) == Strategy.TEXT
        assert self.planner.classify(has_text=False, has_geo=True) == Strategy.GEO
        assert self.planner.classify(has_text=False, has_geo=False) == Strategy.FILTER

    def test_place_does_not_change_strategy(self):
        """Test that a place name only adds a predicate."""
        request = SearchRequest.from_params({"city": "Springfield"}, self.config)
        plan = self.planner.plan(request)
        assert plan.strategy == Strategy.FILTER
        assert plan.place == "Springfield"

    def test_partial_coordinates_plan_as_text(self):
        """Test that a lone latitude leaves a text search."""
        request = SearchRequest.from_params({"q": "heart", "lat": "12.9"}, self.config)
        assert self.planner.plan(request).strategy == Strategy.TEXT

    def test_candidate_limit(self):
        """Test the geo+text over-fetch window."""
        request = SearchRequest.from_params(
            {"q": "heart", "lat": "12.9", "lng": "77.5", "limit": "4", "page": "2"}, self.config
        )
        plan = self.planner.plan(request)

        assert plan.strategy == Strategy.GEO_TEXT
        assert plan.candidate_limit == 20
        assert plan.skip == 4

        assert QueryPlanner({"geo_text_overfetch_factor": 3}).plan(request).candidate_limit == 12


if __name__ == "__main__":
    pytest.main([__file__])
