"""
Unit tests for token matching and location filtering.
"""

import pytest
import pandas as pd
import sys
from pathlib import Path

# Add src to path
sys.path.append(str(Path(__file__).parent.parent))

from src.match.token_matcher import tokenize, matches, record_field_values, record_matches
from src.match.location_filter import build_location_predicate
from src.store.predicates import matches_tokens


class TestTokenMatcher:
    """Test cases for the in-memory token matcher."""

    def test_tokenize(self):
        """Test query tokenization."""
        assert tokenize("  Heart  Clinic ") == ["heart", "clinic"]
        assert tokenize("") == []
        assert tokenize(None) == []

    def test_blank_query_always_matches(self):
        """Test that an empty query matches anything."""
        assert matches("", ["anything"])
        assert matches("   ", [])
        assert matches(None, [None])

    def test_case_insensitive_substring(self):
        """Test case-insensitive substring matching."""
        assert matches("CARDIO", ["Cardiology"])
        assert matches("logy", ["Cardiology"])
        assert not matches("neuro", ["Cardiology", "Heart specialist"])

    def test_any_token_any_field(self):
        """Test that one matching token in one field is enough."""
        assert matches("dental heart", ["Family clinic", "Heart care"])
        assert not matches("dental skin", ["Family clinic", "Heart care"])

    def test_short_tokens_participate(self):
        """Test that single-character tokens are not dropped."""
        assert matches("a", ["Asha"])
        assert not matches("q", ["Asha"])

    def test_non_string_fields_skipped(self):
        """Test that numbers and None are ignored."""
        assert not matches("12", [12, None, 4.5])
        assert matches("12", [12, "12 Main St"])

    def test_record_field_values_nested(self):
        """Test dotted path lookup through nested documents."""
        record = {"address": {"city": "Springfield", "location": {"coordinates": [1.0, 2.0]}}}

        assert record_field_values(record, "address.city") == ["Springfield"]
        assert record_field_values(record, "address.location.coordinates") == [1.0, 2.0]
        assert record_field_values(record, "address.zip") == []
        assert record_field_values(record, "missing") == []

    def test_record_field_values_flattened_keys(self):
        """Test lookup when keys are already flattened."""
        record = {"address.city": "Springfield", "rating.average": 4.2}

        assert record_field_values(record, "address.city") == ["Springfield"]
        assert record_field_values(record, "rating.average") == [4.2]

    def test_record_field_values_through_lists(self):
        """Test that lists along the path are expanded."""
        record = {"testsOffered": [{"name": "Lipid Profile"}, {"name": "Thyroid Panel"}, {"price": 3}]}

        assert record_field_values(record, "testsOffered.name") == ["Lipid Profile", "Thyroid Panel"]

    def test_record_matches(self):
        """Test matching a query against record fields."""
        record = {
            "name": "Precision Diagnostics",
            "testsOffered": [{"name": "Lipid Profile"}],
            "address": {"city": "Springfield"},
        }

        assert record_matches("lipid", record, ["name", "testsOffered.name"])
        assert not record_matches("springfield", record, ["name", "testsOffered.name"])
        assert record_matches("springfield", record, ["address.city"])


class TestStoreTokenPredicate:
    """Test cases for the store-side token predicate."""

    def setup_method(self):
        """Setup test fixtures."""
        self.df = pd.DataFrame({
            "name": ["Asha Rao", "Vikram Shah", None],
            "services": [["ECG", "Echo"], [], ["Dental"]],
        })

    def test_matches_tokens_any_field(self):
        """Test token predicate over scalar and list fields."""
        mask = matches_tokens(["name", "services"], "echo dental")(self.df)
        assert mask.tolist() == [True, False, True]

    def test_matches_tokens_blank_query(self):
        """Test that a blank query keeps every row."""
        mask = matches_tokens(["name"], "")(self.df)
        assert mask.all()

    def test_matches_tokens_missing_field(self):
        """Test that absent fields never match."""
        mask = matches_tokens(["bio"], "asha")(self.df)
        assert not mask.any()


class TestLocationFilter:
    """Test cases for the location predicate builder."""

    def setup_method(self):
        """Setup test fixtures."""
        self.df = pd.json_normalize([
            {"name": "A", "address": {"city": "Springfield", "state": "Illinois"}},
            {"name": "B", "place": "North Springfield"},
            {"name": "C", "address": {"city": "Shelbyville"}, "state": "Illinois"},
            {"name": "D"},
        ])
        self.fields = ["address.city", "address.state", "place", "state"]

    def test_blank_place_matches_everything(self):
        """Test that no place means no location restriction."""
        for place in (None, "", "   "):
            assert build_location_predicate(place, self.fields)(self.df).all()

    def test_place_matches_any_location_field(self):
        """Test case-insensitive substring match across location fields."""
        mask = build_location_predicate("springfield", self.fields)(self.df)
        assert mask.tolist() == [True, True, False, False]

    def test_state_name_matches(self):
        """Test matching on the state field."""
        mask = build_location_predicate(" ILLINOIS ", self.fields)(self.df)
        assert mask.tolist() == [True, False, True, False]

    def test_unknown_place(self):
        """Test that an unknown place matches nothing."""
        mask = build_location_predicate("Atlantis", self.fields)(self.df)
        assert not mask.any()


if __name__ == "__main__":
    pytest.main([__file__])
