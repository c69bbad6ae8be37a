"""
Unit tests for sport/bet type normalisation and collection names.
"""

import pytest

from betcheck.bet_types import (
    get_collection_name,
    is_known_bet_type,
    is_known_sport_type,
    normalize_bet_type,
    normalize_sport_type,
)


class TestCollectionName:

    @pytest.mark.parametrize("sport, bet, expected", [
        ("tennis", "normal", "tennis"),
        ("tennis", "kelly", "tennis-kelly"),
        ("tennis", "spread", "tennis-spread"),
        ("table-tennis", "normal", "table-tennis"),
        ("table-tennis", "kelly", "table-tennis-kelly"),
        ("table-tennis", "spread", "table-tennis"),
    ])
    def test_combinations(self, sport, bet, expected):
        assert get_collection_name(sport, bet) == expected

    def test_defaults_to_normal(self):
        assert get_collection_name("tennis") == "tennis"

    def test_unknown_values_fall_back(self):
        assert get_collection_name("badminton", "parlay") == "tennis"


class TestNormalisation:

    @pytest.mark.parametrize("raw", ["table-tennis", "Table Tennis", "table_tennis", " TABLE-TENNIS "])
    def test_table_tennis_variants(self, raw):
        assert normalize_sport_type(raw) == "table-tennis"

    @pytest.mark.parametrize("raw", [None, "", "tennis", "football"])
    def test_sport_defaults_to_tennis(self, raw):
        assert normalize_sport_type(raw) == "tennis"

    def test_bet_type(self):
        assert normalize_bet_type("Kelly") == "kelly"
        assert normalize_bet_type(" spread ") == "spread"
        assert normalize_bet_type("parlay") == "normal"
        assert normalize_bet_type(None) == "normal"

    def test_known_checks(self):
        assert is_known_sport_type("Tennis")
        assert not is_known_sport_type("squash")
        assert is_known_bet_type("KELLY")
        assert not is_known_bet_type("parlay")
