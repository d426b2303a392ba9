"""Tests for category label normalization."""

from __future__ import annotations

import pytest

from fitpick.search.normalize import SEARCH_CATEGORIES, normalize_category


class TestNormalizeCategory:
    @pytest.mark.parametrize(
        "label,expected",
        [
            ("A", "A"),
            ("b", "B"),
            ("  C  ", "C"),
            ("D", "D"),
            ("A类", "A"),
            ("c类", "C"),
            (" B类 ", "B"),
        ],
    )
    def test_recognized(self, label, expected):
        assert normalize_category(label) == expected

    @pytest.mark.parametrize(
        "label",
        ["E", "AB", "A类类", "类", "", "A 类", "AA", "1", "A-"],
    )
    def test_unrecognized_text(self, label):
        assert normalize_category(label) is None

    @pytest.mark.parametrize("label", [None, 1, 1.0, ["A"], {"A": 1}, b"A"])
    def test_non_text(self, label):
        assert normalize_category(label) is None

    def test_search_categories_exclude_d(self):
        assert normalize_category("d类") == "D"
        assert "D" not in SEARCH_CATEGORIES
        assert SEARCH_CATEGORIES == ("A", "B", "C")
