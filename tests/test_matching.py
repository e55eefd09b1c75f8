"""
Unit tests for category matching.
"""
from core.matching import (
    FALLBACK_CATEGORY,
    calculate_similarity,
    match_category,
    normalize_string,
    resolve_category,
)

EXPENDITURE = ["Food", "Transport", "Rent", "Utilities", "Health"]


def test_normalize_string():
    """Test string normalization."""
    assert normalize_string("  Food   and  Dining ") == "food and dining"
    assert normalize_string(None) == ""


def test_calculate_similarity():
    assert calculate_similarity("Transport", "transport") == 1.0
    assert calculate_similarity("", "Food") == 0.0
    assert 0.0 < calculate_similarity("Utilites", "Utilities") < 1.0


def test_match_exact_case_insensitive():
    result = match_category("food", EXPENDITURE)
    assert result == {"value": "Food", "score": 1.0, "method": "exact"}


def test_match_substring():
    """A longer label containing a category name snaps to it."""
    result = match_category("Food & Dining", EXPENDITURE)
    assert result["value"] == "Food"
    assert result["method"] == "substring"


def test_match_fuzzy():
    """Misspellings within the threshold match."""
    result = match_category("Utilites", EXPENDITURE, threshold=0.8)
    assert result["value"] == "Utilities"
    assert result["method"] == "fuzzy"


def test_no_match():
    result = match_category("Entertainment", EXPENDITURE, threshold=0.9)
    assert result["value"] is None
    assert result["method"] is None


def test_resolve_category_falls_back():
    assert resolve_category("Entertainment", EXPENDITURE) == FALLBACK_CATEGORY
    assert resolve_category(None, EXPENDITURE) == FALLBACK_CATEGORY
    assert resolve_category("Rent", []) == FALLBACK_CATEGORY
    assert resolve_category("rent", EXPENDITURE) == "Rent"
