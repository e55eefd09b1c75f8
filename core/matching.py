"""
Fuzzy matching of LLM-suggested category labels against the user's categories.
Uses exact, substring and Levenshtein similarity in that order.
"""
from typing import Any, Dict, Iterable, Optional

import Levenshtein

from core.config import get_settings
from core.logger import setup_logger

logger = setup_logger(__name__)

FALLBACK_CATEGORY = "Others"


def normalize_string(text: Optional[str]) -> str:
    """
    Normalize string for matching: lowercase, trim, remove extra spaces.

    Args:
        text: Input string

    Returns:
        Normalized string
    """
    if not text or not isinstance(text, str):
        return ""

    return " ".join(text.lower().strip().split())


def calculate_similarity(s1: str, s2: str) -> float:
    """
    Calculate Levenshtein similarity ratio between two strings.

    Args:
        s1: First string
        s2: Second string

    Returns:
        Similarity score (0.0 to 1.0)
    """
    s1_norm = normalize_string(s1)
    s2_norm = normalize_string(s2)

    if not s1_norm or not s2_norm:
        return 0.0

    return Levenshtein.ratio(s1_norm, s2_norm)


def match_category(
    suggested: Optional[str],
    candidates: Iterable[str],
    threshold: Optional[float] = None
) -> Dict[str, Any]:
    """
    Find the user category closest to a suggested label.

    Args:
        suggested: Category label proposed by the LLM
        candidates: Category names the user owns for the transaction type
        threshold: Minimum similarity threshold (defaults to configured value)

    Returns:
        Match result with value, score and method ("exact", "substring",
        "fuzzy" or None when nothing matched)
    """
    threshold = threshold or get_settings().fuzzy_match_threshold

    result = {"value": None, "score": None, "method": None}

    suggested_norm = normalize_string(suggested)
    names = [name for name in candidates if normalize_string(name)]
    if not suggested_norm or not names:
        return result

    for name in names:
        if normalize_string(name) == suggested_norm:
            return {"value": name, "score": 1.0, "method": "exact"}

    # "Food & Dining" -> "Food"; require 3+ chars so "Tax" does not swallow "T"
    substring_hits = [
        name for name in names
        if min(len(normalize_string(name)), len(suggested_norm)) >= 3
        and (normalize_string(name) in suggested_norm or suggested_norm in normalize_string(name))
    ]
    if substring_hits:
        best = max(substring_hits, key=lambda n: len(normalize_string(n)))
        return {"value": best, "score": 1.0, "method": "substring"}

    scored = sorted(
        ((calculate_similarity(suggested_norm, name), name) for name in names),
        key=lambda pair: pair[0],
        reverse=True,
    )
    best_score, best_name = scored[0]
    if best_score >= threshold:
        result.update({"value": best_name, "score": best_score, "method": "fuzzy"})
    else:
        logger.debug(f"No category match for '{suggested}' (best {best_name!r} at {best_score:.2f})")

    return result


def resolve_category(suggested: Optional[str], candidates: Iterable[str]) -> str:
    """Return the matched user category, or the fallback label."""
    match = match_category(suggested, candidates)
    return match["value"] or FALLBACK_CATEGORY
