"""Scoring constants shared by the extractor, classifier and ranker."""

from typing import Dict

# Entity extraction
SYNONYM_CONFIDENCE_FACTOR = 0.9
PATTERN_CONFIDENCE = 0.9

# Intent resolution
DEFAULT_INTENT = "INFORMATION"
DEFAULT_INTENT_CONFIDENCE = 0.7

# Category classification
GENERAL_CATEGORY = "general"
GENERAL_CONFIDENCE = 0.5
KEYWORD_MATCH_SCORE = 1
EXACT_MATCH_BONUS = 3
PREFIX_MATCH_BONUS = 2
CATEGORY_BASE_CONFIDENCE = 0.5
CATEGORY_SHARE_WEIGHT = 0.5
CATEGORY_MAX_CONFIDENCE = 0.95

# Subcategory scoring
SUBCATEGORY_BASE_CONFIDENCE = 0.6
SUBCATEGORY_COVERAGE_WEIGHT = 0.35
SUBCATEGORY_MAX_CONFIDENCE = 0.95
SUBCATEGORY_MISS_CONFIDENCE = 0.3
SUBCATEGORY_MIN_CONFIDENCE = 0.4

# Relevance ranking (multiplied by entity confidence)
FIELD_WEIGHTS: Dict[str, float] = {
    "title": 10.0,
    "description": 5.0,
    "category": 3.0,
    "subcategory": 2.0,
}
INTENT_BONUS = 5.0


def category_confidence(top_score: float, total_score: float) -> float:
    """Bounded confidence for the winning category: in [0.5, 0.95]."""
    return min(
        CATEGORY_BASE_CONFIDENCE + (top_score / (total_score + 1)) * CATEGORY_SHARE_WEIGHT,
        CATEGORY_MAX_CONFIDENCE,
    )


def subcategory_confidence(match_count: int, keyword_count: int) -> float:
    """Confidence for a subcategory given how many of its keywords matched."""
    if match_count <= 0 or keyword_count <= 0:
        return SUBCATEGORY_MISS_CONFIDENCE
    return min(
        SUBCATEGORY_BASE_CONFIDENCE + (match_count / keyword_count) * SUBCATEGORY_COVERAGE_WEIGHT,
        SUBCATEGORY_MAX_CONFIDENCE,
    )
