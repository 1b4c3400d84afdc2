"""Keyword-based category and subcategory classification."""

from __future__ import annotations

from typing import Dict, List, Optional

from loguru import logger

from govsearch.lexicon.models import CategoryDefinition, Language
from govsearch.lexicon.store import LexiconStore, get_lexicon_store
from govsearch.nlp.models import ClassificationResult, SubcategoryScore
from govsearch.nlp.scoring import (
    EXACT_MATCH_BONUS,
    GENERAL_CATEGORY,
    GENERAL_CONFIDENCE,
    KEYWORD_MATCH_SCORE,
    PREFIX_MATCH_BONUS,
    SUBCATEGORY_MIN_CONFIDENCE,
    category_confidence,
    subcategory_confidence,
)
from govsearch.nlp.text_normalizer import TextNormalizer


class CategoryClassifier:
    """Score a normalized query against the category keyword tables."""

    def __init__(
        self,
        store: Optional[LexiconStore] = None,
        normalizer: Optional[TextNormalizer] = None,
    ) -> None:
        self.store = store or get_lexicon_store()
        self.normalizer = normalizer or TextNormalizer()

    def classify(self, normalized_query: str, language: Language | str = Language.EN) -> ClassificationResult:
        """Pick the best-fit category for ``normalized_query``.

        Args:
            normalized_query: Output of TextNormalizer.normalize for ``language``
            language: Query language

        Returns:
            ClassificationResult; the "general" fallback when no category scores
        """
        language = Language(language)
        profile = self.store.get_profile(language)

        scores: Dict[str, float] = {}
        total_score = 0.0
        best: Optional[CategoryDefinition] = None
        best_score = 0.0

        for definition in profile.categories:
            score = self._score_keywords(normalized_query, definition.keywords, language)
            scores[definition.name] = score
            total_score += score
            # Strict comparison: the first category wins ties.
            if score > best_score:
                best, best_score = definition, score

        if best is None:
            return ClassificationResult(
                category=GENERAL_CATEGORY, confidence=GENERAL_CONFIDENCE, scores=scores
            )

        result = ClassificationResult(
            category=best.name,
            confidence=category_confidence(best_score, total_score),
            subcategories=tuple(self._subcategories(normalized_query, best, language)),
            scores=scores,
        )
        logger.debug(
            "Classified query",
            category=result.category,
            confidence=round(result.confidence, 4),
            total_score=total_score,
        )
        return result

    def _score_keywords(self, query: str, keywords, language: Language) -> float:
        if not query:
            return 0.0
        score = 0.0
        for keyword in keywords:
            needle = self.normalizer.normalize_term(keyword, language)
            if not needle or needle not in query:
                continue
            score += KEYWORD_MATCH_SCORE
            if query == needle:
                score += EXACT_MATCH_BONUS
            if query.startswith(needle + " "):
                score += PREFIX_MATCH_BONUS
        return score

    def _subcategories(
        self, query: str, definition: CategoryDefinition, language: Language
    ) -> List[SubcategoryScore]:
        results: List[SubcategoryScore] = []
        for sub in definition.subcategories:
            matches = sum(
                1
                for keyword in sub.keywords
                if (needle := self.normalizer.normalize_term(keyword, language)) and needle in query
            )
            confidence = subcategory_confidence(matches, len(sub.keywords))
            if confidence > SUBCATEGORY_MIN_CONFIDENCE:
                results.append(SubcategoryScore(name=sub.name, confidence=confidence))
        return results
