"""Relevance ranking of aggregated service records.

Records are deduplicated by (title, authority), scored against the recognized
entities and intents, and stable-sorted by descending score. Scores are not
capped, so records matching more entities dominate.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from govsearch.lexicon.models import Language
from govsearch.lexicon.store import LexiconStore, get_lexicon_store
from govsearch.nlp.models import EntityRecognitionResult
from govsearch.nlp.scoring import FIELD_WEIGHTS, INTENT_BONUS
from govsearch.nlp.text_normalizer import TextNormalizer
from govsearch.retrieval.models import RankedService, ServiceRecord


def _is_newer(candidate: ServiceRecord, current: ServiceRecord) -> bool:
    """True when ``candidate`` was updated strictly later than ``current``.

    Unparseable dates are older than any parseable one.
    """
    candidate_at = candidate.last_updated_at()
    current_at = current.last_updated_at()
    if candidate_at is None:
        return False
    if current_at is None:
        return True
    return candidate_at > current_at


def deduplicate(records: Iterable[ServiceRecord]) -> List[ServiceRecord]:
    """Keep one record per (title, authority), preferring the latest ``last_updated``.

    Ties keep the first record seen. Output order is first-seen order of each key.
    """
    kept: Dict[Tuple[str, str], ServiceRecord] = {}
    for record in records:
        key = (record.title, record.authority)
        current = kept.get(key)
        if current is None or _is_newer(record, current):
            kept[key] = record
    return list(kept.values())


def sort_by_date(ranked: Sequence[RankedService]) -> List[RankedService]:
    """Stable sort by ``last_updated`` descending; undated records go last."""
    return sorted(
        ranked,
        key=lambda item: item.record.last_updated_at() or datetime.min,
        reverse=True,
    )


class RelevanceRanker:
    """Score records against entities and intents of one query."""

    def __init__(
        self,
        store: Optional[LexiconStore] = None,
        normalizer: Optional[TextNormalizer] = None,
    ) -> None:
        self.store = store or get_lexicon_store()
        self.normalizer = normalizer or TextNormalizer()

    def rank(
        self,
        records: Iterable[ServiceRecord],
        recognition: EntityRecognitionResult,
        language: Language | str | None = None,
    ) -> List[RankedService]:
        """Deduplicate, score and sort ``records``.

        Args:
            records: Aggregated records, in fetch order
            recognition: Entities and intents of the query
            language: Normalization language (the recognition language if None)

        Returns:
            RankedService list sorted by descending score, ties in fetch order
        """
        language = Language(language or recognition.language)
        unique = deduplicate(records)

        scored = [(record, self.score(record, recognition, language)) for record in unique]
        # sorted() is stable, so equal scores keep fetch order.
        scored = sorted(scored, key=lambda pair: pair[1], reverse=True)

        logger.debug("Ranked records", candidates=len(unique), language=language.value)
        return [
            RankedService(record=record, score=score, rank=rank)
            for rank, (record, score) in enumerate(scored, 1)
        ]

    def score(
        self,
        record: ServiceRecord,
        recognition: EntityRecognitionResult,
        language: Language | str = Language.EN,
    ) -> float:
        """Weighted sum of entity field matches plus intent keyword bonuses."""
        language = Language(language)
        fields = {
            "title": self.normalizer.normalize(record.title, language),
            "description": self.normalizer.normalize(record.description, language),
            "category": self.normalizer.normalize(record.category, language),
            "subcategory": self.normalizer.normalize(record.subcategory, language),
        }

        score = 0.0
        for entity in recognition.entities:
            value = self.normalizer.normalize_term(entity.match_value, language)
            if not value:
                continue
            for field_name, weight in FIELD_WEIGHTS.items():
                if value in fields[field_name]:
                    score += weight * entity.confidence

        intent_keywords = self.store.get_profile(language).intent_keywords
        text = f"{fields['title']} {fields['description']}"
        for label, intent in recognition.intents.items():
            keywords = intent_keywords.get(label, ())
            if any(
                (needle := self.normalizer.normalize_term(keyword, language)) and needle in text
                for keyword in keywords
            ):
                score += INTENT_BONUS * intent.confidence

        return score
