"""Lexicon-based entity extraction over the normalized (unstemmed) query."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Tuple

from loguru import logger

from govsearch.lexicon.models import EntityType, Language, LexiconEntry
from govsearch.lexicon.store import LexiconStore, get_lexicon_store
from govsearch.nlp.models import RecognizedEntity
from govsearch.nlp.scoring import PATTERN_CONFIDENCE, SYNONYM_CONFIDENCE_FACTOR
from govsearch.nlp.text_normalizer import TextNormalizer


class EntityExtractor:
    """Scan a normalized query against every entity table of a language profile.

    Each entity type is matched independently, so spans of different entities may
    overlap. Offsets are those of the first occurrence of the matched term.
    """

    def __init__(
        self,
        store: Optional[LexiconStore] = None,
        normalizer: Optional[TextNormalizer] = None,
        enable_time_patterns: bool = True,
    ) -> None:
        self.store = store or get_lexicon_store()
        self.normalizer = normalizer or TextNormalizer()
        self.enable_time_patterns = enable_time_patterns
        self._patterns: Dict[Language, List[re.Pattern[str]]] = {}

    def extract(self, normalized_query: str, language: Language | str = Language.EN) -> List[RecognizedEntity]:
        """Extract entities from an already-normalized query.

        Args:
            normalized_query: Output of TextNormalizer.normalize for ``language``
            language: Query language

        Returns:
            Entities in table order (entity type order, then entry order), followed
            by pattern-based TIME_PERIOD matches
        """
        language = Language(language)
        if not normalized_query:
            return []

        profile = self.store.get_profile(language)
        entities: List[RecognizedEntity] = []
        for entry in profile.lexicon:
            entity = self._match_entry(normalized_query, entry, language)
            if entity is not None:
                entities.append(entity)

        if self.enable_time_patterns:
            entities.extend(self._match_time_patterns(normalized_query, language))

        logger.debug(
            "Extracted entities",
            language=language.value,
            count=len(entities),
            types=sorted({e.type.value for e in entities}),
        )
        return entities

    def _match_entry(
        self, query: str, entry: LexiconEntry, language: Language
    ) -> Optional[RecognizedEntity]:
        span = self._find(query, entry.canonical_term, language)
        if span is not None:
            return RecognizedEntity(
                text=query[span[0] : span[1]],
                type=entry.entity_type,
                confidence=entry.base_confidence,
                normalized_value=entry.canonical_term,
                start_offset=span[0],
                end_offset=span[1],
            )

        # Only the first matching synonym counts for an entry.
        for synonym in entry.synonyms:
            span = self._find(query, synonym, language)
            if span is not None:
                return RecognizedEntity(
                    text=query[span[0] : span[1]],
                    type=entry.entity_type,
                    confidence=entry.base_confidence * SYNONYM_CONFIDENCE_FACTOR,
                    normalized_value=entry.canonical_term,
                    start_offset=span[0],
                    end_offset=span[1],
                )
        return None

    def _find(self, query: str, term: str, language: Language) -> Optional[Tuple[int, int]]:
        needle = self.normalizer.normalize_term(term, language)
        if not needle:
            return None
        start = query.find(needle)
        if start < 0:
            return None
        return start, start + len(needle)

    def _match_time_patterns(self, query: str, language: Language) -> List[RecognizedEntity]:
        # Pattern hits are not deduplicated against lexicon TIME_PERIOD hits.
        entities: List[RecognizedEntity] = []
        for pattern in self._compiled_patterns(language):
            for match in pattern.finditer(query):
                entities.append(
                    RecognizedEntity(
                        text=match.group(0),
                        type=EntityType.TIME_PERIOD,
                        confidence=PATTERN_CONFIDENCE,
                        normalized_value=match.group(0),
                        start_offset=match.start(),
                        end_offset=match.end(),
                    )
                )
        return entities

    def _compiled_patterns(self, language: Language) -> List[re.Pattern[str]]:
        compiled = self._patterns.get(language)
        if compiled is None:
            profile = self.store.get_profile(language)
            compiled = [re.compile(p, re.IGNORECASE) for p in profile.time_patterns]
            self._patterns[language] = compiled
        return compiled
