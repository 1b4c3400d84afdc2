"""Query expansion with canonical terms inferred from synonym hits."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from govsearch.lexicon.models import Language
from govsearch.lexicon.store import LexiconStore, get_lexicon_store
from govsearch.nlp.text_normalizer import TextNormalizer


class QueryExpander:
    """Append canonical terms for entries that matched only through a synonym.

    Entity tables are processed first, then the expansion-only table. A canonical
    term targeted by several entries is appended once per entry; the result is not
    deduplicated. Appended terms are normalized like the query, so the expanded
    query stays in one normal form.
    """

    def __init__(
        self,
        store: Optional[LexiconStore] = None,
        normalizer: Optional[TextNormalizer] = None,
    ) -> None:
        self.store = store or get_lexicon_store()
        self.normalizer = normalizer or TextNormalizer()

    def expand(self, normalized_query: str, language: Language | str = Language.EN) -> str:
        language = Language(language)
        if not normalized_query:
            return ""

        profile = self.store.get_profile(language)
        pairs = [(entry.canonical_term, entry.synonyms) for entry in profile.lexicon]
        pairs.extend((entry.canonical_term, entry.synonyms) for entry in profile.expansions)

        appended: List[str] = []
        for canonical, synonyms in pairs:
            if self._expansion_hit(normalized_query, canonical, synonyms, language):
                appended.append(self.normalizer.normalize_term(canonical, language))

        # Canonical presence is tested against the query as given, not the accumulator.
        return "".join([normalized_query, *(" " + term for term in appended)])

    def _expansion_hit(
        self,
        query: str,
        canonical: str,
        synonyms: Sequence[str],
        language: Language,
    ) -> bool:
        canonical_norm = self.normalizer.normalize_term(canonical, language)
        if canonical_norm and canonical_norm in query:
            return False
        return self._any_present(query, synonyms, language)

    def _any_present(self, query: str, terms: Iterable[str], language: Language) -> bool:
        for term in terms:
            needle = self.normalizer.normalize_term(term, language)
            if needle and needle in query:
                return True
        return False
