"""Whitespace tokenization, stopword filtering and heuristic stemming.

The output feeds bag-of-words consumers only. Entity lookup works on the
unstemmed normalized text, because stemming would break fixed phrases such
as "emirates id".
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Iterable, List, Optional

from govsearch.lexicon.models import AffixRule, Language, LanguageProfile
from govsearch.lexicon.store import LexiconStore, get_lexicon_store
from govsearch.nlp.text_normalizer import TextNormalizer


def _match_rule(token: str, rules: Iterable[AffixRule], *, prefix: bool) -> Optional[AffixRule]:
    for rule in rules:
        if len(token) <= rule.min_length or len(token) <= len(rule.affix):
            continue
        if (token.startswith(rule.affix) if prefix else token.endswith(rule.affix)):
            return rule
    return None


class Tokenizer:
    """Tokenize -> drop stopwords -> stem, parametrized by the language profile."""

    def __init__(
        self,
        store: Optional[LexiconStore] = None,
        normalizer: Optional[TextNormalizer] = None,
    ) -> None:
        self.store = store or get_lexicon_store()
        self.normalizer = normalizer or TextNormalizer()
        self._stopwords: Dict[Language, FrozenSet[str]] = {}

    def tokenize(self, normalized_text: str) -> List[str]:
        """Split normalized text on whitespace, dropping empty tokens."""
        return [token for token in normalized_text.split() if token]

    def remove_stopwords(self, tokens: Iterable[str], language: Language | str) -> List[str]:
        stopwords = self._stopword_set(Language(language))
        return [token for token in tokens if token not in stopwords]

    def stem(self, token: str, language: Language | str) -> str:
        """Strip at most one prefix and at most one suffix.

        Rules are tried in profile order and the first applicable rule wins. A rule
        applies only when the token is longer than its ``min_length`` and longer
        than the affix itself, so a token is never stemmed to nothing.
        """
        rules = self.store.get_profile(language).stemming

        prefix_rule = _match_rule(token, rules.prefixes, prefix=True)
        if prefix_rule is not None:
            token = prefix_rule.replacement + token[len(prefix_rule.affix) :]

        suffix_rule = _match_rule(token, rules.suffixes, prefix=False)
        if suffix_rule is not None:
            token = token[: -len(suffix_rule.affix)] + suffix_rule.replacement

        return token

    def process(self, text: str, language: Language | str = Language.EN) -> List[str]:
        """Normalize, tokenize, filter stopwords and stem ``text``."""
        language = Language(language)
        normalized = self.normalizer.normalize(text, language)
        tokens = self.remove_stopwords(self.tokenize(normalized), language)
        return [self.stem(token, language) for token in tokens]

    def _stopword_set(self, language: Language) -> FrozenSet[str]:
        stopwords = self._stopwords.get(language)
        if stopwords is None:
            profile: LanguageProfile = self.store.get_profile(language)
            # Folded like the tokens they are compared with.
            stopwords = frozenset(
                self.normalizer.normalize_term(word, language) for word in profile.stopwords
            )
            self._stopwords[language] = stopwords
        return stopwords
