"""Text normalization for English and Arabic queries."""

from __future__ import annotations

import re
from typing import Dict, Tuple

from govsearch.lexicon.models import Language

# Letter-shape variants folded to one canonical codepoint. Every mapping is
# one character to one character, so folding never shifts offsets.
_ARABIC_FOLDING: Dict[str, str] = {
    **dict.fromkeys("ىيﻱﻲﻳﻴ", "ي"),
    **dict.fromkeys("ةﺓﺔ", "ة"),
    **dict.fromkeys("أإآﺃﺄﺇﺈﺁﺂ", "ا"),
    **dict.fromkeys("ﻩﻫﻬ", "ه"),
    **dict.fromkeys("ﻙﻚﻛﻜ", "ك"),
    **dict.fromkeys("ﻭﻮ", "و"),
}
_ARABIC_TRANSLATION = str.maketrans(_ARABIC_FOLDING)


def fold_arabic(text: str) -> str:
    """Fold Ya, Ta-Marbuta, Alef, Ha, Kaf and Waw variants."""
    return text.translate(_ARABIC_TRANSLATION)


class TextNormalizer:
    """Lowercase, blank out-of-alphabet characters and collapse whitespace.

    The result is idempotent: normalizing normalized text returns it unchanged.
    Lexicon terms go through :meth:`normalize_term`, which memoizes, so both
    sides of every substring test share one normal form.
    """

    def __init__(self) -> None:
        self._disallowed: Dict[Language, re.Pattern[str]] = {
            Language.EN: re.compile(r"[^a-z0-9\s]"),
            Language.AR: re.compile(r"[^\u0621-\u064A\u0660-\u0669\s]"),
        }
        self._whitespace_re = re.compile(r"\s+")
        self._term_cache: Dict[Tuple[Language, str], str] = {}

    def normalize(self, text: str | None, language: Language | str = Language.EN) -> str:
        """Normalize query text. Never raises; unknown characters become spaces."""
        if not text:
            return ""

        language = Language(language)
        working = text.lower()
        if language == Language.AR:
            # Presentation forms lie outside the kept range, so fold before filtering.
            working = fold_arabic(working)
        working = self._disallowed[language].sub(" ", working)
        return self._whitespace_re.sub(" ", working).strip()

    def normalize_term(self, term: str, language: Language | str = Language.EN) -> str:
        """Normalize a lexicon term, caching the result."""
        language = Language(language)
        key = (language, term)
        cached = self._term_cache.get(key)
        if cached is None:
            cached = self.normalize(term, language)
            self._term_cache[key] = cached
        return cached
