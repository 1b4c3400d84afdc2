"""Trigger-phrase intent detection."""

from __future__ import annotations

from typing import Dict, Optional

from govsearch.lexicon.models import Language
from govsearch.lexicon.store import LexiconStore, get_lexicon_store
from govsearch.nlp.models import Intent
from govsearch.nlp.scoring import DEFAULT_INTENT, DEFAULT_INTENT_CONFIDENCE
from govsearch.nlp.text_normalizer import TextNormalizer


class IntentResolver:
    """Map trigger phrases found in the query to intent labels."""

    def __init__(
        self,
        store: Optional[LexiconStore] = None,
        normalizer: Optional[TextNormalizer] = None,
    ) -> None:
        self.store = store or get_lexicon_store()
        self.normalizer = normalizer or TextNormalizer()

    def resolve(self, normalized_query: str, language: Language | str = Language.EN) -> Dict[str, Intent]:
        """Resolve intents for a normalized query.

        A label keeps the highest confidence among its firing triggers. When no
        trigger fires the result holds only the default INFORMATION intent.

        Returns:
            Mapping of label to Intent, in the order labels were first detected
        """
        language = Language(language)
        intents: Dict[str, Intent] = {}

        if normalized_query:
            for trigger in self.store.get_profile(language).intent_triggers:
                phrase = self.normalizer.normalize_term(trigger.phrase, language)
                if not phrase or phrase not in normalized_query:
                    continue
                current = intents.get(trigger.label)
                if current is None or trigger.confidence > current.confidence:
                    intents[trigger.label] = Intent(label=trigger.label, confidence=trigger.confidence)

        if not intents:
            intents[DEFAULT_INTENT] = Intent(label=DEFAULT_INTENT, confidence=DEFAULT_INTENT_CONFIDENCE)
        return intents
