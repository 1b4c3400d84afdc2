"""Query understanding pipeline.

Runs normalization, entity extraction, intent resolution, query expansion and
classification for one query. The pipeline holds no per-query state, so a single
processor can serve concurrent requests.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from govsearch.lexicon.models import Language
from govsearch.lexicon.store import LexiconStore, get_lexicon_store
from govsearch.nlp.classifier import CategoryClassifier
from govsearch.nlp.entity_extractor import EntityExtractor
from govsearch.nlp.intent_resolver import IntentResolver
from govsearch.nlp.models import ClassificationResult, EntityRecognitionResult, QueryAnalysis
from govsearch.nlp.query_expander import QueryExpander
from govsearch.nlp.text_normalizer import TextNormalizer
from govsearch.nlp.tokenizer import Tokenizer
from govsearch.utils.config import Config, NLPConfig


class QueryProcessor:
    """Turn a raw query into entities, intents, an expanded query and a category."""

    def __init__(
        self,
        config: Optional[Config] = None,
        store: Optional[LexiconStore] = None,
    ) -> None:
        """Initialize the processor.

        Args:
            config: Configuration object
            store: Lexicon store (the bundled profiles, or ``nlp.lexicon_dir``, if None)
        """
        self.config = config or Config.from_yaml()
        self.nlp_config: NLPConfig = self.config.nlp
        self.store = store or get_lexicon_store(self.nlp_config.lexicon_dir)

        self.normalizer = TextNormalizer()
        self.tokenizer = Tokenizer(store=self.store, normalizer=self.normalizer)
        self.extractor = EntityExtractor(
            store=self.store,
            normalizer=self.normalizer,
            enable_time_patterns=self.nlp_config.enable_time_patterns,
        )
        self.intent_resolver = IntentResolver(store=self.store, normalizer=self.normalizer)
        self.expander = QueryExpander(store=self.store, normalizer=self.normalizer)
        self.classifier = CategoryClassifier(store=self.store, normalizer=self.normalizer)

        logger.info(
            "Initialized QueryProcessor",
            default_language=self.nlp_config.default_language,
            lexicon_dir=str(self.store.lexicon_dir),
            time_patterns=self.nlp_config.enable_time_patterns,
        )

    def _language(self, language: Language | str | None) -> Language:
        return Language(language or self.nlp_config.default_language)

    def recognize(self, query: str, language: Language | str | None = None) -> EntityRecognitionResult:
        """Extract entities and intents and build the expanded query."""
        language = self._language(language)
        normalized = self.normalizer.normalize(query, language)

        return EntityRecognitionResult(
            entities=tuple(self.extractor.extract(normalized, language)),
            intents=self.intent_resolver.resolve(normalized, language),
            expanded_query=self.expander.expand(normalized, language),
            original_query=query or "",
            normalized_query=normalized,
            language=language,
        )

    def classify(self, query: str, language: Language | str | None = None) -> ClassificationResult:
        """Classify a raw query into a category with subcategories."""
        language = self._language(language)
        return self.classifier.classify(self.normalizer.normalize(query, language), language)

    def analyze(self, query: str, language: Language | str | None = None) -> QueryAnalysis:
        """Run the full pipeline.

        Args:
            query: Raw user query
            language: Query language (``nlp.default_language`` if None)

        Returns:
            QueryAnalysis with recognition, classification and processed tokens
        """
        language = self._language(language)
        recognition = self.recognize(query, language)
        classification = self.classifier.classify(recognition.normalized_query, language)
        tokens = self.tokenizer.process(query, language)

        logger.debug(
            "Analyzed query",
            language=language.value,
            entities=len(recognition.entities),
            intents=list(recognition.intent_labels()),
            category=classification.category,
        )
        return QueryAnalysis(
            recognition=recognition,
            classification=classification,
            tokens=tuple(tokens),
        )
