"""Query understanding package."""

from govsearch.nlp.classifier import CategoryClassifier
from govsearch.nlp.entity_extractor import EntityExtractor
from govsearch.nlp.intent_resolver import IntentResolver
from govsearch.nlp.models import (
    ClassificationResult,
    EntityRecognitionResult,
    Intent,
    QueryAnalysis,
    RecognizedEntity,
    SubcategoryScore,
)
from govsearch.nlp.processor import QueryProcessor
from govsearch.nlp.query_expander import QueryExpander
from govsearch.nlp.text_normalizer import TextNormalizer, fold_arabic
from govsearch.nlp.tokenizer import Tokenizer

__all__ = [
    "CategoryClassifier",
    "ClassificationResult",
    "EntityExtractor",
    "EntityRecognitionResult",
    "Intent",
    "IntentResolver",
    "QueryAnalysis",
    "QueryExpander",
    "QueryProcessor",
    "RecognizedEntity",
    "SubcategoryScore",
    "TextNormalizer",
    "Tokenizer",
    "fold_arabic",
]
