"""Lexicon package."""

from govsearch.lexicon.models import (
    AffixRule,
    CategoryDefinition,
    EntityType,
    ExpansionEntry,
    IntentTrigger,
    Language,
    LanguageProfile,
    LexiconEntry,
    StemmingRules,
    SubcategoryDefinition,
)
from govsearch.lexicon.store import LexiconStore, get_lexicon_store, parse_profile

__all__ = [
    "AffixRule",
    "CategoryDefinition",
    "EntityType",
    "ExpansionEntry",
    "IntentTrigger",
    "Language",
    "LanguageProfile",
    "LexiconEntry",
    "LexiconStore",
    "StemmingRules",
    "SubcategoryDefinition",
    "get_lexicon_store",
    "parse_profile",
]
