"""Data models for the per-language lexicon profiles."""

from __future__ import annotations

import re
from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Language(str, Enum):
    """Supported query languages. Always supplied by the caller."""

    EN = "en"
    AR = "ar"


class EntityType(str, Enum):
    """Closed set of entity categories recognized in queries."""

    SERVICE_TYPE = "SERVICE_TYPE"
    DOCUMENT_TYPE = "DOCUMENT_TYPE"
    LOCATION = "LOCATION"
    PERSON_TYPE = "PERSON_TYPE"
    TIME_PERIOD = "TIME_PERIOD"
    FEE_TYPE = "FEE_TYPE"
    MINISTRY = "MINISTRY"
    AUTHORITY = "AUTHORITY"
    EMIRATE = "EMIRATE"
    NATIONALITY = "NATIONALITY"


class LexiconEntry(BaseModel):
    """Canonical term with its entity type, base confidence and known synonyms."""

    model_config = ConfigDict(frozen=True)

    canonical_term: str = Field(..., min_length=1, description="Canonical form of the term")
    entity_type: EntityType = Field(..., description="Entity category")
    base_confidence: float = Field(..., gt=0.0, le=1.0, description="Confidence of a literal hit")
    synonyms: Tuple[str, ...] = Field(default=(), description="Alternative spellings, in priority order")


class ExpansionEntry(BaseModel):
    """Expansion-only term (actions and the like) that is not itself an entity."""

    model_config = ConfigDict(frozen=True)

    canonical_term: str = Field(..., min_length=1)
    synonyms: Tuple[str, ...] = ()


class IntentTrigger(BaseModel):
    """Phrase whose presence signals an intent label."""

    model_config = ConfigDict(frozen=True)

    phrase: str = Field(..., min_length=1)
    label: str = Field(..., min_length=1)
    confidence: float = Field(default=0.9, gt=0.0, le=1.0)


class SubcategoryDefinition(BaseModel):
    """Subcategory of a top-level category with its keyword list."""

    model_config = ConfigDict(frozen=True)

    name: str
    keywords: Tuple[str, ...] = Field(..., min_length=1)


class CategoryDefinition(BaseModel):
    """Top-level service category with scoring keywords and subcategories."""

    model_config = ConfigDict(frozen=True)

    name: str
    keywords: Tuple[str, ...] = Field(..., min_length=1)
    subcategories: Tuple[SubcategoryDefinition, ...] = ()


class AffixRule(BaseModel):
    """Heuristic stemming rule: strip ``affix`` when the token is longer than ``min_length``."""

    model_config = ConfigDict(frozen=True)

    affix: str = Field(..., min_length=1)
    replacement: str = ""
    min_length: int = Field(default=0, ge=0)


class StemmingRules(BaseModel):
    """At most one prefix rule, then at most one suffix rule; first match wins in each list."""

    model_config = ConfigDict(frozen=True)

    prefixes: Tuple[AffixRule, ...] = ()
    suffixes: Tuple[AffixRule, ...] = ()


class LanguageProfile(BaseModel):
    """Everything language-specific the query pipeline needs.

    Profiles are loaded once from YAML and shared read-only between requests.
    """

    model_config = ConfigDict(frozen=True)

    language: Language
    stopwords: Tuple[str, ...] = ()
    stemming: StemmingRules = Field(default_factory=StemmingRules)
    lexicon: Tuple[LexiconEntry, ...] = ()
    expansions: Tuple[ExpansionEntry, ...] = ()
    time_patterns: Tuple[str, ...] = ()
    intent_triggers: Tuple[IntentTrigger, ...] = ()
    intent_keywords: Dict[str, Tuple[str, ...]] = Field(default_factory=dict)
    categories: Tuple[CategoryDefinition, ...] = ()

    @field_validator("time_patterns")
    @classmethod
    def _validate_patterns(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        for pattern in value:
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid time pattern '{pattern}': {exc}") from exc
        return value
