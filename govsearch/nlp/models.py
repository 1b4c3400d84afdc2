"""Value objects produced by the query understanding pipeline."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from govsearch.lexicon.models import EntityType, Language


class RecognizedEntity(BaseModel):
    """Entity mention found in the normalized query."""

    model_config = ConfigDict(frozen=True)

    text: str = Field(..., description="Matched span of the normalized query")
    type: EntityType = Field(..., description="Entity category")
    confidence: float = Field(..., gt=0.0, le=1.0, description="Confidence score")
    normalized_value: Optional[str] = Field(None, description="Canonical term")
    start_offset: int = Field(..., ge=0, description="Start index in the normalized query")
    end_offset: int = Field(..., ge=0, description="End index in the normalized query")

    @model_validator(mode="after")
    def _check_span(self) -> "RecognizedEntity":
        if self.start_offset > self.end_offset:
            raise ValueError("start_offset must not exceed end_offset")
        return self

    @property
    def match_value(self) -> str:
        """Value used for downstream matching (canonical term when known)."""
        return self.normalized_value or self.text


class Intent(BaseModel):
    """Coarse action classification of a query."""

    model_config = ConfigDict(frozen=True)

    label: str
    confidence: float = Field(..., gt=0.0, le=1.0)


class EntityRecognitionResult(BaseModel):
    """Entities, intents and expanded query for one query. Immutable."""

    model_config = ConfigDict(frozen=True)

    entities: Tuple[RecognizedEntity, ...] = ()
    intents: Mapping[str, Intent] = Field(default_factory=dict)
    expanded_query: str = ""
    original_query: str = ""
    normalized_query: str = ""
    language: Language = Language.EN

    def intent_labels(self) -> Tuple[str, ...]:
        """Intent labels in the order they were first detected."""
        return tuple(self.intents.keys())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "original_query": self.original_query,
            "normalized_query": self.normalized_query,
            "expanded_query": self.expanded_query,
            "language": self.language.value,
            "entities": [
                {
                    "text": e.text,
                    "type": e.type.value,
                    "confidence": round(e.confidence, 4),
                    "normalized_value": e.normalized_value,
                    "start_offset": e.start_offset,
                    "end_offset": e.end_offset,
                }
                for e in self.entities
            ],
            "intents": {label: round(i.confidence, 4) for label, i in self.intents.items()},
        }


class SubcategoryScore(BaseModel):
    """Subcategory of the winning category with its confidence."""

    model_config = ConfigDict(frozen=True)

    name: str
    confidence: float


class ClassificationResult(BaseModel):
    """Best-fit category for a query."""

    model_config = ConfigDict(frozen=True)

    category: str
    confidence: float = Field(..., ge=0.5, le=0.95)
    subcategories: Tuple[SubcategoryScore, ...] = ()
    scores: Mapping[str, float] = Field(default_factory=dict, description="Raw per-category scores")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        return {
            "category": self.category,
            "confidence": round(self.confidence, 4),
            "subcategories": [
                {"name": s.name, "confidence": round(s.confidence, 4)} for s in self.subcategories
            ],
        }


class QueryAnalysis(BaseModel):
    """Full output of the understanding pipeline for one query."""

    model_config = ConfigDict(frozen=True)

    recognition: EntityRecognitionResult
    classification: ClassificationResult
    tokens: Tuple[str, ...] = Field(default=(), description="Stopword-filtered, stemmed tokens")

    def to_dict(self) -> Dict[str, Any]:
        data = self.recognition.to_dict()
        data["classification"] = self.classification.to_dict()
        data["tokens"] = list(self.tokens)
        return data
