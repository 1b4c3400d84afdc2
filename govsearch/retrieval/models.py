"""Shared models for service retrieval."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from govsearch.lexicon.models import Language
from govsearch.nlp.models import QueryAnalysis


class SortOrder(str, Enum):
    """Result ordering."""

    RELEVANCE = "relevance"
    DATE = "date"


class Fee(BaseModel):
    """A single fee line of a service."""

    model_config = ConfigDict(frozen=True)

    amount: float = Field(..., ge=0.0, description="Fee amount")
    currency: str = Field(default="AED", description="ISO currency code")
    description: str = Field(default="", description="What the fee covers")


class ServiceRecord(BaseModel):
    """Government service as returned by an upstream source.

    Upstream payloads may use camelCase keys (``lastUpdated``, ``processingTime``);
    both spellings are accepted. Unknown keys are ignored.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str = Field(..., min_length=1, description="Service identifier")
    title: str = Field(..., description="Service title")
    description: str = Field(default="", description="Service description")
    authority: str = Field(default="", description="Issuing authority")
    category: str = Field(default="", description="Top-level category")
    subcategory: Optional[str] = Field(None, description="Subcategory")
    fees: Optional[List[Fee]] = Field(None, description="Fee schedule")
    processing_time: Optional[str] = Field(None, alias="processingTime")
    steps: Optional[List[str]] = Field(None, description="Procedure steps")
    eligibility: Optional[List[str]] = Field(None, description="Eligibility criteria")
    required_documents: Optional[List[str]] = Field(None, alias="requiredDocuments")
    url: str = Field(default="", description="Service page")
    last_updated: str = Field(default="", alias="lastUpdated", description="ISO date of last update")
    language: Language = Field(default=Language.EN, description="Record language")
    source: str = Field(default="", description="Id of the source that produced the record")

    def last_updated_at(self) -> Optional[datetime]:
        """Parse ``last_updated``; None when missing or unparseable."""
        if not self.last_updated:
            return None
        try:
            parsed = datetime.fromisoformat(self.last_updated.replace("Z", "+00:00"))
        except ValueError:
            return None
        # Compare everything as naive UTC.
        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
        return parsed


class RankedService(BaseModel):
    """Service record with its relevance score and rank."""

    model_config = ConfigDict(frozen=True)

    record: ServiceRecord
    score: float = Field(..., ge=0.0, description="Relevance score (uncapped)")
    rank: int = Field(..., ge=1, description="Position in the result list")


class SearchOptions(BaseModel):
    """Caller-supplied search options."""

    model_config = ConfigDict(frozen=True)

    language: Optional[Language] = None
    max_results: Optional[int] = Field(None, ge=1)
    sort_by: Optional[SortOrder] = None
    category: Optional[str] = None

    def cache_fragment(self) -> str:
        """Stable JSON rendering used in cache keys."""
        return self.model_dump_json(exclude_none=True)


class SearchResponse(BaseModel):
    """Result of one search."""

    model_config = ConfigDict(extra="allow")

    query: str = Field(..., description="Original query text")
    language: Language
    analysis: Optional[QueryAnalysis] = Field(None, description="Query understanding output")
    results: List[RankedService] = Field(default_factory=list)
    sources_queried: List[str] = Field(default_factory=list)
    category_filter: Optional[str] = Field(None, description="Category filter that was applied")
    total_candidates: int = Field(default=0, ge=0, description="Records fetched before dedup")
    cached: bool = Field(default=False, description="Served from the cache")
    error: Optional[str] = Field(None, description="Set when the search degraded to empty")
    elapsed_ms: float = Field(default=0.0, ge=0.0)
    timestamp: float = Field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data: Dict[str, Any] = {
            "query": self.query,
            "language": self.language.value,
            "category_filter": self.category_filter,
            "sources_queried": list(self.sources_queried),
            "total_candidates": self.total_candidates,
            "cached": self.cached,
            "error": self.error,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "results": [
                {
                    "rank": item.rank,
                    "score": round(item.score, 4),
                    **item.record.model_dump(mode="json", exclude_none=True),
                }
                for item in self.results
            ],
        }
        if self.analysis is not None:
            data["analysis"] = self.analysis.to_dict()
        return data
