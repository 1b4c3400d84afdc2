"""Service retrieval package."""

from govsearch.retrieval.aggregator import AggregationResult, ResultAggregator
from govsearch.retrieval.cache import ResultCache
from govsearch.retrieval.catalog import ServiceCatalog, load_default_catalog
from govsearch.retrieval.models import (
    Fee,
    RankedService,
    SearchOptions,
    SearchResponse,
    ServiceRecord,
    SortOrder,
)
from govsearch.retrieval.orchestrator import SearchOrchestrator
from govsearch.retrieval.ranker import RelevanceRanker, deduplicate, sort_by_date
from govsearch.retrieval.sources import (
    CatalogSourceProvider,
    EmptySourceProvider,
    HttpSourceProvider,
    ProviderChain,
    SourceProvider,
    SourceRegistry,
    SourceRequest,
)

__all__ = [
    "AggregationResult",
    "CatalogSourceProvider",
    "EmptySourceProvider",
    "Fee",
    "HttpSourceProvider",
    "ProviderChain",
    "RankedService",
    "RelevanceRanker",
    "ResultAggregator",
    "ResultCache",
    "SearchOptions",
    "SearchOrchestrator",
    "SearchResponse",
    "ServiceCatalog",
    "ServiceRecord",
    "SortOrder",
    "SourceProvider",
    "SourceRegistry",
    "SourceRequest",
    "deduplicate",
    "load_default_catalog",
    "sort_by_date",
]
