"""Search orchestration: query understanding, aggregation, ranking and shaping."""

from __future__ import annotations

import asyncio
import time
from typing import List, Optional

import httpx
from loguru import logger

from govsearch.lexicon.models import Language
from govsearch.nlp.models import QueryAnalysis
from govsearch.nlp.processor import QueryProcessor
from govsearch.nlp.scoring import GENERAL_CATEGORY
from govsearch.retrieval.aggregator import ResultAggregator
from govsearch.retrieval.cache import ResultCache
from govsearch.retrieval.catalog import ServiceCatalog, load_default_catalog
from govsearch.retrieval.models import (
    RankedService,
    SearchOptions,
    SearchResponse,
    SortOrder,
)
from govsearch.retrieval.ranker import RelevanceRanker, sort_by_date
from govsearch.utils.config import Config


class SearchOrchestrator:
    """Answer a search query end to end."""

    def __init__(
        self,
        config: Optional[Config] = None,
        processor: Optional[QueryProcessor] = None,
        aggregator: Optional[ResultAggregator] = None,
        ranker: Optional[RelevanceRanker] = None,
        catalog: Optional[ServiceCatalog] = None,
        cache: Optional[ResultCache[SearchResponse]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            config: Configuration object
            processor: Query processor (created if None)
            aggregator: Result aggregator (created if None)
            ranker: Relevance ranker (created if None)
            catalog: Fallback catalog (``catalog.catalog_file`` or the bundled sample if None)
            cache: Response cache (created from ``config.cache`` if None)
            transport: httpx transport override for the upstream sources
        """
        self.config = config or Config.from_yaml()
        self.processor = processor or QueryProcessor(config=self.config)

        if aggregator is None:
            if catalog is None and self.config.aggregation.use_catalog_fallback:
                catalog = (
                    ServiceCatalog.from_yaml(self.config.catalog.catalog_file)
                    if self.config.catalog.catalog_file
                    else load_default_catalog()
                )
            aggregator = ResultAggregator(config=self.config, catalog=catalog, transport=transport)
        self.aggregator = aggregator

        self.ranker = ranker or RelevanceRanker(
            store=self.processor.store, normalizer=self.processor.normalizer
        )
        self.cache: ResultCache[SearchResponse] = cache or ResultCache(
            ttl_seconds=self.config.cache.ttl_seconds,
            max_entries=self.config.cache.max_entries,
        )

        logger.info(
            "Initialized SearchOrchestrator",
            cache_enabled=self.config.cache.enabled,
            max_results=self.config.ranking.max_results,
            category_filter_threshold=self.config.ranking.category_filter_threshold,
        )

    @staticmethod
    def cache_key(query: str, language: Language, options: SearchOptions) -> str:
        return f"search:{language.value}:{query}:{options.cache_fragment()}"

    async def search(self, query: str, options: Optional[SearchOptions] = None) -> SearchResponse:
        """Search government services for ``query``.

        Args:
            query: Raw user query
            options: Language, result limit, ordering and category override

        Returns:
            SearchResponse; on unexpected failure an empty response with ``error`` set
        """
        options = options or SearchOptions()
        language = Language(options.language or self.config.nlp.default_language)
        key = self.cache_key(query, language, options)

        if self.config.cache.enabled:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit", key=key)
                return cached.model_copy(update={"cached": True}, deep=True)

        start_time = time.time()
        analysis = self.processor.analyze(query, language)

        try:
            response = await self._search_analyzed(query, language, analysis, options)
        except Exception as e:
            logger.exception("Search failed; returning empty result", error=str(e))
            response = SearchResponse(
                query=query, language=language, analysis=analysis, error=str(e)
            )

        response.elapsed_ms = (time.time() - start_time) * 1000

        if self.config.logging.enable_query_logging:
            logger.info(
                "Search completed",
                language=language.value,
                category=analysis.classification.category,
                entities=len(analysis.recognition.entities),
                results=len(response.results),
                elapsed_ms=round(response.elapsed_ms, 2),
            )

        if self.config.cache.enabled and response.error is None:
            # The caller owns ``response``; the cache keeps its own copy.
            self.cache.set(key, response.model_copy(deep=True))
        return response

    def search_sync(self, query: str, options: Optional[SearchOptions] = None) -> SearchResponse:
        """Blocking wrapper around :meth:`search` for callers without an event loop."""
        return asyncio.run(self.search(query, options))

    def clear_cache(self, prefix: Optional[str] = None) -> int:
        """Drop cached responses (all, or those whose key starts with ``prefix``)."""
        removed = self.cache.clear(prefix)
        logger.info("Cleared search cache", prefix=prefix, removed=removed)
        return removed

    async def _search_analyzed(
        self,
        query: str,
        language: Language,
        analysis: QueryAnalysis,
        options: SearchOptions,
    ) -> SearchResponse:
        aggregation = await self.aggregator.aggregate_detailed(
            analysis.recognition, analysis.classification, language
        )
        candidates = aggregation.records
        ranked = self.ranker.rank(candidates, analysis.recognition, language)

        category_filter = self._category_filter(analysis, options)
        if category_filter is not None:
            ranked = [item for item in ranked if item.record.category == category_filter]

        sort_by = options.sort_by or SortOrder(self.config.ranking.default_sort)
        if sort_by == SortOrder.DATE:
            ranked = sort_by_date(ranked)

        max_results = options.max_results or self.config.ranking.max_results
        results = self._reassign_ranks(ranked[:max_results])

        return SearchResponse(
            query=query,
            language=language,
            analysis=analysis,
            results=results,
            sources_queried=aggregation.sources,
            category_filter=category_filter,
            total_candidates=len(candidates),
        )

    def _category_filter(self, analysis: QueryAnalysis, options: SearchOptions) -> Optional[str]:
        if options.category:
            return options.category
        classification = analysis.classification
        if (
            classification.category != GENERAL_CATEGORY
            and classification.confidence > self.config.ranking.category_filter_threshold
        ):
            return classification.category
        return None

    @staticmethod
    def _reassign_ranks(ranked: List[RankedService]) -> List[RankedService]:
        return [item.model_copy(update={"rank": rank}) for rank, item in enumerate(ranked, 1)]
