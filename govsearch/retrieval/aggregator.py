"""Concurrent multi-source aggregation.

One task per selected source, each bounded by its own timeout and a shared
concurrency limit. The join waits for every task up to an overall deadline;
sources still pending at the deadline are cancelled and contribute nothing.
"""

from __future__ import annotations

import asyncio
import time
from typing import Dict, List, Optional

import httpx
from loguru import logger

from govsearch.lexicon.models import Language
from govsearch.nlp.models import ClassificationResult, EntityRecognitionResult
from govsearch.retrieval.catalog import ServiceCatalog
from govsearch.retrieval.models import ServiceRecord
from govsearch.retrieval.sources import SourceRegistry, SourceRequest
from govsearch.utils.config import AggregationConfig, Config


class AggregationResult:
    """Records fetched per source, in source-selection order."""

    def __init__(self, sources: List[str], per_source: Dict[str, List[ServiceRecord]]) -> None:
        self.sources = sources
        self.per_source = per_source

    @property
    def records(self) -> List[ServiceRecord]:
        """Concatenation of every source's records."""
        return [record for source_id in self.sources for record in self.per_source.get(source_id, [])]


class ResultAggregator:
    """Fan a query out to the selected sources and join the results."""

    def __init__(
        self,
        config: Optional[Config] = None,
        registry: Optional[SourceRegistry] = None,
        catalog: Optional[ServiceCatalog] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize aggregator.

        Args:
            config: Configuration object
            registry: Source registry (built from ``config.aggregation`` if None)
            catalog: Catalog used by the fallback providers
            transport: httpx transport override, used by tests
        """
        self.config = config or Config.from_yaml()
        self.aggregation_config: AggregationConfig = self.config.aggregation
        self.registry = registry or SourceRegistry(
            self.aggregation_config, catalog=catalog, transport=transport
        )

        logger.info(
            "Initialized ResultAggregator",
            sources=len(self.registry.sources),
            source_timeout=self.aggregation_config.source_timeout_seconds,
            overall_deadline=self.aggregation_config.overall_deadline_seconds,
            max_concurrent=self.aggregation_config.max_concurrent_requests,
        )

    async def aggregate(
        self,
        recognition: EntityRecognitionResult,
        classification: Optional[ClassificationResult] = None,
        language: Language | str | None = None,
    ) -> List[ServiceRecord]:
        """Fetch candidate records for a recognized query.

        Returns:
            Concatenated records of all sources, in source-selection order. Never
            raises for source faults.
        """
        result = await self.aggregate_detailed(recognition, classification, language)
        return result.records

    async def aggregate_detailed(
        self,
        recognition: EntityRecognitionResult,
        classification: Optional[ClassificationResult] = None,
        language: Language | str | None = None,
    ) -> AggregationResult:
        language = Language(language or recognition.language)
        source_ids = self.registry.select_sources(recognition.entities, classification, language)
        if not source_ids:
            return AggregationResult([], {})

        terms = tuple(dict.fromkeys(e.match_value for e in recognition.entities))
        category = classification.category if classification is not None else None
        semaphore = asyncio.Semaphore(self.aggregation_config.max_concurrent_requests)

        start_time = time.time()
        tasks: Dict[str, asyncio.Task[List[ServiceRecord]]] = {}
        for source_id in source_ids:
            request = SourceRequest(
                source_id=source_id,
                query=recognition.expanded_query or recognition.normalized_query,
                language=language,
                terms=terms,
                category=category,
            )
            tasks[source_id] = asyncio.create_task(self._fetch_source(request, semaphore))

        done, pending = await asyncio.wait(
            tasks.values(), timeout=self.aggregation_config.overall_deadline_seconds
        )
        if pending:
            pending_ids = [sid for sid, task in tasks.items() if task in pending]
            logger.warning(
                "Aggregation deadline expired",
                deadline=self.aggregation_config.overall_deadline_seconds,
                pending_sources=pending_ids,
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        per_source: Dict[str, List[ServiceRecord]] = {}
        for source_id, task in tasks.items():
            per_source[source_id] = task.result() if task in done else []

        logger.info(
            "Aggregation completed",
            sources=source_ids,
            results={sid: len(records) for sid, records in per_source.items()},
            time_ms=round((time.time() - start_time) * 1000, 2),
        )
        return AggregationResult(source_ids, per_source)

    async def _fetch_source(
        self, request: SourceRequest, semaphore: asyncio.Semaphore
    ) -> List[ServiceRecord]:
        """Fetch one source; every failure degrades to an empty list."""
        timeout = self.registry.timeout_for(request.source_id)
        async with semaphore:
            try:
                return await asyncio.wait_for(
                    self.registry.chain(request.source_id).fetch(request), timeout=timeout
                )
            except asyncio.TimeoutError:
                logger.warning("Source timed out", source=request.source_id, timeout=timeout)
            except Exception as e:
                logger.warning("Source failed", source=request.source_id, error=str(e))
        return []
