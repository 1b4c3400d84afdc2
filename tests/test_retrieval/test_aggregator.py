"""Tests for concurrent multi-source aggregation."""

from __future__ import annotations

import asyncio
import time
from typing import List, Optional

import httpx

from govsearch.lexicon.models import EntityType
from govsearch.nlp.models import EntityRecognitionResult, RecognizedEntity
from govsearch.retrieval.aggregator import ResultAggregator
from govsearch.retrieval.catalog import load_default_catalog
from govsearch.retrieval.models import ServiceRecord
from govsearch.retrieval.sources import ProviderChain, SourceRequest
from govsearch.utils.config import AggregationConfig, Config, SourceConfig


def _recognition(value: str = "visa") -> EntityRecognitionResult:
    entity = RecognizedEntity(
        text=value,
        type=EntityType.SERVICE_TYPE,
        confidence=0.9,
        normalized_value=value,
        start_offset=0,
        end_offset=len(value),
    )
    return EntityRecognitionResult(entities=(entity,), normalized_query=value, expanded_query=value)


def _config(**overrides) -> Config:
    aggregation = {
        "sources": [
            SourceConfig(id="alpha", base_url="https://alpha.test", entity_terms=["visa"]),
            SourceConfig(id="beta", base_url="https://beta.test", entity_terms=["visa"]),
        ],
        "default_sources": ["alpha"],
        "use_catalog_fallback": False,
        "source_timeout_seconds": 1.0,
        "overall_deadline_seconds": 2.0,
    }
    aggregation.update(overrides)
    return Config(aggregation=AggregationConfig(**aggregation))


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.host == "alpha.test":
        return httpx.Response(200, json={"services": [{"id": "v1", "title": "Tourist Visa"}]})
    return httpx.Response(500, json={"error": "unavailable"})


class SlowProvider:
    name = "slow"

    def __init__(self, delay: float, result: Optional[List[ServiceRecord]] = None) -> None:
        self.delay = delay
        self.result = result or []
        self.cancelled = False

    async def fetch(self, request: SourceRequest) -> Optional[List[ServiceRecord]]:
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return self.result


class BrokenProvider:
    name = "broken"

    async def fetch(self, request: SourceRequest) -> Optional[List[ServiceRecord]]:
        raise RuntimeError("boom")


def test_failed_source_contributes_nothing() -> None:
    aggregator = ResultAggregator(config=_config(), transport=httpx.MockTransport(_handler))

    result = asyncio.run(aggregator.aggregate_detailed(_recognition()))

    assert result.sources == ["alpha", "beta"]
    assert [r.id for r in result.per_source["alpha"]] == ["v1"]
    assert result.per_source["beta"] == []
    assert [(r.id, r.source) for r in result.records] == [("v1", "alpha")]


def test_aggregate_returns_flat_list() -> None:
    aggregator = ResultAggregator(config=_config(), transport=httpx.MockTransport(_handler))

    records = asyncio.run(aggregator.aggregate(_recognition()))

    assert [r.id for r in records] == ["v1"]


def test_source_timeout_degrades_to_empty() -> None:
    aggregator = ResultAggregator(
        config=_config(source_timeout_seconds=0.05), transport=httpx.MockTransport(_handler)
    )
    slow = SlowProvider(delay=5.0, result=[ServiceRecord(id="late", title="Late")])
    aggregator.registry.chains["beta"] = ProviderChain("beta", [slow])

    started = time.monotonic()
    result = asyncio.run(aggregator.aggregate_detailed(_recognition()))

    assert time.monotonic() - started < 2.0
    assert result.per_source["beta"] == []
    assert [r.id for r in result.records] == ["v1"]


def test_overall_deadline_cancels_pending_sources() -> None:
    aggregator = ResultAggregator(
        config=_config(source_timeout_seconds=10.0, overall_deadline_seconds=0.1),
        transport=httpx.MockTransport(_handler),
    )
    slow = SlowProvider(delay=5.0)
    aggregator.registry.chains["beta"] = ProviderChain("beta", [slow])

    result = asyncio.run(aggregator.aggregate_detailed(_recognition()))

    assert slow.cancelled
    assert result.per_source["beta"] == []
    assert [r.id for r in result.records] == ["v1"]


def test_unexpected_error_is_contained() -> None:
    aggregator = ResultAggregator(config=_config(), transport=httpx.MockTransport(_handler))
    aggregator.registry.chains["alpha"] = ProviderChain("alpha", [BrokenProvider()])

    assert asyncio.run(aggregator.aggregate(_recognition())) == []


def test_concurrency_limit() -> None:
    active = 0
    peak = 0

    class CountingProvider:
        name = "counting"

        async def fetch(self, request: SourceRequest) -> Optional[List[ServiceRecord]]:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return []

    sources = [SourceConfig(id=f"s{i}", entity_terms=["visa"]) for i in range(4)]
    aggregator = ResultAggregator(
        config=_config(sources=sources, default_sources=[], max_concurrent_requests=2)
    )
    for source in sources:
        aggregator.registry.chains[source.id] = ProviderChain(source.id, [CountingProvider()])

    result = asyncio.run(aggregator.aggregate_detailed(_recognition()))

    assert result.sources == ["s0", "s1", "s2", "s3"]
    assert peak == 2


def test_no_sources_selected() -> None:
    aggregator = ResultAggregator(config=_config(default_sources=[]))

    result = asyncio.run(aggregator.aggregate_detailed(_recognition("passport")))

    assert result.sources == []
    assert result.records == []


def test_catalog_fallback_used_without_base_url() -> None:
    config = Config.from_yaml()
    aggregator = ResultAggregator(config=config, catalog=load_default_catalog())

    records = asyncio.run(aggregator.aggregate(_recognition("emirates id")))

    assert [(r.id, r.source) for r in records] == [("id-001", "icp"), ("id-001", "uae_portal")]
