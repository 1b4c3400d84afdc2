"""Tests for source providers, fallback chains and source selection."""

from __future__ import annotations

import asyncio
from typing import List, Optional

import httpx
import pytest

from govsearch.lexicon.models import EntityType, Language
from govsearch.nlp.models import ClassificationResult, RecognizedEntity
from govsearch.retrieval.catalog import load_default_catalog
from govsearch.retrieval.models import ServiceRecord
from govsearch.retrieval.sources import (
    CatalogSourceProvider,
    EmptySourceProvider,
    HttpSourceProvider,
    ProviderChain,
    SourceRegistry,
    SourceRequest,
)
from govsearch.utils.config import AggregationConfig, SourceConfig


def _entity(value: str, text: Optional[str] = None) -> RecognizedEntity:
    text = text or value
    return RecognizedEntity(
        text=text,
        type=EntityType.SERVICE_TYPE,
        confidence=0.9,
        normalized_value=value,
        start_offset=0,
        end_offset=len(text),
    )


def _classification(category: str) -> ClassificationResult:
    return ClassificationResult(category=category, confidence=0.75)


class StaticProvider:
    def __init__(self, name: str, result: Optional[List[ServiceRecord]] = None, error: Exception | None = None):
        self.name = name
        self.result = result
        self.error = error
        self.calls = 0

    async def fetch(self, request: SourceRequest) -> Optional[List[ServiceRecord]]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.result


class TestHttpSourceProvider:
    """JSON search endpoint client."""

    def test_fetches_and_tags_records(self) -> None:
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(
                200,
                json={"services": [{"id": "v1", "title": "Tourist Visa", "lastUpdated": "2024-01-01"}]},
            )

        source = SourceConfig(id="icp", base_url="https://icp.test/api/")
        provider = HttpSourceProvider(source, transport=httpx.MockTransport(handler))
        request = SourceRequest(source_id="icp", query="tourist visa", language=Language.EN)

        records = asyncio.run(provider.fetch(request))

        assert [(r.id, r.source, r.language, r.last_updated) for r in records] == [
            ("v1", "icp", Language.EN, "2024-01-01")
        ]
        assert seen[0].url.path == "/api/services/search"
        assert seen[0].url.params["q"] == "tourist visa"
        assert seen[0].url.params["lang"] == "en"

    def test_list_payload_keeps_record_language(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=[{"id": "v1", "title": "تأشيرة", "language": "ar"}])

        source = SourceConfig(id="icp", base_url="https://icp.test")
        provider = HttpSourceProvider(source, transport=httpx.MockTransport(handler))

        records = asyncio.run(provider.fetch(SourceRequest(source_id="icp", query="visa")))

        assert records[0].language == Language.AR

    def test_no_base_url(self) -> None:
        provider = HttpSourceProvider(SourceConfig(id="icp"))

        assert asyncio.run(provider.fetch(SourceRequest(source_id="icp", query="visa"))) is None

    def test_http_error_raises(self) -> None:
        source = SourceConfig(id="icp", base_url="https://icp.test")
        provider = HttpSourceProvider(
            source, transport=httpx.MockTransport(lambda request: httpx.Response(503))
        )

        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(provider.fetch(SourceRequest(source_id="icp", query="visa")))

    def test_unexpected_payload_raises(self) -> None:
        source = SourceConfig(id="icp", base_url="https://icp.test")
        provider = HttpSourceProvider(
            source, transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"ok": 1}))
        )

        with pytest.raises(ValueError):
            asyncio.run(provider.fetch(SourceRequest(source_id="icp", query="visa")))


class TestCatalogSourceProvider:
    """Offline fallback from the bundled catalog."""

    @pytest.fixture(scope="class")
    def catalog(self):
        return load_default_catalog()

    def test_terms_within_source_categories(self, catalog) -> None:
        source = SourceConfig(id="icp", categories=["visa", "identity"])
        provider = CatalogSourceProvider(source, catalog)
        request = SourceRequest(source_id="icp", query="q", terms=("emirates id",))

        records = asyncio.run(provider.fetch(request))

        assert [(r.id, r.source) for r in records] == [("id-001", "icp")]

    def test_category_without_terms(self, catalog) -> None:
        source = SourceConfig(id="rta", categories=["traffic"])
        provider = CatalogSourceProvider(source, catalog)
        request = SourceRequest(source_id="rta", query="q", category="traffic")

        records = asyncio.run(provider.fetch(request))

        assert [r.id for r in records] == ["traffic-001", "traffic-002"]

    def test_category_outside_source(self, catalog) -> None:
        source = SourceConfig(id="rta", categories=["traffic"])
        provider = CatalogSourceProvider(source, catalog)
        request = SourceRequest(source_id="rta", query="q", category="visa")

        assert asyncio.run(provider.fetch(request)) == []

    def test_general_category(self, catalog) -> None:
        provider = CatalogSourceProvider(SourceConfig(id="uae_portal"), catalog)
        request = SourceRequest(source_id="uae_portal", query="q", category="general")

        assert asyncio.run(provider.fetch(request)) == []


class TestProviderChain:
    """First non-None answer wins; handled failures fall through."""

    REQUEST = SourceRequest(source_id="icp", query="visa")

    def test_falls_through_none_and_errors(self) -> None:
        record = ServiceRecord(id="v1", title="Visa")
        skipped = StaticProvider("none")
        failing = StaticProvider("broken", error=ValueError("bad payload"))
        answering = StaticProvider("good", result=[record])
        chain = ProviderChain("icp", [skipped, failing, answering])

        assert asyncio.run(chain.fetch(self.REQUEST)) == [record]
        assert (skipped.calls, failing.calls, answering.calls) == (1, 1, 1)

    def test_stops_at_first_answer(self) -> None:
        first = StaticProvider("first", result=[])
        second = StaticProvider("second", result=[ServiceRecord(id="v1", title="Visa")])
        chain = ProviderChain("icp", [first, second])

        assert asyncio.run(chain.fetch(self.REQUEST)) == []
        assert second.calls == 0

    def test_empty_provider_appended(self) -> None:
        chain = ProviderChain("icp", [StaticProvider("none")])

        assert isinstance(chain.providers[-1], EmptySourceProvider)
        assert asyncio.run(chain.fetch(self.REQUEST)) == []

    def test_http_error_falls_through(self) -> None:
        error = httpx.ConnectError("refused")
        chain = ProviderChain("icp", [StaticProvider("http", error=error)])

        assert asyncio.run(chain.fetch(self.REQUEST)) == []


class TestSourceRegistry:
    """Entity and category based source selection."""

    @pytest.fixture
    def registry(self) -> SourceRegistry:
        return SourceRegistry(AggregationConfig())

    def test_entity_selects_source(self, registry: SourceRegistry) -> None:
        selected = registry.select_sources([_entity("emirates id")])

        assert selected == ["icp", "uae_portal"]

    def test_synonym_text_matches(self, registry: SourceRegistry) -> None:
        selected = registry.select_sources([_entity("business license", text="trade license")])

        assert selected == ["moec", "uae_portal"]

    def test_category_selects_source(self, registry: SourceRegistry) -> None:
        selected = registry.select_sources([], _classification("traffic"))

        assert selected == ["rta", "uae_portal"]

    def test_nothing_matched_uses_defaults(self, registry: SourceRegistry) -> None:
        assert registry.select_sources([], _classification("general")) == ["uae_portal"]

    def test_defaults_without_always_query(self) -> None:
        config = AggregationConfig(
            sources=[
                SourceConfig(id="icp", entity_terms=["visa"]),
                SourceConfig(id="moec", entity_terms=["trade license"]),
            ],
            default_sources=["moec"],
        )
        registry = SourceRegistry(config)

        assert registry.select_sources([_entity("visa")]) == ["icp"]
        assert registry.select_sources([_entity("passport")]) == ["moec"]

    def test_disabled_sources_skipped(self) -> None:
        config = AggregationConfig(
            sources=[
                SourceConfig(id="icp", entity_terms=["visa"], enabled=False),
                SourceConfig(id="portal", always_query=True),
            ],
            default_sources=["icp"],
        )

        assert SourceRegistry(config).select_sources([_entity("visa")]) == ["portal"]

    def test_arabic_terms_are_folded(self) -> None:
        config = AggregationConfig(
            sources=[SourceConfig(id="icp", entity_terms=["تأشيرة"])],
            default_sources=[],
        )
        entity = _entity("تأشيرة")

        assert SourceRegistry(config).select_sources([entity], language="ar") == ["icp"]

    def test_timeouts(self) -> None:
        config = AggregationConfig(
            sources=[SourceConfig(id="icp", timeout_seconds=1.5), SourceConfig(id="rta")],
            source_timeout_seconds=4.0,
        )
        registry = SourceRegistry(config)

        assert registry.timeout_for("icp") == 1.5
        assert registry.timeout_for("rta") == 4.0

    def test_chain_order(self) -> None:
        config = AggregationConfig(sources=[SourceConfig(id="icp", base_url="https://icp.test")])
        registry = SourceRegistry(config, catalog=load_default_catalog())

        assert [p.name for p in registry.chain("icp").providers] == ["http", "catalog", "empty"]

    def test_chain_without_fallback(self) -> None:
        config = AggregationConfig(sources=[SourceConfig(id="icp")], use_catalog_fallback=False)
        registry = SourceRegistry(config, catalog=load_default_catalog())

        assert [p.name for p in registry.chain("icp").providers] == ["empty"]
