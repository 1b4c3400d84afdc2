"""Upstream service sources and their fallback chains.

Every configured source is served by an ordered chain of providers. A provider
returns a list of records, ``None`` when it has nothing to contribute, or raises
on failure. The chain always ends with :class:`EmptySourceProvider`, so fetching
from a source never fails.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError

from govsearch.lexicon.models import Language
from govsearch.nlp.models import ClassificationResult, RecognizedEntity
from govsearch.nlp.scoring import GENERAL_CATEGORY
from govsearch.nlp.text_normalizer import TextNormalizer
from govsearch.retrieval.catalog import ServiceCatalog
from govsearch.retrieval.models import ServiceRecord
from govsearch.utils.config import AggregationConfig, SourceConfig


class SourceRequest(BaseModel):
    """What one source is asked for."""

    model_config = ConfigDict(frozen=True)

    source_id: str
    query: str
    language: Language = Language.EN
    terms: Tuple[str, ...] = ()
    category: Optional[str] = None


class SourceProvider(Protocol):
    """One way of obtaining records for a source."""

    name: str

    async def fetch(self, request: SourceRequest) -> Optional[List[ServiceRecord]]:
        ...


class HttpSourceProvider:
    """Query a source's HTTP search endpoint."""

    name = "http"

    def __init__(
        self,
        source: SourceConfig,
        timeout_seconds: float = 5.0,
        user_agent: str = "govsearch",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.source = source
        self.timeout_seconds = timeout_seconds
        self.user_agent = user_agent
        self.transport = transport

    async def fetch(self, request: SourceRequest) -> Optional[List[ServiceRecord]]:
        if not self.source.base_url:
            return None

        url = f"{self.source.base_url.rstrip('/')}{self.source.search_path}"
        async with httpx.AsyncClient(
            timeout=self.timeout_seconds,
            transport=self.transport,
            headers={"User-Agent": self.user_agent, "Accept": "application/json"},
        ) as client:
            response = await client.get(
                url, params={"q": request.query, "lang": request.language.value}
            )
            response.raise_for_status()
            payload = response.json()

        return self._parse(payload, request)

    def _parse(self, payload: Any, request: SourceRequest) -> List[ServiceRecord]:
        if isinstance(payload, dict):
            payload = payload.get("services")
        if not isinstance(payload, list):
            raise ValueError(f"Unexpected payload from source '{self.source.id}'")

        records: List[ServiceRecord] = []
        for item in payload:
            if not isinstance(item, dict):
                raise ValueError(f"Malformed record from source '{self.source.id}'")
            data: Dict[str, Any] = {"language": request.language.value, **item}
            data["source"] = self.source.id
            records.append(ServiceRecord.model_validate(data))
        return records


class CatalogSourceProvider:
    """Serve a source from the local catalog, restricted to the source's categories."""

    name = "catalog"

    def __init__(self, source: SourceConfig, catalog: ServiceCatalog) -> None:
        self.source = source
        self.catalog = catalog

    async def fetch(self, request: SourceRequest) -> Optional[List[ServiceRecord]]:
        categories = list(self.source.categories)
        if request.terms:
            records = self.catalog.search(request.terms, request.language, categories)
        elif request.category and request.category != GENERAL_CATEGORY and (
            not categories or request.category in categories
        ):
            records = self.catalog.search((), request.language, [request.category])
        else:
            records = []
        return [record.model_copy(update={"source": self.source.id}) for record in records]


class EmptySourceProvider:
    """Last resort: nothing found, but a valid answer."""

    name = "empty"

    async def fetch(self, request: SourceRequest) -> Optional[List[ServiceRecord]]:
        return []


class ProviderChain:
    """Ordered providers for one source; the first non-None result wins."""

    def __init__(self, source_id: str, providers: Sequence[SourceProvider]) -> None:
        self.source_id = source_id
        self.providers: List[SourceProvider] = list(providers)
        if not self.providers or not isinstance(self.providers[-1], EmptySourceProvider):
            self.providers.append(EmptySourceProvider())

    async def fetch(self, request: SourceRequest) -> List[ServiceRecord]:
        """Fetch records for ``request``; provider failures are logged and skipped."""
        for provider in self.providers:
            try:
                records = await provider.fetch(request)
            except (httpx.HTTPError, ValidationError, ValueError) as e:
                logger.warning(
                    "Source provider failed",
                    source=self.source_id,
                    provider=provider.name,
                    error=str(e),
                )
                continue
            if records is not None:
                logger.debug(
                    "Source provider answered",
                    source=self.source_id,
                    provider=provider.name,
                    results=len(records),
                )
                return records
        return []


class SourceRegistry:
    """Configured sources, their provider chains and entity-based selection."""

    def __init__(
        self,
        config: AggregationConfig,
        catalog: Optional[ServiceCatalog] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        normalizer: Optional[TextNormalizer] = None,
    ) -> None:
        self.config = config
        self.catalog = catalog
        self.normalizer = normalizer or TextNormalizer()
        self.sources: Dict[str, SourceConfig] = {source.id: source for source in config.sources}
        self.chains: Dict[str, ProviderChain] = {
            source.id: self._build_chain(source, transport) for source in config.sources
        }

    def _build_chain(
        self, source: SourceConfig, transport: Optional[httpx.AsyncBaseTransport]
    ) -> ProviderChain:
        providers: List[SourceProvider] = []
        if source.base_url:
            providers.append(
                HttpSourceProvider(
                    source,
                    timeout_seconds=self.timeout_for(source.id),
                    user_agent=self.config.user_agent,
                    transport=transport,
                )
            )
        if self.config.use_catalog_fallback and self.catalog is not None:
            providers.append(CatalogSourceProvider(source, self.catalog))
        return ProviderChain(source.id, providers)

    def timeout_for(self, source_id: str) -> float:
        """Per-source timeout, falling back to ``source_timeout_seconds``."""
        source = self.sources.get(source_id)
        if source is not None and source.timeout_seconds is not None:
            return source.timeout_seconds
        return self.config.source_timeout_seconds

    def chain(self, source_id: str) -> ProviderChain:
        return self.chains[source_id]

    def select_sources(
        self,
        entities: Iterable[RecognizedEntity],
        classification: Optional[ClassificationResult] = None,
        language: Language | str = Language.EN,
    ) -> List[str]:
        """Map recognized entities and the query category to source ids.

        Args:
            entities: Recognized entities of the query
            classification: Query classification, matched against source categories
            language: Query language, used to normalize entity values and source terms

        Returns:
            Enabled source ids in configuration order; ``default_sources`` when
            nothing matched
        """
        language = Language(language)
        entities = list(entities)
        values = {self.normalizer.normalize_term(e.match_value, language) for e in entities}
        values.update(self.normalizer.normalize_term(e.text, language) for e in entities)
        values.discard("")
        category = classification.category if classification is not None else None

        selected: List[str] = []
        matched_any = False
        for source in self.config.sources:
            if not source.enabled:
                continue
            terms = {self.normalizer.normalize_term(term, language) for term in source.entity_terms}
            matched = bool(values & terms) or (
                category is not None and category in source.categories
            )
            matched_any = matched_any or matched
            if matched or source.always_query:
                selected.append(source.id)

        if not matched_any:
            for source_id in self.config.default_sources:
                source = self.sources.get(source_id)
                if source is not None and source.enabled and source_id not in selected:
                    selected.append(source_id)

        logger.debug("Selected sources", sources=selected, category=category)
        return selected
