"""In-memory service catalog backed by YAML files."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional

import yaml
from loguru import logger

from govsearch.lexicon.models import Language
from govsearch.nlp.text_normalizer import TextNormalizer
from govsearch.retrieval.models import ServiceRecord

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "sample_services.yaml"


class ServiceCatalog:
    """Ordered collection of service records keyed by id."""

    def __init__(
        self,
        records: Iterable[ServiceRecord] = (),
        normalizer: Optional[TextNormalizer] = None,
    ) -> None:
        self.normalizer = normalizer or TextNormalizer()
        self._records: Dict[str, ServiceRecord] = {}
        for record in records:
            self.add(record)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ServiceRecord]:
        return iter(self._records.values())

    def add(self, record: ServiceRecord) -> None:
        """Add or replace a record."""
        if record.id in self._records:
            logger.debug("Replacing catalog record", service_id=record.id)
        self._records[record.id] = record

    def search(
        self,
        terms: Iterable[str],
        language: Language | str = Language.EN,
        categories: Optional[Iterable[str]] = None,
    ) -> List[ServiceRecord]:
        """Find records in ``language`` mentioning any of ``terms``.

        Args:
            terms: Query terms; matched as normalized substrings of the record text
            language: Record language to keep
            categories: Restrict to these categories (no restriction if None or empty)

        Returns:
            Matching records in catalog order. With no usable terms, every record
            passing the language and category filters.
        """
        language = Language(language)
        wanted = set(categories or ())
        needles = [n for n in (self.normalizer.normalize_term(t, language) for t in terms) if n]

        matches: List[ServiceRecord] = []
        for record in self._records.values():
            if record.language != language:
                continue
            if wanted and record.category not in wanted:
                continue
            if needles:
                haystack = self._record_text(record, language)
                if not any(needle in haystack for needle in needles):
                    continue
            matches.append(record)
        return matches

    def _record_text(self, record: ServiceRecord, language: Language) -> str:
        parts = [record.title, record.description, record.category, record.subcategory or ""]
        return self.normalizer.normalize(" ".join(parts), language)

    @classmethod
    def from_yaml(cls, path: str | Path) -> "ServiceCatalog":
        """Load a catalog from YAML.

        The document is either a list of records or a mapping with a ``services`` list.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the document has neither shape
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Service catalog not found: {path}")

        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or []

        if isinstance(data, dict):
            data = data.get("services", [])
        if not isinstance(data, list):
            raise ValueError(f"Service catalog must be a list or contain a 'services' list: {path}")

        catalog = cls(ServiceRecord.model_validate(item) for item in data)
        logger.info("Loaded service catalog", path=str(path), services=len(catalog))
        return catalog


def load_default_catalog() -> ServiceCatalog:
    """Load the bundled sample catalog."""
    return ServiceCatalog.from_yaml(DEFAULT_CATALOG_PATH)
