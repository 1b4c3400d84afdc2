"""Loading of per-language lexicon profiles from YAML.

Profiles are immutable once loaded and are shared process-wide, so concurrent
queries read them without locking.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger

from govsearch.lexicon.models import (
    CategoryDefinition,
    EntityType,
    ExpansionEntry,
    IntentTrigger,
    Language,
    LanguageProfile,
    LexiconEntry,
)

DEFAULT_LEXICON_DIR = Path(__file__).parent / "data"


def _parse_lexicon(raw: Any) -> List[LexiconEntry]:
    if not isinstance(raw, dict):
        raise ValueError("'lexicon' must map entity types to entry lists.")

    entries: List[LexiconEntry] = []
    for type_name, items in raw.items():
        try:
            entity_type = EntityType(type_name)
        except ValueError as exc:
            raise ValueError(f"Unknown entity type in lexicon: {type_name}") from exc
        for item in items or []:
            entries.append(
                LexiconEntry(
                    canonical_term=item["term"],
                    entity_type=entity_type,
                    base_confidence=item["confidence"],
                    synonyms=tuple(item.get("synonyms") or ()),
                )
            )
    return entries


def _parse_intents(raw: Any) -> List[IntentTrigger]:
    if not isinstance(raw, dict):
        raise ValueError("'intents' must map intent labels to trigger definitions.")

    triggers: List[IntentTrigger] = []
    for label, definition in raw.items():
        definition = definition or {}
        confidence = definition.get("confidence", 0.9)
        for item in definition.get("triggers") or []:
            # A trigger is a phrase, or a mapping that overrides the label confidence.
            if isinstance(item, dict):
                triggers.append(
                    IntentTrigger(
                        phrase=item["phrase"],
                        label=label,
                        confidence=item.get("confidence", confidence),
                    )
                )
            else:
                triggers.append(IntentTrigger(phrase=item, label=label, confidence=confidence))
    return triggers


def parse_profile(data: Dict[str, Any]) -> LanguageProfile:
    """Build a LanguageProfile from the YAML document structure."""
    if not isinstance(data, dict):
        raise ValueError("Lexicon profile root must be a mapping/dict.")

    return LanguageProfile(
        language=Language(data["language"]),
        stopwords=tuple(data.get("stopwords") or ()),
        stemming=data.get("stemming") or {},
        lexicon=tuple(_parse_lexicon(data.get("lexicon") or {})),
        expansions=tuple(
            ExpansionEntry(canonical_term=item["term"], synonyms=tuple(item.get("synonyms") or ()))
            for item in data.get("expansions") or []
        ),
        time_patterns=tuple(data.get("time_patterns") or ()),
        intent_triggers=tuple(_parse_intents(data.get("intents") or {})),
        intent_keywords={
            label: tuple(words) for label, words in (data.get("intent_keywords") or {}).items()
        },
        categories=tuple(
            CategoryDefinition.model_validate(item) for item in data.get("categories") or []
        ),
    )


class LexiconStore:
    """Read-only registry of language profiles, loaded lazily from a directory."""

    def __init__(self, lexicon_dir: str | Path | None = None) -> None:
        self.lexicon_dir = Path(lexicon_dir) if lexicon_dir else DEFAULT_LEXICON_DIR
        if not self.lexicon_dir.is_dir():
            raise FileNotFoundError(f"Lexicon directory not found: {self.lexicon_dir}")
        self._profiles: Dict[Language, LanguageProfile] = {}

    def get_profile(self, language: Language | str) -> LanguageProfile:
        """Return the profile for ``language``, loading it on first use."""
        language = Language(language)
        profile = self._profiles.get(language)
        if profile is None:
            profile = self._load(language)
            self._profiles[language] = profile
        return profile

    def _load(self, language: Language) -> LanguageProfile:
        path = self.lexicon_dir / f"{language.value}.yaml"
        if not path.exists():
            raise FileNotFoundError(f"Lexicon profile not found: {path}")

        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        profile = parse_profile(data)
        if profile.language != language:
            raise ValueError(
                f"Lexicon profile {path} declares language '{profile.language.value}', "
                f"expected '{language.value}'"
            )

        logger.info(
            "Loaded lexicon profile",
            language=language.value,
            path=str(path),
            entries=len(profile.lexicon),
            triggers=len(profile.intent_triggers),
            categories=len(profile.categories),
        )
        return profile


_default_store: Optional[LexiconStore] = None


def get_lexicon_store(lexicon_dir: str | Path | None = None) -> LexiconStore:
    """Return the shared store for the bundled profiles, or a new one for a custom dir."""
    global _default_store
    if lexicon_dir is not None:
        return LexiconStore(lexicon_dir)
    if _default_store is None:
        _default_store = LexiconStore()
    return _default_store
