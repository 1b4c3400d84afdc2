"""Tests for lexicon profile loading."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from govsearch.lexicon import (
    EntityType,
    Language,
    LexiconStore,
    get_lexicon_store,
    parse_profile,
)


def _minimal_profile(language: str = "en") -> dict:
    return {
        "language": language,
        "stopwords": ["the"],
        "lexicon": {
            "LOCATION": [{"term": "dubai", "confidence": 0.9, "synonyms": ["dxb"]}],
        },
        "intents": {"RENEWAL": {"triggers": ["renew"]}},
        "categories": [{"name": "visa", "keywords": ["visa"]}],
    }


class TestBundledProfiles:
    """Tests for the profiles shipped with the package."""

    def test_both_languages_load(self) -> None:
        store = LexiconStore()
        en = store.get_profile(Language.EN)
        ar = store.get_profile("ar")

        assert en.language == Language.EN
        assert ar.language == Language.AR
        assert en.lexicon and ar.lexicon
        assert en.categories and ar.categories

    def test_profiles_are_cached(self) -> None:
        store = LexiconStore()
        assert store.get_profile("en") is store.get_profile(Language.EN)

    def test_shared_default_store(self) -> None:
        assert get_lexicon_store() is get_lexicon_store()

    def test_lexicon_preserves_table_order(self) -> None:
        profile = LexiconStore().get_profile("en")
        locations = [e for e in profile.lexicon if e.entity_type == EntityType.LOCATION]

        assert locations[0].canonical_term == "dubai"
        assert all(e.entity_type == EntityType.LOCATION for e in locations)

    def test_ministry_synonyms(self) -> None:
        profile = LexiconStore().get_profile("en")
        ministry = next(e for e in profile.lexicon if e.entity_type == EntityType.MINISTRY)

        assert ministry.canonical_term == "ministry of interior"
        assert "interior ministry" in ministry.synonyms

    def test_intent_triggers_default_confidence(self) -> None:
        profile = LexiconStore().get_profile("en")
        renewal = [t for t in profile.intent_triggers if t.label == "RENEWAL"]

        assert renewal and all(t.confidence == 0.9 for t in renewal)

    def test_category_definitions(self) -> None:
        profile = LexiconStore().get_profile("en")

        categories = {c.name: c for c in profile.categories}
        identity = categories["identity"]
        assert [s.name for s in identity.subcategories] == ["new", "renewal", "replacement"]
        assert "unknown" not in categories


class TestCustomProfiles:
    """Tests for loading profiles from a custom directory."""

    def test_custom_directory(self, tmp_path: Path) -> None:
        (tmp_path / "en.yaml").write_text(yaml.safe_dump(_minimal_profile()), encoding="utf-8")

        profile = get_lexicon_store(tmp_path).get_profile("en")

        assert [e.canonical_term for e in profile.lexicon] == ["dubai"]
        assert profile.lexicon[0].synonyms == ("dxb",)

    def test_missing_directory_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            LexiconStore(tmp_path / "nope")

    def test_missing_profile_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            LexiconStore(tmp_path).get_profile("ar")

    def test_language_mismatch_raises(self, tmp_path: Path) -> None:
        (tmp_path / "ar.yaml").write_text(yaml.safe_dump(_minimal_profile("en")), encoding="utf-8")

        with pytest.raises(ValueError, match="declares language"):
            LexiconStore(tmp_path).get_profile("ar")

    def test_unknown_entity_type_raises(self) -> None:
        data = _minimal_profile()
        data["lexicon"] = {"PLANET": [{"term": "mars", "confidence": 0.9}]}

        with pytest.raises(ValueError, match="Unknown entity type"):
            parse_profile(data)

    def test_bad_time_pattern_raises(self) -> None:
        data = _minimal_profile()
        data["time_patterns"] = ["(unclosed"]

        with pytest.raises(ValueError, match="Invalid time pattern"):
            parse_profile(data)

    def test_confidence_out_of_range_raises(self) -> None:
        data = _minimal_profile()
        data["lexicon"] = {"LOCATION": [{"term": "dubai", "confidence": 1.5}]}

        with pytest.raises(ValueError):
            parse_profile(data)
