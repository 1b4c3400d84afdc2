"""Configuration management using Pydantic for validation."""

from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class NLPConfig(BaseSettings):
    """Query understanding configuration."""

    default_language: Literal["en", "ar"] = "en"
    lexicon_dir: Optional[str] = None
    enable_time_patterns: bool = True


class SourceConfig(BaseModel):
    """A single upstream service source."""

    id: str
    name: str = ""
    base_url: Optional[str] = None
    search_path: str = "/services/search"
    timeout_seconds: Optional[float] = None
    categories: List[str] = Field(default_factory=list)
    entity_terms: List[str] = Field(default_factory=list)
    always_query: bool = False
    enabled: bool = True


class AggregationConfig(BaseSettings):
    """Multi-source aggregation configuration."""

    sources: List[SourceConfig] = Field(
        default_factory=lambda: [
            SourceConfig(
                id="icp",
                name="Federal Authority for Identity and Citizenship",
                categories=["visa", "identity"],
                entity_terms=[
                    "visa",
                    "emirates id",
                    "passport",
                    "residence permit",
                    "federal authority for identity",
                ],
            ),
            SourceConfig(
                id="moec",
                name="Ministry of Economy",
                categories=["business"],
                entity_terms=["business license", "trade license", "ministry of economy"],
            ),
            SourceConfig(
                id="rta",
                name="Roads and Transport Authority",
                categories=["traffic"],
                entity_terms=[
                    "driving license",
                    "vehicle registration",
                    "traffic fine",
                    "roads and transport authority",
                ],
            ),
            SourceConfig(id="uae_portal", name="UAE Government Portal", always_query=True),
        ]
    )
    default_sources: List[str] = ["uae_portal"]
    source_timeout_seconds: float = 5.0
    overall_deadline_seconds: float = 10.0
    max_concurrent_requests: int = 5
    use_catalog_fallback: bool = True
    user_agent: str = "govsearch/0.1"

    @field_validator("max_concurrent_requests")
    @classmethod
    def validate_concurrency(cls, v: int) -> int:
        """Validate at least one request may run."""
        if v < 1:
            raise ValueError("max_concurrent_requests must be at least 1")
        return v


class CatalogConfig(BaseSettings):
    """Local service catalog configuration."""

    catalog_file: Optional[str] = None


class RankingConfig(BaseSettings):
    """Ranking and result shaping configuration."""

    max_results: int = 10
    category_filter_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    default_sort: Literal["relevance", "date"] = "relevance"


class CacheConfig(BaseSettings):
    """Search result cache configuration."""

    enabled: bool = True
    ttl_seconds: float = 900.0
    max_entries: int = 256


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    level: str = "INFO"
    format: Literal["json", "text"] = "text"
    file: Optional[str] = None
    rotation: str = "10 MB"
    retention: int = 3
    enable_query_logging: bool = True


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    # Configuration sections
    nlp: NLPConfig = Field(default_factory=NLPConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @staticmethod
    def _deep_merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two dicts (overrides win).

        This is used to apply environment-derived overrides on top of YAML defaults.
        """
        merged: Dict[str, Any] = dict(base)
        for key, value in overrides.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/config.yaml") -> "Config":
        """Load configuration from YAML file and environment variables.

        Precedence (highest to lowest):
        1) Environment variables / .env
        2) YAML file
        3) Model defaults

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML file is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, encoding="utf-8") as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"YAML config root must be a mapping/dict: {yaml_path}")

        # Only values that differ from the model defaults count as env overrides.
        env_overrides = cls().model_dump(exclude_defaults=True)
        merged = cls._deep_merge_dict(yaml_config, env_overrides)

        return cls(**merged)

    def validate_config(self) -> None:
        """Validate configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        source_ids = [source.id for source in self.aggregation.sources]
        duplicates = sorted({sid for sid in source_ids if source_ids.count(sid) > 1})
        if duplicates:
            raise ValueError(f"Duplicate source ids: {', '.join(duplicates)}")

        unknown = [sid for sid in self.aggregation.default_sources if sid not in source_ids]
        if unknown:
            raise ValueError(f"Default sources not configured: {', '.join(unknown)}")

        if self.aggregation.source_timeout_seconds <= 0:
            raise ValueError("source_timeout_seconds must be positive")
        if self.aggregation.overall_deadline_seconds <= 0:
            raise ValueError("overall_deadline_seconds must be positive")
        for source in self.aggregation.sources:
            if source.timeout_seconds is not None and source.timeout_seconds <= 0:
                raise ValueError(f"Source '{source.id}' timeout must be positive")


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get or create global configuration instance.

    Returns:
        Global Config instance

    Raises:
        RuntimeError: If configuration hasn't been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call load_config() first.")
    return _config


def load_config(yaml_path: str | Path = "config/config.yaml") -> Config:
    """Load and validate configuration.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        Loaded and validated Config instance
    """
    global _config
    _config = Config.from_yaml(yaml_path)
    _config.validate_config()
    return _config


def reset_config() -> None:
    """Reset global configuration (mainly for testing)."""
    global _config
    _config = None
