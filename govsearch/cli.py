"""Command line interface for query analysis and service search."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from govsearch.lexicon.models import Language
from govsearch.nlp.models import ClassificationResult, QueryAnalysis
from govsearch.nlp.processor import QueryProcessor
from govsearch.retrieval.models import SearchOptions, SearchResponse, SortOrder
from govsearch.retrieval.orchestrator import SearchOrchestrator
from govsearch.utils.config import Config, load_config
from govsearch.utils.logging import setup_logging

app = typer.Typer(help="Understand government-service queries and search upstream sources.")

console = Console(color_system=None, force_terminal=False, width=120)

CONFIG_OPTION = typer.Option(Path("config/config.yaml"), help="Path to config file.")
LANGUAGE_OPTION = typer.Option(None, "--language", "-l", help="Query language (en|ar).")


def create_processor(cfg: Config) -> QueryProcessor:
    return QueryProcessor(config=cfg)


def create_orchestrator(cfg: Config) -> SearchOrchestrator:
    return SearchOrchestrator(config=cfg)


def _load(config_path: Path) -> Config:
    cfg = load_config(config_path)
    setup_logging(cfg.logging)
    return cfg


def _parse_language(value: Optional[str], cfg: Config) -> Language:
    try:
        return Language((value or cfg.nlp.default_language).lower())
    except ValueError:
        console.print(f"[red]Unsupported language: {value}[/red]")
        raise typer.Exit(code=2)


def _echo_json(data: Dict[str, Any]) -> None:
    typer.echo(json.dumps(data, ensure_ascii=False, indent=2))


def _render_classification(classification: ClassificationResult) -> None:
    console.print(
        f"Category: [bold]{classification.category}[/bold] "
        f"(confidence {classification.confidence:.2f})"
    )
    for sub in classification.subcategories:
        console.print(f"  - {sub.name}: {sub.confidence:.2f}")


def _render_analysis(analysis: QueryAnalysis) -> None:
    recognition = analysis.recognition
    console.print(f"Normalized: {recognition.normalized_query}")
    console.print(f"Expanded: {recognition.expanded_query}")

    if recognition.entities:
        table = Table(title="Entities")
        table.add_column("Text", style="cyan")
        table.add_column("Type")
        table.add_column("Conf", justify="right")
        table.add_column("Canonical")
        table.add_column("Span", justify="right")
        for entity in recognition.entities:
            table.add_row(
                entity.text,
                entity.type.value,
                f"{entity.confidence:.2f}",
                entity.normalized_value or "-",
                f"{entity.start_offset}-{entity.end_offset}",
            )
        console.print(table)
    else:
        console.print("[yellow]No entities recognized.[/yellow]")

    console.print(
        "Intents: "
        + ", ".join(f"{label}={intent.confidence:.2f}" for label, intent in recognition.intents.items())
    )
    _render_classification(analysis.classification)


def _render_results(response: SearchResponse) -> None:
    if not response.results:
        console.print("[yellow]No matching services found.[/yellow]")
        return

    table = Table(title=f"Results for '{response.query}'")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Authority")
    table.add_column("Category")
    table.add_column("Score", justify="right")
    table.add_column("Updated")
    table.add_column("Source", style="magenta")
    for item in response.results:
        record = item.record
        table.add_row(
            str(item.rank),
            record.title,
            record.authority or "-",
            record.category or "-",
            f"{item.score:.2f}",
            record.last_updated or "-",
            record.source or "-",
        )
    console.print(table)


@app.command("analyze")
def analyze(
    query: str = typer.Argument(..., help="Query text."),
    language: Optional[str] = LANGUAGE_OPTION,
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables."),
    config: Path = CONFIG_OPTION,
) -> None:
    """Show entities, intents, expanded query and category for a query."""
    cfg = _load(config)
    lang = _parse_language(language, cfg)
    analysis = create_processor(cfg).analyze(query, lang)

    if as_json:
        _echo_json(analysis.to_dict())
        return
    _render_analysis(analysis)


@app.command("classify")
def classify(
    query: str = typer.Argument(..., help="Query text."),
    language: Optional[str] = LANGUAGE_OPTION,
    config: Path = CONFIG_OPTION,
) -> None:
    """Classify a query into a service category."""
    cfg = _load(config)
    lang = _parse_language(language, cfg)
    _render_classification(create_processor(cfg).classify(query, lang))


@app.command("tokens")
def tokens(
    query: str = typer.Argument(..., help="Query text."),
    language: Optional[str] = LANGUAGE_OPTION,
    config: Path = CONFIG_OPTION,
) -> None:
    """Print stopword-filtered, stemmed tokens."""
    cfg = _load(config)
    lang = _parse_language(language, cfg)
    processed = create_processor(cfg).tokenizer.process(query, lang)
    console.print(" ".join(processed) if processed else "[yellow]No tokens.[/yellow]")


@app.command("search")
def search(
    query: str = typer.Argument(..., help="Query text."),
    language: Optional[str] = LANGUAGE_OPTION,
    max_results: Optional[int] = typer.Option(None, help="Maximum results.", min=1),
    sort_by: Optional[SortOrder] = typer.Option(None, help="Sort by relevance|date."),
    category: Optional[str] = typer.Option(None, help="Only return this category."),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of a table."),
    config: Path = CONFIG_OPTION,
) -> None:
    """Search government services across the configured sources."""
    cfg = _load(config)
    lang = _parse_language(language, cfg)
    options = SearchOptions(
        language=lang, max_results=max_results, sort_by=sort_by, category=category
    )
    response = create_orchestrator(cfg).search_sync(query, options)

    if as_json:
        _echo_json(response.to_dict())
        return
    if response.category_filter:
        console.print(f"Category filter: {response.category_filter}")
    _render_results(response)


@app.command("sources")
def sources(config: Path = CONFIG_OPTION) -> None:
    """List the configured upstream sources."""
    cfg = _load(config)
    table = Table(title="Sources")
    table.add_column("ID", style="magenta")
    table.add_column("Name")
    table.add_column("Endpoint")
    table.add_column("Categories")
    table.add_column("Timeout", justify="right")
    table.add_column("Flags")
    for source in cfg.aggregation.sources:
        flags = [flag for flag, on in (("always", source.always_query), ("disabled", not source.enabled)) if on]
        endpoint = f"{source.base_url}{source.search_path}" if source.base_url else "catalog only"
        timeout = source.timeout_seconds or cfg.aggregation.source_timeout_seconds
        table.add_row(
            source.id,
            source.name or "-",
            endpoint,
            ", ".join(source.categories) or "-",
            f"{timeout:.1f}s",
            ", ".join(flags) or "-",
        )
    console.print(table)


def run() -> None:
    """Entrypoint for Typer."""
    app()


if __name__ == "__main__":
    run()
