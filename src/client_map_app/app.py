"""
Command-line runner for the client map resolution pipeline.

Runs one resolution cycle against a published client sheet and prints every
snapshot the orchestrator publishes: the cache-only first paint, then the
merged list once the resolver returns. With --insights, the AI visit
briefing for one client is printed after the cycle.

All business logic is delegated to the resolution orchestrator.
"""

import argparse
import asyncio
from typing import Any

from rich.console import Console

from batch_ai_resolver.core import BatchAIResolver
from client_insights.core import generate_client_insights
from client_map_app.formatting import (
    filter_records,
    format_error_for_display,
    format_records,
    format_status,
)
from common.config import CACHE_DB_PATH, DEFAULT_SHEET_URL
from common.logging_config import get_logger
from coordinate_cache.core import CoordinateCache, SQLiteCoordinateCache
from record_source.core import RecordSource
from record_source.types import ClientRecord
from resolution_orchestrator.core import ResolutionOrchestrator
from resolution_orchestrator.types import RecordLoader, ResolutionSnapshot, Resolver
from rule_based_resolver.core import RuleBasedResolver

logger = get_logger("client_map_app")

STRATEGIES = ("auto", "batch", "rule")


def build_resolvers(strategy: str, cache: CoordinateCache) -> list[Resolver]:
    """
    Build the ordered resolver list for a strategy choice.

    "auto" tries the batch AI resolver first and falls back to the
    rule-based resolver when the former is unavailable.
    """
    if strategy == "batch":
        return [BatchAIResolver(cache)]
    if strategy == "rule":
        return [RuleBasedResolver(cache)]
    if strategy == "auto":
        return [BatchAIResolver(cache), RuleBasedResolver(cache)]
    raise ValueError(f"Unknown strategy '{strategy}', expected one of {', '.join(STRATEGIES)}")


def find_record(records: list[ClientRecord], key: str) -> ClientRecord | None:
    """Find a client by exact id, else by name (exact match first, then substring)."""
    needle = (key or "").strip()
    if not needle:
        return None
    for record in records:
        if record.id == needle:
            return record
    for record in records:
        if record.name == needle:
            return record
    matches = filter_records(records, needle)
    return matches[0] if matches else None


async def brief_client(records: list[ClientRecord], key: str, llm_client: Any = None) -> tuple[ClientRecord, str] | None:
    """
    Generate the visit briefing for the client identified by `key`.

    Returns:
        (record, briefing) or None when no client matches
    """
    record = find_record(records, key)
    if record is None:
        logger.warning(f"No client matches '{key}' for insights")
        return None
    return record, await generate_client_insights(record, client=llm_client)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Geocode the client sheet and print the result")
    parser.add_argument("--url", dest="url", default=DEFAULT_SHEET_URL, help="Published CSV URL")
    parser.add_argument("--cache", dest="cache_path", default=CACHE_DB_PATH, help="SQLite cache file")
    parser.add_argument(
        "--strategy",
        dest="strategy",
        choices=STRATEGIES,
        default="auto",
        help="Resolver strategy",
    )
    parser.add_argument("--search", dest="search", default="", help="Only print matching clients")
    parser.add_argument(
        "--insights",
        dest="insights",
        default="",
        help="Client id or name to print an AI visit briefing for after loading",
    )
    return parser


async def run(
    url: str,
    cache_path: str,
    strategy: str,
    search: str = "",
    insights: str = "",
    console: Console | None = None,
    record_source: RecordLoader | None = None,
    llm_client: Any = None,
) -> ResolutionOrchestrator:
    """Run one resolution cycle, printing each published snapshot, then the optional briefing."""
    console = console or Console()
    cache = SQLiteCoordinateCache(cache_path)

    def render(snapshot: ResolutionSnapshot) -> None:
        status = format_status(snapshot)
        if status:
            console.print(f"[bold blue]{status}[/bold blue]")
        if snapshot.error:
            console.print(f"[bold red]{format_error_for_display(snapshot.error)}[/bold red]")
        if not snapshot.is_loading_records:
            console.print(format_records(filter_records(snapshot.records, search)), markup=False)

    orchestrator = ResolutionOrchestrator(
        record_source=record_source or RecordSource(),
        cache=cache,
        resolvers=build_resolvers(strategy, cache),
        on_publish=render,
    )
    await orchestrator.load(url)

    if insights:
        briefing = await brief_client(orchestrator.records, insights, llm_client=llm_client)
        if briefing is None:
            console.print(f"'{insights}'에 해당하는 거래처가 없습니다.", style="bold red", markup=False)
        else:
            record, text = briefing
            console.print(f"AI 방문 가이드: {record.name or record.id}", style="bold green", markup=False)
            console.print(text, markup=False)
    return orchestrator


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    logger.info(f"Starting client map run: strategy={args.strategy}")
    asyncio.run(run(args.url, args.cache_path, args.strategy, args.search, args.insights))


if __name__ == "__main__":
    main()
