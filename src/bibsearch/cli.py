"""CLI entry point for bibsearch."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any

from bibsearch.models.query import SemanticField, SortOrder


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point for bibsearch."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        settings = _load_settings(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    if args.log_level:
        settings.observability.log_level = args.log_level

    from bibsearch.observability.logging import setup_logging

    setup_logging(settings.observability)

    from pydantic import ValidationError

    from bibsearch.engines.base.exceptions import EngineError

    try:
        output = asyncio.run(_run(args, settings))
    except (EngineError, ValidationError, NotImplementedError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(output, indent=2, ensure_ascii=False))


def _load_settings(config: str | None) -> Any:
    from bibsearch.config.settings import Settings

    if config:
        return Settings.from_yaml(Path(config))
    return Settings()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bibsearch",
        description="bibsearch — Federated search over bibliographic APIs",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to YAML configuration file",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"bibsearch {_get_version()}",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    search = commands.add_parser("search", help="Search one or more engines")
    search.add_argument("query", help="Free-text query")
    search.add_argument(
        "--engine",
        "-e",
        dest="engines",
        action="append",
        default=None,
        help="Engine id to search (repeatable; default: all configured)",
    )
    search.add_argument("--start", type=int, default=0, help="0-based offset of the first record")
    search.add_argument("--per-page", "-n", type=int, default=10, help="Records per page")
    search.add_argument(
        "--sort",
        choices=[s.value for s in SortOrder],
        default=SortOrder.RELEVANCE.value,
        help="Sort order",
    )
    search.add_argument(
        "--field",
        choices=[f.value for f in SemanticField],
        default=None,
        help="Limit the query to one field",
    )

    get = commands.add_parser("get", help="Fetch one record by id")
    get.add_argument("engine_id", help="Engine id")
    get.add_argument("identifier", help="Record id, as returned in 'unique_id'")

    issn = commands.add_parser("issn", help="Latest articles of a journal (JournalTOCS engines)")
    issn.add_argument("engine_id", help="Engine id")
    issn.add_argument("issn", help="Journal ISSN")

    info = commands.add_parser("info", help="Show an engine's configuration")
    info.add_argument("engine_id", help="Engine id")

    return parser


async def _run(args: argparse.Namespace, settings: Any) -> Any:
    from bibsearch.core.searcher import FederatedSearcher
    from bibsearch.engines.base.exceptions import ConfigurationError
    from bibsearch.engines.ebsco_host.engine import EbscoHostEngine
    from bibsearch.engines.journal_tocs.engine import JournalTocsEngine
    from bibsearch.models.query import Query
    from bibsearch.observability.logging import REDACTED, SECRET_KEYS

    searcher = FederatedSearcher.from_settings(settings)
    await searcher.initialize()
    try:
        if args.command == "search":
            query = Query(
                keywords=args.query,
                semantic_field=args.field,
                start=args.start,
                per_page=args.per_page,
                sort=args.sort,
            )
            results = await searcher.search_all(query, args.engines)
            return {engine_id: rs.model_dump(mode="json") for engine_id, rs in results.items()}

        engine = searcher.registry.get(args.engine_id)

        if args.command == "get":
            item = await engine.get(args.identifier)
            return item.model_dump(mode="json")

        if args.command == "issn":
            if not isinstance(engine, JournalTocsEngine):
                raise ConfigurationError(f"Engine '{args.engine_id}' ({engine.name}) cannot look up ISSNs")
            feed = await engine.fetch_by_issn(args.issn)
            return feed.model_dump(mode="json")

        output: dict[str, Any] = {
            "engine_id": engine.engine_id,
            "engine": engine.name,
            "config": {
                key: REDACTED if key in SECRET_KEYS else value
                for key, value in engine.config.model_dump(mode="json").items()
            },
        }
        if isinstance(engine, EbscoHostEngine):
            output["available_databases"] = [
                {"short_name": short, "long_name": long} for short, long in await engine.list_databases()
            ]
        return output
    finally:
        await searcher.shutdown()


def _get_version() -> str:
    """Get the package version."""
    from bibsearch import __version__

    return __version__


if __name__ == "__main__":
    main()
