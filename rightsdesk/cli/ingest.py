# =============================================================================
# rightsdesk/cli/ingest.py: CLI for corpus management
# =============================================================================
#
# Standalone CLI for managing the rightsdesk reference corpus: the legal,
# medical and policy documents the assistant searches for supporting text.
#
# Supported subcommands:
#
#   document: Ingest a local text file (or data-URI file) as one document
#   url: Fetch a web page, clean it and ingest it
#   search: Run a hybrid semantic + keyword search
#   stats: Display corpus statistics
#   delete: Delete a document and its chunks
#   sweep: Remove pending documents left by interrupted ingestions
#
# Usage examples:
#   python -m rightsdesk.cli.ingest document --file charter.txt \
#       --title "Patients' Rights Charter" --doc-type medical --tags rights,charter
#   python -m rightsdesk.cli.ingest url --url https://example.org/act --doc-type legal
#   python -m rightsdesk.cli.ingest search --query "emergency treatment refusal"
#   python -m rightsdesk.cli.ingest stats
# =============================================================================

"""Standalone CLI for building and querying the rightsdesk corpus.

Usage::

    python -m rightsdesk.cli.ingest document --file charter.txt \\
        --title "Patients' Rights Charter" --doc-type medical

    python -m rightsdesk.cli.ingest search --query "informed consent" --limit 5

Exit code is 0 on success, 1 on any corpus error (the message is printed to
stderr).
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from rightsdesk.config.loader import load_config
from rightsdesk.config.settings import Settings
from rightsdesk.main import build_components, close_components
from rightsdesk.models.corpus import IngestionResult
from rightsdesk.utils.errors import CorpusError
from rightsdesk.utils.logging import configure_logging


def _split_tags(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


def _print_ingestion(result: IngestionResult) -> None:
    if result.created:
        print("\nIngestion complete:")
        print(f"  Document ID:    {result.document_id}")
        print(f"  Version:        {result.version}")
        print(f"  Chunks created: {result.chunks_created}")
        print(f"  Total tokens:   {result.total_tokens}")
        print(f"  Time:           {result.ingestion_time:.2f}s")
        if result.content_placeholder:
            print("  Note: binary file stored as a placeholder (no text extracted)")
    else:
        print("\nDocument already exists:")
        print(f"  Document ID:    {result.document_id}")


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_document(args: argparse.Namespace, components: dict[str, Any]) -> int:
    path = Path(args.file)
    if not path.is_file():
        print(f"Error: file not found: {path}", file=sys.stderr)
        return 1

    title = args.title or path.stem
    print(f"Ingesting document: {title}")
    print(f"  File: {path}")
    result = await components["ingestion_service"].ingest(
        title=title,
        content=path.read_text(encoding="utf-8"),
        doc_type=args.doc_type,
        language=args.language,
        category=args.category,
        tags=_split_tags(args.tags),
        source_url=args.source_url,
    )
    _print_ingestion(result)
    return 0


async def _handle_url(args: argparse.Namespace, components: dict[str, Any]) -> int:
    print(f"Ingesting URL: {args.url}")
    result = await components["ingestion_service"].ingest_from_url(
        url=args.url,
        doc_type=args.doc_type,
        category=args.category,
        language=args.language,
        tags=_split_tags(args.tags),
    )
    _print_ingestion(result)
    return 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    filters = {
        key: value
        for key, value in (
            ("doc_type", args.doc_type),
            ("category", args.category),
            ("language", args.language),
        )
        if value
    }
    response = await components["search_service"].search(
        query=args.query,
        filters=filters,
        limit=args.limit,
        threshold=args.threshold,
    )

    print(f"Results for: {response.query}  ({response.total} found)")
    if response.degraded_strategies:
        degraded = ", ".join(s.value for s in response.degraded_strategies)
        print(f"  Warning: {degraded} search unavailable; results may be incomplete")
    print("=" * 60)
    for rank, result in enumerate(response.results, start=1):
        similarity = f"{result.similarity:.3f}" if result.similarity is not None else "-"
        print(
            f"{rank:>3}. [{result.search_type.value:<8}] {result.document.title}"
            f"  (score {result.rank_score:g}, similarity {similarity})"
        )
        snippet = " ".join(result.content.split())[:160]
        print(f"     {snippet}")
    return 0


async def _handle_stats(components: dict[str, Any]) -> int:
    stats = await components["ingestion_service"].get_corpus_stats()
    print("Corpus Statistics")
    print("=" * 40)
    print(f"  Active documents:   {stats.total_documents}")
    print(f"  Total chunks:       {stats.total_chunks}")
    print(f"  Total tokens:       {stats.total_tokens}")
    print(f"  Pending documents:  {stats.pending_documents}")
    print(f"  Inactive versions:  {stats.inactive_documents}")
    if stats.documents_by_type:
        print("\n  Documents by type:")
        for doc_type, count in sorted(stats.documents_by_type.items()):
            print(f"    {doc_type:<15} {count}")
    if stats.documents_by_language:
        print("\n  Documents by language:")
        for language, count in sorted(stats.documents_by_language.items()):
            print(f"    {language:<15} {count}")
    return 0


async def _handle_delete(args: argparse.Namespace, components: dict[str, Any]) -> int:
    await components["ingestion_service"].delete_document(args.id)
    print(f"Deleted document {args.id}")
    return 0


async def _handle_sweep(args: argparse.Namespace, components: dict[str, Any]) -> int:
    older_than = None
    if args.older_than_minutes is not None:
        older_than = datetime.now(timezone.utc) - timedelta(minutes=args.older_than_minutes)
    removed = await components["ingestion_service"].sweep_pending(older_than)
    print(f"Removed {removed} pending document(s)")
    return 0


async def _run(args: argparse.Namespace, components: dict[str, Any]) -> int:
    """Initialise the store, dispatch the subcommand and release resources."""
    try:
        await components["store"].initialize()
        if args.command == "document":
            return await _handle_document(args, components)
        if args.command == "url":
            return await _handle_url(args, components)
        if args.command == "search":
            return await _handle_search(args, components)
        if args.command == "stats":
            return await _handle_stats(components)
        if args.command == "delete":
            return await _handle_delete(args, components)
        if args.command == "sweep":
            return await _handle_sweep(args, components)
        return 1
    except CorpusError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await close_components(components)


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _add_metadata_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--doc-type",
        required=True,
        help="Document type: legal, medical, policy or general",
    )
    parser.add_argument("--language", default="en", help="Language code: en or hi")
    parser.add_argument("--category", default=None, help="Optional category")
    parser.add_argument("--tags", default=None, help="Comma-separated tags")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m rightsdesk.cli.ingest",
        description="Manage the rightsdesk reference corpus.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to the YAML config file (default: config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    doc_parser = subparsers.add_parser("document", help="Ingest a local file")
    doc_parser.add_argument("--file", required=True, help="Path to a UTF-8 text file")
    doc_parser.add_argument("--title", default=None, help="Title (default: file name)")
    doc_parser.add_argument("--source-url", default=None, help="Original URL, if any")
    _add_metadata_arguments(doc_parser)

    url_parser = subparsers.add_parser("url", help="Fetch and ingest a web page")
    url_parser.add_argument("--url", required=True, help="Page URL")
    _add_metadata_arguments(url_parser)

    search_parser = subparsers.add_parser("search", help="Hybrid search")
    search_parser.add_argument("--query", required=True, help="Search text")
    search_parser.add_argument("--limit", type=int, default=None, help="Maximum results")
    search_parser.add_argument(
        "--threshold", type=float, default=None, help="Minimum semantic similarity (0-1)"
    )
    search_parser.add_argument("--doc-type", default=None, help="Filter by document type")
    search_parser.add_argument("--category", default=None, help="Filter by category")
    search_parser.add_argument("--language", default=None, help="Filter by language")

    subparsers.add_parser("stats", help="Show corpus statistics")

    delete_parser = subparsers.add_parser("delete", help="Delete a document")
    delete_parser.add_argument("--id", required=True, help="Document id")

    sweep_parser = subparsers.add_parser("sweep", help="Remove abandoned pending documents")
    sweep_parser.add_argument(
        "--older-than-minutes",
        type=int,
        default=None,
        help="Age cut-off (default: PENDING_DOCUMENT_TTL_MINUTES)",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Parses the subcommand, builds every component from Settings and the YAML
    config, and dispatches to the matching handler.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)
    config = load_config(args.config, settings=app_settings)

    try:
        components = build_components(app_settings, config)
    except CorpusError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    sys.exit(asyncio.run(_run(args, components)))


if __name__ == "__main__":
    main()
