"""Standalone CLI for managing the coursekb knowledge base.

Usage::

    python -m coursekb.cli ingest --course biology --type resource \\
        --file notes/cells.txt --subtopic "cell biology" --profile long_book

    python -m coursekb.cli search --query "mitochondria function" \\
        --course biology --type resource --type instruction --top-k 5

    python -m coursekb.cli log --course biology --assignment-type essay \\
        --answer-file answer.txt --outcome success --score 92

    python -m coursekb.cli stats

Exits 0 on success and 1 on any coursekb error, with the message on stderr.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from coursekb.config.settings import Settings
from coursekb.models.records import ChunkProfileName, FeedbackOutcome, RecordType, SearchQuery
from coursekb.utils.errors import ConfigurationError, CourseKBError, InputValidationError
from coursekb.utils.logging import configure_logging


def _build_components(app_settings: Settings) -> dict[str, Any]:
    """Build providers and services exactly as the HTTP application does."""
    # Deferred: importing the app module builds the FastAPI application.
    from coursekb.main import _build_all

    return _build_all(app_settings)


def _require(components: dict[str, Any], name: str) -> Any:
    service = components.get(name)
    if service is None:
        raise ConfigurationError(
            "Knowledge base not configured. Set OPENAI_API_KEY (or "
            "EMBEDDING_PROVIDER=nomic with a running Ollama) and check CHROMADB_* settings."
        )
    return service


def _read_text(path: str) -> str:
    file_path = Path(path)
    if not file_path.is_file():
        raise InputValidationError(f"File not found: {path}")
    try:
        return file_path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InputValidationError(f"File is not valid UTF-8 text: {path}") from exc


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, components: dict[str, Any]) -> int:
    service = _require(components, "ingestion_service")
    raw_text = _read_text(args.file)
    source_name = args.source_name or Path(args.file).name

    print(f"Ingesting {args.file} into course '{args.course}' as {args.type}")
    result = await service.ingest(
        course=args.course,
        type=args.type,
        raw_text=raw_text,
        subtopic=args.subtopic,
        assignment_type=args.assignment_type,
        source_name=source_name,
        chunk_profile=args.profile,
    )

    print("\nIngestion complete:")
    print(f"  Chunks stored: {result.chunk_count}")
    print(f"  Profile:       {result.profile.value}")
    print(f"  Time:          {result.ingestion_time:.2f}s")
    return 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    service = _require(components, "retrieval_service")
    app_settings: Settings = components["settings"]

    try:
        query = SearchQuery(
            query_text=args.query,
            course=args.course,
            types=args.types,
            subtopic=args.subtopic,
            assignment_type=args.assignment_type,
            top_k=args.top_k if args.top_k is not None else app_settings.search_default_top_k,
            threshold=(
                args.threshold
                if args.threshold is not None
                else app_settings.search_default_threshold
            ),
        )
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        raise InputValidationError(f"Invalid search options: {problems}") from exc
    results = await service.search(query)

    if not results:
        print("No matching records.")
        return 0

    for rank, result in enumerate(results, start=1):
        record = result.record
        label = record.source_name or record.course
        print(f"{rank:>2}. [{result.similarity:.3f}] {record.type.value} | {label} #{record.chunk_index}")
        snippet = record.content if len(record.content) <= 200 else record.content[:197] + "..."
        print(f"    {snippet}")
    return 0


async def _handle_log(args: argparse.Namespace, components: dict[str, Any]) -> int:
    service = _require(components, "feedback_service")
    result = await service.log_completion(
        course=args.course,
        assignment_type=args.assignment_type,
        model_answer=_read_text(args.answer_file),
        outcome=args.outcome,
        subtopic=args.subtopic,
        original_prompt=args.prompt,
        score=args.score,
        teacher_feedback=args.feedback,
    )
    print(f"Logged {result.type.value} record {result.id}")
    return 0


async def _handle_stats(args: argparse.Namespace, components: dict[str, Any]) -> int:
    vector_store = _require(components, "vector_store")
    stats = await vector_store.get_stats()

    print("Knowledge Base Statistics")
    print("=" * 40)
    print(f"  Total records: {stats.total_records}")
    if stats.records_by_type:
        print("\n  Records by type:")
        for record_type, count in sorted(stats.records_by_type.items()):
            print(f"    {record_type:<20} {count}")
    if stats.records_by_course:
        print("\n  Records by course:")
        for course, count in sorted(stats.records_by_course.items()):
            print(f"    {course:<20} {count}")
    return 0


_HANDLERS = {
    "ingest": _handle_ingest,
    "search": _handle_search,
    "log": _handle_log,
    "stats": _handle_stats,
}


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the coursekb CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m coursekb.cli",
        description="Manage the coursekb knowledge base.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")
    record_types = [t.value for t in RecordType]

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest a UTF-8 text file")
    ingest_parser.add_argument("--course", required=True, help="Course the text belongs to")
    ingest_parser.add_argument("--type", required=True, choices=record_types, help="Record type")
    ingest_parser.add_argument("--file", required=True, help="Path to the text file")
    ingest_parser.add_argument("--subtopic", help="Subtopic tag")
    ingest_parser.add_argument("--assignment-type", dest="assignment_type", help="Assignment type tag")
    ingest_parser.add_argument(
        "--profile",
        default=ChunkProfileName.DEFAULT.value,
        help="Chunk profile: short_form, default or long_book (default: default)",
    )
    ingest_parser.add_argument(
        "--source-name", dest="source_name", help="Provenance label (default: file name)"
    )

    # -- search --
    search_parser = subparsers.add_parser("search", help="Search stored records")
    search_parser.add_argument("--query", required=True, help="Text to search for")
    search_parser.add_argument("--course", help="Only records of this course")
    search_parser.add_argument(
        "--type",
        dest="types",
        action="append",
        choices=record_types,
        help="Only records of this type (repeatable)",
    )
    search_parser.add_argument("--subtopic", help="Only records with this subtopic")
    search_parser.add_argument("--assignment-type", dest="assignment_type")
    search_parser.add_argument("--top-k", dest="top_k", type=int, help="Maximum results")
    search_parser.add_argument("--threshold", type=float, help="Minimum similarity (0-1)")

    # -- log --
    log_parser = subparsers.add_parser("log", help="Store a graded completion")
    log_parser.add_argument("--course", required=True)
    log_parser.add_argument("--assignment-type", dest="assignment_type", required=True)
    log_parser.add_argument(
        "--answer-file", dest="answer_file", required=True, help="File holding the answer"
    )
    log_parser.add_argument(
        "--outcome", required=True, choices=[o.value for o in FeedbackOutcome]
    )
    log_parser.add_argument("--subtopic")
    log_parser.add_argument("--score", type=float)
    log_parser.add_argument("--prompt", help="The original assignment prompt")
    log_parser.add_argument("--feedback", help="Teacher feedback text")

    # -- stats --
    subparsers.add_parser("stats", help="Show record counts")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """Parse the command line, build services and run the chosen command."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(log_level=app_settings.log_level)

    try:
        components = _build_components(app_settings)
        components.setdefault("settings", app_settings)
        exit_code = asyncio.run(_HANDLERS[args.command](args, components))
    except CourseKBError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    sys.exit(exit_code)
