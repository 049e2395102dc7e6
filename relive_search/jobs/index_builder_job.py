# relive_search/jobs/index_builder_job.py
"""
Rebuilds the search index against PostgreSQL and optionally runs a sample query.

    relive-search-index --query "restaurant reservation" --fuzzy --highlights
"""
import argparse
import asyncio
import json
import sys
from typing import List, Optional

import structlog

from relive_search.core.logging_config import setup_logging
from relive_search.application.use_cases.hybrid_search_use_case import HybridSearchUseCase
from relive_search.domain.models import DocumentType, SearchFilters, SearchOptions, SearchQuery
from relive_search.dependencies import shutdown_search_service, startup_search_service

setup_logging()
log = structlog.get_logger("index_builder_job")


def build_sample_query(args: argparse.Namespace) -> SearchQuery:
    filters = None
    if args.types or args.contact_ids:
        filters = SearchFilters(
            types=[DocumentType(t) for t in args.types] if args.types else None,
            contact_ids=args.contact_ids or None,
        )
    options = SearchOptions(
        max_results=args.max_results,
        include_highlights=args.highlights,
        fuzzy_matching=args.fuzzy,
        sort_by=args.sort_by,
    )
    return SearchQuery(text=args.query, filters=filters, options=options)


async def run_sample_query(use_case: HybridSearchUseCase, args: argparse.Namespace) -> List[dict]:
    query_log = log.bind(job_action="sample_query", query=args.query)
    results = await use_case.search(build_sample_query(args))
    query_log.info(f"Sample query returned {len(results)} results.")
    return [r.model_dump(mode="json") for r in results]


async def main_builder_logic(args: argparse.Namespace) -> int:
    log.info("Index builder job starting...", sample_query=args.query)
    try:
        use_case = await startup_search_service()
    except ConnectionError as e_db_conn:
        log.error("Database connection error. Index not built.", error=str(e_db_conn))
        await shutdown_search_service()
        return 1

    output: dict = {}
    try:
        if args.query:
            output["results"] = await run_sample_query(use_case, args)
        if args.suggest:
            output["suggestions"] = await use_case.get_search_suggestions(args.suggest, args.max_suggestions)
        if args.clear_history:
            await use_case.clear_search_history()
        output["stats"] = use_case.get_search_stats().model_dump(mode="json")
    finally:
        await shutdown_search_service()

    print(json.dumps(output, indent=2, ensure_ascii=False))
    log.info("Index builder job finished.")
    return 0


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Index builder and sample query runner for Relive hybrid search.")
    parser.add_argument("--query", type=str, default=None, help="Optional query to run after the index is built.")
    parser.add_argument("--max-results", type=int, default=50)
    parser.add_argument(
        "--types",
        nargs="*",
        choices=[t.value for t in DocumentType],
        default=None,
        help="Restrict the sample query to these document types.",
    )
    parser.add_argument("--contact-ids", nargs="*", default=None)
    parser.add_argument("--sort-by", choices=["relevance", "date", "title"], default="relevance")
    parser.add_argument("--fuzzy", action="store_true", help="Enable fuzzy term matching.")
    parser.add_argument("--highlights", action="store_true", help="Include highlight spans in results.")
    parser.add_argument("--suggest", type=str, default=None, help="Print suggestions for this partial query.")
    parser.add_argument("--max-suggestions", type=int, default=5)
    parser.add_argument("--clear-history", action="store_true", help="Clear the stored search history.")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    sys.exit(asyncio.run(main_builder_logic(parse_args(argv))))


if __name__ == "__main__":
    main()
