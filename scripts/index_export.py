"""Build the meeting index from an export directory, or query it."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from meeting_insights.config import ConfigurationError, get_settings
from meeting_insights.context import ServiceContext
from meeting_insights.ingestion.pipeline import index_export
from meeting_insights.retrieval.search import search


def _print_progress(processed: int, total: int) -> None:
    print(f"\rProcessed {processed}/{total}", end="", flush=True)


async def run_index(args: argparse.Namespace) -> None:
    export_dir = Path(args.export_dir)
    if not export_dir.is_dir():
        print(f"Export directory {export_dir} not found.")
        sys.exit(1)

    ctx = ServiceContext(export_dir=export_dir)
    print(f"Building index in {ctx.db_path}...")
    result = await index_export(
        ctx,
        export_dir,
        model=args.model,
        skip_extraction=args.skip_extraction,
        bulk_extraction=args.bulk,
        on_progress=_print_progress,
    )
    print("\n\nIndexing complete!")
    print(f"- Documents indexed: {result.documents_indexed}")
    print(f"- Chunks created: {result.chunks_created}")
    print(f"- Database: {ctx.db_path}")


async def run_search(args: argparse.Namespace) -> None:
    ctx = ServiceContext(export_dir=args.export_dir)
    if not ctx.store.index_exists():
        print(f"No index found at {ctx.db_path}. Run the 'index' command first.")
        sys.exit(1)

    response = await search(ctx, args.query, folder=args.folder, limit=args.limit)
    if not response.results:
        print("No results found.")
        return

    for i, result in enumerate(response.results, start=1):
        doc = result.document
        print(f"\n{i}. {doc.title} ({doc.date}) score={result.relevance_score}")
        print(f"   Folders: {', '.join(doc.folders) or 'None'}")
        print(f"   Themes: {', '.join(result.matching_themes) or 'None'}")
        print(f"   {result.summary}")
        for quote in result.key_quotes:
            print(f'   - [{quote.speaker.value}] "{quote.text}"')


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = argparse.ArgumentParser(description=__doc__)
    commands = parser.add_subparsers(dest="command", required=True)

    index_parser = commands.add_parser("index", help="Rebuild the index from an export directory")
    index_parser.add_argument("export_dir")
    index_parser.add_argument("--model", default=None, help="Claude model for extraction")
    index_parser.add_argument("--skip-extraction", action="store_true")
    index_parser.add_argument(
        "--bulk", action="store_true", help="Extract several meetings concurrently"
    )

    search_parser = commands.add_parser("search", help="Semantic search over the index")
    search_parser.add_argument("query")
    search_parser.add_argument("--export-dir", default=str(settings.export_dir))
    search_parser.add_argument("--folder", default=None)
    search_parser.add_argument("--limit", type=int, default=5)

    args = parser.parse_args()
    handler = run_index if args.command == "index" else run_search
    try:
        asyncio.run(handler(args))
    except ConfigurationError as exc:
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
