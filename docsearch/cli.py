"""Command line interface for docsearch.

Usage:
    docsearch index ./docs                 # Rebuild the collection from ./docs
    docsearch serve --docs-dir ./docs      # Serve the documentation tools over HTTP
"""
import argparse
import asyncio
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

import structlog

from docsearch import config
from docsearch.errors import DocSearchError
from docsearch.logging_config import configure_logging
from docsearch.main import create_app
from docsearch.rag.chunker import SectionChunker
from docsearch.rag.index import DocumentIndex
from docsearch.rag.ingest import IndexReport, IngestPipeline
from docsearch.rag.processor import DocumentProcessor

logger = structlog.get_logger()


def print_report(report: IndexReport, elapsed_seconds: float) -> None:
    """Print an indexing summary."""
    print(f"\n{'=' * 60}")
    print("  Indexing Complete!")
    print(f"{'=' * 60}\n")
    print(f"  Files processed:  {report.stats['files_processed']}")
    print(f"  Files skipped:    {report.stats['files_skipped']}")
    print(f"  Files failed:     {report.stats['files_failed']}")
    print(f"  Chunks indexed:   {report.chunk_count}")
    print(f"  Time elapsed:     {elapsed_seconds:.1f}s")

    if report.collection:
        print(f"\n  Collection info:  {report.collection}")

    if report.documents:
        print("\n  Indexed documents:")
        for summary in report.documents:
            print(
                f"  - {summary.title} ({summary.doc_type}) - "
                f"{summary.chunk_count} chunks - {summary.file_path}"
            )

    print(f"\n{'=' * 60}\n")

    if report.stats["files_failed"] > 0:
        print(f"Warning: {report.stats['files_failed']} file(s) failed to process.")
        print("   Check logs for details.\n")


async def run_index(docs_path: Path) -> IndexReport:
    """Rebuild the configured collection from docs_path.

    Raises:
        ConfigurationError: If the chunk budgets are invalid, before the
            collection is touched
    """
    processor = DocumentProcessor()

    index = DocumentIndex()
    await index.initialize()
    return await IngestPipeline(index, docs_dir=docs_path, processor=processor).run()


async def run_serve(docs_dir: Path, host: str, port: int) -> None:
    """Initialize the index once, then serve requests until cancelled.

    Raises:
        ConfigurationError: If the chunk budgets are invalid, before the
            collection is opened
    """
    chunker = SectionChunker()

    index = DocumentIndex()
    await index.initialize(docs_dir=docs_dir, processor=DocumentProcessor(chunker=chunker))

    app = create_app(index, docs_dir, chunker)
    logger.info("server_starting", host=host, port=port, collection=index.collection_name)
    await app.run_task(host=host, port=port)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docsearch",
        description="Index markdown documentation and serve semantic search",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help=f"Log level (default: {config.LOG_LEVEL})",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    index_parser = subparsers.add_parser("index", help="Index documents for search")
    index_parser.add_argument("docs_path", type=Path, help="Path to documents directory")

    serve_parser = subparsers.add_parser("serve", help="Serve the documentation tools")
    serve_parser.add_argument(
        "--docs-dir",
        type=Path,
        default=config.DOCS_DIR,
        help=f"Documents directory (default: {config.DOCS_DIR})",
    )
    serve_parser.add_argument("--host", default=config.HOST)
    serve_parser.add_argument("--port", type=int, default=config.PORT)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the docsearch console script."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        if args.command == "index":
            docs_path = args.docs_path.resolve()
            print(f"\nProcessing documents from: {docs_path}")
            print(f"   Collection:       {config.COLLECTION_NAME}")
            print(f"   Embedding model:  {config.EMBEDDING_MODEL}")
            print(f"   Chunk budget:     {config.MAX_CHUNK_TOKENS} tokens "
                  f"({config.OVERLAP_TOKENS} overlap)")

            started = datetime.now()
            report = asyncio.run(run_index(docs_path))

            if report.chunk_count == 0:
                print("\nNo document chunks to index\n")
                return 0

            print_report(report, (datetime.now() - started).total_seconds())
            return 0

        asyncio.run(run_serve(args.docs_dir, args.host, args.port))
        return 0

    except KeyboardInterrupt:
        print("\n\nCancelled by user.\n")
        return 1

    except (FileNotFoundError, DocSearchError) as e:
        print(f"\nError: {e}\n", file=sys.stderr)
        return 1

    except Exception as e:
        print(f"\nError: {e}\n", file=sys.stderr)
        logger.error("command_failed", command=args.command, error=str(e), error_type=type(e).__name__)
        return 1


if __name__ == "__main__":
    sys.exit(main())
