"""Main entry point for vault-rag."""

import argparse
import logging
import sys
import time

from fastmcp import FastMCP

from vault_rag.config import Config
from vault_rag.errors import RagError
from vault_rag.service import RagService, create_service, format_source
from vault_rag.tools import register_tools

logger = logging.getLogger(__name__)


def create_server(service: RagService) -> FastMCP:
    """Create the MCP server exposing the knowledge base tools.

    Args:
        service: Configured service instance.
    """
    mcp = FastMCP(
        name="vault-rag",
        instructions=(
            "vault-rag gives access to a knowledge base built from a folder of "
            "Markdown notes. Use search_notes to find relevant passages and cite "
            "them by their source string."
        ),
    )

    logger.info("Registering tools...")
    register_tools(mcp, service)

    logger.info("Server configured successfully")
    return mcp


def cmd_index(service: RagService, full: bool) -> int:
    print("Indexing knowledge base...")
    start = time.monotonic()
    summary = service.index(reindex_all=full)
    print(f"Done in {time.monotonic() - start:.1f}s")
    print(
        f"  Files: {summary.total_files} total, {summary.indexed_files} new, "
        f"{summary.updated_files} updated, {summary.removed_files} removed, "
        f"{summary.skipped_files} skipped"
    )
    print(f"  Chunks: {summary.chunks}")
    return 0


def cmd_search(service: RagService, query: str) -> int:
    results = service.search(query)
    if not results:
        print("No results.")
        return 0
    for label, result in enumerate(results, start=1):
        print(f"[{label}] {format_source(result)} (score {result.score:.3f})")
        print(result.content.strip())
        print()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vault-rag", description="vault-rag - knowledge base over Markdown notes"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    index_parser = sub.add_parser("index", help="Build or update the knowledge base index")
    index_parser.add_argument(
        "--full",
        action="store_true",
        help="Rebuild all vectors from scratch",
    )

    search_parser = sub.add_parser("search", help="Search the knowledge base")
    search_parser.add_argument("query", help="Search query")

    sub.add_parser("serve", help="Run the MCP server")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main function - dispatches the requested subcommand."""
    # Configure logging here to avoid side effects on import
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    args = build_parser().parse_args(argv)

    try:
        config = Config.from_env()
        service = create_service(config)
    except RagError as e:
        logger.error("RAG initialization failed: %s", e)
        return 1

    logger.info("  VAULT:      %s", config.vault_path or "(unset)")
    logger.info("  WORKSPACE:  %s", config.workspace)
    logger.info("  MODEL:      %s", config.embedding.model)
    logger.info("  COLLECTION: %s", config.vector_db.collection)

    try:
        if args.command == "index":
            return cmd_index(service, args.full)
        if args.command == "search":
            return cmd_search(service, args.query)

        mcp = create_server(service)
        logger.info("Starting MCP server on port %s...", config.port)
        mcp.run(transport="sse", host="127.0.0.1", port=config.port)
        return 0
    except KeyboardInterrupt:
        logger.info("Stopped by user")
        return 130
    except RagError as e:
        logger.error("%s failed: %s", args.command, e)
        return 1
    finally:
        service.close()


if __name__ == "__main__":
    sys.exit(main())
