"""MCP tools for the vault-rag server.

This module defines the tools exposed by the MCP server:
- search_notes: Semantic search over the indexed vault
- index_vault: Run an incremental (or full) indexing pass
- decide_trigger: Report whether a chat message should run a lookup
- knowledge_context: Trigger decision plus the formatted notes block
"""

from fastmcp import FastMCP

from vault_rag.service import RagService, format_source


def register_tools(mcp: FastMCP, service: RagService) -> None:
    """Register all tools with the FastMCP server.

    Args:
        mcp: FastMCP server instance
        service: Service used to answer tool calls
    """

    @mcp.tool()
    def search_notes(query: str) -> list[dict]:
        """Search the knowledge base for chunks related to the query.

        Args:
            query: Natural language query

        Returns:
            List of results with:
            - path: Document path relative to the vault
            - heading: Heading breadcrumb of the chunk
            - start_line / end_line: Line range in the document
            - source: Citation string (path#heading Lstart-Lend)
            - content: Chunk text
            - score: Similarity score (higher is better)
        """
        results = service.search(query)
        return [
            {
                "path": r.path,
                "heading": r.heading,
                "start_line": r.start_line,
                "end_line": r.end_line,
                "source": format_source(r),
                "content": r.content,
                "score": round(r.score, 4),
            }
            for r in results
        ]

    @mcp.tool()
    def index_vault(full: bool = False) -> dict:
        """Update the knowledge base index from the vault.

        Args:
            full: Rebuild all vectors from scratch instead of syncing changes

        Returns:
            Counters for total, new, updated, removed and skipped files, and
            the number of chunks written.
        """
        return service.index(reindex_all=full).as_dict()

    @mcp.tool()
    def decide_trigger(message: str) -> dict:
        """Decide whether a chat message should trigger a knowledge base lookup.

        Args:
            message: Raw user message, possibly starting with a force/skip prefix

        Returns:
            Decision with the cleaned message and the forced/skipped/keyword flags.
        """
        return service.trigger_decision(message).as_dict()

    @mcp.tool()
    def knowledge_context(message: str) -> dict:
        """Build the notes block to prepend to a prompt for this message.

        Args:
            message: Raw user message

        Returns:
            Dict with the trigger decision and the context text (empty when
            no lookup ran or nothing matched).
        """
        decision, context = service.context_for_message(message)
        return {"decision": decision.as_dict(), "context": context}
