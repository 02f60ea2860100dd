"""
vault-rag - knowledge base retrieval over a folder of Markdown notes.

Keeps a Qdrant collection in sync with a Markdown vault and decides, per chat
message, whether a lookup against it should run.

Stack:
- Python + httpx (embeddings API, Qdrant REST)
- FastMCP (tool server)
- Markdown (source of truth)
"""

__version__ = "0.1.0"
