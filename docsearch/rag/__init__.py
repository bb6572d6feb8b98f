"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Token estimation
- Markdown front matter and section parsing
- Section chunking with overlap
- Document processing and directory walking
- FAISS vector storage and semantic search
"""
