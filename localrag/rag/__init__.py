"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Text cleaning and document chunking with overlap
- Context formatting and prompt assembly
- FAISS vector storage
- Ingestion, semantic retrieval and answer generation
"""
