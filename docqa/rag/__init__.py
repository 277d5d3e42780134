"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Text extraction from PDF, DOCX and TXT uploads
- Sentence-aligned chunking
- Cosine-similarity ranking
- In-memory document store and answer cache
- Ingest and query orchestration
"""
