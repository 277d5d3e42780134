"""In-process document store.

Holds ingested documents and, in a parallel mapping, one embedding vector
per chunk. Nothing is persisted; the store lives as long as the process.
"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional
import structlog

logger = structlog.get_logger()


@dataclass(frozen=True)
class Document:
    """An ingested document and its chunks."""

    id: str
    name: str
    source_path: Optional[Path]
    page_count: int
    raw_text: str
    chunks: List[str]
    size: int = 0
    content_type: str = "application/octet-stream"
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def summary(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "pages": self.page_count,
            "chunks": len(self.chunks),
        }


class ChunkRef(NamedTuple):
    """Position of a chunk: (document index, chunk index)."""

    document_index: int
    chunk_index: int


class Candidate(NamedTuple):
    """A retrievable chunk with its owning document and vector."""

    ref: ChunkRef
    document: Document
    chunk: str
    vector: List[float]


class DocumentStore:
    """Maps document ids to documents and their vector sequences."""

    def __init__(self):
        self._documents: Dict[str, Document] = {}
        self._vectors: Dict[str, List[List[float]]] = {}
        self._lock = asyncio.Lock()

    async def insert(self, document: Document, vectors: List[List[float]]) -> None:
        """Add a document and its vectors as one step.

        Raises:
            ValueError: If the vector count does not match the chunk count
                or the id is already present. The store is left untouched.
        """
        if len(vectors) != len(document.chunks):
            raise ValueError(
                f"Chunk/vector count mismatch for {document.name}: "
                f"{len(document.chunks)} chunks, {len(vectors)} vectors"
            )

        async with self._lock:
            if document.id in self._documents:
                raise ValueError(f"Document already stored: {document.id}")
            self._documents[document.id] = document
            self._vectors[document.id] = [list(v) for v in vectors]

        logger.info(
            "document_stored",
            doc_id=document.id,
            name=document.name,
            chunks=len(document.chunks),
            total_documents=len(self._documents),
        )

    async def remove(self, doc_id: str) -> Optional[Document]:
        """Drop a document and its vectors. Returns the removed document, if any."""
        async with self._lock:
            document = self._documents.pop(doc_id, None)
            self._vectors.pop(doc_id, None)

        if document is not None:
            logger.info("document_removed", doc_id=doc_id, name=document.name)
        return document

    def get(self, doc_id: str) -> Optional[Document]:
        return self._documents.get(doc_id)

    def vectors_for(self, doc_id: str) -> List[List[float]]:
        return self._vectors.get(doc_id, [])

    def all(self) -> List[Document]:
        """All documents in insertion order."""
        return list(self._documents.values())

    def candidates(self) -> List[Candidate]:
        """Flatten every stored (document, chunk, vector) triple into one pool."""
        pool: List[Candidate] = []
        for doc_index, document in enumerate(self.all()):
            vectors = self._vectors[document.id]
            for chunk_index, (chunk, vector) in enumerate(zip(document.chunks, vectors)):
                pool.append(
                    Candidate(
                        ref=ChunkRef(doc_index, chunk_index),
                        document=document,
                        chunk=chunk,
                        vector=vector,
                    )
                )
        return pool

    def summaries(self) -> List[Dict[str, Any]]:
        return [document.summary() for document in self.all()]

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._documents
