"""Retrieval pipeline: document ingest and question answering.

Ingest:  extract text -> chunk -> embed every chunk -> commit to the store
Query:   normalize -> cache -> embed question -> rank chunks -> top-K
         context -> completion -> cache + history
"""
import asyncio
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional
import structlog

from docqa import config
from docqa.errors import UpstreamError, ValidationError
from docqa.files import ExpiringFileManager
from docqa.history import HistoryLog
from docqa.llm_client import LLMClient
from docqa.rag.cache import AnswerCache, normalize_question
from docqa.rag.chunker import TextChunker
from docqa.rag.extract import CONTENT_TYPES, EXTRACTORS, extract_text
from docqa.rag.similarity import top_k
from docqa.rag.store import Candidate, Document, DocumentStore

logger = structlog.get_logger()

SYSTEM_PROMPT = (
    "You are a helpful assistant that answers questions about uploaded documents. "
    "Answer only from the provided context. If the answer cannot be found in the "
    "context, say so clearly. Be concise but thorough."
)


@dataclass
class Upload:
    """An uploaded file already written to disk."""

    filename: str
    path: Path
    size: int


@dataclass
class Answer:
    """Result of a question."""

    answer: str
    cached: bool
    sources: List[Dict[str, Any]] = field(default_factory=list)


def build_context(selected: List[Candidate]) -> str:
    """Concatenate selected chunks, each labelled with its document name."""
    return "\n\n".join(f"[{c.document.name}]\n{c.chunk}" for c in selected)


def build_user_prompt(question: str, context: str) -> str:
    return (
        f"Context from the uploaded documents:\n\n{context}\n\n"
        f"Question: {question}\n\n"
        "Answer using only the context above. If the information isn't there, say so."
    )


class RetrievalPipeline:
    """Orchestrates ingest and query over the shared service state."""

    def __init__(
        self,
        store: DocumentStore,
        cache: AnswerCache,
        llm: LLMClient,
        files: ExpiringFileManager,
        search_history: HistoryLog,
        document_history: HistoryLog,
        chunk_size: Optional[int] = None,
        top_k: Optional[int] = None,
        embed_batch_size: int = 64,
    ):
        self.store = store
        self.cache = cache
        self.llm = llm
        self.files = files
        self.search_history = search_history
        self.document_history = document_history
        self.chunker = TextChunker(max_size=chunk_size)
        self.top_k = top_k if top_k is not None else config.RETRIEVAL_TOP_K
        self.embed_batch_size = embed_batch_size

        logger.info(
            "retrieval_pipeline_initialized",
            chunk_size=self.chunker.max_size,
            top_k=self.top_k,
        )

    async def embed_chunks(self, chunks: List[str]) -> List[List[float]]:
        """Embed chunks in order, batch by batch.

        Raises:
            UpstreamError: If any batch fails or comes back short
        """
        vectors: List[List[float]] = []

        for i in range(0, len(chunks), self.embed_batch_size):
            batch = chunks[i : i + self.embed_batch_size]
            try:
                batch_vectors = await self.llm.embeddings(batch)
            except Exception as e:
                logger.error(
                    "embedding_generation_failed",
                    batch_start=i,
                    batch_size=len(batch),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise UpstreamError("Failed to embed document", details=str(e)) from e

            vectors.extend(batch_vectors)

        if len(vectors) != len(chunks):
            raise UpstreamError(
                "Failed to embed document",
                details=f"{len(chunks)} chunks but {len(vectors)} embeddings",
            )

        return vectors

    async def ingest(self, upload: Upload) -> Document:
        """Turn an uploaded file into a stored, searchable document.

        Nothing is stored unless every step succeeds; on failure the
        uploaded file is removed.

        Raises:
            ValidationError: Unsupported file type
            UpstreamError: Extraction or embedding failed
        """
        suffix = upload.path.suffix.lower()
        doc_id = uuid.uuid4().hex

        logger.info("ingest_started", doc_id=doc_id, name=upload.filename, size=upload.size)

        try:
            if suffix not in EXTRACTORS:
                raise ValidationError(f"Unsupported file type: {suffix or upload.filename}")

            try:
                extracted = await asyncio.to_thread(extract_text, upload.path)
            except Exception as e:
                logger.error(
                    "text_extraction_failed",
                    name=upload.filename,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                raise UpstreamError(
                    f"Failed to extract text from {upload.filename}", details=str(e)
                ) from e

            chunks = self.chunker.chunk_text(extracted.text)
            if not chunks:
                logger.warning("no_chunks_created", doc_id=doc_id, name=upload.filename)

            vectors = await self.embed_chunks(chunks)

            document = Document(
                id=doc_id,
                name=upload.filename,
                source_path=upload.path,
                page_count=extracted.page_count,
                raw_text=extracted.text,
                chunks=chunks,
                size=upload.size,
                content_type=CONTENT_TYPES[suffix],
            )
            await self.store.insert(document, vectors)

        except Exception:
            upload.path.unlink(missing_ok=True)
            raise

        await self.files.register(doc_id, upload.path)
        self.document_history.append(
            document_id=doc_id,
            name=document.name,
            pages=document.page_count,
            chunks=len(chunks),
            size=document.size,
            type=document.content_type,
        )

        logger.info(
            "document_ingested",
            doc_id=doc_id,
            name=document.name,
            **self.chunker.get_chunk_stats(chunks),
        )
        return document

    async def answer(self, question: Optional[str]) -> Answer:
        """Answer a question from the stored documents.

        Raises:
            ValidationError: Empty question or nothing ingested yet
            UpstreamError: Embedding or completion failed
        """
        question = (question or "").strip()
        if not question:
            raise ValidationError("No question provided")

        if len(self.store) == 0:
            raise ValidationError("No documents have been uploaded yet")

        cached = self.cache.get(question)
        if cached is not None:
            logger.info("answer_cache_hit", question_preview=question[:100])
            return Answer(answer=cached, cached=True)

        try:
            query_vector = await self.llm.embed(question)
        except Exception as e:
            logger.error("query_embedding_failed", error=str(e), error_type=type(e).__name__)
            raise UpstreamError("Failed to process your question", details=str(e)) from e

        candidates = self.store.candidates()
        ranked = top_k(
            query_vector,
            [(c.vector, i) for i, c in enumerate(candidates)],
            k=self.top_k,
        )
        selected = [candidates[i] for i, _ in ranked]
        context = build_context(selected)

        logger.info(
            "context_built",
            candidates=len(candidates),
            selected=len(selected),
            context_length=len(context),
        )

        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": build_user_prompt(question, context)},
        ]

        try:
            answer = await self.llm.chat(messages)
        except Exception as e:
            logger.error("completion_failed", error=str(e), error_type=type(e).__name__)
            raise UpstreamError("Failed to process your question", details=str(e)) from e

        self.cache.set(question, answer)
        self.search_history.append(
            question=question,
            answer=answer,
            documents=[d.name for d in self.store.all()],
        )

        sources = [
            {
                "document": candidate.document.name,
                "document_id": candidate.document.id,
                "chunk_index": candidate.ref.chunk_index,
                "score": round(similarity, 4),
                "preview": candidate.chunk[:200],
            }
            for candidate, (_, similarity) in zip(selected, ranked)
        ]

        logger.info(
            "answer_generated",
            cache_key=normalize_question(question)[:100],
            answer_length=len(answer),
        )

        return Answer(answer=answer, cached=False, sources=sources)

    async def expire_document(self, doc_id: str) -> None:
        """Drop a document whose retention window has ended."""
        await self.store.remove(doc_id)

    async def rollback(self, doc_id: str) -> None:
        """Undo a successful ingest: store entry, uploaded file and history."""
        await self.store.remove(doc_id)
        await self.files.discard(doc_id)
        for entry in self.document_history.list():
            if entry.data.get("document_id") == doc_id:
                self.document_history.remove(entry.id)

        logger.info("ingest_rolled_back", doc_id=doc_id)
