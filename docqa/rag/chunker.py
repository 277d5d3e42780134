"""Sentence-aligned text chunking for the retrieval pipeline.

Chunks are built from whole sentences, so a chunk only ever ends on
terminal punctuation (., ! or ?).
"""
import re
from typing import List, Optional
import structlog

from docqa import config

logger = structlog.get_logger()

# A sentence is a run of non-terminal characters closed by one or more of .!?
SENTENCE_PATTERN = re.compile(r"[^.!?]+[.!?]+")


def split_sentences(text: str) -> List[str]:
    """Split text into sentence units.

    Trailing text with no terminal punctuation is not a sentence and is
    dropped, so text without any punctuation yields no units at all.

    Args:
        text: Raw extracted text

    Returns:
        Sentence units in document order, untrimmed
    """
    if not text:
        return []
    return SENTENCE_PATTERN.findall(text)


class TextChunker:
    """Greedy sentence-accumulating chunker."""

    def __init__(self, max_size: Optional[int] = None):
        """Initialize the text chunker.

        Args:
            max_size: Approximate maximum chunk length in characters
                (default from config)
        """
        self.max_size = max_size if max_size is not None else config.CHUNK_SIZE

        if self.max_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.max_size}")

    def chunk_text(self, text: str) -> List[str]:
        """Split text into chunks of whole sentences.

        Sentences are appended to a running buffer until the next one would
        push it past max_size; the buffer is then closed and the sentence
        starts a new one. A sentence longer than max_size on its own is
        emitted as a single oversized chunk.

        Args:
            text: Text to chunk

        Returns:
            List of trimmed, non-empty chunk strings
        """
        sentences = split_sentences(text)
        if not sentences:
            logger.debug("no_sentences_found", text_length=len(text or ""))
            return []

        chunks: List[str] = []
        buffer = ""

        for sentence in sentences:
            if buffer and len(buffer) + len(sentence) > self.max_size:
                self._emit(chunks, buffer)
                buffer = sentence
            else:
                buffer += sentence

        self._emit(chunks, buffer)

        logger.info(
            "text_chunked",
            text_length=len(text),
            sentence_count=len(sentences),
            chunk_count=len(chunks),
        )

        return chunks

    @staticmethod
    def _emit(chunks: List[str], buffer: str) -> None:
        content = buffer.strip()
        if content:
            chunks.append(content)

    def get_chunk_stats(self, chunks: List[str]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of chunk strings

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "max_chunk_size": 0,
                "oversized_chunks": 0,
            }

        chunk_sizes = [len(c) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "max_chunk_size": max(chunk_sizes),
            "oversized_chunks": sum(1 for size in chunk_sizes if size > self.max_size),
        }


def chunk_text(text: str, max_size: Optional[int] = None) -> List[str]:
    """Chunk text with a one-off chunker (convenience function).

    Args:
        text: Text to chunk
        max_size: Maximum chunk size in characters (default from config)

    Returns:
        List of chunk strings
    """
    return TextChunker(max_size=max_size).chunk_text(text)
