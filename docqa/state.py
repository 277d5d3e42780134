"""Service state shared by request handlers.

One ServiceState is built by the app factory and stored on the app; handlers
reach it through get_state() instead of module-level globals.
"""
import asyncio
import contextlib
from dataclasses import dataclass, field
from typing import List, Optional
import structlog
from quart import current_app

from docqa import config
from docqa.files import ExpiringFileManager
from docqa.history import HistoryLog
from docqa.llm_client import LLMClient
from docqa.rag.cache import AnswerCache
from docqa.rag.pipeline import RetrievalPipeline
from docqa.rag.store import DocumentStore

logger = structlog.get_logger()

EXTENSION_KEY = "docqa"


@dataclass
class ServiceState:
    """Everything the service keeps in memory."""

    store: DocumentStore
    cache: AnswerCache
    files: ExpiringFileManager
    search_history: HistoryLog
    document_history: HistoryLog
    llm: LLMClient
    pipeline: RetrievalPipeline
    cleanup_interval: float = field(default_factory=lambda: config.CLEANUP_INTERVAL_SECONDS)
    _maintenance_task: Optional[asyncio.Task] = field(default=None, repr=False)

    @classmethod
    def create(
        cls,
        llm: Optional[LLMClient] = None,
        cache: Optional[AnswerCache] = None,
        files: Optional[ExpiringFileManager] = None,
        chunk_size: Optional[int] = None,
        top_k: Optional[int] = None,
        history_size: Optional[int] = None,
    ) -> "ServiceState":
        """Build a state object, using config defaults for anything not given."""
        store = DocumentStore()
        cache = cache or AnswerCache()
        files = files or ExpiringFileManager()
        llm = llm or LLMClient()
        search_history = HistoryLog("search", max_entries=history_size)
        document_history = HistoryLog("document", max_entries=history_size)

        pipeline = RetrievalPipeline(
            store=store,
            cache=cache,
            llm=llm,
            files=files,
            search_history=search_history,
            document_history=document_history,
            chunk_size=chunk_size,
            top_k=top_k,
        )

        return cls(
            store=store,
            cache=cache,
            files=files,
            search_history=search_history,
            document_history=document_history,
            llm=llm,
            pipeline=pipeline,
        )

    async def run_maintenance(self) -> List[str]:
        """Expire old uploads (and their documents) and stale cache entries.

        Returns:
            Ids of documents that expired
        """
        expired = await self.files.sweep()
        for key in expired:
            if key in self.store:
                await self.pipeline.expire_document(key)
        self.cache.purge_expired()
        return expired

    async def _maintenance_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval)
            try:
                await self.run_maintenance()
            except Exception as e:
                logger.error(
                    "maintenance_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                )

    async def start(self) -> None:
        if self._maintenance_task is None or self._maintenance_task.done():
            self._maintenance_task = asyncio.create_task(self._maintenance_loop())
            logger.info("maintenance_started", interval=self.cleanup_interval)

    async def stop(self) -> None:
        if self._maintenance_task is not None:
            self._maintenance_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._maintenance_task
            self._maintenance_task = None

        # Uploads don't outlive the process
        await self.files.clear()
        logger.info("maintenance_stopped")


def get_state() -> ServiceState:
    """Service state of the current app."""
    return current_app.extensions[EXTENSION_KEY]
