"""Answer cache keyed by normalized question text."""
import time
from collections import OrderedDict
from typing import Callable, Optional, Tuple
import structlog

from docqa import config

logger = structlog.get_logger()


def normalize_question(question: str) -> str:
    """Cache key for a question: trimmed and case-folded."""
    return question.strip().casefold()


class AnswerCache:
    """TTL cache mapping normalized questions to answers.

    Expired entries are dropped lazily on read; purge_expired() sweeps the
    rest. When max_entries is set, the oldest insertion is evicted first.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl_seconds: Lifetime of an entry from insertion (default from config)
            max_entries: Optional size cap; 0 or None means unbounded
            clock: Monotonic time source, injectable for tests
        """
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.CACHE_TTL_SECONDS
        self.max_entries = max_entries if max_entries is not None else config.CACHE_MAX_ENTRIES
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[str, float]]" = OrderedDict()

    def get(self, question: str) -> Optional[str]:
        key = normalize_question(question)
        entry = self._entries.get(key)
        if entry is None:
            return None

        answer, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            logger.debug("cache_entry_expired", key_preview=key[:50])
            return None

        return answer

    def set(self, question: str, answer: str) -> None:
        key = normalize_question(question)
        self._entries.pop(key, None)
        self._entries[key] = (answer, self._clock() + self.ttl_seconds)

        if self.max_entries:
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache_entry_evicted", key_preview=evicted[:50])

    def purge_expired(self) -> int:
        """Remove every expired entry. Returns how many were removed."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.info("cache_purged", removed=len(expired), remaining=len(self._entries))
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
