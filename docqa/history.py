"""Capped history logs (uploads and searches)."""
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional
import structlog

from docqa import config

logger = structlog.get_logger()


@dataclass(frozen=True)
class HistoryEntry:
    """One record in a history log."""

    kind: str
    data: Dict[str, Any]
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "timestamp": self.created_at.isoformat(),
            **self.data,
        }


class HistoryLog:
    """Fixed-size log; appending past capacity drops the oldest entry."""

    def __init__(self, kind: str, max_entries: Optional[int] = None):
        self.kind = kind
        self.max_entries = max_entries if max_entries is not None else config.HISTORY_MAX_ENTRIES
        self._entries: Deque[HistoryEntry] = deque(maxlen=self.max_entries)

    def append(self, **data: Any) -> HistoryEntry:
        entry = HistoryEntry(kind=self.kind, data=data)
        self._entries.append(entry)
        logger.debug("history_appended", kind=self.kind, entry_id=entry.id, size=len(self._entries))
        return entry

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def remove(self, entry_id: str) -> bool:
        """Drop an entry. Returns False if it was not in the log."""
        for entry in self._entries:
            if entry.id == entry_id:
                self._entries.remove(entry)
                return True
        return False

    def list(self, newest_first: bool = True) -> List[HistoryEntry]:
        entries = list(self._entries)
        if newest_first:
            entries.reverse()
        return entries

    def __len__(self) -> int:
        return len(self._entries)
