"""
Consent history log for medconsent
Bounded, append-only, hash-chained transition log per consent key
"""

from collections import deque
from typing import Deque, Iterable, Iterator, List, Optional
import structlog

from .models import ConsentKey, HistoryAction, HistoryEntry
from .storage import ConsentStateStorage
from ..config import ConsentConfig, get_consent_config
from ..constants import HISTORY_GENESIS
from ..crypto.hash import secure_hash
from ..utils.validators import sanitize_details

logger = structlog.get_logger(__name__)

GENESIS_HASH = secure_hash(HISTORY_GENESIS)


class BoundedHistory:
    """
    Fixed-capacity sequence of history entries, oldest first.

    Appending to a full history evicts the oldest entry first, so the
    length never exceeds the capacity.
    """

    def __init__(self, capacity: int, entries: Optional[Iterable[HistoryEntry]] = None):
        if capacity < 1:
            raise ValueError("History capacity must be positive")
        self.capacity = capacity
        self._entries: Deque[HistoryEntry] = deque()
        for entry in entries or []:
            self.append(entry)

    def append(self, entry: HistoryEntry) -> Optional[HistoryEntry]:
        """Append entry; returns the evicted entry, if any"""
        evicted = None
        if len(self._entries) == self.capacity:
            evicted = self._entries.popleft()
        self._entries.append(entry)
        return evicted

    @property
    def last(self) -> Optional[HistoryEntry]:
        return self._entries[-1] if self._entries else None

    def as_list(self) -> List[HistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(list(self._entries))


class HistoryLog:
    """Per-key consent history backed by the state storage"""

    def __init__(self, storage: ConsentStateStorage, config: Optional[ConsentConfig] = None):
        self.storage = storage
        self.config = config or get_consent_config()

    def _load(self, key: ConsentKey) -> BoundedHistory:
        return BoundedHistory(self.config.max_history_entries, self.storage.get_history(key))

    def stage(self, key: ConsentKey, time: int, action: HistoryAction,
              details: str = "") -> List[HistoryEntry]:
        """
        Compute the history that results from appending one entry.

        Nothing is persisted; the caller writes the returned list together
        with the consent record it belongs to.
        """
        history = self._load(key)
        previous = history.last
        entry = HistoryEntry(
            time=time,
            action=action,
            details=sanitize_details(details, self.config.max_details_length),
        ).sealed(previous.hash if previous and previous.hash else GENESIS_HASH)

        evicted = history.append(entry)
        if evicted is not None:
            logger.debug("Evicted oldest history entry", key=str(key), time=evicted.time,
                         action=evicted.action.value)
        return history.as_list()

    def get(self, key: ConsentKey) -> List[HistoryEntry]:
        """Full bounded history for a key, oldest first"""
        return self.storage.get_history(key)

    def verify(self, key: ConsentKey) -> bool:
        """
        Re-walk the hash chain of a key.

        The oldest retained entry anchors the chain, since earlier
        entries may have been evicted.
        """
        entries = self.get(key)
        if not entries:
            return True

        previous_hash = entries[0].previous_hash
        if previous_hash is None:
            return False

        for entry in entries:
            if entry.previous_hash != previous_hash or entry.hash != entry.compute_hash(previous_hash):
                logger.error("History integrity violation", key=str(key), time=entry.time,
                             action=entry.action.value)
                return False
            previous_hash = entry.hash
        return True
