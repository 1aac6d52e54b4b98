# In-memory registry of published artifacts
# Shared between the publisher, the reaper and the download endpoint

import enum
import logging
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from pptmaker.data.fs_utils import remove_tree_quietly

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArtifactEntry:
    id: str
    path: Path
    filename: str
    content_type: str
    expires_at: float

    @property
    def directory(self) -> Path:
        """Per-entry directory; deleted as a whole when the entry goes away."""
        return self.path.parent

    @property
    def expires_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)


class LookupStatus(enum.Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    EXPIRED = "expired"


@dataclass(frozen=True)
class LookupResult:
    status: LookupStatus
    entry: ArtifactEntry | None = None


class ArtifactStore:
    """Thread-safe map of artifact id to :class:`ArtifactEntry`.

    Every mutation of the map happens under a single lock. Deleting backing
    directories is done after the lock is released so slow disks never block
    concurrent lookups.

    Args:
        clock: returns the current time in seconds since the epoch;
            tests substitute a fake clock
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, ArtifactEntry] = {}

    def now(self) -> float:
        return self._clock()

    def new_id(self) -> str:
        """Return an id that no live entry is using."""
        with self._lock:
            return self._fresh_id()

    def register(
        self,
        path: Path | str,
        filename: str,
        content_type: str,
        ttl: float,
        artifact_id: str | None = None,
    ) -> str:
        """Register a backing file and return its id.

        Raises:
            ValueError: if ``ttl`` is not positive or ``artifact_id`` is already live
        """
        if ttl <= 0:
            raise ValueError(f"ttl must be positive, got {ttl}")
        path = Path(path).resolve()
        with self._lock:
            if artifact_id is None:
                artifact_id = self._fresh_id()
            elif artifact_id in self._entries:
                raise ValueError(f"artifact id already registered: {artifact_id}")
            now = self._clock()
            self._entries[artifact_id] = ArtifactEntry(
                id=artifact_id,
                path=path,
                filename=filename,
                content_type=content_type,
                expires_at=now + ttl,
            )
        logger.debug("Registered %s (%s) for %.0fs", artifact_id, filename, ttl)
        return artifact_id

    def lookup(self, artifact_id: str) -> LookupResult:
        """Return the live entry for ``artifact_id``.

        An expired entry is evicted on the spot and reported as EXPIRED once;
        later lookups of the same id report NOT_FOUND.
        """
        with self._lock:
            entry = self._entries.get(artifact_id)
            if entry is None:
                return LookupResult(LookupStatus.NOT_FOUND)
            if self._clock() < entry.expires_at:
                return LookupResult(LookupStatus.FOUND, entry)
            del self._entries[artifact_id]

        logger.info("Evicted expired artifact %s on access", artifact_id)
        remove_tree_quietly(entry.directory)
        return LookupResult(LookupStatus.EXPIRED, entry)

    def get(self, artifact_id: str) -> ArtifactEntry | None:
        """Raw index read: no expiry check, no eviction."""
        with self._lock:
            return self._entries.get(artifact_id)

    def remove(self, artifact_id: str) -> bool:
        """Drop an entry and its directory. Returns False if it was already gone."""
        with self._lock:
            entry = self._entries.pop(artifact_id, None)
        if entry is None:
            return False
        remove_tree_quietly(entry.directory)
        return True

    def sweep(self, now: float | None = None) -> list[str]:
        """Remove every entry whose expiry is at or before ``now``."""
        with self._lock:
            if now is None:
                now = self._clock()
            expired = [e for e in self._entries.values() if e.expires_at <= now]
            for entry in expired:
                del self._entries[entry.id]

        for entry in expired:
            remove_tree_quietly(entry.directory)
        return [entry.id for entry in expired]

    def clear(self) -> None:
        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
        for entry in entries:
            remove_tree_quietly(entry.directory)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, artifact_id: object) -> bool:
        with self._lock:
            return artifact_id in self._entries

    def _fresh_id(self) -> str:
        # Called while lock is held.
        while True:
            artifact_id = uuid.uuid4().hex
            if artifact_id not in self._entries:
                return artifact_id
