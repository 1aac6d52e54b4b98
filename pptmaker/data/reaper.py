# Periodic TTL sweep over the artifact store

import logging
import threading

from pptmaker.data.artifact_store import ArtifactStore

logger = logging.getLogger(__name__)


class TTLReaper:
    """Background thread that calls :meth:`ArtifactStore.sweep` every ``interval`` seconds."""

    def __init__(self, store: ArtifactStore, interval: float = 60.0) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._store = store
        self._interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="pptmaker-reaper", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def run_once(self) -> list[str]:
        removed = self._store.sweep()
        if removed:
            logger.info("Reaped %d expired artifact(s)", len(removed))
        return removed

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            try:
                self.run_once()
            except Exception:
                logger.exception("Artifact sweep failed")
