"""Publishing of generated files behind short-lived download URLs.

:class:`Publisher` owns the artifact store, the download server and the TTL
reaper. The server and reaper are started on the first :meth:`Publisher.publish`
call and run until :meth:`Publisher.close`.
"""

import logging
import shutil
import tempfile
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from urllib.parse import quote

from pptmaker.config import Settings
from pptmaker.data.artifact_store import ArtifactStore
from pptmaker.data.fs_utils import remove_tree_quietly
from pptmaker.data.reaper import TTLReaper
from pptmaker.endpoints.download_server import DownloadServer
from pptmaker.endpoints.file_download import FileDownloadEndpoint
from pptmaker.errors import PublishFailure

logger = logging.getLogger(__name__)

_WILDCARD_HOSTS = {"0.0.0.0": "127.0.0.1", "::": "::1", "": "127.0.0.1"}


@dataclass(frozen=True)
class PublishedArtifact:
    id: str
    url: str
    expires_at: datetime
    filename: str
    content_type: str


def format_url_host(host: str) -> str:
    """Host part of a URL: wildcard binds become loopback, IPv6 gets brackets."""
    host = _WILDCARD_HOSTS.get(host, host)
    if ":" in host and not host.startswith("["):
        return f"[{host}]"
    return host


def _check_filename(filename: str) -> None:
    if (
        not filename
        or filename in (".", "..")
        or "/" in filename
        or "\\" in filename
        or "\x00" in filename
    ):
        raise PublishFailure(f"Invalid artifact filename: {filename!r}")


class Publisher:
    def __init__(self, settings: Settings, store: ArtifactStore | None = None) -> None:
        self.settings = settings
        self.store = store if store is not None else ArtifactStore()
        self.endpoint = FileDownloadEndpoint(
            self.store, delete_after_download=settings.delete_after_download
        )
        self.server = DownloadServer(self.endpoint, settings.host, settings.port)
        self.reaper = TTLReaper(self.store, settings.reap_interval_seconds)
        self._start_lock = threading.Lock()
        self._files_dir: Path | None = None
        self._owns_files_dir = False

    @property
    def files_dir(self) -> Path | None:
        return self._files_dir

    def ensure_started(self) -> None:
        """Bind the download server and start the reaper, once.

        Raises:
            BindFailure: the configured host/port cannot be bound
        """
        with self._start_lock:
            if self._files_dir is None:
                self._files_dir = self._prepare_files_dir()
            if not self.server.running:
                self.server.start()
            if not self.reaper.running:
                self.reaper.start()

    def base_url(self) -> str:
        if self.settings.public_base_url:
            return self.settings.public_base_url
        return f"http://{format_url_host(self.settings.host)}:{self.server.port}"

    def publish(
        self,
        source_path: Path | str,
        filename: str,
        content_type: str,
        ttl: float | None = None,
    ) -> PublishedArtifact:
        """Copy ``source_path`` into the store and return its download link.

        The source file is copied, not moved, so the caller remains free to
        delete it afterwards.

        Raises:
            PublishFailure: invalid filename or the copy failed
            BindFailure: the download server could not be started
        """
        _check_filename(filename)
        self.ensure_started()

        ttl = self.settings.ttl_seconds if ttl is None else ttl
        artifact_id = self.store.new_id()
        entry_dir = self._files_dir / artifact_id
        target = entry_dir / filename
        try:
            entry_dir.mkdir(parents=True)
            shutil.copyfile(source_path, target)
            self.store.register(target, filename, content_type, ttl, artifact_id=artifact_id)
        except (OSError, ValueError) as e:
            remove_tree_quietly(entry_dir)
            raise PublishFailure(f"Could not publish {filename}: {e}") from e

        entry = self.store.get(artifact_id)
        if entry is None:
            raise PublishFailure(f"{filename} expired before its link could be issued")
        url = f"{self.base_url()}/files/{artifact_id}/{quote(filename, safe='')}"
        logger.info("Published %s as %s", filename, artifact_id)
        return PublishedArtifact(
            id=artifact_id,
            url=url,
            expires_at=entry.expires_at_datetime,
            filename=filename,
            content_type=content_type,
        )

    def close(self) -> None:
        self.reaper.stop()
        self.server.shutdown()
        self.store.clear()
        if self._owns_files_dir:
            remove_tree_quietly(self._files_dir)
            self._files_dir = None
            self._owns_files_dir = False

    def _prepare_files_dir(self) -> Path:
        if self.settings.files_dir is not None:
            try:
                self.settings.files_dir.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise PublishFailure(
                    f"Could not create files directory {self.settings.files_dir}: {e}"
                ) from e
            return self.settings.files_dir.resolve()
        self._owns_files_dir = True
        return Path(tempfile.mkdtemp(prefix="mcp-pptmaker-files-"))
