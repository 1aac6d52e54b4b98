# Threaded HTTP server hosting the file download endpoint

import logging
import threading

from werkzeug.serving import make_server

from pptmaker.endpoints.file_download import FileDownloadEndpoint
from pptmaker.errors import BindFailure

logger = logging.getLogger(__name__)


class DownloadServer:
    """Runs :class:`FileDownloadEndpoint` on a daemon thread.

    Port ``0`` lets the OS pick a free port; :attr:`port` reports the one
    actually bound once :meth:`start` has returned.
    """

    def __init__(self, app: FileDownloadEndpoint, host: str, port: int = 0) -> None:
        self.app = app
        self.host = host
        self._requested_port = port
        self._server = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> int:
        if self._server is None:
            raise RuntimeError("download server is not running")
        return self._server.server_port

    def start(self) -> None:
        if self._server is not None:
            return
        try:
            server = make_server(self.host, self._requested_port, self.app, threaded=True)
        except (OSError, SystemExit) as e:
            # werkzeug exits instead of raising when the port is already taken
            raise BindFailure(
                f"Could not bind download server to {self.host}:{self._requested_port}: {e}"
            ) from e

        self._server = server
        self._thread = threading.Thread(
            target=server.serve_forever, name="pptmaker-download-server", daemon=True
        )
        self._thread.start()
        logger.info("Download server listening on %s:%d", self.host, server.server_port)

    def shutdown(self, timeout: float | None = 5.0) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join(timeout)
        self._server = None
        self._thread = None
        logger.info("Download server stopped")
