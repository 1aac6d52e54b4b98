# File download endpoint
# Serves files registered in the artifact store under /files/<id>/<name>

import logging
import os
from collections.abc import Iterable
from functools import partial
from urllib.parse import quote

from werkzeug import Request, Response
from werkzeug.exceptions import HTTPException
from werkzeug.routing import Map, Rule
from werkzeug.wsgi import ClosingIterator, wrap_file

from pptmaker.data.artifact_store import ArtifactStore, LookupStatus

logger = logging.getLogger(__name__)

MAX_CACHE_SECONDS = 300

_url_map = Map([Rule("/files/<file_id>/<path:display_name>", endpoint="download")])


class FileDownloadEndpoint:
    """WSGI application serving artifacts from an :class:`ArtifactStore`.

    Only ``{id}`` drives the lookup; the trailing display name is there so
    browsers save the file under a sensible name.
    """

    def __init__(self, store: ArtifactStore, delete_after_download: bool = False) -> None:
        self.store = store
        self.delete_after_download = delete_after_download

    def __call__(self, environ, start_response) -> Iterable[bytes]:
        request = Request(environ)
        try:
            response = self._invoke(request)
        except Exception:
            logger.exception("Unhandled error serving %s", request.path)
            response = Response(status=500)
        return response(environ, start_response)

    def _invoke(self, r: Request) -> Response:
        if r.method != "GET":
            return Response(status=405, headers={"Allow": "GET"})

        try:
            _, values = _url_map.bind_to_environ(r.environ).match()
        except HTTPException:
            return Response(status=404)

        file_id = values["file_id"]
        result = self.store.lookup(file_id)

        if result.status is LookupStatus.NOT_FOUND:
            return Response(status=404)
        if result.status is LookupStatus.EXPIRED:
            return Response(status=410)

        entry = result.entry
        try:
            f = open(entry.path, "rb")
        except OSError as e:
            logger.warning("Artifact %s unreadable at %s: %s", file_id, entry.path, e)
            return Response(status=404)

        try:
            size = os.fstat(f.fileno()).st_size
        except OSError as e:
            f.close()
            logger.warning("Artifact %s unreadable at %s: %s", file_id, entry.path, e)
            return Response(status=404)

        remaining = int(entry.expires_at - self.store.now())
        max_age = max(0, min(MAX_CACHE_SECONDS, remaining))

        body = wrap_file(r.environ, f)
        if self.delete_after_download:
            # the server closes the body once it has been sent; file first, then entry
            body = ClosingIterator(body, [partial(self.store.remove, file_id)])

        response = Response(
            body,
            status=200,
            content_type=entry.content_type,
            direct_passthrough=True,
            headers={
                "Content-Length": str(size),
                "Content-Disposition": f'attachment; filename="{quote(entry.filename, safe="")}"',
                "X-Expires-At": entry.expires_at_datetime.isoformat(),
                "Cache-Control": f"private, max-age={max_age}",
                "X-Content-Type-Options": "nosniff",
                "Access-Control-Allow-Origin": "*",
            },
        )
        return response
