"""HTTP server exposing /metrics and /healthz."""

import logging
import threading
from functools import partial
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, ClassVar

from hostmetrics.store import CONTENT_TYPE, SnapshotStore

logger = logging.getLogger(__name__)


class MetricsRequestHandler(BaseHTTPRequestHandler):
    """Serves the exposition document; everything else is a 404."""

    server_version: ClassVar[str] = "hostmetrics/0.1"

    def __init__(self, *args: Any, store: SnapshotStore, **kwargs: Any) -> None:
        self._store = store
        super().__init__(*args, **kwargs)

    def do_GET(self) -> None:  # noqa: N802
        self.close_connection = True
        if self.path == "/metrics":
            self._send_text(HTTPStatus.OK, self._store.render_exposition(), CONTENT_TYPE)
        elif self.path == "/healthz":
            self._send_text(HTTPStatus.OK, "ok\n")
        else:
            self._not_found()

    def _not_found(self) -> None:
        self.close_connection = True
        self._send_text(HTTPStatus.NOT_FOUND, "Not found\n")

    do_HEAD = _not_found  # noqa: N815
    do_POST = _not_found  # noqa: N815
    do_PUT = _not_found  # noqa: N815
    do_DELETE = _not_found  # noqa: N815
    do_PATCH = _not_found  # noqa: N815
    do_OPTIONS = _not_found  # noqa: N815

    def send_error(self, code: int, message: str | None = None, explain: str | None = None) -> None:
        # TRACE, CONNECT and unknown verbs have no do_* method and land here
        if code == HTTPStatus.NOT_IMPLEMENTED:
            self._not_found()
            return
        super().send_error(code, message, explain)

    def _send_text(self, status: HTTPStatus, body: str, content_type: str = "text/plain") -> None:
        payload = body.encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", content_type)
        self.send_header("Content-Length", str(len(payload)))
        self.send_header("Connection", "close")
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(payload)

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002 - parity with BaseHTTPRequestHandler
        logger.debug("%s - %s", self.client_address[0], format % args)


class MetricsServer:
    """Wraps ThreadingHTTPServer around a SnapshotStore."""

    def __init__(self, store: SnapshotStore, host: str = "0.0.0.0", port: int = 8080) -> None:
        handler = partial(MetricsRequestHandler, store=store)
        # OSError here (port in use, permission denied) is fatal for the caller
        self._httpd = ThreadingHTTPServer((host, port), handler)
        self._httpd.daemon_threads = True
        self._thread: threading.Thread | None = None

    @property
    def port(self) -> int:
        return self._httpd.server_address[1]

    def server_address(self) -> str:
        host, port = self._httpd.server_address[:2]
        return f"http://{host}:{port}"

    def start(self) -> None:
        """Serve requests from a background thread."""
        if self._thread is not None:
            return
        self._thread = threading.Thread(
            target=self._httpd.serve_forever,
            kwargs={"poll_interval": 0.2},
            daemon=True,
            name="MetricsServer",
        )
        self._thread.start()
        logger.info("Serving /metrics and /healthz on %s", self.server_address())

    def shutdown(self) -> None:
        """Stop serving and close the listening socket."""
        thread = self._thread
        self._thread = None
        try:
            if thread is not None:
                self._httpd.shutdown()
                thread.join()
        finally:
            self._httpd.server_close()
