"""Process entry point: threaded WSGI server with graceful shutdown.

On SIGINT/SIGTERM the listener stops accepting, in-flight requests get up to
``SHUTDOWN_GRACE_SECONDS`` to finish, then the connection pool is closed.
"""

from __future__ import annotations

import logging
import signal
import sys
import threading
import time

from werkzeug.serving import make_server

from .core.constants import SHUTDOWN_GRACE_SECONDS
from .main import create_app, load_settings

logger = logging.getLogger(__name__)


class InFlightCounter:
    """WSGI middleware counting requests that have not finished responding."""

    def __init__(self, app):
        self._app = app
        self._count = 0
        self._cond = threading.Condition()

    @property
    def active(self) -> int:
        with self._cond:
            return self._count

    def _done(self) -> None:
        with self._cond:
            self._count -= 1
            self._cond.notify_all()

    def __call__(self, environ, start_response):
        with self._cond:
            self._count += 1
        try:
            body = self._app(environ, start_response)
        except BaseException:
            self._done()
            raise
        return _ClosingIterable(body, self._done)

    def wait_idle(self, timeout: float) -> bool:
        deadline = time.monotonic() + timeout
        with self._cond:
            while self._count > 0:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(remaining)
        return True


class _ClosingIterable:
    def __init__(self, body, on_close):
        self._body = body
        self._on_close = on_close

    def __iter__(self):
        return iter(self._body)

    def close(self) -> None:
        try:
            close = getattr(self._body, "close", None)
            if close is not None:
                close()
        finally:
            self._on_close()


def serve(settings=None) -> int:
    try:
        settings = settings or load_settings()
        app = create_app(settings=settings)
        counter = InFlightCounter(app.wsgi_app)
        app.wsgi_app = counter
        host = getattr(settings, "APP_HOST", "0.0.0.0")
        port = int(getattr(settings, "APP_PORT", 2754))
        server = make_server(host, port, app, threaded=True)
    except Exception:
        logger.exception("Startup failed")
        return 1

    stop_requested = threading.Event()

    def _request_stop(signum, _frame) -> None:
        if stop_requested.is_set():
            return
        stop_requested.set()
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        # shutdown() blocks until serve_forever returns, so call it off the main thread.
        threading.Thread(target=server.shutdown, daemon=True).start()

    signal.signal(signal.SIGINT, _request_stop)
    signal.signal(signal.SIGTERM, _request_stop)

    logger.info("Listening on %s:%s", host, port)
    server.serve_forever()

    if counter.wait_idle(SHUTDOWN_GRACE_SECONDS):
        logger.info("All in-flight requests completed")
    else:
        logger.warning("Shutdown grace period elapsed with %d request(s) still running", counter.active)
    server.server_close()

    container = app.extensions.get("qr_attendance.container")
    conn = getattr(container, "conn", None)
    if conn is not None:
        conn.close()
    logger.info("Server stopped")
    return 0


def main() -> None:
    sys.exit(serve())


if __name__ == "__main__":
    main()
