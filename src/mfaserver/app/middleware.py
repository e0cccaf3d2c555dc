"""Flask request lifecycle hooks.

Registered via :func:`register_request_hooks`:
    * Request ID generation / passthrough (``X-Request-ID``)
    * Request timing
    * Security headers
    * Access logging
"""

from __future__ import annotations

import logging
import time
from uuid import uuid4

from flask import Flask, g, request

access_log = logging.getLogger("mfaserver.access")


def register_request_hooks(app: Flask) -> None:
    """Register before/after request hooks for ID tracking, timing and
    access logging.
    """

    @app.before_request
    def _before_request() -> None:
        g.request_id = request.headers.get("X-Request-ID") or uuid4().hex
        g.start_time = time.monotonic()

    @app.after_request
    def _after_request(response):
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"

        request_id = getattr(g, "request_id", None)
        if request_id:
            response.headers["X-Request-ID"] = request_id

        status = response.status_code
        level = (
            logging.WARNING
            if 400 <= status < 500
            else logging.ERROR
            if status >= 500
            else logging.INFO
        )
        access_log.log(
            level,
            "%s %s %s %.1fms",
            request.method,
            request.path,
            status,
            _elapsed_ms(),
        )
        return response


def _elapsed_ms() -> float:
    start = getattr(g, "start_time", None)
    if start is None:
        return 0.0
    return (time.monotonic() - start) * 1000
