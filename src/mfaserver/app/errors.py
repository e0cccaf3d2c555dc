"""Fallback error handlers.

Both endpoints answer with a bare status code and an empty body, so the
handlers registered here do the same for routing errors (404, 405) and
for anything that escapes a view.
"""

from __future__ import annotations

import logging

from flask import Flask, make_response
from werkzeug.exceptions import HTTPException

log = logging.getLogger(__name__)


def register_error_handlers(app: Flask) -> None:
    """Attach the status-only error handlers to *app*."""

    @app.errorhandler(HTTPException)
    def _handle_http_exception(exc: HTTPException):
        log.debug("HTTP %s: %s", exc.code, exc.description)
        return make_response("", exc.code or 500)

    @app.errorhandler(Exception)
    def _handle_unexpected(exc: Exception):
        log.exception("Unhandled exception while processing request")
        return make_response("", 500)
