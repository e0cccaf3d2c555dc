"""Logging bootstrap for mfaserver.

Provides a text formatter and a request-context filter that injects
the Flask request id and client address into every record, and a
one-call :func:`configure_logging` driven by the loaded
:class:`~mfaserver.config.Configuration`.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mfaserver.config.mfa_config import Configuration


class TextFormatter(logging.Formatter):
    """Human-readable single-line formatter.

    Level information is already part of the message through the
    ``"<LEVEL>: "`` prefix of each handle, so it is not repeated here.
    """

    _FMT = "%(asctime)s [%(request_id)s] %(client_ip)s %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


class RequestContextFilter(logging.Filter):
    """Inject ``request_id`` and ``client_ip`` into every log record.

    Values come from ``flask.g`` / ``flask.request`` when a request
    context is active, otherwise ``"-"``.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "request_id"):
            record.request_id = "-"  # type: ignore[attr-defined]
        if not hasattr(record, "client_ip"):
            record.client_ip = "-"  # type: ignore[attr-defined]

        from flask import g, has_request_context, request  # noqa: PLC0415

        if has_request_context():
            record.request_id = getattr(g, "request_id", record.request_id)  # type: ignore[attr-defined]
            record.client_ip = request.remote_addr or record.client_ip  # type: ignore[attr-defined]
        return True


def configure_logging(config: Configuration) -> logging.Logger:
    """Apply formatting to the configuration's loggers and the bootstrap logger.

    The request loggers keep whatever handler the configuration bound
    (stderr, or the file from ``with_log_file``); this only installs the
    formatter and context filter on it.  The ``mfaserver`` module
    logger hierarchy, used by startup code, writes to the same handler.

    Returns the ``mfaserver`` bootstrap logger.
    """
    loggers = config.server.loggers
    formatter = TextFormatter()
    ctx_filter = RequestContextFilter()
    for handler in loggers.handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ctx_filter)

    root = logging.getLogger("mfaserver")
    root.setLevel(loggers.logger.level)
    root.handlers.clear()
    root.propagate = False
    for handler in loggers.handlers:
        root.addHandler(handler)

    for lib in ("werkzeug", "gunicorn", "gunicorn.access", "gunicorn.error"):
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root
