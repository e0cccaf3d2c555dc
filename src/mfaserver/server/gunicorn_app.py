"""Programmatic gunicorn runner for the MFA server.

Starts gunicorn with settings derived from the loaded configuration
rather than requiring a separate gunicorn config file.

Usage::

    from mfaserver.server.gunicorn_app import run_gunicorn

    run_gunicorn(flask_app, cfg.server)
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flask import Flask

    from mfaserver.config.settings import ServerSettings

log = logging.getLogger(__name__)

# Worker timeout floor; requests themselves are bounded by request_timeout.
_MIN_WORKER_TIMEOUT = 30


def gunicorn_options(settings: ServerSettings) -> dict[str, object]:
    """Map :class:`ServerSettings` onto gunicorn setting names."""
    options: dict[str, object] = {
        "bind": settings.listener_socket,
        "workers": settings.workers,
        "worker_class": "gthread",
        "timeout": max(_MIN_WORKER_TIMEOUT, math.ceil(settings.request_timeout) * 2),
        "loglevel": settings.log_level.lower(),
        "accesslog": None,
    }
    if settings.tls.enabled:
        options["certfile"] = settings.tls.certificate_file
        options["keyfile"] = settings.tls.key_file
    return options


def run_gunicorn(app: Flask, settings: ServerSettings) -> None:
    """Start a gunicorn server from :class:`ServerSettings`.

    Raises :class:`RuntimeError` if gunicorn cannot be imported (it only
    runs on Unix).
    """
    try:
        from gunicorn.app.base import BaseApplication  # noqa: PLC0415
    except ImportError as exc:
        msg = (
            "gunicorn is not available on this platform.  Use --dev for "
            "the Flask development server."
        )
        raise RuntimeError(msg) from exc

    class _App(BaseApplication):
        def __init__(self, flask_app: Flask, options: dict[str, object]) -> None:
            self.application = flask_app
            self._options = options
            super().__init__()

        def load_config(self) -> None:
            for key, value in self._options.items():
                self.cfg.set(key, value)

        def load(self) -> Flask:
            return self.application

    options = gunicorn_options(settings)
    log.info(
        "Starting gunicorn on %s (%d workers, tls %s)",
        options["bind"],
        options["workers"],
        "on" if settings.tls.enabled else "off",
    )
    _App(app, options).run()
