"""The four level-bound loggers carried on the configuration.

Request handlers never reach for a module-level logger.  They log
through ``cfg.server.loggers``, a :class:`LoggerSet` built together with
the :class:`~mfaserver.config.Configuration` and read-only once the
server starts.  Each handle is bound to one level and prefixes its
messages with ``"<LEVEL>: "``.

Usage::

    loggers = cfg.server.loggers
    loggers.info("%s, OTP enrolment request received for %s/%s", addr, dom, user)
"""

from __future__ import annotations

import logging
import sys
from typing import Any

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

_DEFAULT_FORMAT = "%(asctime)s %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class PrefixedLogger(logging.LoggerAdapter):
    """Logger handle fixed to a single level.

    Calling the handle logs at its level; the usual adapter methods
    (``exception``, ``log``...) remain available.
    """

    def __init__(self, logger: logging.Logger, level: int) -> None:
        super().__init__(logger, {})
        self.log_level = level
        self.prefix = f"{logging.getLevelName(level)}: "

    def process(self, msg: Any, kwargs: Any) -> tuple[str, Any]:  # noqa: ANN401
        return f"{self.prefix}{msg}", kwargs

    def __call__(self, msg: str, *args: Any, **kwargs: Any) -> None:  # noqa: ANN401
        self.log(self.log_level, msg, *args, **kwargs)


class LoggerSet:
    """Debug, info, warning and error handles over one private logger.

    The underlying :class:`logging.Logger` is instantiated directly so
    it is not registered in the global logger hierarchy; two
    configurations never share level or handlers.
    """

    def __init__(self, name: str = "mfaserver.requests", level: str = "INFO") -> None:
        self.logger = logging.Logger(name)
        self.logger.propagate = False
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(_DEFAULT_FORMAT, datefmt=_DATE_FORMAT))
        self.logger.addHandler(handler)

        self.debug = PrefixedLogger(self.logger, logging.DEBUG)
        self.info = PrefixedLogger(self.logger, logging.INFO)
        self.warning = PrefixedLogger(self.logger, logging.WARNING)
        self.error = PrefixedLogger(self.logger, logging.ERROR)

        self.set_level(level)

    @property
    def level(self) -> str:
        return logging.getLevelName(self.logger.level)

    @property
    def handlers(self) -> list[logging.Handler]:
        return list(self.logger.handlers)

    def set_level(self, level: str) -> None:
        """Set the threshold; *level* must be one of :data:`LEVELS`."""
        if level not in LEVELS:
            msg = f"unknown log level {level!r}"
            raise ValueError(msg)
        self.logger.setLevel(getattr(logging, level))

    def bind(self, handler: logging.Handler) -> None:
        """Replace every current handler with *handler*."""
        for old in list(self.logger.handlers):
            self.logger.removeHandler(old)
            old.close()
        self.logger.addHandler(handler)

    def add_handler(self, handler: logging.Handler) -> None:
        self.logger.addHandler(handler)
