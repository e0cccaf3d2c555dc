"""Logging subsystem for mfaserver.

Public API::

    from mfaserver.logging import LoggerSet, configure_logging

    configure_logging(cfg)
    cfg.server.loggers.info("ready")
"""

from mfaserver.logging.loggers import LEVELS, LoggerSet, PrefixedLogger
from mfaserver.logging.setup import configure_logging

__all__ = ["LEVELS", "LoggerSet", "PrefixedLogger", "configure_logging"]
