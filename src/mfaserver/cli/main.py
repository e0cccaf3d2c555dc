"""MFA server command-line entry point.

Usage::

    mfaserver -config=/etc/mfaserver/config.json
    mfaserver --config config.yaml --dev
    mfaserver --config config.yaml --validate-only
    python -m mfaserver --config config.json
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from mfaserver.config.mfa_config import Configuration

log = logging.getLogger(__name__)


def _get_version() -> str:
    from mfaserver import __version__  # noqa: PLC0415

    return __version__


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mfaserver",
        description="TOTP enrolment and validation server backed by LDAP and Vault",
    )
    parser.add_argument(
        "-config",
        "--config",
        dest="config",
        required=True,
        metavar="PATH",
        help="Path to the configuration file (JSON or YAML).",
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        default=False,
        help="Validate the configuration file and exit.",
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        default=False,
        help="Use Flask's development server instead of gunicorn.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )
    return parser


def _print_error(message: str) -> None:
    """Print a user-facing error to stderr."""
    print(f"mfaserver: error: {message}", file=sys.stderr)  # noqa: T201


def _print_settings_summary(config: Configuration) -> None:
    """Print a short summary of the loaded configuration."""
    server = config.server
    tls = "on" if server.tls.enabled else "off"
    lines = [
        f"config:     {config.source}",
        f"listener:   {server.listener_socket} (tls {tls})",
        f"log level:  {server.log_level}",
        f"vault:      {config.vault.endpoint or '-'} ({config.vault.secrets_path})",
        f"ldap:       {config.ldap.addr or '-'}",
    ]
    print("\n".join(lines))  # noqa: T201


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.  Parses arguments, loads config, starts server."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    # -- bootstrap logging (basic stderr until config is loaded) ---
    logging.basicConfig(
        level=logging.WARNING,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    from mfaserver.config import ConfigValidationError, load  # noqa: PLC0415

    try:
        config = load(args.config)
    except ConfigValidationError as exc:
        _print_error(str(exc))
        sys.exit(1)

    from mfaserver.logging import configure_logging  # noqa: PLC0415

    configure_logging(config)

    if args.validate_only:
        _print_settings_summary(config)
        sys.exit(0)

    _run_serve(config, dev=args.dev)


def _run_serve(config: Configuration, *, dev: bool) -> None:
    from mfaserver.app import create_app  # noqa: PLC0415

    app = create_app(config)
    server = config.server
    config.server.loggers.info("MFA server listening on %s", server.listener_socket)

    if dev:
        log.info("Starting development server (not for production)")
        ssl_ctx = None
        if server.tls.enabled:
            ssl_ctx = (server.tls.certificate_file, server.tls.key_file)
        app.run(
            host=server.host,
            port=server.port,
            threaded=True,
            ssl_context=ssl_ctx,
        )
    else:
        from mfaserver.server.gunicorn_app import run_gunicorn  # noqa: PLC0415

        try:
            run_gunicorn(app, server)
        except RuntimeError as exc:
            _print_error(str(exc))
            sys.exit(1)
