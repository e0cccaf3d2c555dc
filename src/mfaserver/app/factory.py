"""Flask application factory for the MFA server.

Usage::

    from mfaserver.app import create_app
    from mfaserver.config import load

    app = create_app(load("/etc/mfaserver/config.yaml"))
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flask import Flask, jsonify

if TYPE_CHECKING:
    from flask.typing import ResponseReturnValue

    from mfaserver.config.mfa_config import Configuration
    from mfaserver.directory.ldap import LdapAuthenticator
    from mfaserver.otp.engine import TotpEngine
    from mfaserver.secretstore.vault import VaultSecretStore

log = logging.getLogger(__name__)


def create_app(
    config: Configuration,
    *,
    secret_store: VaultSecretStore | None = None,
    directory: LdapAuthenticator | None = None,
    otp: TotpEngine | None = None,
) -> Flask:
    """Create and configure the MFA server Flask application.

    Parameters
    ----------
    config:
        A validated :class:`Configuration`.  It is shared read-only by
        every request once the app is built.
    secret_store, directory, otp:
        Optional gateway replacements, used by tests.  The Vault, LDAP
        and TOTP implementations are used when omitted.

    Returns
    -------
    Flask
        Fully configured WSGI application.

    """
    app = Flask("mfaserver")
    app.config["MFASERVER_CONFIG"] = config

    from mfaserver.app.errors import register_error_handlers  # noqa: PLC0415

    register_error_handlers(app)

    from mfaserver.app.middleware import register_request_hooks  # noqa: PLC0415

    register_request_hooks(app)

    _register_health(app)

    from mfaserver.app.context import Container  # noqa: PLC0415

    container = Container(
        config,
        secret_store=secret_store,
        directory=directory,
        otp=otp,
    )
    app.extensions["container"] = container

    from mfaserver.api import register_blueprints  # noqa: PLC0415

    register_blueprints(app)

    log.info("MFA server application created (%r)", container)
    return app


def _register_health(app: Flask) -> None:
    """Register the ``/livez`` endpoint."""

    @app.route("/livez")
    def livez() -> ResponseReturnValue:
        """Liveness check: the process is up and serving requests."""
        from mfaserver import __version__  # noqa: PLC0415

        return jsonify({"alive": True, "version": __version__}), 200
