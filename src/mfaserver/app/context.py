"""Dependency container for the MFA server.

Created once by :func:`~mfaserver.app.factory.create_app` and stored on
the Flask app as ``app.extensions["container"]``.  Handlers reach it
with :func:`get_container`.

Usage::

    from mfaserver.app.context import get_container

    c = get_container()
    c.directory.authenticate(username, password, c.config)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flask import current_app

from mfaserver.directory.ldap import LdapAuthenticator
from mfaserver.otp.engine import TotpEngine
from mfaserver.secretstore.vault import VaultSecretStore

if TYPE_CHECKING:
    from mfaserver.config.mfa_config import Configuration


class Container:
    """Holds the configuration and the three gateways a handler needs.

    Each gateway is stateless apart from what it reads from
    :attr:`config` per call, so one instance serves every worker thread.
    """

    def __init__(
        self,
        config: Configuration,
        *,
        secret_store: VaultSecretStore | None = None,
        directory: LdapAuthenticator | None = None,
        otp: TotpEngine | None = None,
    ) -> None:
        self.config = config
        self.secret_store = secret_store if secret_store is not None else VaultSecretStore()
        self.directory = directory if directory is not None else LdapAuthenticator()
        self.otp = otp if otp is not None else TotpEngine()

    def __repr__(self) -> str:
        return (
            f"Container(secret_store={type(self.secret_store).__name__}, "
            f"directory={type(self.directory).__name__}, "
            f"otp={type(self.otp).__name__})"
        )


def get_container() -> Container:
    """Return the :class:`Container` of the current application."""
    return current_app.extensions["container"]
