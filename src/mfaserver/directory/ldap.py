"""Primary-password check by LDAP simple bind.

The bind DN comes from the configured template with ``{username}``
replaced by the RDN-escaped username, e.g.
``uid={username},ou=users,dc=example,dc=com``.  A successful bind is
the only outcome that authenticates; every other result, including an
unreachable directory, raises :class:`DirectoryAuthError`.
"""

from __future__ import annotations

import contextlib
import ssl
from typing import TYPE_CHECKING

from ldap3 import Connection, Server, Tls
from ldap3.core.exceptions import LDAPException
from ldap3.utils.dn import escape_rdn

from mfaserver.core.errors import DirectoryAuthError

if TYPE_CHECKING:
    from mfaserver.config.mfa_config import Configuration
    from mfaserver.config.settings import DirectorySettings

_DEFAULT_TIMEOUT = 10.0


def bind_dn(template: str, username: str) -> str:
    """Substitute the escaped *username* into the DN *template*."""
    return template.replace("{username}", escape_rdn(username))


def _tls(settings: DirectorySettings) -> Tls | None:
    if not settings.is_tls:
        return None
    return Tls(
        validate=ssl.CERT_REQUIRED,
        ca_certs_data=settings.ca_pem,
    )


class LdapAuthenticator:
    """Verifies username/password pairs against the configured directory."""

    def authenticate(
        self,
        username: str,
        password: str,
        config: Configuration,
        *,
        timeout: float | None = None,
    ) -> None:
        """Return on a successful bind, raise :class:`DirectoryAuthError` otherwise."""
        settings = config.ldap
        if not settings.host or not settings.user_dn:
            msg = "directory endpoint is not configured"
            raise DirectoryAuthError(msg)
        if not username or not password:
            # An empty password would be an unauthenticated bind, which
            # most directories accept.
            msg = "empty username or password"
            raise DirectoryAuthError(msg)

        dn = bind_dn(settings.user_dn, username)
        wait = timeout or _DEFAULT_TIMEOUT
        server = Server(
            settings.host,
            port=settings.port,
            use_ssl=settings.is_tls,
            tls=_tls(settings),
            connect_timeout=wait,
        )
        conn = Connection(
            server,
            user=dn,
            password=password,
            receive_timeout=wait,
            raise_exceptions=False,
        )
        try:
            if not conn.bind():
                reason = (conn.result or {}).get("description", "unknown")
                msg = f"bind as {dn} rejected: {reason}"
                raise DirectoryAuthError(msg)
        except LDAPException as exc:
            msg = f"bind as {dn} to {settings.addr} failed: {exc}"
            raise DirectoryAuthError(msg) from exc
        finally:
            with contextlib.suppress(LDAPException):
                conn.unbind()
