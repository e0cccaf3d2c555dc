"""Settings sections held by :class:`~mfaserver.config.Configuration`.

This module is the **single source of truth** for default values.
Every optional setting defaults to ``None`` so that an explicit
override can be told apart from a default.

Access pattern::

    cfg.server.listener_socket      # "0.0.0.0:8443"
    cfg.vault.secrets_path          # "secret/mfa"
    cfg.ldap.addr                   # "ldap.example.com:636"

The sections are plain mutable dataclasses because the configuration
mutators update them in place; once the server starts they are only
read.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from cryptography.hazmat.primitives import serialization

from mfaserver.logging.loggers import LoggerSet
from mfaserver.secretstore.transport import VaultTransport

if TYPE_CHECKING:
    from cryptography import x509

DEFAULT_LISTENER_SOCKET = "0.0.0.0:8443"  # noqa: S104
DEFAULT_SECRETS_PATH = "secret/mfa"
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_WORKERS = 4

LDAP_PORT = 389
LDAPS_PORT = 636


# ---------------------------------------------------------------------------
# MFA server
# ---------------------------------------------------------------------------


@dataclass
class TLSSettings:
    """Listener TLS: enabled only together with both file paths."""

    enabled: bool = False
    certificate_file: str | None = None
    key_file: str | None = None


@dataclass
class ServerSettings:
    """HTTP listener, TLS, logging and request budget."""

    listener_socket: str = DEFAULT_LISTENER_SOCKET
    tls: TLSSettings = field(default_factory=TLSSettings)
    log_file: str | None = None
    log_level: str = DEFAULT_LOG_LEVEL
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    workers: int = DEFAULT_WORKERS
    loggers: LoggerSet = field(default_factory=LoggerSet)

    @property
    def host(self) -> str:
        host = self.listener_socket.rpartition(":")[0]
        return host.strip("[]")

    @property
    def port(self) -> int:
        return int(self.listener_socket.rpartition(":")[2])


# ---------------------------------------------------------------------------
# Secret store
# ---------------------------------------------------------------------------


@dataclass
class SecretStoreSettings:
    """Vault connection, app-id credentials and the secrets path.

    ``transport`` is created once and kept for the life of the
    configuration; CA mutators swap its SSL context rather than
    replacing it.
    """

    endpoint: str | None = None
    trust_ca_cert: str | None = None
    ca_certificate: x509.Certificate | None = None
    app_id_read: str | None = None
    app_id_write: str | None = None
    user_id_file: str | None = None
    user_id: str | None = None
    secrets_path: str = DEFAULT_SECRETS_PATH
    transport: VaultTransport = field(default_factory=VaultTransport)


# ---------------------------------------------------------------------------
# Directory
# ---------------------------------------------------------------------------


@dataclass
class DirectorySettings:
    """LDAP endpoint, trust anchor and bind DN template."""

    endpoint: str | None = None
    host: str | None = None
    port: int | None = None
    is_tls: bool = False
    trust_ca_cert: str | None = None
    ca_certificate: x509.Certificate | None = None
    user_dn: str | None = None

    @property
    def addr(self) -> str | None:
        """``host:port`` of the directory, or ``None`` when unset."""
        if self.host is None or self.port is None:
            return None
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{host}:{self.port}"

    @property
    def ca_pem(self) -> str | None:
        if self.ca_certificate is None:
            return None
        return self.ca_certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")
