"""mfaserver configuration model and loader.

Lifecycle::

    # 1. Build from defaults, then override
    cfg = new_default()
    cfg.with_listener_socket("127.0.0.1:7443").with_log_level("DEBUG")

    # ...or bulk-load a file (same validation, field by field)
    cfg = load("/etc/mfaserver/config.json")

    # 2. Hand it to the app; from here on it is only read
    app = create_app(cfg)

Every ``with_*`` mutator validates its argument completely before it
touches any state.  On failure it raises :class:`ConfigValidationError`
and the configuration is exactly as it was; on success it returns the
receiver so calls can be chained.  A raised error ends the chain, so a
later step never runs on top of a failed one.
"""

from __future__ import annotations

import ipaddress
import json
import logging
import os
import re
import socket
import ssl
import urllib.parse
from pathlib import Path
from typing import Any

import yaml
from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from jsonschema import Draft202012Validator

from mfaserver.config.settings import (
    LDAP_PORT,
    LDAPS_PORT,
    DirectorySettings,
    SecretStoreSettings,
    ServerSettings,
)
from mfaserver.logging.loggers import LEVELS
from mfaserver.secretstore.transport import trust_context

_SCHEMA_PATH = Path(__file__).parent / "schema.json"

_ENV_RE = re.compile(
    r"^\$\{([^}:]+?)(?::-(.*))?\}$",
    re.DOTALL,
)

# Hosts made only of digits and dots must be IPv4 literals; they are
# never handed to the resolver.
_NUMERIC_HOST_RE = re.compile(r"^[0-9.]+$")
_PORT_RE = re.compile(r"^[0-9]{1,5}$")

_MAX_PORT = 65535

log = logging.getLogger(__name__)


class ConfigValidationError(Exception):
    """A setting was rejected; the configuration was left unchanged.

    The message starts with a stable prefix describing the failure
    (e.g. ``"UserId file could not be parsed"``) followed by detail.
    ``errors`` lists every individual problem when more than one was
    found at once (schema validation).
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or [message]
        super().__init__(message)


# ---------------------------------------------------------------------------
# Field validators (pure: parse and return, never mutate)
# ---------------------------------------------------------------------------


def _require_text(value: Any, what: str) -> str:  # noqa: ANN401
    if not isinstance(value, str) or not value:
        msg = f"{what} must be a non-empty string"
        raise ConfigValidationError(msg)
    return value


def _check_listener_socket(value: Any) -> None:  # noqa: ANN401, C901
    if not isinstance(value, str) or ":" not in value:
        msg = f"Invalid listener socket {value!r}: expected host:port"
        raise ConfigValidationError(msg)

    host, _, port = value.rpartition(":")
    if not _PORT_RE.match(port) or int(port) > _MAX_PORT:
        msg = f"Invalid listener socket {value!r}: port must be 0-{_MAX_PORT}"
        raise ConfigValidationError(msg)

    if not host:
        return
    if host.startswith("[") and host.endswith("]"):
        try:
            ipaddress.IPv6Address(host[1:-1])
        except ValueError as exc:
            msg = f"Invalid listener socket {value!r}: {exc}"
            raise ConfigValidationError(msg) from exc
        return
    if ":" in host:
        msg = f"Invalid listener socket {value!r}: IPv6 hosts must be bracketed"
        raise ConfigValidationError(msg)

    try:
        ipaddress.IPv4Address(host)
    except ValueError as exc:
        if _NUMERIC_HOST_RE.match(host):
            msg = f"Invalid listener socket {value!r}: {exc}"
            raise ConfigValidationError(msg) from exc
    else:
        return

    try:
        socket.getaddrinfo(host, int(port), type=socket.SOCK_STREAM)
    except (OSError, UnicodeError) as exc:
        msg = f"Invalid listener socket {value!r}: host {host!r} does not resolve ({exc})"
        raise ConfigValidationError(msg) from exc


def _load_certificate_file(path: Any, what: str) -> x509.Certificate:  # noqa: ANN401
    path = _require_text(path, f"{what} file path")
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        msg = f"Could not open {what} file at {path}: {exc}"
        raise ConfigValidationError(msg) from exc
    try:
        return x509.load_pem_x509_certificate(data)
    except ValueError as exc:
        msg = f"{what} file at {path} could not be parsed as a PEM certificate: {exc}"
        raise ConfigValidationError(msg) from exc


def _check_private_key_file(path: Any) -> None:  # noqa: ANN401
    path = _require_text(path, "TLS key file path")
    try:
        data = Path(path).read_bytes()
    except OSError as exc:
        msg = f"Could not open TLS key file at {path}: {exc}"
        raise ConfigValidationError(msg) from exc
    try:
        serialization.load_pem_private_key(data, password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        msg = f"TLS key file at {path} could not be parsed as an unencrypted PEM key: {exc}"
        raise ConfigValidationError(msg) from exc


def _read_user_id_file(path: Any) -> str:  # noqa: ANN401
    path = _require_text(path, "UserId file path")
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Could not open UserId file at {path}: {exc}"
        raise ConfigValidationError(msg) from exc
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"UserId file could not be parsed: {exc}"
        raise ConfigValidationError(msg) from exc
    user_id = data.get("UserId") if isinstance(data, dict) else None
    if not isinstance(user_id, str) or not user_id:
        msg = f"UserId file could not be parsed: {path} has no string UserId field"
        raise ConfigValidationError(msg)
    return user_id


def _check_http_url(value: Any, what: str) -> str:  # noqa: ANN401
    value = _require_text(value, what)
    parts = urllib.parse.urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        msg = f"Invalid {what} {value!r}: expected an http(s) URL"
        raise ConfigValidationError(msg)
    return value


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class Configuration:
    """Validated settings for the listener, secret store and directory.

    Sections are exposed as :attr:`server`, :attr:`vault` and
    :attr:`ldap`.  Build with :func:`new_default` or :func:`load`.
    """

    def __init__(self) -> None:
        self.server = ServerSettings()
        self.vault = SecretStoreSettings()
        self.ldap = DirectorySettings()
        self.source: str | None = None

    # -- MFA server ---------------------------------------------------------

    def with_listener_socket(self, socket_addr: str) -> Configuration:
        """Set the ``host:port`` the server listens on."""
        _check_listener_socket(socket_addr)
        self.server.listener_socket = socket_addr
        return self

    def with_tls(self, cert_path: str, key_path: str) -> Configuration:
        """Enable listener TLS with a PEM certificate and unencrypted PEM key."""
        if not cert_path or not key_path:
            msg = "TLS requires both a certificate file and a key file"
            raise ConfigValidationError(msg)
        _load_certificate_file(cert_path, "TLS certificate")
        _check_private_key_file(key_path)
        tls = self.server.tls
        tls.certificate_file = cert_path
        tls.key_file = key_path
        tls.enabled = True
        return self

    def with_log_file(self, path: str) -> Configuration:
        """Send the request loggers to *path* (opened for append)."""
        path = _require_text(path, "Log file path")
        try:
            handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as exc:
            msg = f"Could not open log file at {path}: {exc}"
            raise ConfigValidationError(msg) from exc
        self.server.loggers.bind(handler)
        self.server.log_file = path
        return self

    def with_log_level(self, level: str) -> Configuration:
        """Set the threshold: one of ``DEBUG``, ``INFO``, ``WARNING``, ``ERROR``."""
        if level not in LEVELS:
            msg = f"Invalid log level {level!r}: must be one of {', '.join(LEVELS)}"
            raise ConfigValidationError(msg)
        self.server.loggers.set_level(level)
        self.server.log_level = level
        return self

    def with_request_timeout(self, seconds: float) -> Configuration:
        """Bound each request's total handling time."""
        if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or seconds <= 0:
            msg = f"Invalid request timeout {seconds!r}: must be a positive number of seconds"
            raise ConfigValidationError(msg)
        self.server.request_timeout = float(seconds)
        self.vault.transport.timeout = float(seconds)
        return self

    def with_workers(self, workers: int) -> Configuration:
        if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
            msg = f"Invalid worker count {workers!r}: must be a positive integer"
            raise ConfigValidationError(msg)
        self.server.workers = workers
        return self

    # -- Secret store -------------------------------------------------------

    def with_secret_store_endpoint(self, url: str) -> Configuration:
        self.vault.endpoint = _check_http_url(url, "secret store endpoint")
        return self

    def with_secret_store_ca_cert(self, cert: x509.Certificate) -> Configuration:
        """Trust exactly *cert* for secret-store connections.

        The transport object is kept; only its SSL context is replaced.
        """
        if not isinstance(cert, x509.Certificate):
            msg = f"Secret store CA certificate must be an x509.Certificate, got {type(cert).__name__}"
            raise ConfigValidationError(msg)
        try:
            ctx = trust_context(cert)
        except ssl.SSLError as exc:
            msg = f"Secret store CA certificate could not be trusted: {exc}"
            raise ConfigValidationError(msg) from exc
        self.vault.transport.ssl_context = ctx
        self.vault.ca_certificate = cert
        return self

    def with_secret_store_ca_file(self, path: str) -> Configuration:
        """Trust exactly the PEM certificate in *path* for secret-store connections."""
        cert = _load_certificate_file(path, "Secret store CA certificate")
        self.with_secret_store_ca_cert(cert)
        self.vault.trust_ca_cert = path
        return self

    def with_secret_store_read_id(self, app_id: str) -> Configuration:
        self.vault.app_id_read = _require_text(app_id, "Secret store read app id")
        return self

    def with_secret_store_write_id(self, app_id: str) -> Configuration:
        self.vault.app_id_write = _require_text(app_id, "Secret store write app id")
        return self

    def with_secret_store_identity(self, user_id: str) -> Configuration:
        self.vault.user_id = _require_text(user_id, "Secret store user id")
        return self

    def with_secret_store_identity_file(self, path: str) -> Configuration:
        """Read the user id from a ``{"UserId": "..."}`` JSON file."""
        user_id = _read_user_id_file(path)
        self.vault.user_id_file = path
        self.vault.user_id = user_id
        return self

    def with_secrets_path_prefix(self, path: str) -> Configuration:
        self.vault.secrets_path = _require_text(path, "Secrets path")
        return self

    # -- Directory ----------------------------------------------------------

    def with_directory_endpoint(
        self,
        url: str,
        ca_cert_path: str | None,
        user_dn: str,
    ) -> Configuration:
        """Point directory auth at an ``ldap://`` or ``ldaps://`` URL.

        The scheme decides TLS, the authority gives host and port
        (defaulting to 389/636), and *user_dn* must contain the
        ``{username}`` placeholder.  *ca_cert_path* may be empty.
        """
        url = _require_text(url, "Directory endpoint")
        parts = urllib.parse.urlsplit(url)
        scheme = parts.scheme.lower()
        if scheme not in ("ldap", "ldaps"):
            msg = f"Invalid directory endpoint {url!r}: scheme must be ldap or ldaps"
            raise ConfigValidationError(msg)
        if not parts.hostname:
            msg = f"Invalid directory endpoint {url!r}: no host"
            raise ConfigValidationError(msg)
        try:
            port = parts.port
        except ValueError as exc:
            msg = f"Invalid directory endpoint {url!r}: {exc}"
            raise ConfigValidationError(msg) from exc
        if not isinstance(user_dn, str) or "{username}" not in user_dn:
            msg = f"Invalid directory user DN {user_dn!r}: must contain {{username}}"
            raise ConfigValidationError(msg)
        cert = (
            _load_certificate_file(ca_cert_path, "Directory CA certificate")
            if ca_cert_path
            else None
        )

        is_tls = scheme == "ldaps"
        ldap = self.ldap
        ldap.endpoint = url
        ldap.host = parts.hostname
        ldap.port = port or (LDAPS_PORT if is_tls else LDAP_PORT)
        ldap.is_tls = is_tls
        ldap.trust_ca_cert = ca_cert_path or None
        ldap.ca_certificate = cert
        ldap.user_dn = user_dn
        return self

    def __repr__(self) -> str:
        return f"<Configuration source={self.source or '-'} listener={self.server.listener_socket}>"


def new_default() -> Configuration:
    """Return a configuration holding only the documented defaults."""
    return Configuration()


# ---------------------------------------------------------------------------
# File loading
# ---------------------------------------------------------------------------


def _resolve_value(value: str, path: str) -> str:
    """Replace ``${VAR}`` or ``${VAR:-default}`` with the environment value."""
    match = _ENV_RE.match(value)
    if match is None:
        return value
    name, fallback = match.group(1), match.group(2)
    resolved = os.environ.get(name)
    if resolved is not None:
        return resolved
    if fallback is not None:
        return fallback
    msg = f"Environment variable '${{{name}}}' referenced at '{path}' is not set and has no default"
    raise ConfigValidationError(msg)


def _resolve_env_vars(data: Any, path: str = "") -> None:  # noqa: ANN401
    """Walk *data* in place resolving environment references in strings."""
    if isinstance(data, dict):
        for key, value in data.items():
            child = f"{path}.{key}" if path else key
            if isinstance(value, str):
                data[key] = _resolve_value(value, child)
            else:
                _resolve_env_vars(value, child)
    elif isinstance(data, list):
        for idx, item in enumerate(data):
            child = f"{path}[{idx}]"
            if isinstance(item, str):
                data[idx] = _resolve_value(item, child)
            else:
                _resolve_env_vars(item, child)


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        msg = f"Could not open configuration file at {path}: {exc}"
        raise ConfigValidationError(msg) from exc

    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (ValueError, yaml.YAMLError) as exc:
        msg = f"Configuration file {path} could not be parsed: {exc}"
        raise ConfigValidationError(msg) from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        msg = f"Configuration file {path} could not be parsed: top level must be an object"
        raise ConfigValidationError(msg)
    return data


def _check_schema(data: dict[str, Any], path: Path) -> None:
    schema = json.loads(_SCHEMA_PATH.read_text(encoding="utf-8"))
    problems = sorted(
        Draft202012Validator(schema).iter_errors(data),
        key=lambda e: list(e.absolute_path),
    )
    if problems:
        errors = [
            f"{'.'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}"
            for e in problems
        ]
        body = "\n".join(f"  - {e}" for e in errors)
        msg = f"Configuration file {path} does not match the schema:\n{body}"
        raise ConfigValidationError(msg, errors)


def _apply(cfg: Configuration, data: dict[str, Any]) -> None:  # noqa: C901, PLR0912
    server = data.get("MFAServer") or {}
    if "ListenerSocket" in server:
        cfg.with_listener_socket(server["ListenerSocket"])
    tls = server.get("TLS") or {}
    if tls.get("Enabled"):
        cfg.with_tls(tls.get("CertificateFile", ""), tls.get("KeyFile", ""))
    if "LogFile" in server:
        cfg.with_log_file(server["LogFile"])
    if "LogLevel" in server:
        cfg.with_log_level(server["LogLevel"])
    if "RequestTimeout" in server:
        cfg.with_request_timeout(server["RequestTimeout"])
    if "Workers" in server:
        cfg.with_workers(server["Workers"])

    vault = data.get("Vault") or {}
    conn = vault.get("VaultConnection") or {}
    if "EndPoint" in conn:
        cfg.with_secret_store_endpoint(conn["EndPoint"])
    if "TrustCACert" in conn:
        cfg.with_secret_store_ca_file(conn["TrustCACert"])
    if "AppIDRead" in vault:
        cfg.with_secret_store_read_id(vault["AppIDRead"])
    if "AppIDWrite" in vault:
        cfg.with_secret_store_write_id(vault["AppIDWrite"])
    if "UserIDFile" in vault:
        cfg.with_secret_store_identity_file(vault["UserIDFile"])
    # An inline UserID takes precedence over the file.
    if "UserID" in vault:
        cfg.with_secret_store_identity(vault["UserID"])
    if "MFASecretsPath" in vault:
        cfg.with_secrets_path_prefix(vault["MFASecretsPath"])

    ldap = data.get("LDAP") or {}
    if "EndPoint" in ldap:
        cfg.with_directory_endpoint(
            ldap["EndPoint"],
            ldap.get("TrustCACert"),
            ldap.get("UserDN", ""),
        )
    elif ldap:
        msg = "LDAP.EndPoint is required when other LDAP settings are given"
        raise ConfigValidationError(msg)


def load(path: str | Path) -> Configuration:
    """Build a configuration from a JSON (or YAML) file.

    Fields absent from the file keep their defaults.  Present fields go
    through the same mutators as programmatic overrides, in file order
    of sections; the first rejected field aborts the load.
    """
    path = Path(path)
    data = _read_config_file(path)
    _resolve_env_vars(data)
    _check_schema(data, path)

    cfg = Configuration()
    cfg.source = str(path)
    _apply(cfg, data)
    log.debug("Configuration loaded from %s", path)
    return cfg
