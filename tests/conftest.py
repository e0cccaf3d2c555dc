"""Root conftest for the mfaserver test suite."""

from __future__ import annotations

import datetime
import hashlib
import io
import json
import logging
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from cryptography import x509  # noqa: E402
from cryptography.hazmat.primitives import hashes, serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import ec  # noqa: E402
from cryptography.x509.oid import NameOID  # noqa: E402

from mfaserver.core.errors import (  # noqa: E402
    DirectoryAuthError,
    SecretNotFoundError,
    SecretStoreError,
)
from mfaserver.otp.engine import TotpEngine  # noqa: E402

# A fixed instant so codes computed by tests and by the app always agree.
FROZEN_NOW = 1_700_000_000


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


def make_certificate(common_name: str = "mfaserver-test-ca"):
    """Return ``(certificate, private_key)`` for a self-signed CA."""
    key = ec.generate_private_key(ec.SECP256R1())
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    now = datetime.datetime.now(datetime.timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=30))
        .add_extension(x509.BasicConstraints(ca=True, path_length=None), critical=True)
        .sign(key, hashes.SHA256())
    )
    return cert, key


@pytest.fixture()
def tls_files(tmp_path: Path) -> SimpleNamespace:
    """A self-signed CA certificate and its key written as PEM files."""
    cert, key = make_certificate()
    cert_path = tmp_path / "cert.pem"
    key_path = tmp_path / "key.pem"
    cert_path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
    key_path.write_bytes(
        key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        ),
    )
    return SimpleNamespace(cert=cert, cert_path=str(cert_path), key_path=str(key_path))


@pytest.fixture()
def user_id_file(tmp_path: Path) -> str:
    path = tmp_path / "userid.json"
    path.write_text(json.dumps({"UserId": "file-user-id"}), encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# In-memory gateways
# ---------------------------------------------------------------------------


class FakeDirectory:
    """Directory that accepts the username/password pairs it was given."""

    def __init__(self, accounts: dict[str, str] | None = None) -> None:
        self.accounts = accounts if accounts is not None else {"alice": "wonderland"}
        self.calls: list[tuple[str, float | None]] = []
        self.error: Exception | None = None

    def authenticate(self, username, password, config, *, timeout=None) -> None:
        self.calls.append((username, timeout))
        if self.error is not None:
            raise self.error
        if not password or self.accounts.get(username) != password:
            msg = f"bind as {username} rejected: invalidCredentials"
            raise DirectoryAuthError(msg)


class MemorySecretStore:
    """Secret store keeping records in a dict."""

    def __init__(self) -> None:
        self.records: dict[str, dict] = {}
        self.fail_read = False
        self.fail_store = False

    def store(self, config, key, field, value, *, timeout=None) -> None:
        if self.fail_store:
            msg = "could not store secret: HTTP 503"
            raise SecretStoreError(msg)
        self.records[key] = {field: value}

    def read(self, config, key, *, timeout=None) -> dict:
        if self.fail_read:
            msg = "could not read secret: HTTP 503"
            raise SecretStoreError(msg)
        if key not in self.records:
            msg = f"no secret stored at {key}"
            raise SecretNotFoundError(msg)
        return self.records[key]


class FrozenTotpEngine(TotpEngine):
    """TOTP engine whose clock is pinned to :data:`FROZEN_NOW`."""

    def current_code(self, secret, digest=hashlib.sha1, digits=6, *, for_time=None):
        when = FROZEN_NOW if for_time is None else for_time
        return super().current_code(secret, digest, digits, for_time=when)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------


@pytest.fixture()
def log_buffer() -> io.StringIO:
    return io.StringIO()


@pytest.fixture()
def config(log_buffer):
    """A default configuration whose request loggers write to *log_buffer*."""
    from mfaserver.config import new_default

    cfg = new_default().with_log_level("DEBUG")
    cfg.server.loggers.bind(logging.StreamHandler(log_buffer))
    return cfg


@pytest.fixture()
def directory() -> FakeDirectory:
    return FakeDirectory()


@pytest.fixture()
def secret_store() -> MemorySecretStore:
    return MemorySecretStore()


@pytest.fixture()
def otp_engine() -> FrozenTotpEngine:
    return FrozenTotpEngine()


@pytest.fixture()
def app(config, directory, secret_store, otp_engine):
    from mfaserver.app import create_app

    flask_app = create_app(
        config,
        secret_store=secret_store,
        directory=directory,
        otp=otp_engine,
    )
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture(autouse=True)
def _restore_package_logger():
    """configure_logging() rewires the ``mfaserver`` logger; undo it per test."""
    root = logging.getLogger("mfaserver")
    saved = (root.level, list(root.handlers), root.propagate)
    yield
    root.setLevel(saved[0])
    root.handlers[:] = saved[1]
    root.propagate = saved[2]
