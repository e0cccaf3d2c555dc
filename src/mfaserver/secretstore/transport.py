"""HTTPS transport shared by every secret-store call.

The :class:`VaultTransport` instance is created with the configuration
and handed to the gateway by reference.  The CA-trust mutators replace
its :attr:`VaultTransport.ssl_context` in place, so trust changes made
while loading configuration reach the gateway without rebuilding it.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from typing import TYPE_CHECKING, Any

from cryptography.hazmat.primitives import serialization

if TYPE_CHECKING:
    from cryptography import x509


def trust_context(certificate: x509.Certificate | None = None) -> ssl.SSLContext:
    """Build a client :class:`ssl.SSLContext`.

    With *certificate* the context trusts exactly that certificate and
    nothing else; without it the system trust store is used.
    """
    if certificate is None:
        return ssl.create_default_context()
    ctx = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    pem = certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")
    ctx.load_verify_locations(cadata=pem)
    return ctx


class TransportError(Exception):
    """Raised when an HTTP round trip fails.

    ``status`` is the HTTP status for error responses, ``None`` when no
    response was received.
    """

    def __init__(self, detail: str, status: int | None = None) -> None:
        self.detail = detail
        self.status = status
        super().__init__(detail)


class VaultTransport:
    """JSON-over-HTTPS client bound to a replaceable SSL context."""

    def __init__(self, ssl_context: ssl.SSLContext | None = None, timeout: float = 10.0) -> None:
        self.ssl_context = ssl_context or trust_context()
        self.timeout = timeout

    def trusted_certificates(self) -> list[bytes]:
        """DER encodings of the CA certificates the context trusts."""
        return self.ssl_context.get_ca_certs(binary_form=True)

    def request(
        self,
        method: str,
        url: str,
        payload: dict | None = None,
        *,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON body.

        An empty body (e.g. ``204 No Content``) decodes to ``{}``.
        """
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        req = urllib.request.Request(
            url,
            data=data,
            method=method,
            headers={"Accept": "application/json", **(headers or {})},
        )
        if data is not None:
            req.add_header("Content-Type", "application/json")

        handler = urllib.request.HTTPSHandler(context=self.ssl_context)
        opener = urllib.request.build_opener(handler)
        try:
            with opener.open(req, timeout=timeout or self.timeout) as resp:
                body = resp.read()
        except urllib.error.HTTPError as exc:
            msg = f"{method} {url} returned HTTP {exc.code}"
            raise TransportError(msg, status=exc.code) from exc
        except (urllib.error.URLError, OSError) as exc:
            msg = f"failed to reach {url}: {exc}"
            raise TransportError(msg) from exc

        if not body:
            return {}
        try:
            decoded = json.loads(body.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            msg = f"{method} {url} returned invalid JSON: {exc}"
            raise TransportError(msg) from exc
        if not isinstance(decoded, dict):
            msg = f"{method} {url} returned a non-object JSON body"
            raise TransportError(msg)
        return decoded
