"""Vault-backed secret store gateway.

API contract
------------
**Login**: ``POST {endpoint}/v1/auth/app-id/login``::

    {"app_id": "<AppIDRead|AppIDWrite>", "user_id": "<UserID>"}

returns ``{"auth": {"client_token": "..."}}``.

**Write**: ``POST {endpoint}/v1/{secrets_path}{key}`` with body
``{field: value}`` and header ``X-Vault-Token``.

**Read**: ``GET {endpoint}/v1/{secrets_path}{key}`` returns
``{"data": {field: value, ...}}``; HTTP 404 means nothing is stored.

Writes log in with the write app-id, reads with the read app-id.  A
fresh token is obtained per call; nothing is cached across requests.
"""

from __future__ import annotations

import urllib.parse
from typing import TYPE_CHECKING, Any

from mfaserver.core.errors import SecretNotFoundError, SecretStoreError
from mfaserver.core.types import printable
from mfaserver.secretstore.transport import TransportError

if TYPE_CHECKING:
    from mfaserver.config.mfa_config import Configuration
    from mfaserver.config.settings import SecretStoreSettings

_LOGIN_PATH = "/v1/auth/app-id/login"


class VaultSecretStore:
    """Reads and writes per-identity secrets in Vault."""

    def store(
        self,
        config: Configuration,
        key: str,
        field: str,
        value: str,
        *,
        timeout: float | None = None,
    ) -> None:
        """Write ``{field: value}`` at *key* under the secrets path."""
        vault = config.vault
        token = self._login(vault, vault.app_id_write, timeout=timeout)
        try:
            vault.transport.request(
                "POST",
                self._secret_url(vault, key),
                {field: value},
                headers={"X-Vault-Token": token},
                timeout=timeout,
            )
        except TransportError as exc:
            msg = f"could not store secret: {exc.detail}"
            raise SecretStoreError(msg) from exc
        config.server.loggers.debug("Stored secret record at %s", printable(key))

    def read(
        self,
        config: Configuration,
        key: str,
        *,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Return the field mapping stored at *key*.

        Raises :class:`SecretNotFoundError` when nothing is stored there.
        """
        vault = config.vault
        token = self._login(vault, vault.app_id_read, timeout=timeout)
        try:
            body = vault.transport.request(
                "GET",
                self._secret_url(vault, key),
                headers={"X-Vault-Token": token},
                timeout=timeout,
            )
        except TransportError as exc:
            if exc.status == 404:
                msg = f"no secret stored at {key}"
                raise SecretNotFoundError(msg) from exc
            msg = f"could not read secret: {exc.detail}"
            raise SecretStoreError(msg) from exc

        data = body.get("data")
        if not isinstance(data, dict):
            msg = f"secret record at {key} has no data"
            raise SecretStoreError(msg)
        return data

    # -- internal helpers ---------------------------------------------------

    @staticmethod
    def _base_url(vault: SecretStoreSettings) -> str:
        if not vault.endpoint:
            msg = "secret store endpoint is not configured"
            raise SecretStoreError(msg)
        return vault.endpoint.rstrip("/")

    @classmethod
    def _secret_url(cls, vault: SecretStoreSettings, key: str) -> str:
        prefix = (vault.secrets_path or "").strip("/")
        # Each identity component is quoted so that it stays a single
        # path segment.
        parts = [urllib.parse.quote(p, safe="") for p in key.split("/") if p != ""]
        path = "/".join([prefix, *parts]) if prefix else "/".join(parts)
        return f"{cls._base_url(vault)}/v1/{path}"

    @classmethod
    def _login(
        cls,
        vault: SecretStoreSettings,
        app_id: str | None,
        *,
        timeout: float | None,
    ) -> str:
        if not app_id or not vault.user_id:
            msg = "secret store credentials (app id / user id) are not configured"
            raise SecretStoreError(msg)
        try:
            body = vault.transport.request(
                "POST",
                cls._base_url(vault) + _LOGIN_PATH,
                {"app_id": app_id, "user_id": vault.user_id},
                timeout=timeout,
            )
        except TransportError as exc:
            msg = f"secret store login failed: {exc.detail}"
            raise SecretStoreError(msg) from exc

        auth = body.get("auth")
        token = auth.get("client_token") if isinstance(auth, dict) else None
        if not isinstance(token, str) or not token:
            msg = "secret store login returned no client token"
            raise SecretStoreError(msg)
        return token
