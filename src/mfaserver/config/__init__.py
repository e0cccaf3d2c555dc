"""Configuration subsystem for mfaserver.

Public API::

    from mfaserver.config import Configuration, load, new_default

    cfg = load("config.json")          # or new_default() + with_* mutators
    cfg.server.listener_socket         # typed access
    cfg.vault.transport                # HTTPS transport for the secret store
"""

from mfaserver.config.mfa_config import (
    ConfigValidationError,
    Configuration,
    load,
    new_default,
)
from mfaserver.config.settings import (
    DirectorySettings,
    SecretStoreSettings,
    ServerSettings,
    TLSSettings,
)

__all__ = [
    "ConfigValidationError",
    "Configuration",
    "DirectorySettings",
    "SecretStoreSettings",
    "ServerSettings",
    "TLSSettings",
    "load",
    "new_default",
]
