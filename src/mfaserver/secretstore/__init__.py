"""Secret store gateway (Vault over HTTPS).

Public API::

    from mfaserver.secretstore import VaultSecretStore

    store = VaultSecretStore()
    store.store(cfg, "/issuer/domain/user", "mfa", secret)
    record = store.read(cfg, "/issuer/domain/user")
"""

from mfaserver.secretstore.transport import VaultTransport, trust_context
from mfaserver.secretstore.vault import VaultSecretStore

__all__ = ["VaultSecretStore", "VaultTransport", "trust_context"]
