"""Remote store adapters.

Cloud SDKs are optional extras and are imported only when a store builds its
own client:

- ``flexconf[aws]``: ``ParameterStore``, ``SecretsManagerStore``
- ``flexconf[azure]``: ``KeyVaultStore``, ``AppConfigurationStore``
- ``flexconf[vault]``: ``VaultStore``
"""

from .app_configuration import AppConfigurationStore
from .key_vault import KeyVaultStore
from .memory import MemoryStore
from .parameter_store import ParameterStore
from .secrets_manager import SecretsManagerStore
from .vault import VaultStore

__all__ = [
    "AppConfigurationStore",
    "KeyVaultStore",
    "MemoryStore",
    "ParameterStore",
    "SecretsManagerStore",
    "VaultStore",
]
