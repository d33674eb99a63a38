"""
Azure Key Vault secrets.

Key Vault secret names cannot contain ``:``, so ``--`` is used as the
hierarchy separator (``Database--Host`` is read as ``Database:Host``).
Disabled secrets are skipped. The version stage, when set, is a Key Vault
version id.
"""

import logging
from collections.abc import Iterator
from typing import Any

from flexconf.core.errors import EntryNotFound, VersionStageNotFound

from ..remote import EntryKind, RemoteEntry, RemoteStore
from ._errors import is_not_found

logger = logging.getLogger(__name__)


class KeyVaultStore(RemoteStore):
    """Read every secret of an Azure Key Vault.

    Key Vault version ids belong to a single secret. A ``version_stage`` set on
    the loader is requested for every listed secret, so only use it with a
    vault holding the one secret it belongs to. Every other secret fails with
    ``VersionStageNotFound`` and is skipped by an optional source.
    """

    supports_version_stages = True

    def __init__(self, vault_url: str, *, credential: Any = None, client: Any = None):
        """Create the store.

        Args:
            vault_url: Vault URL, e.g. ``https://myvault.vault.azure.net/``
            credential: Azure credential; ``DefaultAzureCredential`` when omitted
            client: Pre-built ``SecretClient``
        """
        self.vault_url = vault_url
        self._credential = credential
        self._owns_credential = False
        self._client = client

    @property
    def identity(self) -> str:
        return self.vault_url

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> Any:
        try:
            from azure.keyvault.secrets import SecretClient
        except ImportError as e:
            raise ImportError(
                "azure-keyvault-secrets package is required for Key Vault support. "
                "Install with: pip install 'flexconf[azure]'"
            ) from e

        if self._credential is None:
            from azure.identity import DefaultAzureCredential

            self._credential = DefaultAzureCredential()
            self._owns_credential = True
        return SecretClient(vault_url=self.vault_url, credential=self._credential)

    def list_entries(self) -> Iterator[RemoteEntry]:
        for properties in self.client.list_properties_of_secrets():
            yield RemoteEntry(
                name=properties.name,
                kind=EntryKind.SECURE,
                enabled=properties.enabled is True,
            )

    def get_entry_value(
        self, entry: RemoteEntry, version_stage: str | None = None
    ) -> str | bytes | None:
        try:
            secret = self.client.get_secret(entry.name, version=version_stage)
        except Exception as e:
            if not is_not_found(e):
                raise
            if version_stage:
                raise VersionStageNotFound(self.identity, entry.name, version_stage) from e
            raise EntryNotFound(self.identity, entry.name) from e
        return secret.value

    def to_config_key(self, name: str) -> str:
        return name.replace("--", ":")

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        if self._owns_credential and self._credential is not None:
            self._credential.close()
            self._credential = None
            self._owns_credential = False
