"""
Azure App Configuration.

Keys in App Configuration already use ``:`` as the hierarchy separator and are
used as-is. Settings are selected with a key filter (``*`` for all, or a
prefix such as ``myapp:*``) and an optional label.

The store accepts either a connection string
(``Endpoint=https://...;Id=...;Secret=...``) or an endpoint URL, in which case
an Azure credential is used.
"""

import logging
from collections.abc import Iterator
from typing import Any

from ..remote import EntryKind, RemoteEntry, RemoteStore

logger = logging.getLogger(__name__)


def is_connection_string(value: str) -> bool:
    """Return True if ``value`` looks like an App Configuration connection string."""
    return "Endpoint=" in value and ("Id=" in value or "Secret=" in value)


def _endpoint(value: str) -> str:
    if not is_connection_string(value):
        return value
    for part in value.split(";"):
        name, _, setting = part.partition("=")
        if name.strip().lower() == "endpoint":
            return setting.strip()
    return value


class AppConfigurationStore(RemoteStore):
    """Read key-values from an Azure App Configuration store."""

    def __init__(
        self,
        connection_string: str,
        *,
        key_filter: str = "*",
        label: str | None = None,
        credential: Any = None,
        client: Any = None,
    ):
        """Create the store.

        Args:
            connection_string: Connection string or endpoint URL
            key_filter: Key filter passed to the service
            label: Label filter; None reads settings without a label
            credential: Azure credential used with an endpoint URL
            client: Pre-built ``AzureAppConfigurationClient``
        """
        self.connection_string = connection_string
        self.key_filter = key_filter
        self.label = label
        self._credential = credential
        self._owns_credential = False
        self._client = client

    @property
    def identity(self) -> str:
        # Never expose the secret part of a connection string
        return _endpoint(self.connection_string)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._create_client()
        return self._client

    def _create_client(self) -> Any:
        try:
            from azure.appconfiguration import AzureAppConfigurationClient
        except ImportError as e:
            raise ImportError(
                "azure-appconfiguration package is required for App Configuration support. "
                "Install with: pip install 'flexconf[azure]'"
            ) from e

        if is_connection_string(self.connection_string):
            return AzureAppConfigurationClient.from_connection_string(self.connection_string)

        if self._credential is None:
            from azure.identity import DefaultAzureCredential

            self._credential = DefaultAzureCredential()
            self._owns_credential = True
        return AzureAppConfigurationClient(
            base_url=self.connection_string, credential=self._credential
        )

    def list_entries(self) -> Iterator[RemoteEntry]:
        settings = self.client.list_configuration_settings(
            key_filter=self.key_filter, label_filter=self.label
        )
        for setting in settings:
            if not setting.key or setting.value is None:
                logger.debug(f"Skipping setting without key or value in {self.identity}")
                continue
            yield RemoteEntry(name=setting.key, raw_value=setting.value, kind=EntryKind.PLAIN)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
        if self._owns_credential and self._credential is not None:
            self._credential.close()
            self._credential = None
            self._owns_credential = False
