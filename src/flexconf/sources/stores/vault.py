"""
HashiCorp Vault KV version 2.

Every secret below ``path`` in the mount becomes one entry. Secret paths map
to keys with ``/`` turned into ``:`` after removing ``path``. A secret whose
data is a single ``value`` field reads as that value; any other secret reads
as a JSON object, which the loader flattens when JSON processing is on:

```python
store = VaultStore(mount_point="secret", path="myapp", address="https://vault.example.com")
loader = RemoteSourceLoader(store, RemoteSourceOptions(json_processing=True))
# secret/myapp/database = {"host": "db", "port": 5432}
# -> database:host = "db", database:port = "5432"
```

The token is read from the environment variable named by ``token_env``. The
version stage, when set, is a KV version number.
"""

import json
import logging
import os
from collections.abc import Iterator
from typing import Any

from flexconf.core.errors import EntryNotFound, SourceUnavailable, VersionStageNotFound

from ..remote import EntryKind, RemoteEntry, RemoteStore
from ._errors import is_not_found

logger = logging.getLogger(__name__)


class VaultStore(RemoteStore):
    """Read every secret below a path of a KV v2 mount."""

    supports_version_stages = True

    def __init__(
        self,
        *,
        mount_point: str = "secret",
        path: str = "",
        address: str | None = None,
        token_env: str = "VAULT_TOKEN",
        client: Any = None,
    ):
        self.mount_point = mount_point
        self.path = path.strip("/")
        self.address = address
        self.token_env = token_env
        self._client = client

    @property
    def identity(self) -> str:
        location = f"{self.mount_point}/{self.path}".rstrip("/")
        return f"vault:{self.address}/{location}" if self.address else f"vault:{location}"

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._init_vault_client()
        return self._client

    def _init_vault_client(self) -> Any:
        try:
            import hvac
        except ImportError as e:
            raise ImportError(
                "hvac package is required for Vault support. Install with: pip install 'flexconf[vault]'"
            ) from e

        token = os.environ.get(self.token_env)
        if not token:
            raise SourceUnavailable(
                self.identity, f"Vault token environment variable not found: {self.token_env}"
            )

        client = hvac.Client(url=self.address, token=token)
        if not client.is_authenticated():
            raise SourceUnavailable(self.identity, "Failed to authenticate with Vault")
        return client

    def list_entries(self) -> Iterator[RemoteEntry]:
        yield from self._walk(self.path + "/" if self.path else "")

    def _walk(self, prefix: str) -> Iterator[RemoteEntry]:
        try:
            response = self.client.secrets.kv.v2.list_secrets(
                path=prefix, mount_point=self.mount_point
            )
        except Exception as e:
            # Listing an empty or missing folder is not an error
            if is_not_found(e):
                logger.debug(f"No secrets under {prefix or '/'} in {self.identity}")
                return
            raise

        for key in response["data"]["keys"]:
            if key.endswith("/"):
                yield from self._walk(prefix + key)
            else:
                yield RemoteEntry(name=prefix + key, kind=EntryKind.SECURE)

    def get_entry_value(
        self, entry: RemoteEntry, version_stage: str | None = None
    ) -> str | bytes | None:
        version = None
        if version_stage:
            try:
                version = int(version_stage)
            except ValueError as e:
                raise VersionStageNotFound(self.identity, entry.name, version_stage) from e

        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=entry.name,
                version=version,
                mount_point=self.mount_point,
                raise_on_deleted_version=True,
            )
        except Exception as e:
            if not is_not_found(e):
                raise
            if version_stage:
                raise VersionStageNotFound(self.identity, entry.name, version_stage) from e
            raise EntryNotFound(self.identity, entry.name) from e

        data = response["data"]["data"] or {}
        if set(data) == {"value"}:
            value = data["value"]
            return value if value is None or isinstance(value, str) else json.dumps(value)
        return json.dumps(data)

    def to_config_key(self, name: str) -> str:
        name = name.strip("/")
        if self.path and name.lower().startswith(self.path.lower() + "/"):
            name = name[len(self.path) + 1 :]
        return name.replace("/", ":")

    def close(self) -> None:
        # hvac.Client holds a requests session
        if self._client is not None:
            adapter = getattr(self._client, "adapter", None)
            close = getattr(adapter, "close", None)
            if callable(close):
                close()
            self._client = None
