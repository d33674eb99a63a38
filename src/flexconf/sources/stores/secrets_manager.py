"""
AWS Secrets Manager.

Secrets are named explicitly; a name ending in ``*`` selects every secret
whose name starts with the part before the star. Secret names map to keys by
turning ``-`` into ``:`` (``myapp-database`` is read as ``myapp:database``).

JSON secrets (``{"host": "...", "password": "..."}``) are flattened below the
secret key when JSON processing is enabled on the loader.
"""

import base64
import logging
from collections.abc import Iterator, Sequence
from typing import Any

from flexconf.core.errors import EntryNotFound, VersionStageNotFound

from ..remote import EntryKind, RemoteEntry, RemoteStore
from ._aws import create_client
from ._errors import is_not_found

logger = logging.getLogger(__name__)

DEFAULT_VERSION_STAGE = "AWSCURRENT"


class SecretsManagerStore(RemoteStore):
    """Read a fixed set of secrets, with ``*`` prefix expansion."""

    supports_version_stages = True

    def __init__(
        self,
        secret_names: Sequence[str],
        *,
        client: Any = None,
        page_size: int = 100,
        **client_kwargs: Any,
    ):
        """Create the store.

        Args:
            secret_names: Secret names or ARNs; ``prefix*`` selects by prefix
            client: Pre-built ``secretsmanager`` client; created lazily with
                boto3 when omitted
            page_size: Secrets per ``ListSecrets`` page
            **client_kwargs: Passed to ``boto3.client("secretsmanager", ...)``
        """
        if isinstance(secret_names, str):
            secret_names = [secret_names]
        self.secret_names = list(secret_names)
        self.page_size = page_size
        self._client = client
        self._client_kwargs = client_kwargs

    @property
    def identity(self) -> str:
        return f"secretsmanager:{','.join(self.secret_names)}"

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_client("secretsmanager", **self._client_kwargs)
        return self._client

    def list_entries(self) -> Iterator[RemoteEntry]:
        for name in self.secret_names:
            if name.endswith("*"):
                yield from self._list_by_prefix(name[:-1])
            else:
                yield RemoteEntry(name=name, kind=EntryKind.SECURE)

    def _list_by_prefix(self, prefix: str) -> Iterator[RemoteEntry]:
        paginator = self.client.get_paginator("list_secrets")
        pages = paginator.paginate(
            Filters=[{"Key": "name", "Values": [prefix]}],
            PaginationConfig={"PageSize": self.page_size},
        )
        for page in pages:
            for secret in page.get("SecretList", []):
                name = secret.get("Name")
                # The name filter matches words anywhere in the name
                if name and name.lower().startswith(prefix.lower()):
                    yield RemoteEntry(name=name, kind=EntryKind.SECURE)

    def get_entry_value(
        self, entry: RemoteEntry, version_stage: str | None = None
    ) -> str | bytes | None:
        try:
            response = self.client.get_secret_value(
                SecretId=entry.name, VersionStage=version_stage or DEFAULT_VERSION_STAGE
            )
        except Exception as e:
            if not is_not_found(e):
                raise
            if version_stage and version_stage != DEFAULT_VERSION_STAGE:
                raise VersionStageNotFound(self.identity, entry.name, version_stage) from e
            raise EntryNotFound(self.identity, entry.name) from e

        if response.get("SecretString") is not None:
            return response["SecretString"]
        if response.get("SecretBinary") is not None:
            return base64.b64encode(response["SecretBinary"]).decode("ascii")
        return None

    def to_config_key(self, name: str) -> str:
        return name.replace("-", ":")

    def close(self) -> None:
        if self._client is not None:
            close = getattr(self._client, "close", None)
            if callable(close):
                close()
            self._client = None
