"""
AWS Systems Manager Parameter Store.

Every parameter below a path becomes one entry. Names are mapped to keys by
removing the path prefix and turning ``/`` into ``:``, so with path
``/myapp/prod`` the parameter ``/myapp/prod/db/host`` is read as ``db:host``.

``StringList`` parameters are expanded into indexed keys by the loader.
``SecureString`` parameters are decrypted by the service.
"""

import logging
from collections.abc import Iterator
from typing import Any

from ..remote import EntryKind, RemoteEntry, RemoteStore
from ._aws import create_client

logger = logging.getLogger(__name__)

PARAMETER_KINDS = {
    "String": EntryKind.PLAIN,
    "StringList": EntryKind.LIST,
    "SecureString": EntryKind.SECURE,
}


class ParameterStore(RemoteStore):
    """Read every parameter below a path (recursive, decrypted, paginated)."""

    def __init__(
        self,
        path: str = "/",
        *,
        client: Any = None,
        page_size: int = 10,
        **client_kwargs: Any,
    ):
        """Create the store.

        Args:
            path: Parameter path to read, e.g. ``/myapp/prod``
            client: Pre-built ``ssm`` client; created lazily with boto3 when omitted
            page_size: Parameters per ``GetParametersByPath`` page (max 10)
            **client_kwargs: Passed to ``boto3.client("ssm", ...)``
        """
        self.path = "/" + path.strip("/") if path.strip("/") else "/"
        self.page_size = page_size
        self._client = client
        self._client_kwargs = client_kwargs

    @property
    def identity(self) -> str:
        return f"ssm:{self.path}"

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = create_client("ssm", **self._client_kwargs)
        return self._client

    def list_entries(self) -> Iterator[RemoteEntry]:
        paginator = self.client.get_paginator("get_parameters_by_path")
        pages = paginator.paginate(
            Path=self.path,
            Recursive=True,
            WithDecryption=True,
            PaginationConfig={"PageSize": self.page_size},
        )
        for page in pages:
            for parameter in page.get("Parameters", []):
                yield RemoteEntry(
                    name=parameter["Name"],
                    raw_value=parameter.get("Value"),
                    kind=PARAMETER_KINDS.get(parameter.get("Type", "String"), EntryKind.PLAIN),
                )

    def to_config_key(self, name: str) -> str:
        if self.path != "/" and name.lower().startswith(self.path.lower()):
            name = name[len(self.path) :]
        return name.strip("/").replace("/", ":")

    def close(self) -> None:
        if self._client is not None:
            close = getattr(self._client, "close", None)
            if callable(close):
                close()
            self._client = None
