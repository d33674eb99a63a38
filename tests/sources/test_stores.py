"""
Tests for the remote store adapters.

SDK clients are replaced by MagicMock objects, so none of the cloud SDKs need
to be installed. SDK "not found" exceptions are imitated by small exception
classes with the same shape (botocore's ``response`` dict, Azure's
``status_code``, hvac's ``InvalidPath`` class name).
"""

import base64
import json
import os
import sys
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from flexconf.core.errors import EntryNotFound, SourceUnavailable, VersionStageNotFound
from flexconf.sources import EntryKind, RemoteEntry, RemoteSourceLoader, RemoteSourceOptions
from flexconf.sources.stores import (
    AppConfigurationStore,
    KeyVaultStore,
    MemoryStore,
    ParameterStore,
    SecretsManagerStore,
    VaultStore,
)
from flexconf.sources.stores.app_configuration import is_connection_string


class FakeClientError(Exception):
    """Shaped like botocore.exceptions.ClientError."""

    def __init__(self, code: str):
        super().__init__(code)
        self.response = {"Error": {"Code": code, "Message": code}}


class ResourceNotFoundError(Exception):
    """Shaped like azure.core.exceptions.ResourceNotFoundError."""

    status_code = 404


class InvalidPath(Exception):
    """Shaped like hvac.exceptions.InvalidPath."""


def _paginator(pages):
    paginator = MagicMock()
    paginator.paginate.return_value = pages
    return paginator


class TestMemoryStore:
    def test_paging(self):
        store = MemoryStore([RemoteEntry(str(i)) for i in range(5)], page_size=2)
        assert [entry.name for entry in store.list_entries()] == ["0", "1", "2", "3", "4"]
        assert store.pages_served == 3

    def test_invalid_page_size(self):
        with pytest.raises(ValueError):
            MemoryStore(page_size=0)

    def test_version_lookup(self):
        store = MemoryStore(versions={"a": {"v1": "old"}})
        entry = RemoteEntry("a", "new", version_stage="v2")
        assert store.get_entry_value(entry) == "new"
        assert store.get_entry_value(entry, "v2") == "new"
        assert store.get_entry_value(entry, "v1") == "old"
        with pytest.raises(VersionStageNotFound):
            store.get_entry_value(entry, "v3")

    def test_custom_separator(self):
        assert MemoryStore(separator="__").to_config_key("a__b") == "a:b"
        assert MemoryStore(separator="").to_config_key("a/b") == "a/b"


class TestParameterStore:
    """Test AWS Systems Manager Parameter Store."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.get_paginator.return_value = _paginator(
            [
                {
                    "Parameters": [
                        {"Name": "/myapp/prod/db/host", "Type": "String", "Value": "db"},
                        {"Name": "/myapp/prod/hosts", "Type": "StringList", "Value": "a,b"},
                    ]
                },
                {
                    "Parameters": [
                        {"Name": "/myapp/prod/db/password", "Type": "SecureString", "Value": "pw"},
                        {"Name": "/myapp/prod/features", "Type": "String", "Value": '{"x": 1}'},
                    ]
                },
            ]
        )
        return client

    def test_list_entries(self, client):
        store = ParameterStore("/myapp/prod/", client=client)
        entries = list(store.list_entries())

        assert [entry.kind for entry in entries] == [
            EntryKind.PLAIN,
            EntryKind.LIST,
            EntryKind.SECURE,
            EntryKind.PLAIN,
        ]
        client.get_paginator.assert_called_once_with("get_parameters_by_path")
        client.get_paginator.return_value.paginate.assert_called_once_with(
            Path="/myapp/prod",
            Recursive=True,
            WithDecryption=True,
            PaginationConfig={"PageSize": 10},
        )

    def test_to_config_key(self):
        store = ParameterStore("/myapp/prod", client=MagicMock())
        assert store.to_config_key("/myapp/prod/db/host") == "db:host"
        assert store.to_config_key("/MyApp/Prod/db/host") == "db:host"
        assert store.to_config_key("/other/key") == "other:key"
        assert ParameterStore(client=MagicMock()).to_config_key("/a/b") == "a:b"

    def test_loader_end_to_end(self, client):
        options = RemoteSourceOptions(
            json_processing=True, json_processing_allow_list=["/myapp/prod/features"]
        )
        loader = RemoteSourceLoader(ParameterStore("/myapp/prod", client=client), options)

        assert loader.load() == {
            "db:host": "db",
            "hosts:0": "a",
            "hosts:1": "b",
            "db:password": "pw",
            "features:x": "1",
        }
        assert loader.name == "ssm:/myapp/prod"

    def test_lazy_client(self):
        fake_boto3 = MagicMock()
        with patch.dict(sys.modules, {"boto3": fake_boto3}):
            store = ParameterStore("/app", region_name="eu-west-1")
            assert store.client is fake_boto3.client.return_value
        fake_boto3.client.assert_called_once_with("ssm", region_name="eu-west-1")

    def test_missing_boto3(self):
        with patch.dict(sys.modules, {"boto3": None}):
            store = ParameterStore("/app")
            with pytest.raises(ImportError, match="pip install 'flexconf\\[aws\\]'"):
                store.client

    def test_close(self, client):
        store = ParameterStore("/app", client=client)
        store.close()
        client.close.assert_called_once()

    def test_listing_failure_is_source_unavailable(self):
        client = MagicMock()
        client.get_paginator.return_value.paginate.side_effect = FakeClientError(
            "AccessDeniedException"
        )
        loader = RemoteSourceLoader(
            ParameterStore("/app", client=client), RemoteSourceOptions(optional=False)
        )
        with pytest.raises(SourceUnavailable, match="AccessDeniedException"):
            loader.load()


class TestSecretsManagerStore:
    """Test AWS Secrets Manager."""

    def test_explicit_names(self):
        store = SecretsManagerStore(["myapp-database", "myapp-api"], client=MagicMock())
        entries = list(store.list_entries())
        assert [entry.name for entry in entries] == ["myapp-database", "myapp-api"]
        assert all(entry.kind is EntryKind.SECURE for entry in entries)

    def test_single_name_string(self):
        store = SecretsManagerStore("only", client=MagicMock())
        assert store.secret_names == ["only"]

    def test_prefix_expansion(self):
        client = MagicMock()
        client.get_paginator.return_value = _paginator(
            [
                {"SecretList": [{"Name": "myapp-db"}, {"Name": "other-myapp"}]},
                {"SecretList": [{"Name": "MyApp-cache"}]},
            ]
        )
        store = SecretsManagerStore(["myapp-*"], client=client)

        assert [entry.name for entry in store.list_entries()] == ["myapp-db", "MyApp-cache"]
        client.get_paginator.assert_called_once_with("list_secrets")
        client.get_paginator.return_value.paginate.assert_called_once_with(
            Filters=[{"Key": "name", "Values": ["myapp-"]}],
            PaginationConfig={"PageSize": 100},
        )

    def test_get_secret_string(self):
        client = MagicMock()
        client.get_secret_value.return_value = {"SecretString": '{"user": "admin"}'}
        store = SecretsManagerStore(["myapp-db"], client=client)

        value = store.get_entry_value(RemoteEntry("myapp-db"))

        assert value == '{"user": "admin"}'
        client.get_secret_value.assert_called_once_with(
            SecretId="myapp-db", VersionStage="AWSCURRENT"
        )

    def test_get_secret_binary(self):
        client = MagicMock()
        client.get_secret_value.return_value = {"SecretBinary": b"\x01\x02"}
        store = SecretsManagerStore(["cert"], client=client)
        assert store.get_entry_value(RemoteEntry("cert")) == base64.b64encode(b"\x01\x02").decode()

    def test_not_found(self):
        client = MagicMock()
        client.get_secret_value.side_effect = FakeClientError("ResourceNotFoundException")
        store = SecretsManagerStore(["gone"], client=client)

        with pytest.raises(EntryNotFound) as exc_info:
            store.get_entry_value(RemoteEntry("gone"))
        assert not isinstance(exc_info.value, VersionStageNotFound)

        with pytest.raises(VersionStageNotFound):
            store.get_entry_value(RemoteEntry("gone"), "AWSPENDING")

    def test_other_errors_propagate(self):
        client = MagicMock()
        client.get_secret_value.side_effect = FakeClientError("ThrottlingException")
        store = SecretsManagerStore(["s"], client=client)
        with pytest.raises(FakeClientError):
            store.get_entry_value(RemoteEntry("s"))

    def test_loader_flattens_json_secret(self):
        client = MagicMock()
        client.get_secret_value.side_effect = lambda SecretId, VersionStage: {
            "SecretString": json.dumps({"host": "db", "port": 5432})
        }
        loader = RemoteSourceLoader(
            SecretsManagerStore(["myapp-database"], client=client),
            RemoteSourceOptions(json_processing=True, version_stage="AWSPREVIOUS"),
        )

        assert loader.load() == {"myapp:database:host": "db", "myapp:database:port": "5432"}
        client.get_secret_value.assert_called_with(
            SecretId="myapp-database", VersionStage="AWSPREVIOUS"
        )

    def test_optional_source_skips_missing_secret(self):
        client = MagicMock()

        def get_secret_value(SecretId, VersionStage):
            if SecretId == "missing":
                raise FakeClientError("ResourceNotFoundException")
            return {"SecretString": "ok"}

        client.get_secret_value.side_effect = get_secret_value
        on_error = MagicMock()
        loader = RemoteSourceLoader(
            SecretsManagerStore(["missing", "present"], client=client), on_load_error=on_error
        )

        assert loader.load() == {"present": "ok"}
        assert isinstance(on_error.call_args[0][0], EntryNotFound)


class TestKeyVaultStore:
    """Test Azure Key Vault."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.list_properties_of_secrets.return_value = [
            SimpleNamespace(name="Database--Host", enabled=True),
            SimpleNamespace(name="Old--Secret", enabled=False),
            SimpleNamespace(name="Unknown", enabled=None),
        ]
        client.get_secret.side_effect = lambda name, version=None: SimpleNamespace(
            value=f"{name}@{version or 'latest'}"
        )
        return client

    def test_list_entries(self, client):
        store = KeyVaultStore("https://vault.example.net/", client=client)
        entries = list(store.list_entries())
        assert [entry.enabled for entry in entries] == [True, False, False]

    def test_loader(self, client):
        loader = RemoteSourceLoader(KeyVaultStore("https://vault.example.net/", client=client))
        assert loader.load() == {"Database:Host": "Database--Host@latest"}
        assert loader.tree().database.host.value == "Database--Host@latest"

    def test_version(self, client):
        loader = RemoteSourceLoader(
            KeyVaultStore("https://vault.example.net/", client=client),
            RemoteSourceOptions(version_stage="abc123"),
        )
        assert loader.load() == {"Database:Host": "Database--Host@abc123"}

    def test_version_belongs_to_one_secret(self, client):
        """Test secrets without the requested version are skipped by an optional source."""
        client.list_properties_of_secrets.return_value = [
            SimpleNamespace(name="Database--Host", enabled=True),
            SimpleNamespace(name="Database--Port", enabled=True),
        ]

        def get_secret(name, version=None):
            if name != "Database--Host":
                raise ResourceNotFoundError(name)
            return SimpleNamespace(value="db")

        client.get_secret.side_effect = get_secret
        on_error = MagicMock()
        loader = RemoteSourceLoader(
            KeyVaultStore("https://vault.example.net/", client=client),
            RemoteSourceOptions(version_stage="abc123"),
            on_load_error=on_error,
        )

        assert loader.load() == {"Database:Host": "db"}
        assert isinstance(on_error.call_args[0][0], VersionStageNotFound)

    def test_not_found(self, client):
        client.get_secret.side_effect = ResourceNotFoundError("missing")
        store = KeyVaultStore("https://vault.example.net/", client=client)

        with pytest.raises(EntryNotFound):
            store.get_entry_value(RemoteEntry("x"))
        with pytest.raises(VersionStageNotFound):
            store.get_entry_value(RemoteEntry("x"), "v1")

    def test_close(self, client):
        store = KeyVaultStore("https://vault.example.net/", client=client)
        store.close()
        client.close.assert_called_once()

    def test_missing_sdk(self):
        with patch.dict(sys.modules, {"azure.keyvault.secrets": None}):
            store = KeyVaultStore("https://vault.example.net/")
            with pytest.raises(ImportError, match="flexconf\\[azure\\]"):
                store.client


class TestAppConfigurationStore:
    """Test Azure App Configuration."""

    CONNECTION_STRING = "Endpoint=https://conf.azconfig.io;Id=abc;Secret=c2VjcmV0"

    def test_connection_string_detection(self):
        assert is_connection_string(self.CONNECTION_STRING)
        assert not is_connection_string("https://conf.azconfig.io")

    def test_identity_hides_secret(self):
        store = AppConfigurationStore(self.CONNECTION_STRING, client=MagicMock())
        assert store.identity == "https://conf.azconfig.io"
        assert "Secret" not in store.identity

    def test_list_entries(self):
        client = MagicMock()
        client.list_configuration_settings.return_value = [
            SimpleNamespace(key="App:Name", value="svc"),
            SimpleNamespace(key="App:Empty", value=None),
            SimpleNamespace(key="", value="x"),
            SimpleNamespace(key="App:Settings", value='{"a": 1}'),
        ]
        store = AppConfigurationStore(
            self.CONNECTION_STRING, key_filter="App:*", label="prod", client=client
        )
        loader = RemoteSourceLoader(store, RemoteSourceOptions(json_processing=True))

        assert loader.load() == {"App:Name": "svc", "App:Settings:a": "1"}
        client.list_configuration_settings.assert_called_once_with(
            key_filter="App:*", label_filter="prod"
        )

    def test_client_from_connection_string(self):
        sdk = MagicMock()
        with patch.dict(sys.modules, {"azure.appconfiguration": sdk}):
            store = AppConfigurationStore(self.CONNECTION_STRING)
            client = store.client
        sdk.AzureAppConfigurationClient.from_connection_string.assert_called_once_with(
            self.CONNECTION_STRING
        )
        assert client is sdk.AzureAppConfigurationClient.from_connection_string.return_value

    def test_client_from_endpoint(self):
        sdk = MagicMock()
        credential = object()
        with patch.dict(sys.modules, {"azure.appconfiguration": sdk}):
            store = AppConfigurationStore("https://conf.azconfig.io", credential=credential)
            store.client
        sdk.AzureAppConfigurationClient.assert_called_once_with(
            base_url="https://conf.azconfig.io", credential=credential
        )

    def test_close_releases_owned_credential(self):
        """Test a default credential created by the store is closed with it."""
        sdk = MagicMock()
        identity = MagicMock()
        modules = {"azure.appconfiguration": sdk, "azure.identity": identity}
        with patch.dict(sys.modules, modules):
            store = AppConfigurationStore("https://conf.azconfig.io")
            store.client
        store.close()

        sdk.AzureAppConfigurationClient.return_value.close.assert_called_once()
        identity.DefaultAzureCredential.return_value.close.assert_called_once()

    def test_close_keeps_caller_credential(self):
        sdk = MagicMock()
        credential = MagicMock()
        with patch.dict(sys.modules, {"azure.appconfiguration": sdk}):
            store = AppConfigurationStore("https://conf.azconfig.io", credential=credential)
            store.client
        store.close()

        credential.close.assert_not_called()


class TestVaultStore:
    """Test HashiCorp Vault KV v2."""

    @pytest.fixture
    def client(self):
        client = MagicMock()
        listings = {
            "myapp/": {"data": {"keys": ["database", "nested/"]}},
            "myapp/nested/": {"data": {"keys": ["token"]}},
        }
        secrets = {
            "myapp/database": {"host": "db", "port": 5432},
            "myapp/nested/token": {"value": "abc"},
        }
        kv = client.secrets.kv.v2
        kv.list_secrets.side_effect = lambda path, mount_point: listings[path]
        kv.read_secret_version.side_effect = lambda path, **kwargs: {
            "data": {"data": secrets[path]}
        }
        return client

    def test_recursive_listing(self, client):
        store = VaultStore(path="myapp", client=client)
        assert [entry.name for entry in store.list_entries()] == [
            "myapp/database",
            "myapp/nested/token",
        ]

    def test_loader(self, client):
        loader = RemoteSourceLoader(
            VaultStore(path="myapp", client=client), RemoteSourceOptions(json_processing=True)
        )
        assert loader.load() == {
            "database:host": "db",
            "database:port": "5432",
            "nested:token": "abc",
        }

    def test_version(self, client):
        store = VaultStore(path="myapp", client=client)
        store.get_entry_value(RemoteEntry("myapp/database"), "3")
        client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="myapp/database",
            version=3,
            mount_point="secret",
            raise_on_deleted_version=True,
        )

    def test_invalid_version(self, client):
        store = VaultStore(client=client)
        with pytest.raises(VersionStageNotFound):
            store.get_entry_value(RemoteEntry("a"), "latest")

    def test_not_found(self, client):
        client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("missing")
        store = VaultStore(client=client)
        with pytest.raises(EntryNotFound):
            store.get_entry_value(RemoteEntry("a"))

    def test_empty_mount(self, client):
        client.secrets.kv.v2.list_secrets.side_effect = InvalidPath("nothing")
        assert list(VaultStore(client=client).list_entries()) == []

    def test_identity(self):
        store = VaultStore(mount_point="kv", path="/app/", address="https://vault:8200")
        assert store.identity == "vault:https://vault:8200/kv/app"

    def test_client_requires_token(self):
        with patch.dict(sys.modules, {"hvac": MagicMock()}):
            with patch.dict(os.environ, {}, clear=True):
                store = VaultStore(address="https://vault:8200")
                with pytest.raises(SourceUnavailable, match="VAULT_TOKEN"):
                    store.client

    def test_client_authenticates(self):
        hvac = MagicMock()
        hvac.Client.return_value.is_authenticated.return_value = False
        with patch.dict(sys.modules, {"hvac": hvac}):
            with patch.dict(os.environ, {"MY_TOKEN": "t"}):
                store = VaultStore(address="https://vault:8200", token_env="MY_TOKEN")
                with pytest.raises(SourceUnavailable, match="Failed to authenticate"):
                    store.client
        hvac.Client.assert_called_once_with(url="https://vault:8200", token="t")
