"""Load source declarations from a sources.yaml file and build the sources.

```yaml
sources:
  remote:
    secrets:
      type: secrets_manager
      settings:
        secret_names: ["myapp-*"]
        region_name: us-east-1
      options:
        json_processing: true
        version_stage: AWSCURRENT
  files:
    defaults:
      path: defaults.yaml
```
"""

import logging
import os
from collections.abc import Callable
from pathlib import Path

import yaml
from pydantic import ValidationError

from .base import ConfigSource, ErrorCallback
from .environment import EnvironmentSource
from .files import DotEnvFileSource, FileSource, JsonFileSource, YamlFileSource
from .models import FileSourceConfigModel, SourcesConfigModel
from .remote import RemoteSourceLoader, RemoteStore
from .stores import (
    AppConfigurationStore,
    KeyVaultStore,
    ParameterStore,
    SecretsManagerStore,
    VaultStore,
)

logger = logging.getLogger(__name__)

STORE_TYPES: dict[str, Callable[..., RemoteStore]] = {
    "parameter_store": ParameterStore,
    "secrets_manager": SecretsManagerStore,
    "key_vault": KeyVaultStore,
    "app_configuration": AppConfigurationStore,
    "vault": VaultStore,
}

FILE_TYPES: dict[str, type[FileSource]] = {
    "yaml": YamlFileSource,
    "json": JsonFileSource,
    "dotenv": DotEnvFileSource,
}

_SUFFIX_FORMATS = {".yaml": "yaml", ".yml": "yaml", ".json": "json", ".env": "dotenv"}


def load_sources_config(config_path: Path | None = None) -> SourcesConfigModel:
    """Load source declarations from a sources.yaml file.

    Args:
        config_path: Optional path to the sources.yaml file.
                    If not provided, looks for:
                    1. FLEXCONF_SOURCES_CONFIG environment variable
                    2. ~/.flexconf/sources.yaml
                    3. ./sources.yaml

    Returns:
        SourcesConfigModel with the declared sources

    Raises:
        FileNotFoundError: If an explicitly named config file doesn't exist
        ValueError: If the config is invalid
    """
    if config_path is None:
        env_path = os.environ.get("FLEXCONF_SOURCES_CONFIG")
        if env_path:
            config_path = Path(env_path)
        else:
            candidates = [Path.home() / ".flexconf" / "sources.yaml", Path.cwd() / "sources.yaml"]
            for candidate in candidates:
                if candidate.exists():
                    config_path = candidate
                    break

            if config_path is None:
                logger.info("No sources config file found, using empty configuration")
                return SourcesConfigModel()

    if not config_path.exists():
        raise FileNotFoundError(f"Sources config file not found at {config_path}")

    logger.debug(f"Loading sources config from: {config_path}")

    try:
        with open(config_path) as f:
            raw_config = yaml.safe_load(f)
    except Exception as e:
        raise ValueError(f"Failed to parse YAML config file {config_path}: {e}") from e

    if not raw_config:
        logger.info("Empty sources config file, using empty configuration")
        return SourcesConfigModel()

    if not isinstance(raw_config, dict):
        raise ValueError(f"Invalid sources config {config_path}: root must be a mapping")

    sources_section = raw_config.get("sources") or {}

    try:
        config = SourcesConfigModel.model_validate(sources_section)
    except ValidationError as e:
        raise ValueError(f"Invalid sources config {config_path}: {e}") from e

    config = _resolve_paths(config, config_path.parent)
    logger.debug(
        f"Loaded sources config: {len(config.remote)} remote, {len(config.files)} files, "
        f"environment={'yes' if config.environment else 'no'}"
    )
    return config


def _resolve_paths(config: SourcesConfigModel, base_dir: Path) -> SourcesConfigModel:
    """Resolve relative file paths against the directory of the config file.

    Models are frozen, so updated copies are returned.
    """
    files = {
        name: file.model_copy(update={"path": base_dir / file.path})
        if not file.path.is_absolute()
        else file
        for name, file in config.files.items()
    }
    return config.model_copy(update={"files": files})


def build_sources(
    config: SourcesConfigModel,
    *,
    on_load_error: ErrorCallback | None = None,
) -> dict[str, ConfigSource]:
    """Instantiate every declared source, keyed by its declared name.

    Sources are created but not loaded. Environment sources are keyed
    ``"environment"``.

    Raises:
        ValueError: If a store cannot be built from its settings
    """
    sources: dict[str, ConfigSource] = {}

    for name, remote in config.remote.items():
        factory = STORE_TYPES[remote.type]
        try:
            store = factory(**remote.settings)
        except TypeError as e:
            raise ValueError(f"Invalid settings for {remote.type} source '{name}': {e}") from e
        sources[name] = RemoteSourceLoader(store, remote.options, on_load_error=on_load_error)
        logger.debug(f"Created {remote.type} source '{name}' for {store.identity}")

    for name, file in config.files.items():
        file_type = FILE_TYPES[_file_format(file)]
        sources[name] = file_type(file.path, file.options, on_load_error=on_load_error)
        logger.debug(f"Created {file_type.__name__} '{name}' for {file.path}")

    if config.environment is not None:
        sources["environment"] = EnvironmentSource(
            config.environment, on_load_error=on_load_error
        )

    return sources


def _file_format(file: FileSourceConfigModel) -> str:
    if file.format:
        return file.format
    name = file.path.name.lower()
    if name.startswith(".env"):
        return "dotenv"
    fmt = _SUFFIX_FORMATS.get(file.path.suffix.lower())
    if fmt is None:
        raise ValueError(f"Cannot infer format of {file.path}; set 'format' explicitly")
    return fmt
