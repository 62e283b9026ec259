"""
Configuration management for tx2uml.

Settings are layered: built-in defaults, then a ``tx2uml.config.yaml`` file,
then environment variables, then command line flags.
"""

import dataclasses
import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from eth_utils import is_address

from .core.messages import Contract
from .utils.exceptions import ConfigError

DEFAULT_CONFIG_FILE = "tx2uml.config.yaml"

SOURCES = ("node", "indexer")
OUTPUT_FORMATS = ("puml", "png", "svg")

# Environment variable -> config field
ENV_VARS = {
    "TX2UML_SOURCE": "source",
    "TX2UML_NODE_URL": "node_url",
    "TX2UML_NETWORK": "network",
    "TX2UML_INDEXER_URL": "indexer_url",
    "TX2UML_INDEXER_API_KEY": "indexer_api_key",
    "PLANTUML_PATH": "plantuml_path",
}


@dataclass
class Tx2umlConfig:
    """Settings for fetching traces and writing diagrams."""

    source: str = "node"
    node_url: str = "http://localhost:8545"
    network: str = "mainnet"
    indexer_url: Optional[str] = None
    indexer_api_key: Optional[str] = None
    page_limit: int = 100
    timeout: int = 30
    output_format: str = "png"
    plantuml_path: str = "plantuml"
    show_gas: bool = False

    def validate(self) -> "Tx2umlConfig":
        if self.source not in SOURCES:
            raise ConfigError(
                f"Invalid source '{self.source}'. Must be one of: {', '.join(SOURCES)}",
                source="source",
            )
        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Invalid output format '{self.output_format}'. Must be one of: {', '.join(OUTPUT_FORMATS)}",
                source="output_format",
            )
        for name in ("page_limit", "timeout"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"'{name}' must be a positive integer, got {value!r}", source=name)
        if not isinstance(self.show_gas, bool):
            raise ConfigError(f"'show_gas' must be true or false, got {self.show_gas!r}", source="show_gas")
        return self

    def merge(self, overrides: Mapping[str, Any], source: str) -> "Tx2umlConfig":
        """New config with the non-None overrides applied."""
        fields = {f.name: f for f in dataclasses.fields(self)}
        values = {}
        for key, value in overrides.items():
            if key not in fields:
                raise ConfigError(f"Unknown configuration key '{key}' in {source}", source=source)
            if value is not None:
                values[key] = _coerce(fields[key], value, source)
        return dataclasses.replace(self, **values)

    @classmethod
    def from_yaml(cls, config_file: str = DEFAULT_CONFIG_FILE) -> "Tx2umlConfig":
        """Load configuration from a YAML file, defaults if it does not exist."""
        return cls().merge(_read_yaml(config_file), config_file).validate()

    def save_to_yaml(self, config_file: str = DEFAULT_CONFIG_FILE):
        with open(config_file, "w") as f:
            yaml.dump(dataclasses.asdict(self), f, default_flow_style=False, sort_keys=False)


def _coerce(field: dataclasses.Field, value: Any, source: str) -> Any:
    # Environment values always arrive as strings
    if not isinstance(value, str):
        return value
    if field.type in (int, "int"):
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"'{field.name}' must be an integer, got {value!r} in {source}", source=source) from None
    if field.type in (bool, "bool"):
        lowered = value.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ConfigError(f"'{field.name}' must be true or false, got {value!r} in {source}", source=source)
    return value


def _read_yaml(config_file: str) -> Dict[str, Any]:
    path = Path(config_file)
    if not path.exists():
        return {}
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to read config file {config_file}: {e}", source=config_file) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_file} must contain a mapping", source=config_file)
    return data


def load_config(
    path: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> Tx2umlConfig:
    """
    Build the effective configuration.

    Args:
        path: Config file to read. Defaults to ``tx2uml.config.yaml`` in the
              working directory, which may be absent. An explicit path must exist.
        env: Environment mapping, ``os.environ`` if not given
        overrides: Values from command line flags; None means not given

    Raises:
        ConfigError: If a file cannot be read or a value is invalid
    """
    if path is not None and not Path(path).exists():
        raise ConfigError(f"Config file not found: {path}", source=path)
    config_file = path or DEFAULT_CONFIG_FILE
    config = Tx2umlConfig().merge(_read_yaml(config_file), config_file)

    env = os.environ if env is None else env
    env_values = {field: env[name] for name, field in ENV_VARS.items() if env.get(name)}
    config = config.merge(env_values, "environment")

    if overrides:
        config = config.merge(overrides, "command line")
    return config.validate()


def load_contracts(path: str) -> Dict[str, Contract]:
    """
    Load the contracts mapping file.

    The file maps addresses to a name and an ABI, given inline or as a path
    relative to the mapping file::

        {"0xabc...": {"name": "Token", "abi": [...]},
         "0xdef...": {"name": "Vault", "abi_path": "out/Vault.abi"}}

    Returns:
        Contracts keyed by lowercased address
    """
    mapping_path = Path(path)
    data = _read_json(mapping_path)
    if not isinstance(data, dict):
        raise ConfigError(f"Contracts file {path} must contain an object keyed by address", source=path)

    contracts = {}
    for address, entry in data.items():
        if not is_address(address):
            raise ConfigError(f"Invalid contract address '{address}' in {path}", source=path)
        if isinstance(entry, str):
            entry = {"name": entry}
        if not isinstance(entry, dict):
            raise ConfigError(f"Entry for {address} in {path} must be an object or a name", source=path)

        abi = entry.get("abi")
        if abi is None and entry.get("abi_path"):
            abi = _read_json(mapping_path.parent / entry["abi_path"])
        # Compiler artifacts wrap the ABI
        if isinstance(abi, dict):
            abi = abi.get("abi")
        if abi is not None and not isinstance(abi, list):
            raise ConfigError(f"ABI for {address} in {path} must be a list", source=path)
        try:
            contracts[address.lower()] = Contract(address=address, name=entry.get("name"), abi=abi or [])
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise ConfigError(f"Invalid ABI for {address} in {path}: {e!r}", source=path) from e
    return contracts


def _read_json(path: Path) -> Any:
    try:
        with open(path, "r") as f:
            return json.load(f)
    except FileNotFoundError:
        raise ConfigError(f"File not found: {path}", source=str(path)) from None
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to read {path}: {e}", source=str(path)) from e
