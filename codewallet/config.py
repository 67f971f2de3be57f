"""
Configuration management for wallet stores.

The configuration is stored as a TOML file in the store directory.
It names the database file, the default tag color, and whether the
operations log is written.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import tomli_w

from .types import DEFAULT_TAG_COLOR, is_valid_color


CONFIG_FILENAME = "codewallet.toml"
CONFIG_VERSION = 1
DEFAULT_DATABASE = "wallet.db"


@dataclass
class StoreConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    default_tag_color: str = DEFAULT_TAG_COLOR
    database: str = DEFAULT_DATABASE
    ops_log: bool = True

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def database_path(self) -> Path:
        """Path to the SQLite database holding the wallet records."""
        return self.path / self.database


def get_default_store_path(store_path: Optional[Path] = None) -> Path:
    """
    Resolve the store directory.

    Priority:
    1. Explicit argument
    2. CODEWALLET_STORE_PATH environment variable
    3. ~/.codewallet
    """
    if store_path is not None:
        return Path(store_path).expanduser()
    env_path = os.environ.get("CODEWALLET_STORE_PATH")
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".codewallet"


def _table(data: dict, name: str, config_path: Path) -> dict:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ValueError(f"Invalid config {config_path}: [{name}] must be a table")
    return value


def load_config(store_path: Path) -> StoreConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid config {config_path}: {e}") from e

    store = _table(data, "store", config_path)
    version = store.get("version", 1)
    if not isinstance(version, int) or isinstance(version, bool):
        raise ValueError(f"Invalid config version in {config_path}: {version!r}")
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    tags = _table(data, "tags", config_path)
    color = tags.get("default_color", DEFAULT_TAG_COLOR)
    if not is_valid_color(color):
        raise ValueError(f"Invalid default tag color in {config_path}: {color!r}")

    database = store.get("database", DEFAULT_DATABASE)
    if not isinstance(database, str) or not database or Path(database).name != database:
        raise ValueError(f"Invalid database name in {config_path}: {database!r}")

    return StoreConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        default_tag_color=color,
        database=database,
        ops_log=bool(_table(data, "logging", config_path).get("ops_log", True)),
    )


def save_config(config: StoreConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
            "database": config.database,
        },
        "tags": {
            "default_color": config.default_tag_color,
        },
        "logging": {
            "ops_log": config.ops_log,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> StoreConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        return load_config(store_path)
    config = StoreConfig(path=store_path)
    save_config(config)
    return config
