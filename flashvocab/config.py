"""
Configuration management for flashvocab.

The configuration is stored as a TOML file in the data directory. It names
the store backend, where its file lives, and how to reach the search index.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

import tomli_w


CONFIG_FILENAME = "flashvocab.toml"
CONFIG_VERSION = 1

DEFAULT_STORE_KIND = "json"
DEFAULT_INDEX_URL = "http://localhost:8983"
DEFAULT_INDEX_CORE = "vocabulary"

INDEX_URL_ENV = "FLASHVOCAB_INDEX_URL"


@dataclass
class StoreOptions:
    """Options recognized by record store backends."""
    path: Optional[Path] = None
    indent: int = 2
    # Copy an unreadable store file aside before starting over
    keep_corrupt_copy: bool = True


@dataclass
class IndexConfig:
    """
    Where the remote search index lives.

    ``timeout=None`` leaves the HTTP client's own default in place.
    """
    url: str = DEFAULT_INDEX_URL
    core: str = DEFAULT_INDEX_CORE
    timeout: Optional[float] = None
    enabled: bool = True


@dataclass
class AppConfig:
    """Complete application configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    store_kind: str = DEFAULT_STORE_KIND
    store_path: Optional[Path] = None
    index: IndexConfig = field(default_factory=IndexConfig)

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def store_options(self) -> StoreOptions:
        return StoreOptions(path=self.store_path)


def _apply_env(config: AppConfig) -> AppConfig:
    url = os.environ.get(INDEX_URL_ENV)
    if url:
        config.index.url = url
    return config


def load_config(data_dir: Path) -> AppConfig:
    """
    Load configuration from a data directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = data_dir / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    index = data.get("index", {})
    store_path = store.get("path")

    config = AppConfig(
        path=data_dir,
        version=version,
        created=store.get("created", ""),
        store_kind=store.get("kind", DEFAULT_STORE_KIND),
        store_path=Path(store_path).expanduser() if store_path else None,
        index=IndexConfig(
            url=index.get("url", DEFAULT_INDEX_URL),
            core=index.get("core", DEFAULT_INDEX_CORE),
            timeout=index.get("timeout"),
            enabled=index.get("enabled", True),
        ),
    )
    return _apply_env(config)


def save_config(config: AppConfig) -> None:
    """
    Save configuration to the data directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    store: dict[str, Any] = {
        "version": config.version,
        "created": config.created,
        "kind": config.store_kind,
    }
    if config.store_path is not None:
        store["path"] = str(config.store_path)

    index: dict[str, Any] = {
        "url": config.index.url,
        "core": config.index.core,
        "enabled": config.index.enabled,
    }
    # TOML has no null
    if config.index.timeout is not None:
        index["timeout"] = config.index.timeout

    with open(config.config_path, "wb") as f:
        tomli_w.dump({"store": store, "index": index}, f)


def load_or_create_config(data_dir: Path) -> AppConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    if (data_dir / CONFIG_FILENAME).exists():
        return load_config(data_dir)
    config = AppConfig(path=data_dir)
    save_config(config)
    return _apply_env(config)
