"""
Per-user data locations.

Resolution order for the data directory:
1. FLASHVOCAB_DATA_DIR environment variable
2. The platform's per-user application data directory
"""

import os
import platform
from pathlib import Path
from typing import Optional

APP_NAME = "flashvocab"
DATA_DIR_ENV = "FLASHVOCAB_DATA_DIR"

# Default file names per store kind, so backends never share a file
STORE_FILENAMES = {
    "json": "flashvocab.json",
    "sqlite": "flashvocab.db",
}


def get_data_dir() -> Path:
    """Return the directory holding config, logs and the store subdirectory."""
    override = os.environ.get(DATA_DIR_ENV)
    if override:
        return Path(override).expanduser().resolve()

    system = platform.system()
    if system == "Darwin":
        return Path.home() / "Library" / "Application Support" / APP_NAME
    if system == "Windows":
        appdata = os.environ.get("APPDATA")
        base = Path(appdata) if appdata else Path.home() / "AppData" / "Roaming"
        return base / APP_NAME
    xdg = os.environ.get("XDG_DATA_HOME")
    base = Path(xdg) if xdg else Path.home() / ".local" / "share"
    return base / APP_NAME


def get_default_store_path(kind: str, data_dir: Optional[Path] = None) -> Path:
    """Default store file for a backend kind: ``<data dir>/data/<file>``."""
    filename = STORE_FILENAMES.get(kind, f"{APP_NAME}.{kind}")
    return (data_dir or get_data_dir()) / "data" / filename
