"""Location of the local sync database."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import env_flag, optional_env_var

APP_DIR_NAME: Final[str] = "rostersync"
DEFAULT_DB_FILENAME: Final[str] = "rostersync.db"

DATA_DIR_ENV: Final[str] = "ROSTERSYNC_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
SQL_ECHO_ENV: Final[str] = "ROSTERSYNC_SQL_ECHO"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Data directory holding the sqlite files; ``data_dir`` is resolved on creation."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def __post_init__(self) -> None:
        object.__setattr__(self, "data_dir", self.data_dir.expanduser().resolve())

    def path_for(self, filename: str, *, ensure: bool = True) -> Path:
        if ensure:
            self.data_dir.mkdir(parents=True, exist_ok=True)
        return self.data_dir / filename

    def database_path(self, *, ensure: bool = True) -> Path:
        return self.path_for(self.database_filename, ensure=ensure)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def _platform_data_home() -> Path:
    if os.name == "nt":
        local = optional_env_var("LOCALAPPDATA")
        return Path(local) if local else Path.home() / "AppData" / "Local"
    xdg = optional_env_var("XDG_DATA_HOME")
    return Path(xdg) if xdg else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    explicit = optional_env_var(DATA_DIR_ENV)
    data_dir = Path(explicit) if explicit else _platform_data_home() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir)


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a sqlite file inside the data directory."""

    echo = env_flag(SQL_ECHO_ENV)
    uri = optional_env_var(DATABASE_URI_ENV)
    if uri is None:
        database_path = (storage or get_storage_config()).database_path()
        uri = f"sqlite+pysqlite:///{database_path}"
    return DatabaseConfig(uri=uri, echo=echo)
