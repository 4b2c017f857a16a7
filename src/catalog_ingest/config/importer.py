"""Defaults for the staging load and transform-and-load runs."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env, optional_positive_int_env
from .storage import StorageConfig, get_storage_config

DEFAULT_IMPORT_BATCH_SIZE = 5000


@dataclass(frozen=True, slots=True)
class ImportConfig:
    batch_size: int = DEFAULT_IMPORT_BATCH_SIZE
    artist_limit: int | None = None
    # only used when the catalog lives in SQLite; ":memory:" keeps staging per connection
    sqlite_staging_path: str = ":memory:"


def get_import_config(
    *,
    batch_size: int | None = None,
    artist_limit: int | None = None,
    storage: StorageConfig | None = None,
) -> ImportConfig:
    staging_path = optional_env("CATALOG_STAGING_SQLITE_PATH")
    if staging_path is None:
        staging_path = str((storage or get_storage_config()).staging_database_path())
    return ImportConfig(
        batch_size=batch_size
        or optional_positive_int_env("CATALOG_IMPORT_BATCH_SIZE")
        or DEFAULT_IMPORT_BATCH_SIZE,
        artist_limit=artist_limit or optional_positive_int_env("CATALOG_IMPORT_ARTIST_LIMIT"),
        sqlite_staging_path=staging_path,
    )
