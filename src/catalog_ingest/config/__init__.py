"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env, optional_positive_int_env, require_env_vars
from .errors import ConfigurationError, InvalidConfigurationError, MissingConfigurationError
from .http_client import HttpClientConfig, RateLimit
from .importer import DEFAULT_IMPORT_BATCH_SIZE, ImportConfig, get_import_config
from .logging import configure_logging
from .musicbrainz import (
    DEFAULT_DUMP_BASE_URL,
    LATEST_DUMP_DATE,
    MusicBrainzDumpConfig,
    get_musicbrainz_dump_config,
)
from .storage import (
    DatabaseConfig,
    StorageConfig,
    get_database_config,
    get_database_uri,
    get_storage_config,
)

__all__ = [
    "DEFAULT_DUMP_BASE_URL",
    "DEFAULT_IMPORT_BATCH_SIZE",
    "LATEST_DUMP_DATE",
    "ConfigurationError",
    "DatabaseConfig",
    "HttpClientConfig",
    "ImportConfig",
    "InvalidConfigurationError",
    "MissingConfigurationError",
    "MusicBrainzDumpConfig",
    "RateLimit",
    "StorageConfig",
    "configure_logging",
    "get_database_config",
    "get_database_uri",
    "get_import_config",
    "get_musicbrainz_dump_config",
    "get_storage_config",
    "optional_env",
    "optional_positive_int_env",
    "require_env_vars",
]
