"""MusicBrainz full-export download configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Final

from catalog_ingest import __version__

from .env import optional_env
from .http_client import HttpClientConfig, RateLimit
from .storage import StorageConfig, get_storage_config

DEFAULT_DUMP_BASE_URL: Final[str] = "https://data.musicbrainz.org/pub/musicbrainz/data/fullexport"
LATEST_DUMP_DATE: Final[str] = "latest"
DEFAULT_MAX_REDIRECTS: Final[int] = 5
DUMP_TIMEOUT_SECONDS: Final[float] = 60.0


@dataclass(frozen=True, slots=True)
class MusicBrainzDumpConfig:
    """Where to fetch the dump from and where to put it."""

    dump_dir: Path
    http: HttpClientConfig
    dump_date: str | None = None
    max_redirects: int = DEFAULT_MAX_REDIRECTS


def default_user_agent() -> str:
    return f"catalog-ingest/{__version__} (musicbrainz-import)"


def get_musicbrainz_dump_config(
    *,
    dump_dir: Path | None = None,
    dump_date: str | None = None,
    storage: StorageConfig | None = None,
) -> MusicBrainzDumpConfig:
    env_dir = optional_env("MUSICBRAINZ_DUMP_DIR")
    if dump_dir is None:
        dump_dir = Path(env_dir) if env_dir else (storage or get_storage_config()).dump_dir()

    http = HttpClientConfig(
        name="musicbrainz-dump",
        base_url=optional_env("MUSICBRAINZ_DUMP_BASE_URL") or DEFAULT_DUMP_BASE_URL,
        timeout_seconds=DUMP_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=2, per_seconds=1.0),
        default_headers={"User-Agent": optional_env("MUSICBRAINZ_USER_AGENT") or default_user_agent()},
    )
    return MusicBrainzDumpConfig(
        dump_dir=dump_dir.expanduser(),
        http=http,
        dump_date=dump_date or optional_env("MUSICBRAINZ_DUMP_DATE"),
    )
