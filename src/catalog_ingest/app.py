"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from catalog_ingest.adapters.musicbrainz_dump import DumpDownloader
from catalog_ingest.adapters.sqlalchemy.cleanup import drop_staging as drop_staging_namespace
from catalog_ingest.adapters.sqlalchemy.qualifying import QualifyingSetBuilder
from catalog_ingest.adapters.sqlalchemy.staging import StagingLoader, attach_staging_namespace
from catalog_ingest.adapters.sqlalchemy.transform import TransformLoader
from catalog_ingest.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    connect,
    is_started,
    startup,
)
from catalog_ingest.config import get_import_config, get_musicbrainz_dump_config
from catalog_ingest.domain.errors import StagingNotLoadedError
from catalog_ingest.domain.model import Source

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from catalog_ingest.adapters.musicbrainz_dump import DumpDownloadResult
    from catalog_ingest.adapters.sqlalchemy.staging import StagingLoadResult
    from catalog_ingest.config import ImportConfig, MusicBrainzDumpConfig
    from catalog_ingest.domain.import_pipeline import ImportReport
    from catalog_ingest.domain.ports.unit_of_work import CatalogUnitOfWork

type UnitOfWorkFactory = Callable[[], CatalogUnitOfWork]


log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CatalogSummary:
    bands: int
    external_bands: int
    albums: int
    tracks: int
    band_aliases: int


@dataclass(frozen=True, slots=True)
class FullImportResult:
    download: DumpDownloadResult
    staging: StagingLoadResult
    report: ImportReport


def _ensure_started() -> None:
    if not is_started():
        startup()


def download_dump(
    *,
    dump_dir: Path | None = None,
    dump_date: str | None = None,
    config: MusicBrainzDumpConfig | None = None,
) -> DumpDownloadResult:
    """Download and extract the MusicBrainz full-export archives."""

    effective_config = config or get_musicbrainz_dump_config(dump_dir=dump_dir, dump_date=dump_date)
    log.info("Starting MusicBrainz dump download into %s", effective_config.dump_dir)
    return DumpDownloader(config=effective_config).download()


def load_staging(
    *,
    dump_dir: Path | None = None,
    config: ImportConfig | None = None,
) -> StagingLoadResult:
    """Recreate the staging namespace and load every extracted dump file."""

    _ensure_started()
    effective_dir = dump_dir or get_musicbrainz_dump_config().dump_dir
    effective_config = config or get_import_config()
    with connect() as connection:
        result = StagingLoader(
            connection,
            effective_dir,
            sqlite_staging_path=effective_config.sqlite_staging_path,
        ).load()
    log.info(
        "Staging load finished: rows=%d, missing=%s, indexes=%d",
        result.total_rows,
        ", ".join(result.missing_tables) or "none",
        result.index_count,
    )
    return result


def run_import(
    *,
    batch_size: int | None = None,
    artist_limit: int | None = None,
    config: ImportConfig | None = None,
) -> ImportReport:
    """Build the qualifying sets and transform staging rows into the catalog."""

    _ensure_started()
    effective_config = config or get_import_config(
        batch_size=batch_size,
        artist_limit=artist_limit,
    )
    log.info(
        "Starting import: batch_size=%d, artist_limit=%s",
        effective_config.batch_size,
        effective_config.artist_limit,
    )
    with connect() as connection:
        with connection.begin():
            available = attach_staging_namespace(
                connection,
                sqlite_path=effective_config.sqlite_staging_path,
            )
        if not available:
            raise StagingNotLoadedError("Staging schema not found; run load-staging first")
        QualifyingSetBuilder(connection, artist_limit=effective_config.artist_limit).build()
        report = TransformLoader(connection, batch_size=effective_config.batch_size).run()

    for stage in report.stages:
        log.info(
            "%s: %d source rows, %d canonical rows, %d failed batches",
            stage.name,
            stage.total,
            stage.row_count,
            len(stage.failed_batches),
        )
    return report


def drop_staging(*, config: ImportConfig | None = None) -> None:
    """Drop the staging namespace and the qualifying sets."""

    _ensure_started()
    effective_config = config or get_import_config()
    with connect() as connection:
        drop_staging_namespace(connection, sqlite_staging_path=effective_config.sqlite_staging_path)


def full_import(
    *,
    dump_dir: Path | None = None,
    dump_date: str | None = None,
    batch_size: int | None = None,
    artist_limit: int | None = None,
) -> FullImportResult:
    """Download, stage and import, dropping the staging data whatever happens."""

    _ensure_started()
    dump_config = get_musicbrainz_dump_config(dump_dir=dump_dir, dump_date=dump_date)
    import_config = get_import_config(batch_size=batch_size, artist_limit=artist_limit)
    try:
        download = download_dump(config=dump_config)
        staging = load_staging(dump_dir=dump_config.dump_dir, config=import_config)
        report = run_import(config=import_config)
    finally:
        drop_staging(config=import_config)
    return FullImportResult(download=download, staging=staging, report=report)


def catalog_summary(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> CatalogSummary:
    """Count the canonical rows currently in the catalog."""

    _ensure_started()
    effective_uow = unit_of_work_factory or SqlAlchemyCatalogUnitOfWork
    with effective_uow() as uow:
        repositories = uow.repositories
        return CatalogSummary(
            bands=repositories.bands.count(),
            external_bands=repositories.bands.count_by_source(Source.EXTERNAL),
            albums=repositories.albums.count(),
            tracks=repositories.tracks.count(),
            band_aliases=repositories.band_aliases.count(),
        )
