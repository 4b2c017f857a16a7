from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import func, select

from catalog_ingest.adapters.sqlalchemy.mappings import (
    albums_table,
    band_aliases_table,
    bands_table,
    tracks_table,
)
from catalog_ingest.adapters.sqlalchemy.qualifying import QualifyingSetBuilder
from catalog_ingest.adapters.sqlalchemy.staging import StagingLoader, staging_table
from catalog_ingest.adapters.sqlalchemy.transform import (
    _BatchedStage,  # pyright: ignore[reportPrivateUsage]
    TransformLoader,
)
from catalog_ingest.domain.import_pipeline import BatchWindow
from catalog_ingest.domain.model import Band, ReleaseType, Source

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path

    from sqlalchemy import Table
    from sqlalchemy.engine import Connection

    from catalog_ingest.adapters.sqlalchemy.unit_of_work import SqlAlchemyCatalogUnitOfWork
    from catalog_ingest.domain.import_pipeline import ImportReport
    from tests.helpers.dump_files import DumpBuilder

    UnitOfWorkFactory = Callable[[], SqlAlchemyCatalogUnitOfWork]

_CATALOG_TABLES = (bands_table, albums_table, tracks_table, band_aliases_table)


def _import(connection: Connection, *, batch_size: int = 5000) -> ImportReport:
    QualifyingSetBuilder(connection).build()
    return TransformLoader(connection, batch_size=batch_size).run()


def _count(connection: Connection, table: Table) -> int:
    with connection.begin():
        return connection.execute(select(func.count()).select_from(table)).scalar_one()


def _slugs(connection: Connection) -> dict[str, str]:
    with connection.begin():
        rows = connection.execute(select(bands_table.c.musicbrainz_id, bands_table.c.slug))
        return dict(rows.tuples().all())


def test_import_builds_catalog(
    staged_connection: Connection,
    catalog_unit_of_work: UnitOfWorkFactory,
) -> None:
    report = _import(staged_connection)

    assert [stage.name for stage in report.stages] == [
        "bands",
        "albums",
        "tracks",
        "band aliases",
    ]
    assert report.succeeded
    assert report.stage("bands").row_count == 2
    assert report.stage("albums").row_count == 2
    assert report.stage("tracks").row_count == 2
    assert report.stage("band aliases").row_count == 2

    with catalog_unit_of_work() as uow:
        band = uow.repositories.bands.get_by_musicbrainz_id("artist-0001")
        assert band is not None
        assert band.name == "The Band"
        assert band.slug == "the-band"
        assert band.genres == ["rock", "indie"]
        assert band.artist_type == "Group"
        assert band.country == "GB"
        assert band.source is Source.EXTERNAL
        assert band.verified

        namesake = uow.repositories.bands.get_by_musicbrainz_id("artist-0002")
        assert namesake is not None
        assert namesake.genres == []
        assert uow.repositories.bands.get_by_musicbrainz_id("artist-0003") is None


def test_album_is_earliest_release_of_its_group(
    staged_connection: Connection,
    catalog_unit_of_work: UnitOfWorkFactory,
) -> None:
    _import(staged_connection)

    with catalog_unit_of_work() as uow:
        albums = uow.repositories.albums
        band = uow.repositories.bands.get_by_musicbrainz_id("artist-0001")
        debut = albums.get_by_musicbrainz_release_id("release-1001")
        assert band is not None
        assert debut is not None
        assert debut.name == "Debut"
        assert debut.band_id == band.id
        assert debut.release_date == date(1999, 1, 1)
        assert debut.release_type is ReleaseType.ALBUM
        assert debut.country == "GB"
        assert debut.cover_art_url == "https://coverartarchive.org/release/release-1001/front-500"

        # the later release of the same group and the release without cover art
        assert albums.get_by_musicbrainz_release_id("release-1000") is None
        assert albums.get_by_musicbrainz_release_id("release-1002") is None

        split = albums.get_by_musicbrainz_release_id("release-1003")
        assert split is not None
        assert split.release_date is None
        assert split.release_type is ReleaseType.OTHER


def test_one_track_per_recording(
    staged_connection: Connection,
    catalog_unit_of_work: UnitOfWorkFactory,
) -> None:
    _import(staged_connection)

    assert _count(staged_connection, tracks_table) == 2
    with catalog_unit_of_work() as uow:
        debut = uow.repositories.albums.get_by_musicbrainz_release_id("release-1001")
        track = uow.repositories.tracks.get_by_musicbrainz_recording_id("recording-0100")
        assert debut is not None
        assert track is not None
        # lowest track id wins among tracks of imported albums
        assert track.name == "Track 3001"
        assert track.album_id == debut.id
        assert track.band_id == debut.band_id
        assert track.isrc == "GBAAA0000001"
        assert track.duration_ms == 200_000
        assert (track.disc_number, track.track_number) == (1, 1)
        # data tracks are never imported
        assert uow.repositories.tracks.get_by_musicbrainz_recording_id("recording-0101") is None


def test_aliases_are_deduplicated(
    staged_connection: Connection,
    catalog_unit_of_work: UnitOfWorkFactory,
) -> None:
    _import(staged_connection)

    with catalog_unit_of_work() as uow:
        band = uow.repositories.bands.get_by_musicbrainz_id("artist-0001")
        assert band is not None and band.id is not None
        aliases = uow.repositories.band_aliases.list_for_band(band.id)
        assert [(alias.name, alias.locale) for alias in aliases] == [
            ("Band, The", None),
            ("ザ・バンド", "ja"),
        ]


def test_rerun_is_idempotent(staged_connection: Connection) -> None:
    _import(staged_connection)
    slugs = _slugs(staged_connection)
    counts = [_count(staged_connection, table) for table in _CATALOG_TABLES]

    report = _import(staged_connection)

    assert report.succeeded
    assert _slugs(staged_connection) == slugs
    assert [_count(staged_connection, table) for table in _CATALOG_TABLES] == counts


def test_user_edits_survive_reimport(
    staged_connection: Connection,
    catalog_unit_of_work: UnitOfWorkFactory,
) -> None:
    _import(staged_connection)
    with catalog_unit_of_work() as uow:
        band = uow.repositories.bands.get_by_musicbrainz_id("artist-0001")
        assert band is not None
        band.mark_user_submitted()
        band.name = "The Band (edited)"
        uow.commit()

    artist = staging_table("artist")
    with staged_connection.begin():
        staged_connection.execute(artist.update().values(name="Renamed Upstream"))

    _import(staged_connection)

    with catalog_unit_of_work() as uow:
        edited = uow.repositories.bands.get_by_musicbrainz_id("artist-0001")
        refreshed = uow.repositories.bands.get_by_musicbrainz_id("artist-0002")
        assert edited is not None and refreshed is not None
        assert edited.name == "The Band (edited)"
        assert edited.source is Source.USER_SUBMITTED
        assert refreshed.name == "Renamed Upstream"
        # slugs are never reassigned on refresh
        assert refreshed.slug == "the-band-2"


def test_existing_external_rows_are_refreshed_and_verified(
    staged_connection: Connection,
    catalog_unit_of_work: UnitOfWorkFactory,
) -> None:
    with catalog_unit_of_work() as uow:
        uow.repositories.bands.add(
            Band(name="Stale", slug="stale", musicbrainz_id="artist-0001", verified=False)
        )
        uow.commit()

    _import(staged_connection)

    with catalog_unit_of_work() as uow:
        band = uow.repositories.bands.get_by_musicbrainz_id("artist-0001")
        assert band is not None
        assert band.name == "The Band"
        assert band.slug == "stale"
        assert band.verified


def test_slugs_skip_taken_values(
    staged_connection: Connection,
    catalog_unit_of_work: UnitOfWorkFactory,
) -> None:
    with catalog_unit_of_work() as uow:
        existing = Band(name="The Band", slug="the-band", source=Source.USER_SUBMITTED)
        uow.repositories.bands.add(existing)
        uow.commit()

    _import(staged_connection)

    slugs = _slugs(staged_connection)
    assert slugs["artist-0001"] == "the-band-2"
    assert slugs["artist-0002"] == "the-band-3"


def test_single_row_batches_keep_slugs_across_reimports(staged_connection: Connection) -> None:
    first = _import(staged_connection, batch_size=1)
    second = _import(staged_connection, batch_size=1)

    assert first.succeeded
    assert second.succeeded
    assert sorted(_slugs(staged_connection).values()) == ["the-band", "the-band-2"]
    assert _count(staged_connection, band_aliases_table) == 2
    assert _count(staged_connection, tracks_table) == 2


def test_failed_batch_does_not_stop_the_stage(
    connection: Connection,
    dump_dir: Path,
    sample_dump_builder: DumpBuilder,
) -> None:
    # an artist without a name violates bands.name NOT NULL
    sample_dump_builder.artist(4, None).credit(4, 4).recording(104, 4, isrcs=("GBCCC0000001",))
    sample_dump_builder.write(dump_dir)
    StagingLoader(connection, dump_dir).load()

    report = _import(connection, batch_size=1)

    bands = report.stage("bands")
    assert bands.total == 3
    assert bands.batches == 3
    assert bands.failed_batches == [BatchWindow(offset=2, limit=1)]
    assert bands.row_count == 2
    assert not report.succeeded
    assert report.stage("albums").succeeded
    assert _count(connection, albums_table) == 2


def test_batch_size_must_be_positive(connection: Connection) -> None:
    with pytest.raises(ValueError, match="batch_size"):
        TransformLoader(connection, batch_size=0)


def test_stage_base_requires_query_and_loader(connection: Connection) -> None:
    with pytest.raises(TypeError, match="abstract"):
        _BatchedStage(connection, batch_size=1)  # pyright: ignore[reportAbstractUsage]
