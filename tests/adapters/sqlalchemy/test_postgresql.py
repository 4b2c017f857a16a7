from __future__ import annotations

from types import SimpleNamespace
from typing import TYPE_CHECKING, Any, Self

from sqlalchemy.dialects import postgresql

from catalog_ingest.adapters.musicbrainz_dump.schema import Iso31661Record
from catalog_ingest.adapters.sqlalchemy.qualifying import (
    qualifying_artists_query,
    qualifying_releases_query,
)
from catalog_ingest.adapters.sqlalchemy.staging import StagingLoader, drop_staging_namespace
from catalog_ingest.adapters.sqlalchemy.transform import AlbumStage, BandAliasStage, TrackStage
from catalog_ingest.domain.import_pipeline import BatchWindow

if TYPE_CHECKING:
    from pathlib import Path

    from psycopg import sql
    from sqlalchemy.sql import ClauseElement


class FakeCopy:
    def __init__(self) -> None:
        self.lines: list[bytes] = []

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def write(self, data: bytes) -> None:
        self.lines.append(data)


class FakeCursor:
    def __init__(self) -> None:
        self.statements: list[sql.Composable] = []
        self.copies: list[FakeCopy] = []

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None

    def copy(self, statement: sql.Composable) -> FakeCopy:
        self.statements.append(statement)
        copy = FakeCopy()
        self.copies.append(copy)
        return copy


class FakeDriverConnection:
    def __init__(self) -> None:
        self.cursor_instance = FakeCursor()

    def cursor(self) -> FakeCursor:
        return self.cursor_instance


class RecordingConnection:
    """Stands in for a PostgreSQL connection; keeps what would be executed."""

    def __init__(self) -> None:
        self.dialect = postgresql.dialect()
        self.driver_connection = FakeDriverConnection()
        self.connection = SimpleNamespace(driver_connection=self.driver_connection)
        self.executed: list[ClauseElement] = []

    def execute(self, statement: ClauseElement, *args: Any) -> None:
        self.executed.append(statement)


def _compile(statement: ClauseElement) -> str:
    return str(statement.compile(dialect=postgresql.dialect()))


def _last_statement(stage_type: type[AlbumStage | TrackStage | BandAliasStage]) -> str:
    connection = RecordingConnection()
    stage = stage_type(connection, batch_size=100)  # pyright: ignore[reportArgumentType]
    stage.load_batch(BatchWindow(offset=0, limit=100))
    return _compile(connection.executed[-1])


def test_copy_streams_each_line_into_staging(tmp_path: Path) -> None:
    path = tmp_path / "iso_3166_1"
    path.write_bytes(b"10\tGB\n11\tUS\n12\t\\N\n")
    connection = RecordingConnection()
    loader = StagingLoader(
        connection,  # pyright: ignore[reportArgumentType]
        tmp_path,
        records=(Iso31661Record,),
    )

    rows = loader.load_table(Iso31661Record, path)

    cursor = connection.driver_connection.cursor_instance
    assert rows == 3
    assert [statement.as_string() for statement in cursor.statements] == [
        'COPY "musicbrainz_staging"."iso_3166_1" ("area", "code") FROM STDIN'
    ]
    assert cursor.copies[0].lines == [b"10\tGB\n", b"11\tUS\n", b"12\t\\N\n"]


def test_album_upsert_compiles_for_postgresql() -> None:
    compiled = _last_statement(AlbumStage)

    assert compiled.startswith("INSERT INTO albums (name, band_id, musicbrainz_release_id")
    assert "FROM musicbrainz_staging.release" in compiled
    assert "make_date(" in compiled
    assert "NULLS LAST" in compiled
    assert "ON CONFLICT (musicbrainz_release_id) DO UPDATE SET" in compiled
    assert "WHERE albums.source = " in compiled


def test_track_upsert_compiles_for_postgresql() -> None:
    compiled = _last_statement(TrackStage)

    assert compiled.startswith("INSERT INTO tracks (name, band_id, album_id")
    assert "FROM musicbrainz_staging.track" in compiled
    assert "ON CONFLICT (musicbrainz_recording_id) DO UPDATE SET" in compiled
    assert "WHERE tracks.source = " in compiled


def test_alias_insert_compiles_for_postgresql() -> None:
    compiled = _last_statement(BandAliasStage)

    assert compiled.startswith("INSERT INTO band_aliases (band_id, name, locale)")
    assert "IS NOT DISTINCT FROM" in compiled
    assert compiled.endswith("ON CONFLICT DO NOTHING")


def test_qualifying_queries_compile_for_postgresql() -> None:
    artists = _compile(qualifying_artists_query(artist_limit=5))
    releases = _compile(qualifying_releases_query())

    assert artists.startswith("SELECT DISTINCT musicbrainz_staging.artist_credit_name.artist")
    assert "ORDER BY musicbrainz_staging.artist_credit_name.artist" in artists
    assert "LIMIT " in artists
    assert releases.startswith("SELECT DISTINCT musicbrainz_staging.release.id")
    assert "mb_qualifying_artists" in releases
    assert "musicbrainz_staging.cover_art" in releases


def test_staging_schema_is_dropped_with_cascade() -> None:
    connection = RecordingConnection()

    drop_staging_namespace(connection)  # pyright: ignore[reportArgumentType]

    assert [_compile(statement) for statement in connection.executed] == [
        "DROP SCHEMA IF EXISTS musicbrainz_staging CASCADE"
    ]
