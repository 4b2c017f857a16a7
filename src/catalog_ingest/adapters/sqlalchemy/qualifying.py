"""Qualifying artist and release sets, kept as temporary tables."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Final

from sqlalchemy import Column, Index, Integer, MetaData, Table, exists, func, select
from sqlalchemy.schema import CreateIndex, CreateTable, DropTable

from .staging import staging_table

if TYPE_CHECKING:
    from sqlalchemy import Connection, Select

log = getLogger(__name__)

# temporary tables live in the connection's own namespace, never in a schema
qualifying_metadata = MetaData()

qualifying_artists_table: Final[Table] = Table(
    "mb_qualifying_artists",
    qualifying_metadata,
    Column("mb_artist_id", Integer, nullable=False),
    Index("idx_mqa_id", "mb_artist_id"),
    prefixes=["TEMPORARY"],
)

qualifying_releases_table: Final[Table] = Table(
    "mb_qualifying_releases",
    qualifying_metadata,
    Column("mb_release_id", Integer, nullable=False),
    Index("idx_mqr_id", "mb_release_id"),
    prefixes=["TEMPORARY"],
)

QUALIFYING_TABLES: Final[tuple[Table, ...]] = (qualifying_artists_table, qualifying_releases_table)


@dataclass(frozen=True, slots=True)
class QualifyingCounts:
    artists: int
    releases: int


def qualifying_artists_query(artist_limit: int | None = None) -> Select[tuple[int]]:
    """Artists credited on at least one recording that has an ISRC."""

    credit_name = staging_table("artist_credit_name")
    recording = staging_table("recording")
    isrc = staging_table("isrc")

    query = (
        select(credit_name.c.artist)
        .distinct()
        .join(recording, recording.c.artist_credit == credit_name.c.artist_credit)
        .where(credit_name.c.artist.is_not(None))
        .where(exists().where(isrc.c.recording == recording.c.id))
    )
    if artist_limit is not None:
        query = query.order_by(credit_name.c.artist).limit(artist_limit)
    return query


def qualifying_releases_query() -> Select[tuple[int]]:
    """Releases whose first credited artist qualifies and that have cover art."""

    release = staging_table("release")
    credit_name = staging_table("artist_credit_name")
    cover_art = staging_table("cover_art")

    return (
        select(release.c.id)
        .distinct()
        .join(
            credit_name,
            (credit_name.c.artist_credit == release.c.artist_credit)
            & (credit_name.c.position == 0),
        )
        .join(
            qualifying_artists_table,
            qualifying_artists_table.c.mb_artist_id == credit_name.c.artist,
        )
        .where(exists().where(cover_art.c.release == release.c.id))
    )


class QualifyingSetBuilder:
    """Compute the filter sets that bound the transform to useful data."""

    def __init__(self, connection: Connection, *, artist_limit: int | None = None) -> None:
        self._connection = connection
        self._artist_limit = artist_limit

    def build(self) -> QualifyingCounts:
        artists = self.build_artists()
        releases = self.build_releases()
        return QualifyingCounts(artists=artists, releases=releases)

    def build_artists(self) -> int:
        log.info("Building qualifying artists list")
        count = self._rebuild(
            qualifying_artists_table,
            qualifying_artists_query(self._artist_limit),
        )
        log.info("%d qualifying artists found", count)
        return count

    def build_releases(self) -> int:
        log.info("Building qualifying releases list")
        count = self._rebuild(qualifying_releases_table, qualifying_releases_query())
        log.info("%d qualifying releases found", count)
        return count

    def _rebuild(self, table: Table, query: Select[tuple[int]]) -> int:
        column = next(iter(table.c))
        with self._connection.begin():
            self._connection.execute(DropTable(table, if_exists=True))
            self._connection.execute(CreateTable(table))
            self._connection.execute(table.insert().from_select([column.name], query))
            for index in table.indexes:
                self._connection.execute(CreateIndex(index))
            return self._connection.execute(select(func.count()).select_from(table)).scalar_one()


def drop_qualifying_tables(connection: Connection) -> None:
    for table in QUALIFYING_TABLES:
        connection.execute(DropTable(table, if_exists=True))
