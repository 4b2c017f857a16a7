"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from sqlalchemy import func, select

from catalog_ingest.adapters.sqlalchemy.mappings import (
    albums_table,
    band_aliases_table,
    bands_table,
    tracks_table,
)
from catalog_ingest.domain.model import Album, Band, BandAlias, Track

if TYPE_CHECKING:
    from sqlalchemy import Table
    from sqlalchemy.orm import Session

    from catalog_ingest.domain.model import Source


class SqlAlchemyCatalogRepository[TEntity: (Band, Album, Track)]:
    """Shared helpers for bands, albums and tracks."""

    def __init__(self, session: Session, entity_cls: type[TEntity], table: Table) -> None:
        self.session = session
        self._entity_cls = entity_cls
        self._table = table

    def add(self, entity: TEntity) -> None:
        self.session.add(entity)

    def get(self, entity_id: int) -> TEntity | None:
        return self.session.get(self._entity_cls, entity_id)

    def count(self) -> int:
        stmt = select(func.count()).select_from(self._table)
        return self.session.execute(stmt).scalar_one()

    def count_by_source(self, source: Source) -> int:
        stmt = select(func.count()).select_from(self._table).where(self._table.c.source == source)
        return self.session.execute(stmt).scalar_one()

    def _get_by(self, column: str, value: str) -> TEntity | None:
        stmt = select(self._entity_cls).where(self._table.c[column] == value).limit(1)
        return self.session.execute(stmt).scalar_one_or_none()


class SqlAlchemyBandRepository(SqlAlchemyCatalogRepository[Band]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Band, bands_table)

    def get_by_musicbrainz_id(self, mbid: str) -> Band | None:
        return self._get_by("musicbrainz_id", mbid)

    def get_by_slug(self, slug: str) -> Band | None:
        return self._get_by("slug", slug)

    def delete(self, band: Band) -> None:
        """Remove a band; the database nulls the band of its albums and tracks."""

        self.session.delete(band)


class SqlAlchemyAlbumRepository(SqlAlchemyCatalogRepository[Album]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Album, albums_table)

    def get_by_musicbrainz_release_id(self, mbid: str) -> Album | None:
        return self._get_by("musicbrainz_release_id", mbid)


class SqlAlchemyTrackRepository(SqlAlchemyCatalogRepository[Track]):
    def __init__(self, session: Session) -> None:
        super().__init__(session, Track, tracks_table)

    def get_by_musicbrainz_recording_id(self, mbid: str) -> Track | None:
        return self._get_by("musicbrainz_recording_id", mbid)


class SqlAlchemyBandAliasRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: BandAlias) -> None:
        self.session.add(entity)

    def count(self) -> int:
        stmt = select(func.count()).select_from(band_aliases_table)
        return self.session.execute(stmt).scalar_one()

    def list_for_band(self, band_id: int) -> list[BandAlias]:
        stmt = (
            select(BandAlias)
            .where(band_aliases_table.c.band_id == band_id)
            .order_by(band_aliases_table.c.name, band_aliases_table.c.locale)
        )
        return list(self.session.execute(stmt).scalars())


if TYPE_CHECKING:
    from catalog_ingest.domain.ports.persistence import (
        AlbumRepository,
        BandAliasRepository,
        BandRepository,
        TrackRepository,
    )

    _session_stub = cast("Session", object())
    _band_repo: BandRepository = SqlAlchemyBandRepository(_session_stub)
    _album_repo: AlbumRepository = SqlAlchemyAlbumRepository(_session_stub)
    _track_repo: TrackRepository = SqlAlchemyTrackRepository(_session_stub)
    _alias_repo: BandAliasRepository = SqlAlchemyBandAliasRepository(_session_stub)
