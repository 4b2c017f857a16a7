"""Ports for reading and editing the canonical catalog."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from catalog_ingest.domain.model import Album, Band, BandAlias, Track

if TYPE_CHECKING:
    from catalog_ingest.domain.model import Source


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...

    def count(self) -> int: ...


@runtime_checkable
class CatalogRepository[TEntity](Repository[TEntity], Protocol):
    """Repository contract for bands, albums and tracks."""

    def get(self, entity_id: int) -> TEntity | None: ...

    def count_by_source(self, source: Source) -> int: ...


@runtime_checkable
class BandRepository(CatalogRepository[Band], Protocol):
    def get_by_musicbrainz_id(self, mbid: str) -> Band | None: ...

    def get_by_slug(self, slug: str) -> Band | None: ...

    def delete(self, band: Band) -> None: ...


@runtime_checkable
class AlbumRepository(CatalogRepository[Album], Protocol):
    def get_by_musicbrainz_release_id(self, mbid: str) -> Album | None: ...


@runtime_checkable
class TrackRepository(CatalogRepository[Track], Protocol):
    def get_by_musicbrainz_recording_id(self, mbid: str) -> Track | None: ...


@runtime_checkable
class BandAliasRepository(Repository[BandAlias], Protocol):
    def list_for_band(self, band_id: int) -> list[BandAlias]: ...
