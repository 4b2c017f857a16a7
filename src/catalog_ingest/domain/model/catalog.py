"""Canonical catalog entities populated by the importer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from catalog_ingest.domain.model.enums import ReleaseType, Source

if TYPE_CHECKING:
    from datetime import date, datetime
    from uuid import UUID


@dataclass(eq=False, kw_only=True)
class CatalogEntity:
    """Shared ownership state for bands, albums and tracks."""

    id: int | None = None
    source: Source = Source.EXTERNAL
    verified: bool = False
    user_id: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_external(self) -> bool:
        return self.source is Source.EXTERNAL

    def mark_user_submitted(self, user_id: UUID | None = None) -> None:
        """Take the row over for the application; later imports leave it alone."""

        self.source = Source.USER_SUBMITTED
        if user_id is not None:
            self.user_id = user_id


@dataclass(eq=False, kw_only=True)
class Band(CatalogEntity):
    name: str
    slug: str
    sort_name: str | None = None
    musicbrainz_id: str | None = None
    country: str | None = None
    artist_type: str | None = None
    genres: list[str] = field(default_factory=list[str])


@dataclass(eq=False, kw_only=True)
class Album(CatalogEntity):
    name: str
    band_id: int | None = None
    musicbrainz_release_id: str | None = None
    discogs_master_id: int | None = None
    cover_art_url: str | None = None
    release_date: date | None = None
    release_type: ReleaseType = ReleaseType.OTHER
    country: str | None = None


@dataclass(eq=False, kw_only=True)
class Track(CatalogEntity):
    name: str
    band_id: int | None = None
    album_id: int | None = None
    duration_ms: int | None = None
    track_number: int | None = None
    disc_number: int | None = None
    musicbrainz_recording_id: str | None = None
    isrc: str | None = None


@dataclass(eq=False, kw_only=True)
class BandAlias:
    band_id: int
    name: str
    locale: str | None = None
    id: int | None = None
    created_at: datetime | None = None
