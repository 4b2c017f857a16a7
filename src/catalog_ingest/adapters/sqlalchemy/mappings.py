"""SQLAlchemy mapping metadata for the canonical catalog."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from functools import cache
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    Column,
    Date,
    DateTime,
    Dialect,
    Enum,
    ForeignKey,
    Integer,
    String,
    Table,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    false,
    func,
    orm,
)
from sqlalchemy.dialects.postgresql import JSONB

from catalog_ingest.domain.model import Album, Band, BandAlias, ReleaseType, Source, Track

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]
# SQLite only autoincrements INTEGER PRIMARY KEY columns
IdentifierType = BigInteger().with_variant(Integer(), "sqlite")
GenreListType = JSON().with_variant(JSONB(), "postgresql")


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


def _enum_values(enum_cls: type[Source] | type[ReleaseType]) -> list[str]:
    return [member.value for member in enum_cls]


SourceType = Enum(Source, name="catalog_source", native_enum=False, values_callable=_enum_values)
ReleaseTypeType = Enum(
    ReleaseType,
    name="release_type",
    native_enum=False,
    values_callable=_enum_values,
)

mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _ownership_columns() -> list[Column[Any]]:
    return [
        Column("source", SourceType, nullable=False, default=Source.EXTERNAL),
        Column("verified", Boolean, nullable=False, default=False, server_default=false()),
        Column("user_id", UUIDColumnType, nullable=True),
        Column("created_at", UTCDateTime, nullable=False, server_default=func.now()),
        Column("updated_at", UTCDateTime, nullable=False, server_default=func.now()),
    ]


# Canonical tables -------------------------------------------------------------

bands_table = Table(
    "bands",
    mapper_registry.metadata,
    Column("id", IdentifierType, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("sort_name", String, nullable=True),
    Column("musicbrainz_id", String(36), nullable=True),
    Column("country", String(3), nullable=True),
    Column("artist_type", String, nullable=True),
    Column("genres", GenreListType, nullable=False, default=list),
    Column("slug", String, nullable=False),
    *_ownership_columns(),
    UniqueConstraint("musicbrainz_id", name="uq_bands_musicbrainz_id"),
    UniqueConstraint("slug", name="uq_bands_slug"),
)

albums_table = Table(
    "albums",
    mapper_registry.metadata,
    Column("id", IdentifierType, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("band_id", IdentifierType, ForeignKey("bands.id", ondelete="SET NULL"), nullable=True),
    Column("musicbrainz_release_id", String(36), nullable=True),
    Column("discogs_master_id", BigInteger, nullable=True),
    Column("cover_art_url", String, nullable=True),
    Column("release_date", Date, nullable=True),
    Column("release_type", ReleaseTypeType, nullable=False, default=ReleaseType.OTHER),
    Column("country", String(3), nullable=True),
    *_ownership_columns(),
    UniqueConstraint("musicbrainz_release_id", name="uq_albums_musicbrainz_release_id"),
    UniqueConstraint("discogs_master_id", name="uq_albums_discogs_master_id"),
)

tracks_table = Table(
    "tracks",
    mapper_registry.metadata,
    Column("id", IdentifierType, primary_key=True, autoincrement=True),
    Column("name", String, nullable=False),
    Column("band_id", IdentifierType, ForeignKey("bands.id", ondelete="SET NULL"), nullable=True),
    Column("album_id", IdentifierType, ForeignKey("albums.id", ondelete="SET NULL"), nullable=True),
    Column("duration_ms", Integer, nullable=True),
    Column("track_number", Integer, nullable=True),
    Column("disc_number", Integer, nullable=True),
    Column("musicbrainz_recording_id", String(36), nullable=True),
    Column("isrc", String(12), nullable=True),
    *_ownership_columns(),
    UniqueConstraint("musicbrainz_recording_id", name="uq_tracks_musicbrainz_recording_id"),
)

band_aliases_table = Table(
    "band_aliases",
    mapper_registry.metadata,
    Column("id", IdentifierType, primary_key=True, autoincrement=True),
    Column(
        "band_id",
        IdentifierType,
        ForeignKey("bands.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("name", String, nullable=False),
    Column("locale", String, nullable=True),
    Column("created_at", UTCDateTime, nullable=False, server_default=func.now()),
    UniqueConstraint("band_id", "name", "locale", name="uq_band_aliases_band_id_name_locale"),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(Band, bands_table)
    mapper_registry.map_imperatively(Album, albums_table)
    mapper_registry.map_imperatively(Track, tracks_table)
    mapper_registry.map_imperatively(BandAlias, band_aliases_table)

    orm.configure_mappers()
    return mapper_registry
