"""Create the canonical catalog tables.

Revision ID: 0001
Revises:
Create Date: 2026-10-18 00:00:00
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

SOURCE_VALUES = ("external", "user_submitted")
RELEASE_TYPE_VALUES = (
    "album",
    "single",
    "ep",
    "compilation",
    "live",
    "remix",
    "soundtrack",
    "other",
)


def _identifier() -> sa.types.TypeEngine[int]:
    return sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _ownership_columns() -> list[sa.Column[object]]:
    return [
        sa.Column(
            "source",
            sa.Enum(*SOURCE_VALUES, name="catalog_source", native_enum=False),
            nullable=False,
        ),
        sa.Column("verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("user_id", sa.Uuid(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "bands",
        sa.Column("id", _identifier(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("sort_name", sa.String(), nullable=True),
        sa.Column("musicbrainz_id", sa.String(length=36), nullable=True),
        sa.Column("country", sa.String(length=3), nullable=True),
        sa.Column("artist_type", sa.String(), nullable=True),
        sa.Column(
            "genres",
            sa.JSON().with_variant(postgresql.JSONB(), "postgresql"),
            nullable=False,
        ),
        sa.Column("slug", sa.String(), nullable=False),
        *_ownership_columns(),
        sa.PrimaryKeyConstraint("id", name="pk_bands"),
        sa.UniqueConstraint("musicbrainz_id", name="uq_bands_musicbrainz_id"),
        sa.UniqueConstraint("slug", name="uq_bands_slug"),
    )

    op.create_table(
        "albums",
        sa.Column("id", _identifier(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("band_id", _identifier(), nullable=True),
        sa.Column("musicbrainz_release_id", sa.String(length=36), nullable=True),
        sa.Column("discogs_master_id", sa.BigInteger(), nullable=True),
        sa.Column("cover_art_url", sa.String(), nullable=True),
        sa.Column("release_date", sa.Date(), nullable=True),
        sa.Column(
            "release_type",
            sa.Enum(*RELEASE_TYPE_VALUES, name="release_type", native_enum=False),
            nullable=False,
        ),
        sa.Column("country", sa.String(length=3), nullable=True),
        *_ownership_columns(),
        sa.PrimaryKeyConstraint("id", name="pk_albums"),
        sa.ForeignKeyConstraint(
            ["band_id"],
            ["bands.id"],
            name="fk_albums_band_id_bands",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint("musicbrainz_release_id", name="uq_albums_musicbrainz_release_id"),
        sa.UniqueConstraint("discogs_master_id", name="uq_albums_discogs_master_id"),
    )

    op.create_table(
        "tracks",
        sa.Column("id", _identifier(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("band_id", _identifier(), nullable=True),
        sa.Column("album_id", _identifier(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("track_number", sa.Integer(), nullable=True),
        sa.Column("disc_number", sa.Integer(), nullable=True),
        sa.Column("musicbrainz_recording_id", sa.String(length=36), nullable=True),
        sa.Column("isrc", sa.String(length=12), nullable=True),
        *_ownership_columns(),
        sa.PrimaryKeyConstraint("id", name="pk_tracks"),
        sa.ForeignKeyConstraint(
            ["band_id"],
            ["bands.id"],
            name="fk_tracks_band_id_bands",
            ondelete="SET NULL",
        ),
        sa.ForeignKeyConstraint(
            ["album_id"],
            ["albums.id"],
            name="fk_tracks_album_id_albums",
            ondelete="SET NULL",
        ),
        sa.UniqueConstraint(
            "musicbrainz_recording_id",
            name="uq_tracks_musicbrainz_recording_id",
        ),
    )

    op.create_table(
        "band_aliases",
        sa.Column("id", _identifier(), primary_key=True, autoincrement=True),
        sa.Column("band_id", _identifier(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("locale", sa.String(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_band_aliases"),
        sa.ForeignKeyConstraint(
            ["band_id"],
            ["bands.id"],
            name="fk_band_aliases_band_id_bands",
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint(
            "band_id",
            "name",
            "locale",
            name="uq_band_aliases_band_id_name_locale",
        ),
    )
    op.create_index("ix_band_aliases_band_id", "band_aliases", ["band_id"])


def downgrade() -> None:
    op.drop_index("ix_band_aliases_band_id", table_name="band_aliases")
    op.drop_table("band_aliases")
    op.drop_table("tracks")
    op.drop_table("albums")
    op.drop_table("bands")
