"""Transform-and-load of the staged dump into the canonical catalog tables.

Every stage pages through its source rows with OFFSET/LIMIT over a stable
ORDER BY on the upstream id and writes each page with a single upsert in its
own transaction. Conflicting rows are refreshed only while they are still
owned by the importer (``source = external``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter, defaultdict
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import and_, case, exists, func, literal, select, true
from sqlalchemy.exc import SQLAlchemyError

from catalog_ingest.config.importer import DEFAULT_IMPORT_BATCH_SIZE
from catalog_ingest.domain.import_pipeline import ImportPipeline, run_batches
from catalog_ingest.domain.model import ReleaseType, Source
from catalog_ingest.domain.slugs import allocate_slugs, slugify

from .dialects import date_sort_key, dialect_insert, insert_from_page, partial_date, upsert_external
from .mappings import albums_table, band_aliases_table, bands_table, tracks_table
from .qualifying import qualifying_artists_table, qualifying_releases_table
from .staging import staging_table

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy import ColumnElement, Connection, Row, Select, Subquery, Table

    from catalog_ingest.domain.import_pipeline import BatchWindow, ImportReport, StageResult

log = getLogger(__name__)

MAX_GENRES: Final[int] = 10
COVER_ART_URL_TEMPLATE: Final[tuple[str, str]] = (
    "https://coverartarchive.org/release/",
    "/front-500",
)
RECOVERABLE_ERRORS: Final[tuple[type[Exception], ...]] = (SQLAlchemyError,)


@dataclass(frozen=True, slots=True)
class ArtistRow:
    """One qualifying artist as read from staging."""

    artist_id: int
    gid: str
    name: str | None
    sort_name: str | None
    artist_type: str | None
    country: str | None


class _BatchedStage(ABC):
    name: str
    target: Table

    def __init__(self, connection: Connection, *, batch_size: int) -> None:
        self._connection = connection
        self._batch_size = batch_size

    @abstractmethod
    def source_query(self) -> Select[Any]: ...

    @abstractmethod
    def load_batch(self, window: BatchWindow) -> None: ...

    def count_sources(self) -> int:
        counted = self.source_query().order_by(None).subquery()
        return self._connection.execute(select(func.count()).select_from(counted)).scalar_one()

    def count_canonical(self) -> int:
        query = (
            select(func.count())
            .select_from(self.target)
            .where(self.target.c.source == Source.EXTERNAL)
            .where(self.target.c.verified.is_(True))
        )
        return self._connection.execute(query).scalar_one()

    def page(self, window: BatchWindow) -> Select[Any]:
        return self.source_query().offset(window.offset).limit(window.limit)

    def run(self) -> StageResult:
        with self._connection.begin():
            total = self.count_sources()
        log.info("Importing %s (%d total)", self.name, total)

        result = run_batches(
            self.name,
            total,
            self._batch_size,
            self._run_window,
            recoverable_errors=RECOVERABLE_ERRORS,
        )

        with self._connection.begin():
            result.row_count = self.count_canonical()
        log.info("%s import complete: %d rows in %s", self.name, result.row_count, self.target.name)
        return result

    def _run_window(self, window: BatchWindow) -> None:
        with self._connection.begin():
            self.load_batch(window)


class BandStage(_BatchedStage):
    """Bands from qualifying artists, with slugs and top tags as genres."""

    name = "bands"
    target = bands_table

    def source_query(self) -> Select[Any]:
        artist = staging_table("artist")
        artist_type = staging_table("artist_type")
        iso = staging_table("iso_3166_1")

        country = (
            select(func.min(iso.c.code)).where(iso.c.area == artist.c.area).scalar_subquery()
        )
        return (
            select(
                artist.c.id,
                artist.c.gid,
                artist.c.name,
                artist.c.sort_name,
                artist_type.c.name.label("artist_type"),
                country.label("country"),
            )
            .select_from(artist)
            .join(qualifying_artists_table, qualifying_artists_table.c.mb_artist_id == artist.c.id)
            .outerjoin(artist_type, artist_type.c.id == artist.c.type)
            .order_by(artist.c.id)
        )

    def load_batch(self, window: BatchWindow) -> None:
        artists = [_artist_row(row) for row in self._connection.execute(self.page(window))]
        if not artists:
            return

        genres = self._genres([artist.artist_id for artist in artists])
        slugs = self._slugs(artists)
        rows = [
            {
                "name": artist.name,
                "sort_name": artist.sort_name,
                "musicbrainz_id": artist.gid,
                "country": artist.country,
                "artist_type": artist.artist_type,
                "genres": genres.get(artist.artist_id, []),
                "slug": slugs[artist.gid],
                "source": Source.EXTERNAL,
                "verified": True,
            }
            for artist in artists
        ]
        statement = upsert_external(
            dialect_insert(self._connection, bands_table),
            bands_table,
            key="musicbrainz_id",
            update_columns=("name", "sort_name", "country", "artist_type", "genres"),
        )
        self._connection.execute(statement, rows)

    def _genres(self, artist_ids: Sequence[int]) -> dict[int, list[str]]:
        artist_tag = staging_table("artist_tag")
        tag = staging_table("tag")

        ranked = (
            select(
                artist_tag.c.artist,
                tag.c.name,
                func.row_number()
                .over(
                    partition_by=artist_tag.c.artist,
                    order_by=(artist_tag.c.count.desc(), tag.c.name),
                )
                .label("rank"),
            )
            .join(tag, tag.c.id == artist_tag.c.tag)
            .where(artist_tag.c.artist.in_(artist_ids))
            .where(artist_tag.c.count > 0)
            .where(tag.c.name.is_not(None))
            .subquery("ranked_tags")
        )
        query = (
            select(ranked.c.artist, ranked.c.name)
            .where(ranked.c.rank <= MAX_GENRES)
            .order_by(ranked.c.artist, ranked.c.rank)
        )
        genres: defaultdict[int, list[str]] = defaultdict(list)
        for artist_id, tag_name in self._connection.execute(query):
            genres[artist_id].append(tag_name)
        return dict(genres)

    def _slugs(self, artists: Sequence[ArtistRow]) -> dict[str, str]:
        """Existing bands keep their slug; new ones get a free one in artist id order."""

        gids = [artist.gid for artist in artists]
        existing: dict[str, str] = dict(
            self._connection.execute(
                select(bands_table.c.musicbrainz_id, bands_table.c.slug).where(
                    bands_table.c.musicbrainz_id.in_(gids)
                )
            ).tuples().all()
        )
        new = [
            (artist.gid, slugify(artist.name or ""))
            for artist in artists
            if artist.gid not in existing
        ]
        if not new:
            return existing

        bases = Counter(base for _, base in new)
        taken = set(
            self._connection.execute(
                select(bands_table.c.slug).where(bands_table.c.slug.in_(list(bases)))
            ).scalars()
        )
        for base in sorted(bases):
            if base in taken or bases[base] > 1:
                taken.update(
                    self._connection.execute(
                        select(bands_table.c.slug).where(
                            bands_table.c.slug.startswith(f"{base}-", autoescape=True)
                        )
                    ).scalars()
                )
        return existing | allocate_slugs(new, taken)


def _artist_row(row: Row[Any]) -> ArtistRow:
    return ArtistRow(
        artist_id=row.id,
        gid=row.gid,
        name=row.name,
        sort_name=row.sort_name,
        artist_type=row.artist_type,
        country=row.country,
    )


def release_type_expression(primary_type: ColumnElement[Any]) -> ColumnElement[str]:
    """Map the upstream primary type name into the closed release type set."""

    known = {member.value: member.value for member in ReleaseType}
    return case(known, value=func.lower(primary_type), else_=ReleaseType.OTHER.value)


class AlbumStage(_BatchedStage):
    """One album per release group: its earliest-dated qualifying release."""

    name = "albums"
    target = albums_table

    def _ranked_releases(self) -> Subquery:
        release = staging_table("release")
        release_group = staging_table("release_group")
        primary_type = staging_table("release_group_primary_type")
        release_country = staging_table("release_country")
        credit_name = staging_table("artist_credit_name")
        artist = staging_table("artist")
        iso = staging_table("iso_3166_1")

        date_key = date_sort_key(
            release_country.c.date_year,
            release_country.c.date_month,
            release_country.c.date_day,
        )
        country = (
            select(func.min(iso.c.code))
            .where(iso.c.area == release_country.c.country)
            .scalar_subquery()
        )
        return (
            select(
                release.c.id.label("release_id"),
                release.c.gid,
                release.c.name,
                bands_table.c.id.label("band_id"),
                primary_type.c.name.label("primary_type"),
                release_country.c.date_year,
                release_country.c.date_month,
                release_country.c.date_day,
                country.label("country"),
                func.row_number()
                .over(
                    # a release without a group forms its own group
                    partition_by=func.coalesce(release.c.release_group, -release.c.id),
                    order_by=(date_key.nulls_last(), release.c.id),
                )
                .label("rank"),
            )
            .select_from(release)
            .join(
                qualifying_releases_table,
                qualifying_releases_table.c.mb_release_id == release.c.id,
            )
            .join(
                credit_name,
                and_(
                    credit_name.c.artist_credit == release.c.artist_credit,
                    credit_name.c.position == 0,
                ),
            )
            .join(artist, artist.c.id == credit_name.c.artist)
            .join(bands_table, bands_table.c.musicbrainz_id == artist.c.gid)
            .outerjoin(release_group, release_group.c.id == release.c.release_group)
            .outerjoin(primary_type, primary_type.c.id == release_group.c.type)
            .outerjoin(release_country, release_country.c.release == release.c.id)
            .subquery("ranked_releases")
        )

    def source_query(self) -> Select[Any]:
        ranked = self._ranked_releases()
        prefix, suffix = COVER_ART_URL_TEMPLATE
        return (
            select(
                ranked.c.name,
                ranked.c.band_id,
                ranked.c.gid.label("musicbrainz_release_id"),
                (literal(prefix) + ranked.c.gid + literal(suffix)).label("cover_art_url"),
                partial_date(ranked.c.date_year, ranked.c.date_month, ranked.c.date_day).label(
                    "release_date"
                ),
                release_type_expression(ranked.c.primary_type).label("release_type"),
                ranked.c.country,
                literal(Source.EXTERNAL.value).label("source"),
                true().label("verified"),
            )
            .where(ranked.c.rank == 1)
            .order_by(ranked.c.release_id)
        )

    def load_batch(self, window: BatchWindow) -> None:
        columns = (
            "name",
            "band_id",
            "musicbrainz_release_id",
            "cover_art_url",
            "release_date",
            "release_type",
            "country",
            "source",
            "verified",
        )
        statement = upsert_external(
            insert_from_page(self._connection, albums_table, self.page(window), columns),
            albums_table,
            key="musicbrainz_release_id",
            update_columns=(
                "name",
                "band_id",
                "cover_art_url",
                "release_date",
                "release_type",
                "country",
            ),
        )
        self._connection.execute(statement)


class TrackStage(_BatchedStage):
    """One track per recording on the media of imported albums."""

    name = "tracks"
    target = tracks_table

    def _ranked_tracks(self) -> Subquery:
        track = staging_table("track")
        medium = staging_table("medium")
        recording = staging_table("recording")
        release = staging_table("release")

        return (
            select(
                track.c.id.label("track_id"),
                track.c.name,
                albums_table.c.band_id,
                albums_table.c.id.label("album_id"),
                recording.c.id.label("recording_id"),
                recording.c.gid.label("recording_gid"),
                recording.c.length.label("duration_ms"),
                track.c.position.label("track_number"),
                medium.c.position.label("disc_number"),
                func.row_number()
                .over(partition_by=recording.c.id, order_by=track.c.id)
                .label("rank"),
            )
            .select_from(track)
            .join(medium, medium.c.id == track.c.medium)
            .join(recording, recording.c.id == track.c.recording)
            .join(
                qualifying_releases_table,
                qualifying_releases_table.c.mb_release_id == medium.c.release,
            )
            .join(release, release.c.id == medium.c.release)
            .join(albums_table, albums_table.c.musicbrainz_release_id == release.c.gid)
            .where(track.c.is_data_track.is_not(True))
            .subquery("ranked_tracks")
        )

    def source_query(self) -> Select[Any]:
        ranked = self._ranked_tracks()
        isrc = staging_table("isrc")
        first_isrc = (
            select(func.min(isrc.c.isrc))
            .where(isrc.c.recording == ranked.c.recording_id)
            .scalar_subquery()
        )
        return (
            select(
                ranked.c.name,
                ranked.c.band_id,
                ranked.c.album_id,
                ranked.c.duration_ms,
                ranked.c.track_number,
                ranked.c.disc_number,
                ranked.c.recording_gid.label("musicbrainz_recording_id"),
                first_isrc.label("isrc"),
                literal(Source.EXTERNAL.value).label("source"),
                true().label("verified"),
            )
            .where(ranked.c.rank == 1)
            .order_by(ranked.c.track_id)
        )

    def load_batch(self, window: BatchWindow) -> None:
        update_columns = (
            "name",
            "band_id",
            "album_id",
            "duration_ms",
            "track_number",
            "disc_number",
            "isrc",
        )
        columns = (
            "name",
            "band_id",
            "album_id",
            "duration_ms",
            "track_number",
            "disc_number",
            "musicbrainz_recording_id",
            "isrc",
            "source",
            "verified",
        )
        statement = upsert_external(
            insert_from_page(self._connection, tracks_table, self.page(window), columns),
            tracks_table,
            key="musicbrainz_recording_id",
            update_columns=update_columns,
        )
        self._connection.execute(statement)


class BandAliasStage(_BatchedStage):
    """Aliases of qualifying artists, one row per (band, name, locale)."""

    name = "band aliases"
    target = band_aliases_table

    def source_query(self) -> Select[Any]:
        alias = staging_table("artist_alias")
        artist = staging_table("artist")

        first_alias_id = func.min(alias.c.id).label("first_alias_id")
        return (
            select(bands_table.c.id.label("band_id"), alias.c.name, alias.c.locale, first_alias_id)
            .select_from(alias)
            .join(
                qualifying_artists_table,
                qualifying_artists_table.c.mb_artist_id == alias.c.artist,
            )
            .join(artist, artist.c.id == alias.c.artist)
            .join(bands_table, bands_table.c.musicbrainz_id == artist.c.gid)
            .where(alias.c.name.is_not(None))
            .group_by(bands_table.c.id, alias.c.name, alias.c.locale)
            .order_by(first_alias_id)
        )

    def count_canonical(self) -> int:
        return self._connection.execute(
            select(func.count()).select_from(band_aliases_table)
        ).scalar_one()

    def load_batch(self, window: BatchWindow) -> None:
        def not_stored(page: Subquery) -> ColumnElement[bool]:
            return ~exists().where(
                band_aliases_table.c.band_id == page.c.band_id,
                band_aliases_table.c.name == page.c.name,
                band_aliases_table.c.locale.is_not_distinct_from(page.c.locale),
            )

        statement = insert_from_page(
            self._connection,
            band_aliases_table,
            self.page(window),
            ("band_id", "name", "locale"),
            where=not_stored,
        ).on_conflict_do_nothing()
        self._connection.execute(statement)


class TransformLoader:
    """Run bands, albums, tracks and band aliases, in that order."""

    def __init__(
        self,
        connection: Connection,
        *,
        batch_size: int = DEFAULT_IMPORT_BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        self._connection = connection
        self._batch_size = batch_size

    def stages(self) -> list[_BatchedStage]:
        return [
            stage(self._connection, batch_size=self._batch_size)
            for stage in (BandStage, AlbumStage, TrackStage, BandAliasStage)
        ]

    def pipeline(self, stages: Iterable[_BatchedStage] | None = None) -> ImportPipeline:
        return ImportPipeline(stages=tuple(stages if stages is not None else self.stages()))

    def run(self) -> ImportReport:
        report = self.pipeline().run()
        log.info("Import complete")
        return report
