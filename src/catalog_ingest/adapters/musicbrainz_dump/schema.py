"""Typed records for the MusicBrainz dump files.

Each record lists its columns in dump order. A dump file is PostgreSQL COPY
text: one row per line, tab-separated, ``\\N`` for NULL and backslash escapes
inside values. The staging tables are generated from these models, so the
column lists live here and nowhere else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Annotated, ClassVar, Final, Self

from pydantic import BaseModel, ConfigDict, ValidationError

from catalog_ingest.domain.errors import DumpFormatError

NULL_MARKER: Final[str] = "\\N"

_ESCAPE = re.compile(r"\\(?:([0-7]{1,3})|x([0-9a-fA-F]{1,2})|(.))", re.DOTALL)
_SIMPLE_ESCAPES: Final[dict[str, str]] = {
    "b": "\b",
    "f": "\f",
    "n": "\n",
    "r": "\r",
    "t": "\t",
    "v": "\v",
}


@dataclass(frozen=True, slots=True)
class WideInteger:
    """Column marker: the value needs a 64-bit integer column."""


def _unescape_match(match: re.Match[str]) -> str:
    octal, hexa, char = match.groups()
    if octal is not None:
        return chr(int(octal, 8))
    if hexa is not None:
        return chr(int(hexa, 16))
    return _SIMPLE_ESCAPES.get(char, char)


def decode_field(raw: str) -> str | None:
    """Decode one COPY text field."""

    if raw == NULL_MARKER:
        return None
    if "\\" not in raw:
        return raw
    return _ESCAPE.sub(_unescape_match, raw)


class DumpRecord(BaseModel):
    """Base for one row of a dump file."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    table_name: ClassVar[str]
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = ()

    @classmethod
    def column_names(cls) -> tuple[str, ...]:
        return tuple(cls.model_fields)

    @classmethod
    def from_line(cls, line: str) -> Self:
        """Parse one dump line (with or without its trailing newline)."""

        fields = line.rstrip("\r\n").split("\t")
        names = cls.column_names()
        if len(fields) != len(names):
            raise DumpFormatError(
                cls.table_name,
                f"expected {len(names)} fields, got {len(fields)}",
            )
        values = {name: decode_field(raw) for name, raw in zip(names, fields, strict=True)}
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise DumpFormatError(cls.table_name, str(exc)) from exc

    def as_row(self) -> dict[str, object]:
        return self.model_dump()


class ArtistRecord(DumpRecord):
    table_name: ClassVar[str] = "artist"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("id",), ("type",), ("area",))

    id: int | None = None
    gid: str | None = None
    name: str | None = None
    sort_name: str | None = None
    begin_date_year: int | None = None
    begin_date_month: int | None = None
    begin_date_day: int | None = None
    end_date_year: int | None = None
    end_date_month: int | None = None
    end_date_day: int | None = None
    type: int | None = None
    area: int | None = None
    gender: int | None = None
    comment: str | None = None
    edits_pending: int | None = None
    last_updated: str | None = None
    ended: bool | None = None
    begin_area: int | None = None
    end_area: int | None = None


class ArtistAliasRecord(DumpRecord):
    table_name: ClassVar[str] = "artist_alias"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("artist",),)

    id: int | None = None
    artist: int | None = None
    name: str | None = None
    locale: str | None = None
    edits_pending: int | None = None
    last_updated: str | None = None
    type: int | None = None
    sort_name: str | None = None
    begin_date_year: int | None = None
    begin_date_month: int | None = None
    begin_date_day: int | None = None
    end_date_year: int | None = None
    end_date_month: int | None = None
    end_date_day: int | None = None
    primary_for_locale: bool | None = None
    ended: bool | None = None


class ArtistCreditRecord(DumpRecord):
    table_name: ClassVar[str] = "artist_credit"

    id: int | None = None
    name: str | None = None
    artist_count: int | None = None
    ref_count: int | None = None
    created: str | None = None
    edits_pending: int | None = None
    gid: str | None = None


class ArtistCreditNameRecord(DumpRecord):
    table_name: ClassVar[str] = "artist_credit_name"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("artist_credit",), ("artist",))

    artist_credit: int | None = None
    position: int | None = None
    artist: int | None = None
    name: str | None = None
    join_phrase: str | None = None


class RecordingRecord(DumpRecord):
    table_name: ClassVar[str] = "recording"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("id",), ("artist_credit",))

    id: int | None = None
    gid: str | None = None
    name: str | None = None
    artist_credit: int | None = None
    length: int | None = None
    comment: str | None = None
    edits_pending: int | None = None
    last_updated: str | None = None
    video: bool | None = None


class IsrcRecord(DumpRecord):
    table_name: ClassVar[str] = "isrc"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("recording",),)

    id: int | None = None
    recording: int | None = None
    isrc: str | None = None
    source: int | None = None
    edits_pending: int | None = None
    created: str | None = None


class ReleaseGroupRecord(DumpRecord):
    table_name: ClassVar[str] = "release_group"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("id",), ("type",))

    id: int | None = None
    gid: str | None = None
    name: str | None = None
    artist_credit: int | None = None
    type: int | None = None
    comment: str | None = None
    edits_pending: int | None = None
    last_updated: str | None = None


class ReleaseRecord(DumpRecord):
    table_name: ClassVar[str] = "release"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("id",), ("release_group",), ("status",))

    id: int | None = None
    gid: str | None = None
    name: str | None = None
    artist_credit: int | None = None
    release_group: int | None = None
    status: int | None = None
    packaging: int | None = None
    language: int | None = None
    script: int | None = None
    barcode: str | None = None
    comment: str | None = None
    edits_pending: int | None = None
    quality: int | None = None
    last_updated: str | None = None


class MediumRecord(DumpRecord):
    table_name: ClassVar[str] = "medium"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("release",), ("id",))

    id: int | None = None
    release: int | None = None
    position: int | None = None
    format: int | None = None
    name: str | None = None
    edits_pending: int | None = None
    last_updated: str | None = None
    track_count: int | None = None
    gid: str | None = None


class TrackRecord(DumpRecord):
    table_name: ClassVar[str] = "track"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("medium",), ("recording",))

    id: int | None = None
    gid: str | None = None
    recording: int | None = None
    medium: int | None = None
    position: int | None = None
    number: str | None = None
    name: str | None = None
    artist_credit: int | None = None
    length: int | None = None
    edits_pending: int | None = None
    last_updated: str | None = None
    is_data_track: bool | None = None


class ReleaseCountryRecord(DumpRecord):
    table_name: ClassVar[str] = "release_country"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("release",), ("country",))

    release: int | None = None
    country: int | None = None
    date_year: int | None = None
    date_month: int | None = None
    date_day: int | None = None


class AreaRecord(DumpRecord):
    table_name: ClassVar[str] = "area"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("id",),)

    id: int | None = None
    gid: str | None = None
    name: str | None = None
    type: int | None = None
    edits_pending: int | None = None
    last_updated: str | None = None
    begin_date_year: int | None = None
    begin_date_month: int | None = None
    begin_date_day: int | None = None
    end_date_year: int | None = None
    end_date_month: int | None = None
    end_date_day: int | None = None
    ended: bool | None = None
    comment: str | None = None


class Iso31661Record(DumpRecord):
    table_name: ClassVar[str] = "iso_3166_1"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("area",),)

    area: int | None = None
    code: str | None = None


class TagRecord(DumpRecord):
    table_name: ClassVar[str] = "tag"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("id",),)

    id: int | None = None
    name: str | None = None
    ref_count: int | None = None


class ArtistTagRecord(DumpRecord):
    table_name: ClassVar[str] = "artist_tag"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("artist",), ("tag",))

    artist: int | None = None
    tag: int | None = None
    count: int | None = None
    last_updated: str | None = None


class _TypeTableRecord(DumpRecord):
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("id",),)

    id: int | None = None
    name: str | None = None
    parent: int | None = None
    child_order: int | None = None
    description: str | None = None
    gid: str | None = None


class ArtistTypeRecord(_TypeTableRecord):
    table_name: ClassVar[str] = "artist_type"


class ReleaseGroupPrimaryTypeRecord(_TypeTableRecord):
    table_name: ClassVar[str] = "release_group_primary_type"


class ReleaseStatusRecord(_TypeTableRecord):
    table_name: ClassVar[str] = "release_status"


class CoverArtRecord(DumpRecord):
    table_name: ClassVar[str] = "cover_art"
    indexes: ClassVar[tuple[tuple[str, ...], ...]] = (("release",),)

    id: Annotated[int | None, WideInteger()] = None
    release: int | None = None
    comment: str | None = None
    edit: int | None = None
    ordering: int | None = None
    created: str | None = None
    approved: bool | None = None
    mime_type: str | None = None
    filesize: int | None = None
    thumb_250_filesize: int | None = None
    thumb_500_filesize: int | None = None
    thumb_1200_filesize: int | None = None


STAGING_RECORDS: Final[tuple[type[DumpRecord], ...]] = (
    ArtistRecord,
    ArtistAliasRecord,
    ArtistCreditRecord,
    ArtistCreditNameRecord,
    RecordingRecord,
    IsrcRecord,
    ReleaseGroupRecord,
    ReleaseRecord,
    MediumRecord,
    TrackRecord,
    ReleaseCountryRecord,
    AreaRecord,
    Iso31661Record,
    TagRecord,
    ArtistTagRecord,
    ArtistTypeRecord,
    ReleaseGroupPrimaryTypeRecord,
    ReleaseStatusRecord,
    CoverArtRecord,
)

RECORD_BY_TABLE: Final[dict[str, type[DumpRecord]]] = {
    record.table_name: record for record in STAGING_RECORDS
}
