from __future__ import annotations

import pytest

from catalog_ingest.adapters.musicbrainz_dump.schema import (
    RECORD_BY_TABLE,
    STAGING_RECORDS,
    ArtistAliasRecord,
    ArtistRecord,
    CoverArtRecord,
    TrackRecord,
    decode_field,
)
from catalog_ingest.domain.errors import DumpFormatError
from tests.helpers.dump_files import dump_line


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("\\N", None),
        ("plain", "plain"),
        ("tab\\there", "tab\there"),
        ("line\\nbreak", "line\nbreak"),
        ("back\\\\slash", "back\\slash"),
        ("\\101\\x42", "AB"),
        ("", ""),
    ],
)
def test_decode_field(raw: str, expected: str | None) -> None:
    assert decode_field(raw) == expected


def test_every_staging_table_has_a_record() -> None:
    assert len(STAGING_RECORDS) == 19
    assert set(RECORD_BY_TABLE) >= {"artist", "cover_art", "iso_3166_1", "release_status"}


def test_artist_record_from_line() -> None:
    line = "7\tartist-0007\tSigur Rós\tSigur Rós\t1994\t\\N\t\\N\t\\N\t\\N\t\\N\t2\t352\t\\N\t\t0\t2024-01-01 00:00:00+00\tf\t\\N\t\\N\n"

    record = ArtistRecord.from_line(line)

    assert record.id == 7
    assert record.name == "Sigur Rós"
    assert record.begin_date_year == 1994
    assert record.begin_date_month is None
    assert record.comment == ""
    assert record.ended is False


def test_round_trip_through_dump_line() -> None:
    line = dump_line("artist_alias", id=1, artist=7, name="Name\twith tab", locale="is")

    record = ArtistAliasRecord.from_line(line)

    assert record.as_row()["name"] == "Name\twith tab"
    assert record.locale == "is"
    assert record.primary_for_locale is None


def test_boolean_columns_accept_copy_text() -> None:
    record = TrackRecord.from_line(dump_line("track", id=1, is_data_track=True))

    assert record.is_data_track is True


def test_cover_art_ids_exceed_32_bits() -> None:
    record = CoverArtRecord.from_line(dump_line("cover_art", id=35_000_000_000, release=1))

    assert record.id == 35_000_000_000


def test_wrong_field_count_is_a_format_error() -> None:
    with pytest.raises(DumpFormatError, match="artist_alias: expected 16 fields, got 2"):
        ArtistAliasRecord.from_line("1\t2\n")


def test_invalid_integer_is_a_format_error() -> None:
    with pytest.raises(DumpFormatError, match="^track"):
        TrackRecord.from_line(dump_line("track", id="not-a-number"))
