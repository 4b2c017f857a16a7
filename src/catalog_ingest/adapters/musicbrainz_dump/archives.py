"""The full-export archives the importer needs and the members it keeps."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Final


@dataclass(frozen=True, slots=True)
class ArchiveMember:
    path: str
    local_name: str | None = None

    @property
    def filename(self) -> str:
        """Flat file name written into the dump directory."""

        return self.local_name or PurePosixPath(self.path).name


@dataclass(frozen=True, slots=True)
class DumpArchive:
    name: str
    members: tuple[ArchiveMember, ...]


def _members(*names: str) -> tuple[ArchiveMember, ...]:
    return tuple(ArchiveMember(f"mbdump/{name}") for name in names)


CORE_ARCHIVE: Final[DumpArchive] = DumpArchive(
    name="mbdump.tar.bz2",
    members=_members(
        "artist",
        "artist_alias",
        "artist_credit",
        "artist_credit_name",
        "recording",
        "isrc",
        "release_group",
        "release",
        "medium",
        "track",
        "release_country",
        "area",
        "iso_3166_1",
        "artist_type",
        "release_group_primary_type",
        "release_status",
    ),
)

DERIVED_ARCHIVE: Final[DumpArchive] = DumpArchive(
    name="mbdump-derived.tar.bz2",
    members=_members("tag", "artist_tag"),
)

COVER_ART_ARCHIVE: Final[DumpArchive] = DumpArchive(
    name="mbdump-cover-art-archive.tar.bz2",
    members=(ArchiveMember("mbdump/cover_art_archive.cover_art", local_name="cover_art"),),
)

DUMP_ARCHIVES: Final[tuple[DumpArchive, ...]] = (CORE_ARCHIVE, DERIVED_ARCHIVE, COVER_ART_ARCHIVE)
