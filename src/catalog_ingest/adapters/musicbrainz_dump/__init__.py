"""Acquisition of the MusicBrainz full-export dump files."""

from __future__ import annotations

from .archives import (
    COVER_ART_ARCHIVE,
    CORE_ARCHIVE,
    DERIVED_ARCHIVE,
    DUMP_ARCHIVES,
    ArchiveMember,
    DumpArchive,
)
from .downloader import DumpDownloader, DumpDownloadResult
from .extractor import extract_members
from .schema import RECORD_BY_TABLE, STAGING_RECORDS, DumpRecord

__all__ = [
    "CORE_ARCHIVE",
    "COVER_ART_ARCHIVE",
    "DERIVED_ARCHIVE",
    "DUMP_ARCHIVES",
    "RECORD_BY_TABLE",
    "STAGING_RECORDS",
    "ArchiveMember",
    "DumpArchive",
    "DumpDownloadResult",
    "DumpDownloader",
    "DumpRecord",
    "extract_members",
]
