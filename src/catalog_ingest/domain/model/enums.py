"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class Source(StrEnum):
    """Who owns a catalog row.

    External rows may be refreshed by later imports; user-submitted rows are
    never touched by the importer.
    """

    EXTERNAL = "external"
    USER_SUBMITTED = "user_submitted"


class ReleaseType(StrEnum):
    ALBUM = "album"
    SINGLE = "single"
    EP = "ep"
    COMPILATION = "compilation"
    LIVE = "live"
    REMIX = "remix"
    SOUNDTRACK = "soundtrack"
    OTHER = "other"
