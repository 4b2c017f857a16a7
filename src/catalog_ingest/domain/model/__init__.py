"""Public domain model surface."""

from __future__ import annotations

from catalog_ingest.domain.model.catalog import Album, Band, BandAlias, CatalogEntity, Track
from catalog_ingest.domain.model.enums import ReleaseType, Source

__all__ = [
    "Album",
    "Band",
    "BandAlias",
    "CatalogEntity",
    "ReleaseType",
    "Source",
    "Track",
]
