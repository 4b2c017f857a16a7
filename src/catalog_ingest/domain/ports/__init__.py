"""Domain ports."""

from __future__ import annotations

from catalog_ingest.domain.ports.persistence import (
    AlbumRepository,
    BandAliasRepository,
    BandRepository,
    CatalogRepository,
    Repository,
    TrackRepository,
)
from catalog_ingest.domain.ports.unit_of_work import (
    CatalogRepositories,
    CatalogUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AlbumRepository",
    "BandAliasRepository",
    "BandRepository",
    "CatalogRepositories",
    "CatalogRepository",
    "CatalogUnitOfWork",
    "Repository",
    "RepositoryCollection",
    "TrackRepository",
    "UnitOfWork",
]
