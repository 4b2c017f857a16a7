"""SQLAlchemy adapter package for the catalog importer."""

from __future__ import annotations

from .cleanup import drop_staging
from .mappings import (
    albums_table,
    band_aliases_table,
    bands_table,
    mapper_registry,
    start_mappers,
    tracks_table,
)
from .qualifying import QualifyingCounts, QualifyingSetBuilder
from .repositories import (
    SqlAlchemyAlbumRepository,
    SqlAlchemyBandAliasRepository,
    SqlAlchemyBandRepository,
    SqlAlchemyTrackRepository,
)
from .staging import StagingLoader, StagingLoadResult, attach_staging_namespace
from .transform import TransformLoader
from .unit_of_work import SqlAlchemyCatalogUnitOfWork, connect, shutdown, startup

__all__ = [
    "QualifyingCounts",
    "QualifyingSetBuilder",
    "SqlAlchemyAlbumRepository",
    "SqlAlchemyBandAliasRepository",
    "SqlAlchemyBandRepository",
    "SqlAlchemyCatalogUnitOfWork",
    "SqlAlchemyTrackRepository",
    "StagingLoadResult",
    "StagingLoader",
    "TransformLoader",
    "albums_table",
    "attach_staging_namespace",
    "band_aliases_table",
    "bands_table",
    "connect",
    "drop_staging",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
    "tracks_table",
]
