from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine

from catalog_ingest.adapters.sqlalchemy.staging import StagingLoader
from catalog_ingest.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyCatalogUnitOfWork,
    shutdown,
    startup,
)
from tests.helpers.dump_files import DumpBuilder, sample_dump

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from pathlib import Path

    from sqlalchemy.engine import Connection, Engine


@pytest.fixture
def sqlite_engine(tmp_path: Path) -> Iterator[Engine]:
    # file-backed, so the unit of work and the import connection see each other's commits
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'catalog.db'}", future=True)
    startup(engine=engine, force=True)
    try:
        yield engine
    finally:
        shutdown()


@pytest.fixture
def connection(sqlite_engine: Engine) -> Iterator[Connection]:
    with sqlite_engine.connect() as conn:
        yield conn


@pytest.fixture
def catalog_unit_of_work(sqlite_engine: Engine) -> Callable[[], SqlAlchemyCatalogUnitOfWork]:
    _ = sqlite_engine
    return SqlAlchemyCatalogUnitOfWork


@pytest.fixture
def dump_dir(tmp_path: Path) -> Path:
    path = tmp_path / "mbdump"
    path.mkdir()
    return path


@pytest.fixture
def sample_dump_builder() -> DumpBuilder:
    return sample_dump()


@pytest.fixture
def staged_connection(
    connection: Connection,
    dump_dir: Path,
    sample_dump_builder: DumpBuilder,
) -> Connection:
    """Connection whose in-memory staging database holds the sample dump."""

    sample_dump_builder.write(dump_dir)
    StagingLoader(connection, dump_dir).load()
    return connection
