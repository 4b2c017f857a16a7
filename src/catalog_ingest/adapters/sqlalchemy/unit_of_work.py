"""SQLAlchemy engine state and the unit of work over the canonical catalog."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from catalog_ingest.adapters.sqlalchemy.mappings import start_mappers
from catalog_ingest.adapters.sqlalchemy.migrations import upgrade_head
from catalog_ingest.adapters.sqlalchemy.repositories import (
    SqlAlchemyAlbumRepository,
    SqlAlchemyBandAliasRepository,
    SqlAlchemyBandRepository,
    SqlAlchemyTrackRepository,
)
from catalog_ingest.config.storage import get_database_uri
from catalog_ingest.domain.ports.unit_of_work import CatalogRepositories, RepositoryCollection

if TYPE_CHECKING:
    from sqlite3 import Connection as SQLiteConnection
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine
    from sqlalchemy.pool import ConnectionPoolEntry


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


@dataclass(slots=True)
class _AdapterState:
    _engine: Engine | None = None
    _session_factory: sessionmaker[Session] | None = None

    @property
    def engine(self) -> Engine | None:
        return self._engine

    @engine.setter
    def engine(self, value: Engine | None) -> None:
        self._session_factory = None
        self._engine = value

    def require_engine(self) -> Engine:
        if self._engine is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call catalog_ingest.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        engine = self.require_engine()
        if self._session_factory is None:
            self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        return self._session_factory


_STATE = _AdapterState()


def _enable_sqlite_foreign_keys(
    dbapi_connection: SQLiteConnection,
    connection_record: ConnectionPoolEntry,
) -> None:
    _ = connection_record
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Initialise the SQLAlchemy engine, mappers and schema."""

    if _STATE.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(database_uri or get_database_uri(), future=True)
    if resolved_engine.dialect.name == "sqlite" and not event.contains(
        resolved_engine, "connect", _enable_sqlite_foreign_keys
    ):
        event.listen(resolved_engine, "connect", _enable_sqlite_foreign_keys)
    start_mappers()
    upgrade_head(engine=resolved_engine)

    _STATE.engine = resolved_engine


def configured_engine() -> Engine | None:
    """Return the engine currently managed by the adapter (if any)."""

    return _STATE.engine


def is_started() -> bool:
    """Return whether the adapter has been initialised."""

    return _STATE.engine is not None


def connect() -> Connection:
    """Open the single connection an import run holds from start to end.

    Temporary tables (and an in-memory SQLite staging database) belong to
    one connection, so every stage of a run must share it.
    """

    return _STATE.require_engine().connect()


def shutdown() -> None:
    """Dispose the managed engine and reset state (primarily for tests)."""

    if _STATE.engine is not None:
        _STATE.engine.dispose()
    _STATE.engine = None


class BaseSqlAlchemyUnitOfWork[TRepositories: RepositoryCollection](ABC):
    """Generic SQLAlchemy unit of work with pluggable repository collections."""

    def __init__(self) -> None:
        self.session_factory: sessionmaker[Session] = _STATE.session_factory
        self._session: Session | None = None

    @abstractmethod
    def _build_repositories(self, session: Session) -> TRepositories: ...

    def __enter__(self) -> BaseSqlAlchemyUnitOfWork[TRepositories]:
        self.session = self.session_factory()
        self._repositories = self._build_repositories(self.session)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self.session = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> TRepositories:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session

    @session.setter
    def session(self, session: Session | None) -> None:
        if self._session is not None and session is not None:
            raise StartupError("Unit of work session already initialised")
        self._session = session


class SqlAlchemyCatalogUnitOfWork(BaseSqlAlchemyUnitOfWork[CatalogRepositories]):
    """Unit of work over bands, albums, tracks and band aliases."""

    def _build_repositories(self, session: Session) -> CatalogRepositories:
        return CatalogRepositories(
            bands=SqlAlchemyBandRepository(session),
            albums=SqlAlchemyAlbumRepository(session),
            tracks=SqlAlchemyTrackRepository(session),
            band_aliases=SqlAlchemyBandAliasRepository(session),
        )


if TYPE_CHECKING:
    from catalog_ingest.domain.ports.unit_of_work import CatalogUnitOfWork

    _uow_check: CatalogUnitOfWork = SqlAlchemyCatalogUnitOfWork()
