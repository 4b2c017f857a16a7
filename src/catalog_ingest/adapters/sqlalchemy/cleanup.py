"""Teardown of the staging namespace and the qualifying sets."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from .qualifying import drop_qualifying_tables
from .staging import IN_MEMORY, drop_staging_namespace

if TYPE_CHECKING:
    from sqlalchemy import Connection

log = getLogger(__name__)


def drop_staging(connection: Connection, *, sqlite_staging_path: str = IN_MEMORY) -> None:
    """Drop the temporary qualifying tables and the staging namespace.

    Every drop tolerates a missing object, so this can run after a failed or
    partial run and any number of times.
    """

    with connection.begin():
        drop_qualifying_tables(connection)
    # SQLite cannot detach a database inside a transaction that wrote to it
    with connection.begin():
        drop_staging_namespace(connection, sqlite_path=sqlite_staging_path)
    log.info("Staging schema dropped")
