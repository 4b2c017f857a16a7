"""Staging namespace and bulk load of the dump files."""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import islice
from logging import getLogger
from pathlib import Path
from types import UnionType
from typing import TYPE_CHECKING, Any, Final, Union, get_args, get_origin

from psycopg import sql
from sqlalchemy import BigInteger, Boolean, Column, Index, Integer, MetaData, Table, Text, text
from sqlalchemy.schema import CreateIndex, CreateSchema, CreateTable, DropSchema

from catalog_ingest.adapters.musicbrainz_dump.schema import STAGING_RECORDS, WideInteger

from .dialects import dialect_name

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

    from pydantic.fields import FieldInfo
    from sqlalchemy import Connection
    from sqlalchemy.types import TypeEngine

    from catalog_ingest.adapters.musicbrainz_dump.schema import DumpRecord

log = getLogger(__name__)

STAGING_SCHEMA: Final[str] = "musicbrainz_staging"
PROGRESS_EVERY_ROWS: Final[int] = 1_000_000
INSERT_CHUNK_SIZE: Final[int] = 10_000
IN_MEMORY: Final[str] = ":memory:"

staging_metadata = MetaData(schema=STAGING_SCHEMA)


def _column_type(info: FieldInfo) -> TypeEngine[Any]:
    if any(isinstance(marker, WideInteger) for marker in info.metadata):
        return BigInteger()
    annotation = info.annotation
    if isinstance(annotation, UnionType) or get_origin(annotation) is Union:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        annotation = args[0] if len(args) == 1 else str
    if annotation is bool:
        return Boolean()
    if annotation is int:
        return Integer()
    return Text()


def build_staging_table(record: type[DumpRecord], metadata: MetaData = staging_metadata) -> Table:
    """Generate the staging table of ``record``: its columns in dump order, no keys."""

    columns = [
        Column(name, _column_type(info), nullable=True)
        for name, info in record.model_fields.items()
    ]
    indexes = [
        Index(f"idx_stg_{record.table_name}_{'_'.join(index)}", *index)
        for index in record.indexes
    ]
    return Table(record.table_name, metadata, *columns, *indexes)


STAGING_TABLES: Final[dict[str, Table]] = {
    record.table_name: build_staging_table(record) for record in STAGING_RECORDS
}


def staging_table(name: str) -> Table:
    return STAGING_TABLES[name]


# Namespace ---------------------------------------------------------------------


def _attached_databases(connection: Connection) -> dict[str, str]:
    rows = connection.exec_driver_sql("PRAGMA database_list").all()
    return {row[1]: row[2] or IN_MEMORY for row in rows}


def staging_namespace_exists(connection: Connection) -> bool:
    if dialect_name(connection) == "sqlite":
        return STAGING_SCHEMA in _attached_databases(connection)
    return bool(
        connection.execute(
            text("SELECT 1 FROM information_schema.schemata WHERE schema_name = :name"),
            {"name": STAGING_SCHEMA},
        ).scalar()
    )


def attach_staging_namespace(connection: Connection, *, sqlite_path: str = IN_MEMORY) -> bool:
    """Make an existing file-backed SQLite staging database visible to ``connection``.

    Returns whether the namespace is available afterwards. PostgreSQL schemas
    are shared by every connection, so there is nothing to attach.
    """

    if dialect_name(connection) == "postgresql":
        return staging_namespace_exists(connection)
    if STAGING_SCHEMA in _attached_databases(connection):
        return True
    if sqlite_path == IN_MEMORY or not Path(sqlite_path).exists():
        return False
    connection.exec_driver_sql(f"ATTACH DATABASE ? AS {STAGING_SCHEMA}", (sqlite_path,))
    return True


def drop_staging_namespace(connection: Connection, *, sqlite_path: str = IN_MEMORY) -> None:
    """Drop the staging namespace with everything in it; no-op when absent.

    On SQLite the attached database is detached and its file, if any, deleted.
    """

    if dialect_name(connection) == "postgresql":
        connection.execute(DropSchema(STAGING_SCHEMA, cascade=True, if_exists=True))
        return
    files = {sqlite_path}
    attached = _attached_databases(connection)
    if STAGING_SCHEMA in attached:
        files.add(attached[STAGING_SCHEMA])
        connection.exec_driver_sql(f"DETACH DATABASE {STAGING_SCHEMA}")
    for file in files - {IN_MEMORY}:
        Path(file).unlink(missing_ok=True)


def create_staging_namespace(connection: Connection, *, sqlite_path: str = IN_MEMORY) -> None:
    """Create an empty staging namespace, replacing any leftover one.

    On SQLite the namespace is an attached database, file-backed or in memory.
    """

    drop_staging_namespace(connection, sqlite_path=sqlite_path)
    if dialect_name(connection) == "postgresql":
        connection.execute(CreateSchema(STAGING_SCHEMA))
        return
    if sqlite_path != IN_MEMORY:
        Path(sqlite_path).parent.mkdir(parents=True, exist_ok=True)
    connection.exec_driver_sql(f"ATTACH DATABASE ? AS {STAGING_SCHEMA}", (sqlite_path,))


# Loading -----------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class StagingLoadResult:
    rows_by_table: dict[str, int] = field(default_factory=dict[str, int])
    missing_tables: tuple[str, ...] = ()
    index_count: int = 0

    @property
    def total_rows(self) -> int:
        return sum(self.rows_by_table.values())


class StagingLoader:
    """Recreate the staging namespace and stream every dump file into it."""

    def __init__(
        self,
        connection: Connection,
        dump_dir: Path,
        *,
        sqlite_staging_path: str = IN_MEMORY,
        records: Sequence[type[DumpRecord]] = STAGING_RECORDS,
        chunk_size: int = INSERT_CHUNK_SIZE,
    ) -> None:
        self._connection = connection
        self._dump_dir = dump_dir
        self._sqlite_staging_path = sqlite_staging_path
        self._records = tuple(records)
        self._chunk_size = chunk_size

    def load(self) -> StagingLoadResult:
        self.create_tables()

        rows_by_table: dict[str, int] = {}
        missing: list[str] = []
        for record in self._records:
            path = self._dump_dir / record.table_name
            if not path.exists():
                log.warning("File not found, skipping: %s", path)
                missing.append(record.table_name)
                continue
            with self._connection.begin():
                rows_by_table[record.table_name] = self.load_table(record, path)

        index_count = self.create_indexes()
        return StagingLoadResult(
            rows_by_table=rows_by_table,
            missing_tables=tuple(missing),
            index_count=index_count,
        )

    def create_tables(self) -> None:
        log.info("Creating staging schema")
        with self._connection.begin():
            create_staging_namespace(self._connection, sqlite_path=self._sqlite_staging_path)
            for record in self._records:
                # CreateTable leaves the declared indexes for create_indexes()
                self._connection.execute(CreateTable(staging_table(record.table_name)))
        log.info("Staging schema created with %d tables", len(self._records))

    def load_table(self, record: type[DumpRecord], path: Path) -> int:
        size_mb = path.stat().st_size / 1_048_576
        log.info("Loading %s (%.1f MB)", record.table_name, size_mb)
        if dialect_name(self._connection) == "postgresql":
            rows = self._copy_file(record, path)
        else:
            rows = self._insert_file(record, path)
        log.info("%s: %d rows loaded", record.table_name, rows)
        return rows

    def create_indexes(self) -> int:
        log.info("Creating staging indexes")
        count = 0
        with self._connection.begin():
            for record in self._records:
                for index in staging_table(record.table_name).indexes:
                    self._connection.execute(CreateIndex(index))
                    count += 1
        log.info("%d indexes created", count)
        return count

    def _copy_file(self, record: type[DumpRecord], path: Path) -> int:
        driver_connection = self._connection.connection.driver_connection
        statement = sql.SQL("COPY {}.{} ({}) FROM STDIN").format(
            sql.Identifier(STAGING_SCHEMA),
            sql.Identifier(record.table_name),
            sql.SQL(", ").join(sql.Identifier(name) for name in record.column_names()),
        )
        rows = 0
        with (
            driver_connection.cursor() as cursor,
            cursor.copy(statement) as copy,
            path.open("rb") as handle,
        ):
            for line in handle:
                copy.write(line)
                rows += 1
                if rows % PROGRESS_EVERY_ROWS == 0:
                    log.info("  %s: %d rows loaded", record.table_name, rows)
        return rows

    def _insert_file(self, record: type[DumpRecord], path: Path) -> int:
        table = staging_table(record.table_name)
        rows = 0
        with path.open(encoding="utf-8", newline="") as handle:
            for chunk in _chunks(handle, self._chunk_size):
                self._connection.execute(
                    table.insert(),
                    [record.from_line(line).as_row() for line in chunk],
                )
                previous = rows
                rows += len(chunk)
                if rows // PROGRESS_EVERY_ROWS > previous // PROGRESS_EVERY_ROWS:
                    log.info("  %s: %d rows loaded", record.table_name, rows)
        return rows


def _chunks(lines: Iterable[str], size: int) -> Iterator[list[str]]:
    iterator = (line for line in lines if line.strip("\r\n"))
    while chunk := list(islice(iterator, size)):
        yield chunk
