"""Dialect-specific SQL used by the importer (upserts and date construction)."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import Date, func, select, true
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement

from catalog_ingest.domain.errors import UnsupportedDialectError
from catalog_ingest.domain.model import Source

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from sqlalchemy import ColumnElement, Connection, Select, Subquery, Table
    from sqlalchemy.sql.compiler import SQLCompiler

    type UpsertInsert = postgresql.Insert | sqlite.Insert

SUPPORTED_DIALECTS: Final[frozenset[str]] = frozenset({"postgresql", "sqlite"})


def dialect_name(connection: Connection) -> str:
    name = connection.dialect.name
    if name not in SUPPORTED_DIALECTS:
        raise UnsupportedDialectError(name)
    return name


def dialect_insert(connection: Connection, table: Table) -> UpsertInsert:
    """Return the dialect's ``INSERT`` construct, which knows ``ON CONFLICT``."""

    if dialect_name(connection) == "postgresql":
        return postgresql.insert(table)
    return sqlite.insert(table)


def upsert_external(
    insert: UpsertInsert,
    table: Table,
    *,
    key: str,
    update_columns: Iterable[str],
) -> UpsertInsert:
    """Add ``ON CONFLICT (key) DO UPDATE`` that only touches external rows.

    Every refreshed row is marked verified and gets a new ``updated_at``;
    rows owned by the application (``source = user_submitted``) are skipped.
    """

    excluded = insert.excluded
    values: dict[str, Any] = {column: excluded[column] for column in update_columns}
    values["verified"] = true()
    values["updated_at"] = func.now()
    return insert.on_conflict_do_update(
        index_elements=[table.c[key]],
        set_=values,
        where=table.c.source == Source.EXTERNAL,
    )


def insert_from_page(
    connection: Connection,
    table: Table,
    page: Select[Any],
    columns: Iterable[str],
    *,
    where: Callable[[Subquery], ColumnElement[bool]] | None = None,
) -> UpsertInsert:
    """``INSERT INTO table (columns) SELECT ... FROM (page) WHERE ...``.

    The page is wrapped in a sub-select that always has a ``WHERE``: SQLite
    cannot tell an upsert's ``ON CONFLICT`` from a join's ``ON`` otherwise.
    ``where`` builds an extra filter over the wrapped page.
    """

    names = list(columns)
    subquery = page.subquery("page")
    criterion = where(subquery) if where is not None else true()
    outer = select(*(subquery.c[name] for name in names)).where(criterion)
    return dialect_insert(connection, table).from_select(names, outer)


def first_of_missing(part: ColumnElement[Any]) -> ColumnElement[Any]:
    """Month or day of a partial date: 0 and NULL both mean "the first"."""

    return func.coalesce(func.nullif(part, 0), 1)


class partial_date(FunctionElement[date]):  # noqa: N801
    """Calendar date from (year, month, day) parts; NULL when the year is unknown."""

    type = Date()
    name = "partial_date"
    inherit_cache = True


def _date_parts(element: partial_date, compiler: SQLCompiler, **kw: Any) -> tuple[str, str, str]:
    year, month, day = list(element.clauses)
    return (
        compiler.process(year, **kw),
        compiler.process(first_of_missing(month), **kw),
        compiler.process(first_of_missing(day), **kw),
    )


@compiles(partial_date)
@compiles(partial_date, "postgresql")
def _compile_partial_date(element: partial_date, compiler: SQLCompiler, **kw: Any) -> str:
    year, month, day = _date_parts(element, compiler, **kw)
    return f"make_date({year}, {month}, {day})"


@compiles(partial_date, "sqlite")
def _compile_partial_date_sqlite(element: partial_date, compiler: SQLCompiler, **kw: Any) -> str:
    year, month, day = _date_parts(element, compiler, **kw)
    return (
        f"CASE WHEN {year} IS NULL THEN NULL "
        f"ELSE printf('%04d-%02d-%02d', {year}, {month}, {day}) END"
    )


def date_sort_key(
    year: ColumnElement[Any],
    month: ColumnElement[Any],
    day: ColumnElement[Any],
) -> ColumnElement[Any]:
    """Integer ``YYYYMMDD`` ordering key; NULL when the year is unknown."""

    return year * 10000 + first_of_missing(month) * 100 + first_of_missing(day)

