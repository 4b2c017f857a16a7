"""Alembic migrations for the canonical catalog tables."""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory

from catalog_ingest.config.storage import get_database_uri

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = getLogger(__name__)

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent
PYPROJECT_PATH: Final[Path] = MIGRATIONS_PATH.parents[4] / "pyproject.toml"


def alembic_config() -> Config:
    """Alembic config for the catalog revisions.

    A source checkout contributes its ``[tool.alembic]`` table; the script
    location always points at this package so installed copies migrate too.
    """

    config = Config(toml_file=str(PYPROJECT_PATH)) if PYPROJECT_PATH.exists() else Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    return config


def head_revision() -> str | None:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the catalog tables up to the latest revision."""

    config = alembic_config()
    if engine is not None:
        with engine.begin() as connection:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
    else:
        config.set_main_option("sqlalchemy.url", database_uri or get_database_uri())
        command.upgrade(config, "head")
    log.info("Catalog schema at revision %s", head_revision())
