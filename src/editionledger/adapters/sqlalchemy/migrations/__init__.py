"""Alembic migrations shipped inside the package."""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from editionledger.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent

log = getLogger(__name__)


def alembic_config(database_uri: str | None = None) -> Config:
    """Config for the packaged scripts; no ``alembic.ini`` is needed."""

    config = Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    if database_uri is not None:
        config.set_main_option("sqlalchemy.url", database_uri)
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the schema to the latest revision, on ``engine`` when one is given."""

    if engine is None:
        uri = database_uri or get_database_config().uri
        log.debug("Upgrading schema by URI")
        command.upgrade(alembic_config(uri), "head")
        return

    config = alembic_config()
    # the environment script reuses this connection instead of opening its own
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        log.debug(f"Upgrading {engine.dialect.name} schema")
        command.upgrade(config, "head")
