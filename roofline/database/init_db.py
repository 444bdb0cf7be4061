import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig

import roofline.database.db as db_module
from roofline.core.startup import bootstrap
from roofline.database.models import Base

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def build_alembic_config(database_url: str) -> AlembicConfig:
    cfg = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def init_db(use_migrations: bool = True) -> None:
    """Bring the local store schema up to date."""
    bootstrap()
    active_url = db_module.get_active_database_url()
    if use_migrations:
        command.upgrade(build_alembic_config(active_url), "head")
    else:
        Base.metadata.create_all(bind=db_module.get_engine())
    logger.info(
        "database.tables.created",
        extra={
            "event": "database.tables.created",
            "database_url_scheme": active_url.split("://", 1)[0],
            "migrations": use_migrations,
        },
    )


if __name__ == "__main__":
    init_db()
