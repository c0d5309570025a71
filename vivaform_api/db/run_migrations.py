"""
Alembic without an alembic.ini: the script location is this package's
migrations directory and the URL comes from DatabaseSettings.

Used by the startup hook (RUN_MIGRATIONS_ON_STARTUP) and by
`python -m vivaform_api.cli migrate ...`.
"""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from vivaform_api.db.config import get_database_settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

COMMANDS = {
    "upgrade": command.upgrade,
    "downgrade": command.downgrade,
    "current": command.current,
    "history": command.history,
    "heads": command.heads,
}


def alembic_config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    # ConfigParser interpolation treats % specially (URL-encoded passwords)
    cfg.set_main_option("sqlalchemy.url", get_database_settings().sync_database_url.replace("%", "%%"))
    return cfg


# PUBLIC_INTERFACE
def run_alembic(name: str, revision: str | None = None) -> None:
    """Run one Alembic command; upgrade/downgrade take a revision (default head / -1)."""
    if name not in COMMANDS:
        raise ValueError(f"Unsupported Alembic command: {name}")
    cfg = alembic_config()
    logger.info("alembic %s %s", name, revision or "")
    if name == "upgrade":
        command.upgrade(cfg, revision or "head")
    elif name == "downgrade":
        command.downgrade(cfg, revision or "-1")
    else:
        COMMANDS[name](cfg)


# PUBLIC_INTERFACE
def upgrade_head() -> None:
    run_alembic("upgrade", "head")
