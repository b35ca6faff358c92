"""
Upgrade the portal database to the latest Alembic revision.

Usage:
    python -m app.scripts.run_migrations [DATABASE_URL]
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect

from app.core.logging_config import setup_logging


BASELINE_REVISION = "20261019_01"
PORTAL_TABLES = frozenset({"employees", "users", "image_requests"})
PROJECT_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger("scripts.run_migrations")


def _build_alembic_config(database_url: Optional[str] = None) -> Config:
    ini_path = PROJECT_ROOT / "alembic.ini"
    if not ini_path.exists():
        raise FileNotFoundError(f"alembic.ini not found at {ini_path}")
    cfg = Config(str(ini_path))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    # The app configures logging itself; env.py must not replace it.
    cfg.attributes["skip_logging_config"] = True
    url = database_url or os.getenv("DATABASE_URL")
    if url:
        cfg.set_main_option("sqlalchemy.url", url)
        cfg.attributes["database_url_set"] = True
    return cfg


def _existing_tables(url: str) -> set[str]:
    engine = create_engine(url)
    try:
        return set(inspect(engine).get_table_names())
    finally:
        engine.dispose()


def _needs_baseline_stamp(cfg: Config) -> bool:
    url = cfg.get_main_option("sqlalchemy.url")
    if not url:
        return False
    tables = _existing_tables(url)
    # Schemas made by create_all() have the tables but no revision row.
    return "alembic_version" not in tables and PORTAL_TABLES <= tables


def run_migrations_to_head(database_url: Optional[str] = None) -> None:
    cfg = _build_alembic_config(database_url)
    if _needs_baseline_stamp(cfg):
        logger.info("Stamping existing portal schema at %s", BASELINE_REVISION)
        command.stamp(cfg, BASELINE_REVISION)
    command.upgrade(cfg, "head")


def main(argv: Optional[list[str]] = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    setup_logging()
    try:
        run_migrations_to_head(args[0] if args else None)
    except Exception as exc:
        logger.error("Migration failed: %s", exc)
        return 1
    logger.info("Database is at head")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
