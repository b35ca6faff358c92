"""Export all image requests to a CSV file.

Usage:
    python -m app.scripts.export_requests [output.csv]
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from app.core.config import get_settings
from app.core.db import Database, SessionContext
from app.core.logging_config import setup_logging
from app.services.record_store import RecordStore
from app.services.roster import export_requests


logger = logging.getLogger("scripts.export_requests")

DEFAULT_OUTPUT = "image_requests_export.csv"


def main(argv: list[str] | None = None) -> int:
    setup_logging()
    args = sys.argv[1:] if argv is None else argv
    out_path = Path(args[0] if args else DEFAULT_OUTPUT)

    database = Database(get_settings().database_url)
    try:
        with SessionContext(database) as db:
            body = export_requests(RecordStore(db))
    finally:
        database.dispose()

    out_path.write_text(body, encoding="utf-8", newline="")
    rows = max(body.count("\n") - 1, 0)
    logger.info("Exported %s requests to %s", rows, out_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
