"""
Create the seven base-hours rows for a site.

Usage:
    python -m storehours.scripts.init_site --site-id SITE_1 [--org-id ORG_1]
"""

from __future__ import annotations

import argparse
import logging

from ..core.auth import SYSTEM_ACTOR
from ..core.db import SessionContext
from ..core.logging_config import setup_logging
from ..services.store_hours import initialize_base_hours


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Initialize weekly base hours for a site")
    parser.add_argument("--site-id", required=True)
    parser.add_argument("--org-id", default=None)
    parser.add_argument("--changed-by", default=SYSTEM_ACTOR)
    args = parser.parse_args(argv)

    setup_logging()
    logger = logging.getLogger("init_site")
    with SessionContext() as db:
        rows = initialize_base_hours(db, args.site_id, args.org_id, args.changed_by)
    logger.info("Site %s has %s base hours rows", args.site_id, len(rows))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
