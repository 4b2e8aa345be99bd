"""
Token ledger cleanup.

Deletes tokens that are already spent or past their expiry. Safe to run on a
schedule (cron, systemd timer):

    python -m jobtrack.tasks.purge_tokens
    python -m jobtrack.tasks.purge_tokens --before 2026-01-01T00:00:00+00:00 --dry-run
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime

from jobtrack.core import clock
from jobtrack.core.database import SessionLocal
from jobtrack.services import tokens

logger = logging.getLogger(__name__)


def _parse_before(value: str | None) -> datetime | None:
    if not value:
        return None
    return clock.as_utc(datetime.fromisoformat(value))


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete used or expired tokens.")
    parser.add_argument("--before", help="ISO timestamp used as 'now' for the expiry check.")
    parser.add_argument("--dry-run", action="store_true", help="Only count rows, do not delete.")
    args = parser.parse_args(argv)

    try:
        before = _parse_before(args.before)
    except ValueError:
        print(f"Invalid --before value: {args.before!r}")
        return 2

    with SessionLocal() as db:
        if args.dry_run:
            count = tokens.count_purgeable(db, before=before)
            print(f"Would delete {count} token(s).")
            return 0

        removed = tokens.purge_expired(db, before=before)
        db.commit()

    logger.info("Token purge finished: removed=%s", removed)
    print(f"Deleted {removed} token(s).")
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    raise SystemExit(main())
