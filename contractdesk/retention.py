"""
Purge expired login sessions from the session table. Schedule it with cron:

  python -m contractdesk.retention [--dry-run]

Expired rows are already invisible to requests; the job only keeps the table small.
"""

import argparse
import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from contractdesk.core.database import SessionLocal, engine
from contractdesk.core.sessions import SessionStore
from contractdesk.services.retention import run_session_retention

logger = logging.getLogger("contractdesk.retention")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Delete expired Contract Desk sessions.")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report how many sessions have expired",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    store = SessionStore(engine, SessionLocal)
    try:
        count = run_session_retention(store, dry_run=args.dry_run)
    except SQLAlchemyError:
        logger.exception("Session retention failed")
        return 1
    finally:
        engine.dispose()
    verb = "expired" if args.dry_run else "deleted"
    logger.info("Session retention finished: sessions_%s=%s", verb, count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
