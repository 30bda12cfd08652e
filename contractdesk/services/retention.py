"""Session retention: delete expired server-side sessions."""

import logging

from contractdesk.core.sessions import SessionStore

logger = logging.getLogger(__name__)


def run_session_retention(store: SessionStore, dry_run: bool = False) -> int:
    """
    Delete every session whose expiry has passed. Returns the number deleted,
    or with dry_run the number that would be deleted.

    Reads already ignore expired rows; this only reclaims space. Idempotent.
    """
    if dry_run:
        expired = store.count_expired()
        logger.info("Session retention dry run: sessions_expired=%s", expired)
        return expired
    deleted_count = store.prune_expired()
    if deleted_count > 0:
        logger.info("Session retention run: sessions_deleted=%s", deleted_count)
    return deleted_count
