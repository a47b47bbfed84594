import logging

from src.base.db import async_session
from src.blacklist.ledger import BLACKLIST_TTL, SqlBlacklistLedger

logger = logging.getLogger(__name__)


async def run_blacklist_cleanup() -> int:
    """Drop blacklist entries older than a day, whatever their request's state."""
    ledger = SqlBlacklistLedger(async_session)
    try:
        removed = await ledger.cleanup_expired(BLACKLIST_TTL)
    except Exception:
        logger.exception("Blacklist cleanup failed")
        return 0

    logger.info("Blacklist cleanup removed %d expired entries", removed)
    return removed
