"""Scheduled maintenance: expire lapsed QR tokens, then send queued emails.

Intended for cron:
    */5 * * * * cd /srv/visitgate && python -m scripts.run_sweep
"""

import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from visitgate.database import engine, session_scope
from visitgate.services.invitations import expire_stale_invitations
from visitgate.services.notifications import LoggingEmailSender, dispatch_pending

logger = logging.getLogger("visitgate.sweep")


async def run() -> None:
    try:
        async with session_scope() as session:
            expired = await expire_stale_invitations(session)
        # Separate transaction: a dispatch problem must not undo the expiry.
        async with session_scope() as session:
            summary = await dispatch_pending(session, LoggingEmailSender())
    finally:
        await engine.dispose()
    logger.info("Sweep complete: expired=%d sent=%d failed=%d", expired, summary.sent, summary.failed)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    asyncio.run(run())
