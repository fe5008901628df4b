import logging
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from datetime import datetime, timedelta, timezone

from hr_ledger.config import settings
from hr_ledger.db import db
from hr_ledger.utils.balance_utils import recover_stale_commits

logger = logging.getLogger(__name__)

# Create a shared scheduler instance
scheduler = AsyncIOScheduler()


async def recover_interrupted_approvals():
    now = datetime.now(timezone.utc)
    try:
        await recover_stale_commits(db, now, timedelta(seconds=settings.COMMIT_STALE_AFTER_SECONDS))
    except Exception:
        # the next run retries; the job must keep its schedule
        logger.exception("Commit recovery run failed")

# Add commit recovery job to scheduler
scheduler.add_job(
    recover_interrupted_approvals,
    "interval",
    minutes=settings.COMMIT_RECOVERY_INTERVAL_MINUTES,
    id="recover_interrupted_approvals",
    replace_existing=True,
)
