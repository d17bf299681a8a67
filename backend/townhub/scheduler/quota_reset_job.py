"""
Monthly quota reset: zero every counter whose reset_at has passed.

Triggered by POST /cron/reset-quotas (external cron) or, when QUOTA_RESET_JOB_ENABLED is
set, by the in-process scheduler once a day. Safe to run more often than monthly: counters
that are not due are left alone.
"""
import logging

from townhub.db.session import SessionLocal
from townhub.services.quota_service import ResetResult, reset_monthly_quotas

logger = logging.getLogger(__name__)


def run_quota_reset_job() -> ResetResult | None:
    db = SessionLocal()
    try:
        result = reset_monthly_quotas(db)
        if result.failed_count:
            logger.warning("Quota reset job: %s counter(s) failed", result.failed_count)
        return result
    except Exception as e:
        logger.exception("Quota reset job failed: %s", e)
        db.rollback()
        return None
    finally:
        db.close()
