"""
Background scheduler for automated tasks.

Handles:
- Yearly loyalty check (January 1st at midnight, shop timezone)
"""
import os
import logging

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

YEARLY_CHECK_JOB_ID = 'yearly_loyalty_check'

# Global scheduler instance
_scheduler = None
_flask_app = None  # Store Flask app reference for context


def init_scheduler(app):
    """
    Initialize the background scheduler.

    Only runs in production or when ENABLE_SCHEDULER=true.
    Only one process per deployment should run the scheduler.
    """
    global _scheduler, _flask_app

    _flask_app = app

    if app.config.get('TESTING'):
        logger.info('[Scheduler] Disabled in testing mode')
        return None

    if not (os.getenv('FLASK_ENV') == 'production' or os.getenv('ENABLE_SCHEDULER') == 'true'):
        logger.info('[Scheduler] Disabled (set FLASK_ENV=production or ENABLE_SCHEDULER=true)')
        return None

    # Prevent multiple scheduler instances (important for gunicorn workers)
    if os.getenv('SCHEDULER_RUNNING') == 'true':
        logger.info('[Scheduler] Already running in another process')
        return None

    _scheduler = create_scheduler(app.config['LOYALTY_TIMEZONE'])
    _scheduler.start()
    os.environ['SCHEDULER_RUNNING'] = 'true'

    logger.info(
        f"[Scheduler] Started: yearly loyalty check on Jan 1 at 0:00 "
        f"{app.config['LOYALTY_TIMEZONE']}"
    )

    import atexit
    atexit.register(shutdown_scheduler)

    return _scheduler


def create_scheduler(timezone: str) -> BackgroundScheduler:
    """Build the scheduler with its jobs registered (not started)."""
    scheduler = BackgroundScheduler(
        timezone=timezone,
        job_defaults={
            'coalesce': True,  # Combine missed runs
            'max_instances': 1,  # Prevent concurrent runs
            'misfire_grace_time': 3600  # 1 hour grace period
        }
    )

    scheduler.add_job(
        run_yearly_loyalty_check,
        trigger=CronTrigger(month=1, day=1, hour=0, minute=0, timezone=timezone),
        id=YEARLY_CHECK_JOB_ID,
        name='Yearly loyalty points check',
        replace_existing=True
    )

    return scheduler


def shutdown_scheduler():
    """Gracefully shutdown the scheduler."""
    global _scheduler
    if _scheduler and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info('[Scheduler] Shutdown complete')


def run_yearly_loyalty_check():
    """
    Run the yearly loyalty check for the year that just started.

    Failures are logged and re-raised so APScheduler reports the job as failed;
    the batch is not retried until the next scheduled run.
    """
    global _flask_app

    if not _flask_app:
        logger.error('[Scheduler] Flask app not initialized')
        return None

    logger.info('[Scheduler] Starting yearly loyalty check...')

    with _flask_app.app_context():
        from ..extensions import get_profile_store
        from ..services.yearly_check import YearlyLoyaltyCheck

        try:
            check = YearlyLoyaltyCheck(
                get_profile_store(_flask_app),
                timezone=_flask_app.config['LOYALTY_TIMEZONE']
            )
            result = check.run()
        except Exception as e:
            logger.error(f'[Scheduler] Yearly loyalty check failed: {e}')
            raise

        logger.info(
            f"[Scheduler] Yearly loyalty check complete: "
            f"{result['reduced']} reduced, {result['skipped']} skipped"
        )
        return result
