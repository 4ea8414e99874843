"""
Email reminders that have come due. Runs once, or on a fixed interval.
Usage: python -m jobtracker.scripts.send_due_reminders [--once] [--interval 900]
"""
import argparse
import logging
import time

from sqlalchemy.orm import Session

from jobtracker.config import settings
from jobtracker.database import SessionLocal, ensure_tables_exist
from jobtracker.logging_config import setup_logging
from jobtracker.repos import job_application_repo, reminder_repo
from jobtracker.repos.user_repo import list_active
from jobtracker.services import email_service

logger = logging.getLogger(__name__)
DEFAULT_INTERVAL_SECONDS = 900


def dispatch_due(db: Session) -> dict:
    """Send one email per due reminder and flag it so it is not sent twice."""
    sent, failed = 0, 0
    for user in list_active(db):
        for reminder in reminder_repo.due_for_email(db, user.id):
            job = job_application_repo.get_by_id(db, reminder.job_application_id, user.id)
            if email_service.notify_reminder(user, reminder, job):
                reminder_repo.mark_email_sent(db, reminder)
                sent += 1
            else:
                failed += 1
    return {"sent": sent, "failed": failed}


def main():
    parser = argparse.ArgumentParser(description="Send due reminder emails")
    parser.add_argument("--once", action="store_true", help="Run once and exit (no schedule)")
    parser.add_argument("--interval", type=int, default=DEFAULT_INTERVAL_SECONDS, help="Seconds between runs")
    args = parser.parse_args()

    setup_logging()
    if not settings.email_enabled:
        logger.warning("EMAIL_ENABLED is false; nothing to send")
        return
    ensure_tables_exist()

    while True:
        db = SessionLocal()
        try:
            result = dispatch_due(db)
            logger.info("Reminder dispatch result: %s", result)
        except Exception as e:
            logger.exception("Reminder dispatch failed: %s", e)
        finally:
            db.close()
        if args.once:
            return
        logger.info("Sleeping %d seconds until next run", args.interval)
        time.sleep(args.interval)


if __name__ == "__main__":
    main()
