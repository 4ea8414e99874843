"""
Recompute analytics snapshots for active users.
Usage: python -m jobtracker.scripts.refresh_analytics [--stale-only] [--email user@example.com]
"""
import argparse
import logging
import sys

from sqlalchemy.orm import Session

from jobtracker.database import SessionLocal, ensure_tables_exist
from jobtracker.logging_config import setup_logging
from jobtracker.repos import analytics_repo
from jobtracker.repos.user_repo import get_by_email, list_active
from jobtracker.services import analytics_service

logger = logging.getLogger(__name__)


def refresh_all(db: Session, stale_only: bool = False, users=None) -> dict:
    """Refresh each user's snapshot. One user's failure does not stop the rest."""
    refreshed, skipped, failed = 0, 0, 0
    for user in users if users is not None else list_active(db):
        if stale_only and not analytics_service.needs_refresh(analytics_repo.get_snapshot(db, user.id)):
            skipped += 1
            continue
        try:
            analytics_service.refresh(db, user.id)
        except Exception as e:
            db.rollback()
            failed += 1
            logger.exception("Analytics refresh failed for user=%s: %s", user.id, e)
            continue
        refreshed += 1
    return {"refreshed": refreshed, "skipped": skipped, "failed": failed}


def main():
    parser = argparse.ArgumentParser(description="Recompute analytics snapshots")
    parser.add_argument("--stale-only", action="store_true", help="Only recompute snapshots that are stale or missing")
    parser.add_argument("--email", help="Refresh a single user")
    args = parser.parse_args()

    setup_logging()
    ensure_tables_exist()
    db = SessionLocal()
    try:
        users = None
        if args.email:
            user = get_by_email(db, args.email)
            if not user:
                print(f"User not found: {args.email}")
                sys.exit(1)
            users = [user]
        result = refresh_all(db, stale_only=args.stale_only, users=users)
        logger.info("Analytics refresh result: %s", result)
    finally:
        db.close()


if __name__ == "__main__":
    main()
