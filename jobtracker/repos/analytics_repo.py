from datetime import datetime

from sqlalchemy.orm import Session

from jobtracker.core.clock import utcnow
from jobtracker.models.analytics_snapshot import AnalyticsSnapshot
from jobtracker.repos.scoped import ScopedRepository


def _scoped(db: Session, user_id: str) -> ScopedRepository:
    return ScopedRepository(db, AnalyticsSnapshot, user_id)


def get_snapshot(db: Session, user_id: str) -> AnalyticsSnapshot | None:
    return _scoped(db, user_id).query().first()


def get_or_create_snapshot(db: Session, user_id: str) -> AnalyticsSnapshot:
    snapshot = get_snapshot(db, user_id)
    if snapshot:
        return snapshot
    snapshot = _scoped(db, user_id).add(AnalyticsSnapshot(data=None, is_stale=True))
    db.flush()
    return snapshot


def mark_stale(db: Session, user_id: str) -> None:
    """Flag the cached summary for recompute. Joins the caller's transaction."""
    _scoped(db, user_id).query().update({AnalyticsSnapshot.is_stale: True}, synchronize_session=False)


def save_snapshot(db: Session, snapshot: AnalyticsSnapshot, data: dict, now: datetime | None = None) -> AnalyticsSnapshot:
    snapshot.data = data
    snapshot.last_calculated = now or utcnow()
    snapshot.is_stale = False
    db.commit()
    db.refresh(snapshot)
    return snapshot
