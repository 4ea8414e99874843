from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jobtracker.database import Base, JSONType


class AnalyticsSnapshot(Base):
    """Cached aggregate for one user. Never the source of truth."""

    __tablename__ = "analytics_snapshots"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    data = Column(JSONType, nullable=True)
    last_calculated = Column(DateTime(timezone=True), nullable=True)
    is_stale = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="analytics_snapshot")
