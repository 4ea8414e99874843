from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jobtracker.database import Base, JSONType


class Reminder(Base):
    __tablename__ = "reminders"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    job_application_id = Column(
        String, ForeignKey("job_applications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(200), nullable=False)
    description = Column(String(1000), nullable=True)
    reminder_date = Column(DateTime(timezone=True), nullable=False, index=True)
    reminder_type = Column(String, nullable=False)
    priority = Column(String, nullable=False, default="medium")
    status = Column(String, nullable=False, default="pending", index=True)

    is_recurring = Column(Boolean, nullable=False, default=False)
    recurrence_type = Column(String, nullable=True)
    recurrence_interval = Column(Integer, nullable=True)
    recurrence_end_date = Column(DateTime(timezone=True), nullable=True)

    notify_email = Column(Boolean, nullable=False, default=True)
    notify_push = Column(Boolean, nullable=False, default=True)
    notify_sms = Column(Boolean, nullable=False, default=False)
    email_sent = Column(Boolean, nullable=False, default=False)

    completed_at = Column(DateTime(timezone=True), nullable=True)
    snooze_until = Column(DateTime(timezone=True), nullable=True)
    notes = Column(Text, nullable=True)
    tags = Column(JSONType, nullable=True)
    is_auto_generated = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="reminders")
    job = relationship("JobApplication", back_populates="reminders")
