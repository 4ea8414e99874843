from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jobtracker.database import Base, JSONType


class JobApplication(Base):
    __tablename__ = "job_applications"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    job_title = Column(String(100), nullable=False)
    company = Column(String(100), nullable=False, index=True)
    company_website = Column(String, nullable=True)
    location = Column(JSONType, nullable=True)
    job_type = Column(String, nullable=False, default="Full-time")
    experience_level = Column(String, nullable=True)
    department = Column(String, nullable=True)

    salary_min = Column(Integer, nullable=True)
    salary_max = Column(Integer, nullable=True)
    salary_currency = Column(String(3), nullable=False, default="INR")
    salary_period = Column(String, nullable=True)

    application_date = Column(DateTime(timezone=True), nullable=False)
    application_deadline = Column(DateTime(timezone=True), nullable=True)
    status = Column(String, nullable=False, default="Applied", index=True)

    source = Column(JSONType, nullable=True)
    contacts = Column(JSONType, nullable=True)
    interviews = Column(JSONType, nullable=True)
    documents = Column(JSONType, nullable=True)
    resume_id = Column(String, ForeignKey("resumes.id", ondelete="SET NULL"), nullable=True)

    job_description = Column(Text, nullable=True)
    requirements = Column(JSONType, nullable=True)
    skills_required = Column(JSONType, nullable=True)
    benefits = Column(JSONType, nullable=True)
    notes = Column(Text, nullable=True)
    research_notes = Column(Text, nullable=True)
    priority = Column(String, nullable=False, default="Medium")
    tags = Column(JSONType, nullable=True)

    follow_up_date = Column(DateTime(timezone=True), nullable=True)
    last_follow_up_date = Column(DateTime(timezone=True), nullable=True)
    follow_up_count = Column(Integer, nullable=False, default=0)

    view_count = Column(Integer, nullable=False, default=0)
    last_viewed_at = Column(DateTime(timezone=True), nullable=True)
    time_in_status = Column(JSONType, nullable=True)
    ai_insights = Column(JSONType, nullable=True)

    is_archived = Column(Boolean, nullable=False, default=False, index=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="jobs")
    status_history = relationship(
        "JobStatusHistory",
        back_populates="job",
        order_by="JobStatusHistory.id",
        cascade="all, delete-orphan",
    )
    reminders = relationship("Reminder", back_populates="job", cascade="all, delete-orphan")


class JobStatusHistory(Base):
    __tablename__ = "job_status_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_id = Column(String, ForeignKey("job_applications.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String, nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)
    added_by = Column(String, nullable=False, default="User")

    job = relationship("JobApplication", back_populates="status_history")
