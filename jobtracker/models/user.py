from sqlalchemy import Column, String, Integer, DateTime, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jobtracker.database import Base, JSONType


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    # Null for accounts created through OAuth only.
    password_hash = Column(String, nullable=True)
    first_name = Column(String(50), nullable=False, default="")
    last_name = Column(String(50), nullable=False, default="")
    phone = Column(String, nullable=True)
    headline = Column(String(200), nullable=True)
    summary = Column(Text, nullable=True)
    address = Column(JSONType, nullable=True)
    social_links = Column(JSONType, nullable=True)

    skills = Column(JSONType, nullable=True)
    experience = Column(JSONType, nullable=True)
    education = Column(JSONType, nullable=True)
    certifications = Column(JSONType, nullable=True)
    preferences = Column(JSONType, nullable=True)

    account_status = Column(String, nullable=False, default="Active")
    subscription_type = Column(String, nullable=False, default="Free")
    subscription_expires = Column(DateTime(timezone=True), nullable=True)
    last_login_at = Column(DateTime(timezone=True), nullable=True)
    login_count = Column(Integer, nullable=False, default=0)

    google_id = Column(String, unique=True, nullable=True)
    linkedin_id = Column(String, unique=True, nullable=True)
    integrations = Column(JSONType, nullable=True)

    temp_password_hash = Column(String, nullable=True)
    temp_password_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    jobs = relationship("JobApplication", back_populates="user", cascade="all, delete-orphan")
    resumes = relationship("Resume", back_populates="user", cascade="all, delete-orphan")
    reminders = relationship("Reminder", back_populates="user", cascade="all, delete-orphan")
    analytics_snapshot = relationship(
        "AnalyticsSnapshot", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
