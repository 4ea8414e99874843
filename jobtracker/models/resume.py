from sqlalchemy import Column, String, Integer, Boolean, DateTime, Text, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from jobtracker.database import Base, JSONType


class Resume(Base):
    __tablename__ = "resumes"

    id = Column(String, primary_key=True, index=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    version = Column(String, nullable=False, default="1.0")
    description = Column(String(500), nullable=True)
    type = Column(String, nullable=False, default="Master")
    template_name = Column(String, nullable=True)

    personal_info = Column(JSONType, nullable=True)
    summary = Column(Text, nullable=True)
    experience = Column(JSONType, nullable=True)
    education = Column(JSONType, nullable=True)
    skills = Column(JSONType, nullable=True)
    projects = Column(JSONType, nullable=True)
    certifications = Column(JSONType, nullable=True)
    awards = Column(JSONType, nullable=True)
    publications = Column(JSONType, nullable=True)
    volunteer_experience = Column(JSONType, nullable=True)
    additional_sections = Column(JSONType, nullable=True)

    settings = Column(JSONType, nullable=True)
    ai_generation = Column(JSONType, nullable=True)
    files = Column(JSONType, nullable=True)

    view_count = Column(Integer, nullable=False, default=0)
    download_count = Column(Integer, nullable=False, default=0)
    share_count = Column(Integer, nullable=False, default=0)
    applications_used = Column(Integer, nullable=False, default=0)
    last_viewed_at = Column(DateTime(timezone=True), nullable=True)
    last_downloaded_at = Column(DateTime(timezone=True), nullable=True)

    status = Column(String, nullable=False, default="Draft")
    is_public = Column(Boolean, nullable=False, default=False)
    share_token = Column(String, unique=True, nullable=True, index=True)
    tags = Column(JSONType, nullable=True)
    category = Column(String, nullable=True)
    parent_resume_id = Column(String, ForeignKey("resumes.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    user = relationship("User", back_populates="resumes")
