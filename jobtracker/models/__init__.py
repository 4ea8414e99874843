from jobtracker.models.user import User
from jobtracker.models.job_application import JobApplication, JobStatusHistory
from jobtracker.models.resume import Resume
from jobtracker.models.reminder import Reminder
from jobtracker.models.analytics_snapshot import AnalyticsSnapshot

__all__ = [
    "User",
    "JobApplication",
    "JobStatusHistory",
    "Resume",
    "Reminder",
    "AnalyticsSnapshot",
]
