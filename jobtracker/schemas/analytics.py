from pydantic import BaseModel

from jobtracker.schemas.common import UtcDatetime
from jobtracker.schemas.job import JobApplicationSummary


class DashboardResponse(BaseModel):
    summary: dict
    recent_applications: list[JobApplicationSummary]
    resume_count: int
    response_rate: float
    last_calculated: UtcDatetime | None = None


class TrendsResponse(BaseModel):
    period: str
    series: list[dict]
    monthly: list[dict]


class SuccessMetricsResponse(BaseModel):
    total_applications: int
    conversion_rates: dict
    response_time: dict
    status_counts: dict
    top_companies: list[dict]


class RefreshResponse(BaseModel):
    last_calculated: UtcDatetime | None = None
    total_applications: int
