"""Fixed vocabularies shared by models, schemas and the lifecycle engines."""

JOB_STATUSES = (
    "Wishlist",
    "Applied",
    "Under Review",
    "Phone Screen",
    "Technical Test",
    "First Interview",
    "Second Interview",
    "Final Interview",
    "Reference Check",
    "Offer Extended",
    "Offer Accepted",
    "Offer Rejected",
    "Rejected",
    "Withdrawn",
    "On Hold",
)
TERMINAL_STATUSES = frozenset({"Offer Accepted", "Offer Rejected", "Rejected", "Withdrawn"})
OFFER_STATUSES = frozenset({"Offer Extended", "Offer Accepted", "Offer Rejected"})
INTERVIEWING_OR_FURTHER = frozenset(
    {
        "Phone Screen",
        "Technical Test",
        "First Interview",
        "Second Interview",
        "Final Interview",
        "Reference Check",
    }
) | OFFER_STATUSES
# First history entry in one of these marks the employer's response.
RESPONSE_STATUSES = INTERVIEWING_OR_FURTHER | {"Rejected"}
DEFAULT_JOB_STATUS = "Applied"

JOB_TYPES = ("Full-time", "Part-time", "Contract", "Freelance", "Internship", "Temporary")
PRIORITIES = ("Low", "Medium", "High", "Critical")
REMOTE_TYPES = ("Fully Remote", "Hybrid", "On-site")
CURRENCIES = ("INR", "USD", "EUR", "GBP", "CAD", "AUD")
SALARY_PERIODS = ("hourly", "monthly", "yearly")
SOURCE_PLATFORMS = (
    "LinkedIn",
    "Indeed",
    "Naukri",
    "AngelList",
    "Glassdoor",
    "Monster",
    "CareerBuilder",
    "Company Website",
    "Referral",
    "Job Fair",
    "Recruiter",
    "Other",
)
CONTACT_ROLES = ("HR", "Recruiter", "Hiring Manager", "Team Lead", "Other")
INTERVIEW_TYPES = ("Phone", "Video", "In-person", "Technical", "Panel", "Group")
INTERVIEW_STATUSES = ("Scheduled", "Completed", "Cancelled", "Rescheduled", "No Show")

REMINDER_TYPES = (
    "follow_up",
    "interview_prep",
    "application_deadline",
    "custom",
    "thank_you_note",
    "status_check",
)
REMINDER_PRIORITIES = ("low", "medium", "high", "urgent")
REMINDER_PENDING = "pending"
REMINDER_COMPLETED = "completed"
REMINDER_SNOOZED = "snoozed"
REMINDER_CANCELLED = "cancelled"
REMINDER_STATUSES = (REMINDER_PENDING, REMINDER_COMPLETED, REMINDER_SNOOZED, REMINDER_CANCELLED)
REMINDER_TERMINAL_STATUSES = frozenset({REMINDER_COMPLETED, REMINDER_CANCELLED})
RECURRENCE_TYPES = ("daily", "weekly", "monthly")

RESUME_TYPES = ("Master", "Tailored", "Template", "AI Generated")
RESUME_STATUSES = ("Draft", "Active", "Archived", "Template")
RESUME_THEMES = ("classic", "modern", "creative", "minimal", "professional")
RESUME_LAYOUTS = ("single-column", "two-column", "three-section")
RESUME_LIST_SECTIONS = (
    "experience",
    "education",
    "projects",
    "certifications",
    "awards",
    "publications",
    "volunteer_experience",
    "additional_sections",
)
SKILL_LEVELS = ("Beginner", "Intermediate", "Advanced", "Expert")

ACCOUNT_STATUSES = ("Active", "Inactive", "Suspended", "Deleted")
SUBSCRIPTION_TYPES = ("Free", "Basic", "Premium")
REMINDER_FREQUENCIES = ("Daily", "Weekly", "Bi-weekly", "Monthly")
OAUTH_PROVIDERS = ("google", "linkedin")

ANALYTICS_PERIODS = ("week", "month", "quarter", "year", "all_time")
