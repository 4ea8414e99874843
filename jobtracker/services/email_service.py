"""
Outbound email over SMTP with jinja2-rendered HTML bodies.

``send_email`` raises EmailDeliveryError. The ``notify_*`` helpers are used
after the triggering change has been committed; they log delivery failures
and return False so the request still succeeds.
"""
import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from jobtracker.config import settings
from jobtracker.core.clock import as_utc
from jobtracker.core.errors import EmailDeliveryError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[1] / "templates"
SMTP_TIMEOUT_SECONDS = 15

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
)


def render_template(name: str, **context) -> str:
    context.setdefault("app_name", settings.email_from_name)
    context.setdefault("frontend_url", settings.frontend_url.rstrip("/"))
    return _env.get_template(name).render(**context)


def send_email(to: str, subject: str, html_body: str) -> None:
    if not settings.email_enabled:
        logger.info("Email disabled; skipping '%s' to %s", subject, to)
        return
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = f"{settings.email_from_name} <{settings.email_from}>"
    message["To"] = to
    message.set_content("This message requires an HTML-capable email client.")
    message.add_alternative(html_body, subtype="html")
    try:
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=SMTP_TIMEOUT_SECONDS) as smtp:
            if settings.smtp_use_tls:
                smtp.starttls()
            if settings.smtp_username:
                smtp.login(settings.smtp_username, settings.smtp_password)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        raise EmailDeliveryError(f"Failed to deliver email to {to}") from e
    logger.info("Email sent: '%s' to %s", subject, to)


def _deliver(to: str, subject: str, template: str, **context) -> bool:
    try:
        send_email(to, subject, render_template(template, **context))
        return True
    except EmailDeliveryError as e:
        logger.warning("%s (%s)", e.message, e.__cause__)
        return False


def _wants_email(user) -> bool:
    return bool((user.preferences or {}).get("email_notifications", True))


def notify_welcome(user) -> bool:
    return _deliver(user.email, "Welcome to Job Tracker", "welcome.html", first_name=user.first_name)


def notify_status_change(user, job, previous_status: str | None, note: str | None = None) -> bool:
    if not _wants_email(user):
        return False
    return _deliver(
        user.email,
        f"Application update: {job.job_title} at {job.company}",
        "status_update.html",
        job_id=job.id,
        job_title=job.job_title,
        company=job.company,
        previous_status=previous_status,
        new_status=job.status,
        note=note,
    )


def notify_reminder(user, reminder, job=None) -> bool:
    if not _wants_email(user):
        return False
    return _deliver(
        user.email,
        f"Reminder: {reminder.title}",
        "reminder.html",
        reminder_id=reminder.id,
        title=reminder.title,
        description=reminder.description,
        due=as_utc(reminder.reminder_date).strftime("%Y-%m-%d %H:%M UTC"),
        priority=reminder.priority,
        job_title=job.job_title if job else None,
        company=job.company if job else None,
    )


def notify_temp_password(email: str, temp_password: str, expires_in_minutes: int) -> bool:
    return _deliver(
        email,
        "Your temporary password",
        "temp_password.html",
        temp_password=temp_password,
        expires_in_minutes=expires_in_minutes,
    )
