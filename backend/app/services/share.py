"""Announcement text copied by admins when a job is shared externally."""

from app.config import get_settings
from app.schemas import JobRecord


def build_job_url(job_id: str, base_url: str = "") -> str:
    base_url = (base_url or get_settings().share_base_url).rstrip("/")
    return f"{base_url}/{job_id}"


def build_share_message(job: JobRecord, company_name: str, base_url: str = "") -> str:
    return (
        f"📌 {job.title}\n"
        f"\n"
        f"🏢 Company: {company_name}\n"
        f"📍 Location: {job.location or 'N/A'}\n"
        f"💼 Job Type: {job.job_type}\n"
        f"\n"
        f"🔗 Apply here:\n"
        f"{build_job_url(job.id, base_url)}\n"
        f"\n"
        f"🔔 Stay updated with new jobs"
    )
