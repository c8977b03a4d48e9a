from datetime import datetime, timedelta, timezone

from sqlalchemy import JSON, Column, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from ..database import Base

INDUSTRIES = (
    "Business",
    "Information Technology",
    "Banking",
    "Education/Training",
    "Telecommunication",
)
JOB_TYPES = ("Full-Time", "Part-Time")
EDUCATION_LEVELS = ("Bachelors", "Masters", "Phd")
EXPERIENCE_LEVELS = ("Entry level", "1 Year", "2 Years", "3 Years", "4 Years", "5 Years +")

DEFAULT_APPLICATION_WINDOW_DAYS = 7


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_last_date() -> datetime:
    return utcnow() + timedelta(days=DEFAULT_APPLICATION_WINDOW_DAYS)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored as UTC.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Job(Base):
    __tablename__ = "jobs"

    # Columns covered by the free-text `q` search.
    __search_fields__ = ("title", "description", "company")
    # Applicant entries are only serialized when requested by a permitted caller.
    __hidden_fields__ = ("applicants",)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    slug = Column(String(150), nullable=True, index=True)
    description = Column(Text, nullable=False)
    email = Column(String(255), nullable=True)
    address = Column(String(255), nullable=False)

    # Geolocation derived from `address` on save.
    longitude = Column(Float, nullable=True)
    latitude = Column(Float, nullable=True)
    formatted_address = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    zipcode = Column(String(20), nullable=True, index=True)
    country = Column(String(10), nullable=True)

    company = Column(String(255), nullable=False)
    industry = Column(JSON, nullable=False, default=list)  # list of INDUSTRIES values
    job_type = Column(String(20), nullable=False)
    min_education = Column(String(20), nullable=False)
    positions = Column(Integer, nullable=False, default=1)
    experience = Column(String(20), nullable=False)
    salary = Column(Integer, nullable=False)
    posting_date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    last_date = Column(DateTime(timezone=True), nullable=False, default=default_last_date)

    user = relationship("User", back_populates="jobs_published")
    # Deleting a job removes its applicant entries as well.
    applicants = relationship(
        "Application",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Application.id",
    )
