"""
Job business logic: derived fields, CRUD, radius search, statistics and the
apply workflow. Routes in api/jobs.py stay thin and call into here.
"""
import logging
import math
from datetime import datetime
from pathlib import Path

from fastapi import UploadFile
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import config
from ..models.application import Application
from ..models.job import Job, as_utc, utcnow
from ..models.user import User
from ..schemas.job import JobCreate, JobUpdate
from ..utils.error_handlers import InvalidRequestError, NotFoundError, ValidationError, is_unique_violation
from ..utils.validation import sanitize_filename, slugify
from .api_filters import project, search_clause, to_snake_case
from .geocoder import GeocoderError, GeoLocation, geocode
from .resume_storage import (
    ALLOWED_RESUME_EXTENSIONS,
    RemovalReport,
    ResumeTooLarge,
    remove_resume,
    remove_resumes,
    store_resume,
)

logger = logging.getLogger(__name__)

EARTH_RADIUS_MILES = 3963.0

_LOCATION_FIELDS = ("longitude", "latitude", "formatted_address", "city", "state", "zipcode", "country")

STATS_GROUPS = {
    "all": None,
    "experience": "experience",
    "job_type": "job_type",
    "min_education": "min_education",
    "company": "company",
    "city": "city",
}


def _iso(value: datetime | None) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


def serialize_job(job: Job, *, include_applicants: bool = False) -> dict:
    payload = {
        "id": job.id,
        "title": job.title,
        "slug": job.slug,
        "description": job.description,
        "email": job.email,
        "address": job.address,
        "longitude": job.longitude,
        "latitude": job.latitude,
        "formatted_address": job.formatted_address,
        "city": job.city,
        "state": job.state,
        "zipcode": job.zipcode,
        "country": job.country,
        "company": job.company,
        "industry": list(job.industry or []),
        "job_type": job.job_type,
        "min_education": job.min_education,
        "positions": job.positions,
        "experience": job.experience,
        "salary": job.salary,
        "posting_date": _iso(job.posting_date),
        "last_date": _iso(job.last_date),
        "user_id": job.user_id,
    }
    if include_applicants:
        payload["applicants"] = [
            {"user_id": a.user_id, "resume": a.resume, "applied_at": _iso(a.created_at)}
            for a in job.applicants
        ]
    return payload


def serialize_jobs(jobs: list[Job], spec) -> list[dict]:
    return [project(serialize_job(j), spec, Job.__hidden_fields__) for j in jobs]


# -------------------- derived fields --------------------


def _apply_location(job: Job, location: GeoLocation | None) -> None:
    for name in _LOCATION_FIELDS:
        setattr(job, name, getattr(location, name) if location else None)


def refresh_derived_fields(job: Job, *, title_changed: bool, address_changed: bool) -> None:
    if title_changed or not job.slug:
        job.slug = slugify(job.title)

    if address_changed:
        try:
            location = geocode(job.address)
        except GeocoderError as e:
            logger.warning("Geocoding failed for job %s (%r): %s", job.id, job.address, e)
            location = None
        _apply_location(job, location)


# -------------------- CRUD --------------------


def get_job_or_404(db: Session, job_id: int) -> Job:
    job = db.get(Job, job_id)
    if job is None:
        raise NotFoundError("Job not found")
    return job


def create_job(db: Session, *, owner: User, payload: JobCreate) -> Job:
    data = payload.model_dump(exclude_none=True)
    job = Job(user_id=owner.id, **data)
    refresh_derived_fields(job, title_changed=True, address_changed=True)
    db.add(job)
    db.commit()
    db.refresh(job)
    logger.info("Job %s created by user %s", job.id, owner.id)
    return job


def update_job(db: Session, job: Job, payload: JobUpdate) -> Job:
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    title_changed = "title" in changes and changes["title"] != job.title
    address_changed = "address" in changes and changes["address"] != job.address

    for name, value in changes.items():
        setattr(job, name, value)
    refresh_derived_fields(job, title_changed=title_changed, address_changed=address_changed)

    db.add(job)
    db.commit()
    db.refresh(job)
    return job


def delete_job(db: Session, job: Job) -> RemovalReport:
    resumes = [a.resume for a in job.applicants]
    job_id = job.id
    db.delete(job)
    db.commit()
    # Row is gone; files follow. Missing files are logged, not raised.
    report = remove_resumes(resumes)
    logger.info("Job %s deleted; resumes removed=%s failed=%s", job_id, len(report.removed), len(report.failed))
    return report


def get_job_by_id_and_slug(db: Session, job_id: int, slug: str) -> Job:
    job = db.query(Job).filter(Job.id == job_id, Job.slug == slug).first()
    if job is None:
        raise NotFoundError("Job not found")
    return job


def published_jobs(db: Session, owner_id: int) -> list[Job]:
    return (
        db.query(Job)
        .filter(Job.user_id == owner_id)
        .order_by(Job.posting_date.asc(), Job.id.asc())
        .all()
    )


def applied_jobs(db: Session, user_id: int) -> list[Job]:
    return (
        db.query(Job)
        .join(Application, Application.job_id == Job.id)
        .filter(Application.user_id == user_id)
        .order_by(Application.created_at.desc(), Job.id.desc())
        .all()
    )


# -------------------- location search --------------------


def distance_miles(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    p1, p2 = math.radians(lat1), math.radians(lat2)
    dp = p2 - p1
    dl = math.radians(lng2 - lng1)
    a = math.sin(dp / 2) ** 2 + math.cos(p1) * math.cos(p2) * math.sin(dl / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(a)))


def jobs_within_radius(db: Session, *, zipcode: str, distance: float) -> list[Job]:
    if distance < 0:
        raise ValidationError("Distance must be a positive number of miles")
    try:
        center = geocode(zipcode)
    except GeocoderError as e:
        logger.warning("Geocoding failed for zipcode %r: %s", zipcode, e)
        center = None
    if center is None:
        raise InvalidRequestError(f"Could not resolve location for zipcode {zipcode}")

    located = (
        db.query(Job)
        .filter(Job.latitude.is_not(None), Job.longitude.is_not(None))
        .order_by(Job.posting_date.asc(), Job.id.asc())
        .all()
    )
    return [
        job
        for job in located
        if distance_miles(center.latitude, center.longitude, job.latitude, job.longitude) <= distance
    ]


# -------------------- statistics --------------------


def job_statistics(db: Session, *, topic: str, group: str = "all") -> list[dict]:
    key = to_snake_case(group or "all")
    if key not in STATS_GROUPS:
        raise ValidationError(f"Cannot group statistics by '{group}'. Use one of: {', '.join(STATS_GROUPS)}")

    phrase = " ".join((topic or "").replace("-", " ").split())
    if not phrase:
        raise ValidationError("Topic is required")

    group_col = getattr(Job, STATS_GROUPS[key]) if STATS_GROUPS[key] else None
    aggregates = [
        func.count(Job.id).label("total_jobs"),
        func.avg(Job.salary).label("avg_salary"),
        func.sum(Job.positions).label("sum_positions"),
        func.min(Job.salary).label("min_salary"),
        func.max(Job.salary).label("max_salary"),
    ]
    columns = ([group_col.label("group")] if group_col is not None else []) + aggregates
    q = select(*columns).where(search_clause(Job, phrase))
    if group_col is not None:
        q = q.group_by(group_col).order_by(group_col)

    stats = []
    for row in db.execute(q).mappings().all():
        if not row["total_jobs"]:
            continue
        stats.append({
            "group": row.get("group") if group_col is not None else None,
            "total_jobs": int(row["total_jobs"]),
            "avg_salary": float(row["avg_salary"]) if row["avg_salary"] is not None else None,
            "sum_positions": int(row["sum_positions"] or 0),
            "min_salary": row["min_salary"],
            "max_salary": row["max_salary"],
        })
    if not stats:
        raise NotFoundError(f"No stats found for - {topic}")
    return stats


# -------------------- apply --------------------


def resume_filename(user: User, job: Job, original_filename: str) -> str:
    ext = Path(original_filename).suffix.lower()
    base = (user.name or f"user_{user.id}").strip().replace(" ", "_")
    return sanitize_filename(f"{base}_{user.id}_{job.id}{ext}")


def _has_applied(db: Session, job_id: int, user_id: int) -> bool:
    return (
        db.query(Application.id)
        .filter(Application.job_id == job_id, Application.user_id == user_id)
        .first()
        is not None
    )


async def apply_to_job(db: Session, *, job: Job, user: User, file: UploadFile | None) -> Application:
    last_date = as_utc(job.last_date)
    if last_date is not None and last_date < utcnow():
        raise InvalidRequestError("You can not apply to this job. Overdue date")

    if _has_applied(db, job.id, user.id):
        raise InvalidRequestError("You have already applied for this job.")

    if file is None or not file.filename:
        raise InvalidRequestError("Please upload file.")

    ext = Path(file.filename).suffix.lower()
    if ext not in ALLOWED_RESUME_EXTENSIONS:
        raise InvalidRequestError("Please upload docx or pdf file")

    max_bytes = config.MAX_FILE_SIZE
    too_large = InvalidRequestError(f"Please upload file less than {max_bytes // (1024 * 1024) or 1}MB.")
    if file.size is not None and file.size > max_bytes:
        raise too_large

    filename = resume_filename(user, job, file.filename)
    try:
        await store_resume(file, filename, max_bytes=max_bytes)
    except ResumeTooLarge:
        raise too_large from None

    application = Application(job_id=job.id, user_id=user.id, resume=filename)
    db.add(application)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        if is_unique_violation(e):
            # A concurrent request won; the stored name is shared with its entry.
            raise InvalidRequestError("You have already applied for this job.") from None
        remove_resume(filename)
        raise
    except Exception:
        db.rollback()
        remove_resume(filename)
        raise
    db.refresh(application)
    logger.info("User %s applied to job %s with %s", user.id, job.id, filename)
    return application
