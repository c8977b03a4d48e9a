"""
Account deletion with dependent-data cleanup.

Phase 1 (one transaction): delete the employer's jobs or the applicant's
entries, then the user row. A failure rolls everything back, so a user row is
never removed while their jobs survive.

Phase 2 (after commit): delete the resume files collected in phase 1. Each
removal is independent; failures are logged and counted, never raised.
"""
import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from ..models.application import Application
from ..models.job import Job
from ..models.user import ROLE_ADMIN, ROLE_EMPLOYER, ROLE_USER, User
from .resume_storage import remove_resumes

logger = logging.getLogger(__name__)


@dataclass
class CascadeReport:
    user_id: int
    jobs_deleted: int = 0
    applications_removed: int = 0
    files_removed: int = 0
    files_failed: list[str] = field(default_factory=list)


def _collect_owned_jobs(db: Session, user_id: int) -> tuple[list[Job], list[str]]:
    jobs = db.query(Job).filter(Job.user_id == user_id).all()
    resumes = [a.resume for job in jobs for a in job.applicants]
    return jobs, resumes


def _collect_applications(db: Session, user_id: int) -> list[Application]:
    return db.query(Application).filter(Application.user_id == user_id).all()


def delete_user_account(db: Session, user: User) -> CascadeReport:
    report = CascadeReport(user_id=user.id)
    resumes: list[str] = []

    try:
        # Admins may also publish jobs; owned jobs never outlive their owner.
        if user.role in (ROLE_EMPLOYER, ROLE_ADMIN):
            jobs, resumes = _collect_owned_jobs(db, user.id)
            for job in jobs:
                db.delete(job)
            report.jobs_deleted = len(jobs)

        if user.role == ROLE_USER:
            applications = _collect_applications(db, user.id)
            for application in applications:
                resumes.append(application.resume)
                # Only this applicant's entry goes; other entries on the job stay.
                db.delete(application)
            report.applications_removed = len(applications)

        db.delete(user)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Account deletion for user %s rolled back", report.user_id)
        raise

    removal = remove_resumes(resumes)
    report.files_removed = len(removal.removed)
    report.files_failed = removal.failed
    logger.info(
        "Deleted user %s: jobs=%s applications=%s files_removed=%s files_failed=%s",
        report.user_id,
        report.jobs_deleted,
        report.applications_removed,
        report.files_removed,
        len(report.files_failed),
    )
    return report
