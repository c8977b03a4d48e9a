import logging

from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.job import Job
from ..models.user import User
from ..schemas.job import JobCreate, JobUpdate
from ..services import jobs as job_service
from ..services.api_filters import run_query
from ..services.authorization import enforce_access
from ..utils.roles import employer_or_admin, user_only

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Jobs"])


@router.get("/jobs")
def list_jobs(request: Request, db: Session = Depends(get_db)):
    """
    Filterable job listing, e.g.
      /jobs?jobType=Full-Time&salary[gte]=50000&sort=-salary&fields=title,salary&page=2&limit=5
    """
    jobs, spec = run_query(db, Job, dict(request.query_params))
    data = job_service.serialize_jobs(jobs, spec)
    return {
        "success": True,
        "message": "Get list jobs successfully",
        "total": len(data),
        "data": data,
    }


@router.post("/job/new")
def new_job(
    payload: JobCreate,
    db: Session = Depends(get_db),
    user: User = Depends(employer_or_admin),
):
    job = job_service.create_job(db, owner=user, payload=payload)
    return {"success": True, "message": "Job created", "data": job_service.serialize_job(job)}


@router.get("/job/{job_id}/{slug}")
def get_job_by_id_and_slug(job_id: int, slug: str, db: Session = Depends(get_db)):
    job = job_service.get_job_by_id_and_slug(db, job_id, slug)
    return {"success": True, "message": "Job found", "data": job_service.serialize_job(job)}


@router.get("/jobs/stats/{group}/{topic}")
def job_statistics(group: str, topic: str, db: Session = Depends(get_db)):
    stats = job_service.job_statistics(db, topic=topic, group=group)
    return {"success": True, "data": stats}


@router.get("/jobs/{zipcode}/{distance}")
def jobs_in_radius(zipcode: str, distance: float, db: Session = Depends(get_db)):
    jobs = job_service.jobs_within_radius(db, zipcode=zipcode, distance=distance)
    return {
        "success": True,
        "total": len(jobs),
        "data": [job_service.serialize_job(j) for j in jobs],
    }


@router.put("/job/{job_id}")
def update_job(
    job_id: int,
    payload: JobUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(employer_or_admin),
):
    job = job_service.get_job_or_404(db, job_id)
    enforce_access(user, owner_id=job.user_id, action="update", resource="job")

    job = job_service.update_job(db, job, payload)
    return {"success": True, "message": "Job updated", "data": job_service.serialize_job(job)}


@router.delete("/job/{job_id}")
def delete_job(
    job_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(employer_or_admin),
):
    job = job_service.get_job_or_404(db, job_id)
    enforce_access(user, owner_id=job.user_id, action="delete", resource="job")

    job_service.delete_job(db, job)
    return {"success": True, "message": "Job deleted"}


@router.put("/job/{job_id}/apply")
async def apply_to_job(
    job_id: int,
    file: UploadFile | None = File(default=None),
    db: Session = Depends(get_db),
    user: User = Depends(user_only),
):
    job = job_service.get_job_or_404(db, job_id)
    application = await job_service.apply_to_job(db, job=job, user=user, file=file)
    return {"success": True, "message": "Applied job successfully", "data": application.resume}
