import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..services import jobs as job_service
from ..services.api_filters import project, run_query
from ..services.cascade import delete_user_account
from ..utils.dependencies import get_current_user
from ..utils.error_handlers import DuplicateKeyError, NotFoundError, UnauthenticatedError, ValidationError
from ..utils.roles import admin_only, employer_or_admin, user_only
from ..utils.security import hash_password, verify_password
from ..utils.validation import validate_email, validate_password
from .auth import clear_token, public_user, send_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(alias="currentPassword")
    new_password: str = Field(alias="newPassword")

    model_config = {"populate_by_name": True}


class UserUpdateRequest(BaseModel):
    name: str | None = None
    email: str | None = None


@router.get("/me")
def get_user_profile(user: User = Depends(get_current_user)):
    data = public_user(user)
    data["jobs_published"] = [
        {"id": j.id, "title": j.title, "posting_date": job_service.serialize_job(j)["posting_date"]}
        for j in user.jobs_published
    ]
    return {"success": True, "data": data}


@router.put("/password-change")
def update_password(
    payload: PasswordChangeRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if not verify_password(payload.current_password, user.password):
        raise UnauthenticatedError("Current password is incorrect")

    validate_password(payload.new_password)
    user.password = hash_password(payload.new_password)
    db.commit()
    return send_token(user, message="Password updated successfully")


@router.put("/me/update")
def update_user(
    payload: UserUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    if payload.name is not None:
        name = payload.name.strip()
        if not name:
            raise ValidationError("Please enter your name")
        user.name = name
    if payload.email is not None:
        user.email = validate_email(payload.email)

    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKeyError() from None
    db.refresh(user)
    return {"success": True, "data": public_user(user)}


@router.delete("/me/delete")
def delete_me(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    delete_user_account(db, user)
    return clear_token({"success": True, "message": "Your account has been deleted"})


@router.get("/job/applied")
def get_applied_jobs(db: Session = Depends(get_db), user: User = Depends(user_only)):
    jobs = job_service.applied_jobs(db, user.id)
    data = []
    for job in jobs:
        item = job_service.serialize_job(job)
        mine = next((a for a in job.applicants if a.user_id == user.id), None)
        item["resume"] = mine.resume if mine else None
        data.append(item)
    return {"success": True, "results": len(data), "data": data}


@router.get("/jobs/published")
def get_published_jobs(db: Session = Depends(get_db), user: User = Depends(employer_or_admin)):
    jobs = job_service.published_jobs(db, user.id)
    data = [job_service.serialize_job(j, include_applicants=True) for j in jobs]
    return {"success": True, "results": len(data), "data": data}


@router.get("/users")
def get_users(request: Request, db: Session = Depends(get_db), user: User = Depends(admin_only)):
    users, spec = run_query(db, User, dict(request.query_params))
    data = [project(public_user(u), spec, User.__hidden_fields__) for u in users]
    return {"success": True, "results": len(data), "data": data}


@router.delete("/users/{user_id}")
def admin_delete_user(user_id: int, db: Session = Depends(get_db), admin: User = Depends(admin_only)):
    target = db.get(User, user_id)
    if target is None:
        raise NotFoundError(f"User not found with id: {user_id}")

    report = delete_user_account(db, target)
    logger.info("Admin %s deleted user %s", admin.id, user_id)
    return {
        "success": True,
        "message": "User is deleted by Admin successfully",
        "data": {
            "jobs_deleted": report.jobs_deleted,
            "applications_removed": report.applications_removed,
            "files_removed": report.files_removed,
            "files_failed": report.files_failed,
        },
    }
