from datetime import timedelta
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import config
from ..database import get_db
from ..models.job import as_utc, utcnow
from ..models.user import User
from ..services import emailer
from ..utils.dependencies import TOKEN_COOKIE_NAME, get_current_user
from ..utils.error_handlers import (
    DuplicateKeyError,
    InternalError,
    InvalidRequestError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from ..utils.jwt import create_access_token
from ..utils.security import generate_reset_token, hash_password, hash_reset_token, verify_password
from ..utils.validation import validate_email, validate_password, validate_role

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Auth"])


class RegisterRequest(BaseModel):
    name: str
    email: str
    password: str
    role: str | None = None  # user / employer


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    password: str


def public_user(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


def send_token(user: User, status_code: int = 200, message: str | None = None) -> JSONResponse:
    """Issue a JWT in both the body and an httpOnly cookie."""
    token = create_access_token({"sub": str(user.id), "role": user.role})
    content = {"success": True, "token": token}
    if message:
        content["message"] = message
    response = JSONResponse(status_code=status_code, content=content)
    response.set_cookie(
        TOKEN_COOKIE_NAME,
        token,
        max_age=config.COOKIE_EXPIRES_TIME_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=config.IS_PRODUCTION,
        samesite="lax",
    )
    return response


def clear_token(content: dict) -> JSONResponse:
    response = JSONResponse(status_code=200, content=content)
    response.delete_cookie(TOKEN_COOKIE_NAME, httponly=True)
    return response


@router.post("/register")
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("Please enter your name")
    email = validate_email(payload.email)
    validate_password(payload.password)
    role = validate_role(payload.role)

    user = User(name=name, email=email, password=hash_password(payload.password), role=role)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise DuplicateKeyError() from None
    db.refresh(user)

    logger.info("Registered user %s with role %s", user.id, user.role)
    return send_token(user, message="User registered successfully")


@router.post("/login")
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    if not payload.email or not payload.password:
        raise InvalidRequestError("Please enter email & password")

    email = payload.email.strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(payload.password, user.password):
        raise UnauthenticatedError("Invalid email or password")

    return send_token(user)


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordRequest, request: Request, db: Session = Depends(get_db)):
    email = (payload.email or "").strip().lower()
    user = db.query(User).filter(User.email == email).first()
    if not user:
        raise NotFoundError("No user found with this email.")

    raw_token, digest = generate_reset_token()
    user.reset_password_token = digest
    user.reset_password_expire = utcnow() + timedelta(minutes=config.RESET_TOKEN_EXPIRE_MINUTES)
    db.commit()

    reset_url = f"{str(request.base_url).rstrip('/')}/api/v1/password/reset/{raw_token}"
    try:
        emailer.send_password_reset_email(to_email=user.email, reset_url=reset_url)
    except Exception as e:
        logger.error("Password reset email to %s failed: %s", user.email, e)
        user.reset_password_token = None
        user.reset_password_expire = None
        db.commit()
        raise InternalError("Email is not sent successfully") from e

    return {"success": True, "message": f"Email sent successfully to: {user.email}"}


@router.put("/password/reset/{token}")
def reset_password(token: str, payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.reset_password_token == hash_reset_token(token)).first()
    expires = as_utc(user.reset_password_expire) if user else None
    if not user or expires is None or expires <= utcnow():
        raise InvalidRequestError("Password Reset token is invalid or has been expired.")

    validate_password(payload.password)
    user.password = hash_password(payload.password)
    user.reset_password_token = None
    user.reset_password_expire = None
    db.commit()

    return send_token(user, message="Password updated successfully")


@router.get("/logout")
def logout(user: User = Depends(get_current_user)):
    return clear_token({"success": True, "message": "Log out successfully"})
