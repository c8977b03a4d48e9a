from fastapi import Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from .error_handlers import UnauthenticatedError
from .jwt import decode_access_token

TOKEN_COOKIE_NAME = "token"


def extract_token(request: Request) -> str | None:
    """Bearer header first, then the httpOnly cookie set at login."""
    authorization = request.headers.get("Authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()

    cookie_token = request.cookies.get(TOKEN_COOKIE_NAME)
    if cookie_token and cookie_token != "none":
        return cookie_token
    return None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = extract_token(request)
    if not token:
        raise UnauthenticatedError()

    payload = decode_access_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthenticatedError("User belonging to this token no longer exists") from None

    user = db.get(User, user_id)
    if user is None:
        raise UnauthenticatedError("User belonging to this token no longer exists")

    request.state.user = user
    return user
