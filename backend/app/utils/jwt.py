from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt

from .. import config
from .error_handlers import InvalidTokenError

ALGORITHM = "HS256"


def create_access_token(data: dict, expires_delta: timedelta | None = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=config.JWT_EXPIRES_TIME_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        payload = jwt.decode(token, config.SECRET_KEY, algorithms=[ALGORITHM])
    except ExpiredSignatureError:
        raise InvalidTokenError("JSON Web Token is expired. Try again!") from None
    except JWTError:
        raise InvalidTokenError() from None

    if not payload.get("sub"):
        raise InvalidTokenError()
    return payload
