"""
Validation utilities for input validation and error handling.
"""
import re
import unicodedata

from ..models.user import ROLE_EMPLOYER, ROLE_USER
from .error_handlers import ValidationError

# Roles a visitor may pick when registering; admins are promoted out of band.
SELF_SERVICE_ROLES = {ROLE_USER, ROLE_EMPLOYER}

_EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')


def validate_email(email: str) -> str:
    """Validate email format."""
    if not email or not isinstance(email, str):
        raise ValidationError("Please enter your email address")

    email = email.strip().lower()
    if len(email) > 255:
        raise ValidationError("Email too long (max 255 characters)")

    if not _EMAIL_PATTERN.match(email):
        raise ValidationError("Please enter valid email address")

    return email


def validate_password(password: str) -> None:
    """Validate password strength."""
    if not password or not isinstance(password, str):
        raise ValidationError("Please enter password for your account")

    if len(password) < 6:
        raise ValidationError("Your password must be at least 6 characters long")

    if len(password.encode("utf-8")) > 72:
        raise ValidationError("Password too long (max 72 bytes)")


def validate_role(role: str | None) -> str:
    """Validate a self-service registration role."""
    if not role:
        return ROLE_USER

    role = role.strip().lower()
    if role not in SELF_SERVICE_ROLES:
        raise ValidationError(
            f"Please select correct role. Must be one of: {', '.join(sorted(SELF_SERVICE_ROLES))}"
        )
    return role


def slugify(value: str) -> str:
    """Lower-case, ASCII, hyphen separated version of `value`."""
    value = unicodedata.normalize("NFKD", value or "").encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^\w\s-]", "", value.lower())
    return re.sub(r"[-\s_]+", "-", value).strip("-")


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent directory traversal and other attacks."""
    if not filename:
        raise ValidationError("Filename is required")

    # Remove any path separators
    filename = filename.replace("/", "_").replace("\\", "_")

    # Remove any null bytes
    filename = filename.replace("\x00", "")

    # Remove directory traversal sequences
    filename = filename.replace("..", "_")

    # Remove leading dots to prevent hidden files
    filename = filename.lstrip(".")

    if len(filename) > 255:
        raise ValidationError("Filename too long")

    if not filename or filename == "_":
        raise ValidationError("Invalid filename")

    return filename
