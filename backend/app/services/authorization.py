"""
Authorization policy shared by every route.

Two rules, evaluated in order:
  1. role    - the caller's role must be in `required_roles` (when given)
  2. owner   - the caller must own the resource (when `owner_id` is given),
               unless they are an admin
"""
from dataclasses import dataclass
from typing import Any, Iterable

from ..models.user import ROLE_ADMIN
from ..utils.error_handlers import ForbiddenError


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = AccessDecision(True)


def check_access(
    identity: Any,
    *,
    required_roles: Iterable[str] | None = None,
    owner_id: int | None = None,
    action: str = "access",
    resource: str = "resource",
) -> AccessDecision:
    role = getattr(identity, "role", None)

    if required_roles is not None and role not in set(required_roles):
        return AccessDecision(False, f"Role ({role}) is not allowed to access this resource")

    if owner_id is not None and role != ROLE_ADMIN and getattr(identity, "id", None) != owner_id:
        name = getattr(identity, "name", None) or getattr(identity, "id", "unknown")
        return AccessDecision(False, f"User {name} is not allowed to {action} this {resource}")

    return ALLOW


def enforce_access(identity: Any, **kwargs) -> None:
    decision = check_access(identity, **kwargs)
    if not decision:
        raise ForbiddenError(decision.reason or "Access forbidden")
