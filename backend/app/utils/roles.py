from fastapi import Depends

from ..models.user import ROLE_ADMIN, ROLE_EMPLOYER, ROLE_USER, User
from ..services.authorization import enforce_access
from .dependencies import get_current_user


def roles_required(*roles: str):
    allowed = frozenset(roles)

    def check_role(user: User = Depends(get_current_user)) -> User:
        enforce_access(user, required_roles=allowed)
        return user
    return check_role


user_only = roles_required(ROLE_USER)
employer_or_admin = roles_required(ROLE_EMPLOYER, ROLE_ADMIN)
admin_only = roles_required(ROLE_ADMIN)
