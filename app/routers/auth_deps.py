"""
Caller identity dependencies.

Authentication happens upstream: the hosting platform verifies the session and
forwards the caller's user id in the X-User-Id header. These dependencies load
that user and enforce roles; ownership checks live in the service layer.
"""
import logging
from typing import Callable, List, Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.core.exceptions import AccessDeniedError, AuthenticationError
from app.database import get_db
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


def get_current_user(
    x_user_id: Optional[int] = Header(default=None, alias="X-User-Id"),
    db: Session = Depends(get_db)
) -> User:
    if x_user_id is None:
        raise AuthenticationError("Missing caller identity")

    user = db.query(User).filter(User.id == x_user_id).first()
    if user is None:
        logger.warning(f"Authentication failed: user {x_user_id} not found")
        raise AuthenticationError("User not found")
    if not user.is_active:
        logger.warning(f"Authentication failed: user {x_user_id} is inactive")
        raise AccessDeniedError("User is inactive")
    return user


def require_role(allowed_roles: List[UserRole]) -> Callable:
    """
    Dependency factory that checks if the user has one of the allowed roles.

    Usage:
        @router.get("/employer-only")
        def endpoint(user: User = Depends(require_role([UserRole.EMPLOYER]))):
            ...
    """
    def role_checker(current_user: User = Depends(get_current_user)):
        if current_user.role not in allowed_roles:
            raise AccessDeniedError(f"Access denied. Required roles: {[r.value for r in allowed_roles]}")
        return current_user
    return role_checker


require_employer = require_role([UserRole.EMPLOYER])
require_employee = require_role([UserRole.EMPLOYEE])
