# backend/drivingschool/api/dependencies/auth.py
"""
Authentication dependencies.

The calendar API sits behind a gateway that has already authenticated the
caller and forwards the user's id in the X-User-Id header. This module
only resolves that id to an active user.
"""

import logging
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from ...core.enums import ADMIN_ROLES, RoleName
from ...core.exceptions import UnauthorizedException
from ...models.user import User
from ...repositories.factory import RepositoryFactory
from .database import get_db

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"


def get_current_user(
    x_user_id: Optional[str] = Header(default=None, alias=USER_ID_HEADER),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the calling user from the forwarded user id.

    Raises:
        UnauthorizedException: If the header is missing or the user is unknown
    """
    if not x_user_id:
        raise UnauthorizedException("Not authenticated", code="NOT_AUTHENTICATED")

    user = RepositoryFactory.create_scheduling_repository(db).get_user(x_user_id)
    if user is None:
        logger.warning(f"Unknown user id in {USER_ID_HEADER}: {x_user_id}")
        raise UnauthorizedException("Could not validate credentials", code="UNKNOWN_USER")
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Get the current authenticated and active user.

    Raises:
        UnauthorizedException: If the user is not active
    """
    if not current_user.is_active:
        raise UnauthorizedException("Inactive user", code="INACTIVE_USER")
    return current_user


def is_admin(user: User) -> bool:
    return user.role in ADMIN_ROLES


def is_instructor(user: User) -> bool:
    return user.role == RoleName.INSTRUCTOR.value


def is_student(user: User) -> bool:
    return user.role == RoleName.STUDENT.value
