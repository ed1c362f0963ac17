"""Request principal resolution.

Authentication itself is handled upstream; requests reach this service with
the authenticated user's id in the ``X-User-Id`` header. The user directory
decides whether that user exists, is active, and is an admin.
"""

from fastapi import Depends, Header

from ordering.directory import get_directory
from ordering.directory.port import UserRecord
from ordering.errors import AuthenticationError, ForbiddenError
from ordering.utils.logging import add_context


def current_user(x_user_id: str | None = Header(default=None)) -> UserRecord:
    if not x_user_id:
        raise AuthenticationError("Authentication required")

    user = get_directory().find_user(x_user_id)
    if user is None:
        raise AuthenticationError("User not found")
    if not user.is_active:
        raise ForbiddenError("Account is deactivated")

    add_context(user_id=str(user.id))
    return user


def admin_user(user: UserRecord = Depends(current_user)) -> UserRecord:
    if not user.is_admin:
        raise ForbiddenError("Admin access required")
    return user
