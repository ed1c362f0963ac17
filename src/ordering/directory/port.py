"""User directory port (abstract interface).

Accounts are managed by the auth provider. The ordering context only needs
to know whether a user exists, is active, and holds an admin role.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

ADMIN_ROLES = frozenset({"admin", "super_admin"})


@dataclass(frozen=True)
class UserRecord:
    id: str
    role: str = "customer"
    is_active: bool = True
    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES


class UserDirectory(ABC):
    @abstractmethod
    def find_user(self, user_id: str) -> UserRecord | None:
        """Return the user, or None when no such account exists."""
        ...
