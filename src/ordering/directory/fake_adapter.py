"""In-memory user directory for development and testing."""

from ordering.directory.port import UserDirectory, UserRecord


class InMemoryDirectory(UserDirectory):
    def __init__(self, users: list[UserRecord] | None = None) -> None:
        self.users: dict[str, UserRecord] = {str(u.id): u for u in users or []}

    def add_user(self, user: UserRecord) -> UserRecord:
        self.users[str(user.id)] = user
        return user

    def find_user(self, user_id: str) -> UserRecord | None:
        return self.users.get(str(user_id))
