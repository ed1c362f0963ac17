"""User directory factory: get_directory() / set_directory() / reset_directory()."""

from ordering.directory.port import UserDirectory

_current_directory: UserDirectory | None = None


def get_directory() -> UserDirectory:
    global _current_directory
    if _current_directory is None:
        from ordering.directory.fake_adapter import InMemoryDirectory

        _current_directory = InMemoryDirectory()
    return _current_directory


def set_directory(directory: UserDirectory) -> None:
    global _current_directory
    _current_directory = directory


def reset_directory() -> None:
    global _current_directory
    _current_directory = None
