"""Error taxonomy for the ordering service.

Input validation uses Protean's ``ValidationError`` directly. The classes
below cover the remaining failure kinds; each carries the HTTP status code
the API layer answers with.
"""


class OrderingError(Exception):
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AuthenticationError(OrderingError):
    status_code = 401


class ForbiddenError(OrderingError):
    """The principal does not own the resource or lacks the admin role."""

    status_code = 403


class NotFoundError(OrderingError):
    status_code = 404


class InvalidStateError(OrderingError):
    """A lifecycle transition that the current state does not allow."""

    status_code = 400


class SignatureInvalidError(OrderingError):
    """A payment signature did not match the locally computed HMAC."""

    status_code = 400


class UpstreamError(OrderingError):
    """The payment gateway or another collaborator is unavailable or misconfigured."""

    status_code = 502

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
