"""Exceptions raised by endpoint code and by the rescue machinery.

Endpoints call :func:`error` (or raise :class:`ApiError` directly) to stop
processing with a user-facing failure. The rescue policy translates it into
a JSON body carrying the message, status, code and details.
"""

from typing import NoReturn

from api_rescue.status import Status


class RescueError(Exception):
    """Base class for errors in the rescue machinery itself."""


class RescueConfigurationError(RescueError):
    """Raised when the registration table cannot resolve an exception or is frozen."""


class ApiError(Exception):
    """An error meant to be shown to the API client.

    Attributes:
        message: Human-readable error message.
        status: HTTP status as an int or a symbolic name (e.g. ``"unauthorized"``).
        code: Machine-readable application error code.
        details: Human-readable description of the problem.
    """

    def __init__(
        self,
        message: str,
        status: Status = 500,
        code: str | None = None,
        details: str | None = None,
    ) -> None:
        self.message = message
        self._status = status
        self.code = code
        self.details = details
        super().__init__(message)

    @property
    def status(self) -> Status:
        return self._status if self._status is not None else "internal_server_error"

    @status.setter
    def status(self, value: Status) -> None:
        self._status = value


def error(
    message: str,
    status: Status = 500,
    code: str | None = None,
    details: str | None = None,
) -> NoReturn:
    """Raise an :class:`ApiError` to the API client.

    Example:
        user = await session.get(User, user_id)
        if not user.active:
            error("User disabled", status="forbidden", code="user_disabled")

    Called inside an ``except`` block, the handled exception becomes the
    cause of the new error and is rendered alongside it.
    """
    raise ApiError(message, status=status, code=code, details=details)
