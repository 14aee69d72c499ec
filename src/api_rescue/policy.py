"""The rescue policy: map exceptions to statuses and JSON bodies.

A policy holds an ordered table of registrations. Each pairs exception
classes with a renderer and a status. Lookup walks the table from the last
registration to the first, so a later registration overrides an earlier one
for any exception both match. The defaults are registered from the most
general to the most specific:

1. ``Exception`` -> 500 (catch-all)
2. ``RecordNotFound`` / ``NoResultFound`` -> 404
3. ``RecordInvalid`` / pydantic ``ValidationError`` -> 422
4. ``ApiError`` -> the status carried by the error

Usage:
    policy = RescuePolicy(logger=get_logger("api_rescue"))
    policy.rescue_default(PermissionError, status="forbidden")
    policy.freeze()

    rescued = policy.handle(exc)
    rescued.status, rescued.body
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol

from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import NoResultFound

from api_rescue.config import RescueSettings
from api_rescue.config import settings as default_settings
from api_rescue.exceptions import ApiError, RescueConfigurationError
from api_rescue.records import RecordInvalid, RecordNotFound
from api_rescue.renderers import (
    exception_class_name,
    exception_message,
    render_api_error,
    render_exception,
    render_record_invalid,
)
from api_rescue.status import Status, status_code

Renderer = Callable[[BaseException, RescueSettings], dict[str, Any]]
StatusResolver = Status | Callable[[BaseException], Status]


class Logger(Protocol):
    """The subset of a structlog logger the policy uses."""

    def error(self, event: str, **kw: Any) -> Any: ...

    def warning(self, event: str, **kw: Any) -> Any: ...


@dataclass(frozen=True)
class Registration:
    """Exception classes paired with how to render them."""

    kinds: tuple[type[BaseException], ...]
    render: Renderer
    status: StatusResolver
    event: str = "unhandled_exception"

    def matches(self, exc: BaseException) -> bool:
        return isinstance(exc, self.kinds)

    def status_for(self, exc: BaseException) -> Status:
        if callable(self.status):
            return self.status(exc)
        return self.status


@dataclass(frozen=True)
class Rescued:
    """The outcome of rescuing one exception."""

    status: int
    body: dict[str, Any]
    registration: Registration


def _api_error_status(exc: BaseException) -> Status:
    return exc.status if isinstance(exc, ApiError) else None


class RescuePolicy:
    """Ordered exception registrations plus the dispatch that uses them."""

    def __init__(
        self,
        settings: RescueSettings | None = None,
        logger: Logger | None = None,
        *,
        defaults: bool = True,
    ) -> None:
        self.settings = settings if settings is not None else default_settings
        self.logger = logger
        self._registrations: list[Registration] = []
        self._frozen = False

        if defaults:
            # Lowest priority to highest
            self.rescue_default(Exception, status="internal_server_error")
            self.rescue_default(
                RecordNotFound, NoResultFound, status="not_found", event="record_not_found"
            )
            self.rescue_from(
                RecordInvalid,
                ValidationError,
                render=render_record_invalid,
                status="unprocessable_entity",
                event="record_invalid",
            )
            self.rescue_from(
                ApiError, render=render_api_error, status=_api_error_status, event="api_error"
            )

    @property
    def registrations(self) -> tuple[Registration, ...]:
        return tuple(self._registrations)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def rescue_from(
        self,
        *kinds: type[BaseException],
        render: Renderer,
        status: StatusResolver = 500,
        event: str = "unhandled_exception",
    ) -> Registration:
        """Register ``render`` for ``kinds``, overriding earlier registrations."""
        if self._frozen:
            raise RescueConfigurationError("Cannot register handlers on a frozen rescue policy")
        if not kinds:
            raise RescueConfigurationError("rescue_from needs at least one exception class")
        registration = Registration(kinds=kinds, render=render, status=status, event=event)
        self._registrations.append(registration)
        return registration

    def rescue_default(
        self,
        *kinds: type[BaseException],
        status: StatusResolver = 500,
        event: str = "unhandled_exception",
    ) -> Registration:
        """Rescue ``kinds`` with the generic error body and ``status``.

        Example:
            policy.rescue_default(PermissionError, TimeoutError, status="forbidden")
        """
        return self.rescue_from(*kinds, render=render_exception, status=status, event=event)

    def freeze(self) -> None:
        """Make the registration table read-only."""
        self._frozen = True

    def registration_for(self, exc: BaseException) -> Registration:
        """Return the most specific registration matching ``exc``."""
        for registration in reversed(self._registrations):
            if registration.matches(exc):
                return registration
        raise RescueConfigurationError(
            f"No rescue registration matches {exception_class_name(exc)}"
        ) from exc

    def handle(self, exc: BaseException, **log_context: Any) -> Rescued:
        """Classify ``exc``, log it and build the status and body to send back.

        ``log_context`` (e.g. the request path and method) is added to the log line.
        """
        registration = self.registration_for(exc)
        status = self._resolve_status(registration, exc)
        self._log(registration, exc, status, log_context)
        body = registration.render(exc, self.settings)
        return Rescued(status=status, body=body, registration=registration)

    def to_response(self, exc: BaseException, **log_context: Any) -> JSONResponse:
        """Like ``handle``, wrapped in a ``JSONResponse``.

        If logging or rendering ``exc`` fails (a renderer or the exception's
        own ``__str__`` raises), the response degrades to a 500 whose body
        only names the exception class.
        """
        try:
            rescued = self.handle(exc, **log_context)
        except RescueConfigurationError:
            raise
        except Exception as render_exc:
            if self.logger is not None:
                self.logger.error(
                    "rescue_failed",
                    exc_info=render_exc,
                    exception_class=exception_class_name(exc),
                    **log_context,
                )
            return JSONResponse(
                status_code=status_code(None), content={"error": type(exc).__name__}
            )
        return JSONResponse(status_code=rescued.status, content=rescued.body)

    def _resolve_status(self, registration: Registration, exc: BaseException) -> int:
        status = registration.status_for(exc)
        try:
            return status_code(status)
        except ValueError:
            if self.logger is not None:
                self.logger.warning("unknown_status", status=str(status))
            return status_code(None)

    def _log(
        self,
        registration: Registration,
        exc: BaseException,
        status: int,
        log_context: dict[str, Any],
    ) -> None:
        if self.logger is None:
            return

        fields: dict[str, Any] = {
            "status": status,
            "error": exception_message(exc),
            "exception_class": exception_class_name(exc),
            **log_context,
        }
        if isinstance(exc, ApiError):
            fields["code"] = exc.code
            fields["details"] = exc.details
        self.logger.error(registration.event, exc_info=exc, **fields)
