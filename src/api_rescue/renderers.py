"""Build JSON error bodies from rescued exceptions.

Renderers are plain functions ``(exc, settings) -> dict`` so the rescue
policy can pair any of them with any exception class.
"""

import traceback
from types import TracebackType
from typing import Any

from pydantic import ValidationError

from api_rescue.config import RescueSettings
from api_rescue.exceptions import ApiError
from api_rescue.records import Errors, RecordInvalid
from api_rescue.schemas.error import (
    ApiErrorResponse,
    CauseDetail,
    ErrorResponse,
    ExceptionDetail,
    ValidationErrorResponse,
)

INVALID_DATA_DETAILS = "The data you submitted is invalid."


class BacktraceCleaner:
    """Formats traceback frames, stripping the application root from paths."""

    def __init__(self, root: str) -> None:
        root = root.rstrip("/")
        self.prefix = f"{root}/" if root else ""

    def clean(self, tb: TracebackType | None) -> list[str]:
        return [
            f"{self._strip_root(frame.filename)}:{frame.lineno}:in {frame.name}"
            for frame in traceback.extract_tb(tb)
        ]

    def _strip_root(self, path: str) -> str:
        if self.prefix and path.startswith(self.prefix):
            return path[len(self.prefix) :]
        return path


def exception_message(exc: BaseException) -> str:
    """The exception's message, or its class name when it has none."""
    return str(exc) or type(exc).__name__


def exception_class_name(exc: BaseException) -> str:
    cls = type(exc)
    if cls.__module__ == "builtins":
        return cls.__qualname__
    return f"{cls.__module__}.{cls.__qualname__}"


def exception_cause(exc: BaseException) -> BaseException | None:
    """The exception ``exc`` was raised from, explicitly or while handling it."""
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def exception_detail(exc: BaseException, settings: RescueSettings) -> ExceptionDetail:
    backtrace = None
    if settings.include_backtrace:
        backtrace = BacktraceCleaner(settings.backtrace_root).clean(exc.__traceback__)

    cause = exception_cause(exc)
    return ExceptionDetail(
        class_name=exception_class_name(exc),
        message=exception_message(exc),
        backtrace=backtrace,
        cause=CauseDetail(message=exception_message(cause)) if cause is not None else None,
    )


def _dump(body: ErrorResponse | ValidationErrorResponse) -> dict[str, Any]:
    return body.model_dump(by_alias=True, exclude_none=True)


def render_exception(exc: BaseException, settings: RescueSettings) -> dict[str, Any]:
    """Generic body used for any exception without a dedicated renderer."""
    body = ErrorResponse(
        error=exception_message(exc),
        exception=exception_detail(exc, settings),
    )
    return _dump(body)


def render_api_error(exc: BaseException, settings: RescueSettings) -> dict[str, Any]:
    """Generic body plus the ``code`` and ``details`` carried by an ApiError."""
    if not isinstance(exc, ApiError):
        return render_exception(exc, settings)

    body = ApiErrorResponse(
        error=exception_message(exc),
        exception=exception_detail(exc, settings),
        code=exc.code,
        details=exc.details,
    )
    return _dump(body)


def render_record_invalid(exc: BaseException, settings: RescueSettings) -> dict[str, Any]:
    """Validation body listing every field-level message."""
    if isinstance(exc, ValidationError):
        exc = RecordInvalid(errors=Errors.from_pydantic(exc))
    if not isinstance(exc, RecordInvalid):
        return render_exception(exc, settings)

    body = ValidationErrorResponse(
        error=exc.message,
        details=INVALID_DATA_DETAILS,
        validation=exc.errors.messages,
    )
    return _dump(body)
