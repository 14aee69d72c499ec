"""Error response schemas.

Three body shapes, all keyed by a top-level ``"error"`` message:

- ErrorResponse: {"error": "...", "exception": {...}} for any rescued exception
- ApiErrorResponse: ErrorResponse plus "code" and "details" for ApiError
- ValidationErrorResponse: {"error", "details", "validation"} for invalid records

Optional fields are left out of the JSON rather than rendered as null, so
bodies are dumped with ``by_alias=True, exclude_none=True``.
"""

from pydantic import BaseModel, ConfigDict, Field


class CauseDetail(BaseModel):
    """The lower-level exception the rescued one was raised from."""

    message: str


class ExceptionDetail(BaseModel):
    """Debugging information about the rescued exception."""

    model_config = ConfigDict(populate_by_name=True)

    class_name: str = Field(alias="class")
    message: str
    backtrace: list[str] | None = None
    cause: CauseDetail | None = None


class ErrorResponse(BaseModel):
    """Body returned for any rescued exception."""

    error: str
    exception: ExceptionDetail


class ApiErrorResponse(ErrorResponse):
    """Body returned for errors raised through ``error()``."""

    code: str | None = None
    details: str | None = None


class ValidationErrorResponse(BaseModel):
    """Body returned when a record fails validation."""

    error: str
    details: str
    validation: dict[str, list[str]]
