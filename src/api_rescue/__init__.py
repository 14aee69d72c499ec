"""Centralized JSON error responses for FastAPI services.

Usage:
    from fastapi import FastAPI
    from api_rescue import error, install

    app = FastAPI()
    install(app)

    @app.get("/users/{user_id}")
    async def show_user(user_id: int) -> dict[str, str]:
        error("User not found", status="not_found", code="user_not_found")
"""

from api_rescue.exceptions import ApiError, RescueConfigurationError, RescueError, error
from api_rescue.middleware import RequestIDMiddleware, RescueMiddleware, install
from api_rescue.policy import Registration, Rescued, RescuePolicy
from api_rescue.records import (
    Errors,
    RecordInvalid,
    RecordNotFound,
    ValidatesMixin,
    create,
    find,
    save,
)
from api_rescue.status import status_code

__all__ = [
    "ApiError",
    "Errors",
    "RecordInvalid",
    "RecordNotFound",
    "Registration",
    "RequestIDMiddleware",
    "Rescued",
    "RescueConfigurationError",
    "RescueError",
    "RescueMiddleware",
    "RescuePolicy",
    "ValidatesMixin",
    "create",
    "error",
    "find",
    "install",
    "save",
    "status_code",
]
