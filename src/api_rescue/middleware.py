"""FastAPI middleware for rescuing exceptions and request tracing."""

import uuid
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from api_rescue.config import RescueSettings
from api_rescue.logging import RESCUE_LOGGER, get_logger
from api_rescue.policy import RescuePolicy

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Add request ID to every request for tracing.

    - Reads X-Request-ID from request headers, or generates a UUID if missing
    - Binds request_id to structlog context (auto-included in all logs)
    - Adds X-Request-ID to response headers, rescued error responses included
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        # Use existing request ID or generate new one
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())

        # Bind to structlog context so rescue logs for this request include it
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)

        response.headers[REQUEST_ID_HEADER] = request_id

        return response


class RescueMiddleware:
    """Turn exceptions escaping an endpoint into JSON error responses.

    A plain ASGI middleware: the exception reaches it untouched, with its
    ``__context__`` chain intact. Exceptions Starlette already handles
    (HTTPException, request validation) never get here. If the endpoint
    already started streaming a response the exception is re-raised.

    Usage:
        app.add_middleware(RescueMiddleware, policy=policy)
    """

    def __init__(self, app: ASGIApp, policy: RescuePolicy) -> None:
        self.app = app
        self.policy = policy

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def _send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, _send)
        except Exception as exc:
            if response_started:
                raise
            request = Request(scope)
            response = self.policy.to_response(exc, path=request.url.path, method=request.method)
            await response(scope, receive, send)


def install(
    app: FastAPI,
    policy: RescuePolicy | None = None,
    settings: RescueSettings | None = None,
) -> RescuePolicy:
    """Rescue exceptions raised by ``app``'s endpoints.

    Builds a default policy that logs through structlog when ``policy`` is
    omitted. The policy is frozen and stored on ``app.state.rescue_policy``.
    Call once, before the app starts serving.
    """
    if policy is None:
        policy = RescuePolicy(settings=settings, logger=get_logger(RESCUE_LOGGER))
    policy.freeze()

    # Middleware added last runs first: request IDs are bound before rescuing
    app.add_middleware(RescueMiddleware, policy=policy)
    app.add_middleware(RequestIDMiddleware)
    app.state.rescue_policy = policy
    return policy
