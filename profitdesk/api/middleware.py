"""Request context middleware for correlation ID tracking."""

import uuid
from collections.abc import Awaitable, Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from profitdesk.core.logging import client_id_ctx, request_id_ctx, user_id_ctx

RequestResponseEndpoint = Callable[[Request], Awaitable[Response]]


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware that sets request context variables for logging correlation.

    Extracts the X-Request-ID header (or generates one), binds it for
    structured logging and echoes it on the response. User and client
    context from a previous request on the same worker is cleared.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request_id_ctx.set(request_id)
        user_id_ctx.set(None)
        client_id_ctx.set(None)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        return response
