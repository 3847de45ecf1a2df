"""Request context middleware: request id and calling device in every log line."""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

DEVICE_HEADER = "X-Device-Id"


class DeviceContextMiddleware(BaseHTTPMiddleware):
    """Generate or propagate X-Request-Id and bind X-Device-Id to the structlog context."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Bind request_id (and device_id when sent) for the request, echo the request id back."""
        request_id = request.headers.get("X-Request-Id", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        device_id = request.headers.get(DEVICE_HEADER)
        if device_id:
            structlog.contextvars.bind_contextvars(device_id=device_id)

        response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response
