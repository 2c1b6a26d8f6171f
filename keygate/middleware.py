"""HTTP middleware: request logging, body size limit, last-resort error handler."""

import logging
import time
from typing import Awaitable, Callable

from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

TOO_LARGE_MESSAGE = "Corpo da requisição muito grande"


def client_address(request: Request) -> str:
    """First X-Forwarded-For hop when behind Vercel/a proxy, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


class LoggingMiddleware(BaseHTTPMiddleware):
    """One log line per request; 5xx answers are logged as warnings."""

    def __init__(self, app, logger: logging.Logger = None):
        super().__init__(app)
        self.logger = logger or logging.getLogger("keygate.http")

    async def dispatch(self, request: Request, call_next: Callable):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000

        level = logging.WARNING if response.status_code >= 500 else logging.INFO
        self.logger.log(
            level,
            f"{request.method} {request.url.path} -> {response.status_code} "
            f"({duration_ms:.1f}ms, client {client_address(request)})",
        )
        return response


class BodySizeLimitMiddleware:
    """Reject request bodies larger than *max_bytes* with 413.

    A declared Content-Length is checked up front; chunked bodies are
    counted while the endpoint reads them.
    """

    def __init__(self, app, max_bytes: int = 100 * 1024):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        length = Headers(scope=scope).get("content-length")
        if length is not None:
            try:
                too_large = int(length) > self.max_bytes
            except ValueError:
                response = JSONResponse({"error": "Content-Length inválido"}, status_code=400)
                await response(scope, receive, send)
                return
            if too_large:
                response = JSONResponse({"error": TOO_LARGE_MESSAGE}, status_code=413)
                await response(scope, receive, send)
                return

        received = 0

        async def limited_receive():
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    # FastAPI re-raises HTTPException from body reading as is
                    raise HTTPException(status_code=413, detail=TOO_LARGE_MESSAGE)
            return message

        await self.app(scope, limited_receive, send)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Turn exceptions nothing else handled into a JSON 500.

    Installed inside CORSMiddleware so cross-origin callers can read the body.
    """

    def __init__(self, app, on_error: Callable[[Request, Exception], Awaitable[Response]]):
        super().__init__(app)
        self.on_error = on_error

    async def dispatch(self, request: Request, call_next: Callable):
        try:
            return await call_next(request)
        except Exception as exc:
            return await self.on_error(request, exc)
