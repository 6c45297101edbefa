import logging
import time
import uuid

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from nightowl.core.logging import log_context

# Set up logger
logger = logging.getLogger(__name__)


class RequestIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.

    The ID comes from the incoming header when present, is stored on
    ``request.state`` and echoed back in the response headers.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Request-ID"):
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        request_id = request.headers.get(self.header_name) or str(uuid.uuid4())
        request.state.request_id = request_id

        start_time = time.time()
        response = await call_next(request)
        response.headers[self.header_name] = request_id
        self._log_request(request, response, start_time)
        return response

    def _log_request(
        self, request: Request, response: Response, start_time: float
    ) -> None:
        log_dict = {
            "request_id": request.state.request_id,
            "method": request.method,
            "url": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round((time.time() - start_time) * 1000, 2),
        }

        # Choose log level based on status code
        if response.status_code >= 500:
            logger.error(f"Request failed: {log_dict}")
        elif response.status_code >= 400:
            logger.warning(f"Request error: {log_dict}")
        else:
            logger.info(f"Request completed: {log_dict}")


class LogContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that puts the request ID and path into the log context, so every
    record written while handling the request carries them.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        with log_context(
            request_id=getattr(request.state, "request_id", "unknown"),
            method=request.method,
            path=request.url.path,
        ):
            return await call_next(request)


def register_middlewares(app: FastAPI) -> None:
    """
    Register all middlewares with the FastAPI app.

    Note: Middleware is executed in reverse order of registration
    (last registered is executed first), so the request ID is set before the
    log context reads it.
    """
    app.add_middleware(LogContextMiddleware)
    app.add_middleware(RequestIdMiddleware, header_name="X-Request-ID")
