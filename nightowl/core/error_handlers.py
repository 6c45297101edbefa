import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError

from nightowl.core.config import settings
from nightowl.core.exceptions import BusinessException

# Set up module logger
logger = logging.getLogger(__name__)


def _request_extra(request: Request) -> Dict[str, Any]:
    return {
        "path": request.url.path,
        "method": request.method,
        "request_id": getattr(request.state, "request_id", "unknown"),
    }


def _error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content = {
        "error": code,
        "message": message,
        "request_id": getattr(request.state, "request_id", None),
    }
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register custom exception handlers for the FastAPI application.

    Args:
        app: The FastAPI application instance
    """

    @app.exception_handler(BusinessException)
    async def business_exception_handler(
        request: Request, exc: BusinessException
    ) -> JSONResponse:
        """
        Map the gamification error taxonomy onto JSON responses.
        Store failures are logged as errors, everything else as warnings.
        """
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"Business exception: {exc.code}: {exc.message}",
            extra={**_request_extra(request), "details": exc.details},
        )
        return _error_response(
            request, exc.status_code, exc.code, exc.message, exc.details
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """
        Handle Pydantic validation errors.
        Formats them in a more user-friendly way.
        """
        simplified_errors: Dict[str, str] = {}
        for error in exc.errors():
            loc = error.get("loc", [])
            # Skip the first element if it's the body
            if loc and loc[0] in ("body", "query", "path"):
                loc = loc[1:]
            field = ".".join(str(x) for x in loc)
            simplified_errors[field] = error.get("msg", "Validation error")

        logger.warning(
            f"Validation error: {simplified_errors}", extra=_request_extra(request)
        )
        return _error_response(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "validation_error",
            "Input validation failed",
            simplified_errors,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            f"Unhandled exception: {str(exc)}",
            exc_info=True,
            extra=_request_extra(request),
        )
        # Don't expose details in production
        message = (
            str(exc)
            if settings.ENVIRONMENT != "production"
            else "An internal server error occurred"
        )
        return _error_response(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "internal_server_error",
            message,
        )
