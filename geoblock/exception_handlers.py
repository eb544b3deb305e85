from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

from geoblock.logger import logger


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected errors to return a structured 500 response."""
    logger.exception(
        f"Unhandled exception while processing request: {repr(exc)} path={request.url.path} method={request.method}"
    )
    content: dict[str, Any] = {
        "code": "internal_error",
        "message": "An unexpected error occurred while processing the request.",
    }
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=content,
    )
