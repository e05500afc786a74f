"""
Maps domain exceptions to HTTP responses.
Body shape: {"detail": <message>, "error": <stable code>}.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from queueskip.core.exceptions import ReservationError
from queueskip.core.logging import get_logger

logger = get_logger(__name__)


async def reservation_error_handler(request: Request, exc: ReservationError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request_error",
            error=exc.code,
            detail=exc.message,
            status_code=exc.status_code,
            exc_info=exc,
        )
    else:
        logger.info("request_rejected", error=exc.code, detail=exc.message, status_code=exc.status_code)

    headers = {"Retry-After": "1"} if exc.status_code == 503 else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReservationError, reservation_error_handler)
