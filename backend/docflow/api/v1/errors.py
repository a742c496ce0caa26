"""Translation of engine errors into HTTP responses."""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ...domain.errors import DocFlowError, UnverifiedAttachmentsError
from ...observability.logging_config import get_logger

logger = get_logger(__name__)

ERROR_STATUS_CODES = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "comment_required": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "unverified_attachments": status.HTTP_409_CONFLICT,
    "concurrent_modification": status.HTTP_409_CONFLICT,
    "invalid_input": status.HTTP_400_BAD_REQUEST,
    "slot_locked": status.HTTP_409_CONFLICT,
    "already_received": status.HTTP_409_CONFLICT,
}


async def docflow_exception_handler(request: Request, exc: DocFlowError) -> JSONResponse:
    """Render a DocFlowError as {"error", "message"} with the mapped status code."""
    status_code = ERROR_STATUS_CODES.get(exc.code, status.HTTP_400_BAD_REQUEST)
    logger.info(
        f"{request.method} {request.url.path} rejected: {exc.code}",
        extra={"action": exc.code},
    )

    content = {"error": exc.code, "message": exc.message}
    if isinstance(exc, UnverifiedAttachmentsError):
        content["pending_slots"] = exc.pending_slots
    if exc.retryable:
        content["retryable"] = True
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DocFlowError, docflow_exception_handler)
