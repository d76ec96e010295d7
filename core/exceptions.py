from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError
from utils.logger import get_logger

logger = get_logger("Global_Exception")

class AppException(HTTPException):
    def __init__(self, status_code: int, detail: str, headers: dict | None = None):
        super().__init__(status_code=status_code, detail=detail, headers=headers)

class ValidationError(AppException):
    """Missing or malformed input."""
    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status.HTTP_400_BAD_REQUEST, detail)

class AuthenticationError(AppException):
    def __init__(self, detail: str = "Authorization required"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, detail, headers={"WWW-Authenticate": "Bearer"})

class AuthorizationError(AppException):
    """Authenticated, but not allowed to do this."""
    def __init__(self, detail: str = "Forbidden"):
        super().__init__(status.HTTP_403_FORBIDDEN, detail)

class NotFoundError(AppException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status.HTTP_404_NOT_FOUND, detail)

class ConflictError(AppException):
    def __init__(self, detail: str = "Conflict"):
        super().__init__(status.HTTP_409_CONFLICT, detail)

class UpstreamError(AppException):
    def __init__(self, detail: str = "Upstream service failure"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, detail)

async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    messages = []
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        field = ".".join(loc)
        messages.append(f"{field}: {err.get('msg')}" if field else err.get("msg", "Invalid value"))
    logger.info("Request validation failed", extra={"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "; ".join(messages) or "Invalid request"}
    )

async def database_exception_handler(request: Request, exc: PyMongoError):
    logger.error(f"Database error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Database error"}
    )

async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception",
        extra={"path": request.url.path}
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )
