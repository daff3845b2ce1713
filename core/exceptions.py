from typing import Any, Optional
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from pymongo.errors import ConnectionFailure, ExecutionTimeout, WTimeoutError
from utils.logger import get_logger

logger = get_logger("Global_Exception")

class AppException(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "server_error"
    default_detail = "Internal server error"

    def __init__(self, detail: Optional[str] = None, details: Any = None, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail, headers=headers)
        self.details = details

class ValidationError(AppException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"
    default_detail = "Invalid input"

class Unauthorized(AppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "unauthorized"
    default_detail = "Not authenticated"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"WWW-Authenticate": "Bearer"})

class Forbidden(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    default_detail = "Forbidden: insufficient role"

class PendingApproval(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    code = "pending_approval"
    default_detail = "Your account is waiting for admin approval"

class NotFound(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    default_detail = "Not found"

class Conflict(AppException):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    default_detail = "Conflict"

class InvalidCart(Conflict):
    code = "invalid_cart"
    default_detail = "Cart can only contain items from one restaurant"

class InvalidTransition(Conflict):
    code = "invalid_transition"
    default_detail = "Invalid status transition"

class ServiceUnavailable(AppException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    code = "service_unavailable"
    default_detail = "Service temporarily unavailable, please retry"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail, headers={"Retry-After": "5"})


HTTP_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    503: "service_unavailable",
}

def error_body(code: str, message: Any, details: Any = None) -> dict:
    error = {"code": code, "message": message}
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


async def app_exception_handler(request: Request, exc: AppException):
    logger.warning(f"{exc.code} on {request.url.path}: {exc.detail}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.code, exc.detail, exc.details),
        headers=exc.headers,
    )

async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    code = HTTP_CODES.get(exc.status_code, "http_error")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, exc.detail),
        headers=getattr(exc, "headers", None),
    )

async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # ctx may carry exception objects that are not JSON serialisable
    details = [
        {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content=error_body("validation_error", "Invalid input data", details),
    )

async def database_unavailable_handler(request: Request, exc: Exception):
    logger.error(f"Database unavailable on {request.url.path}: {exc}")
    unavailable = ServiceUnavailable()
    return JSONResponse(
        status_code=unavailable.status_code,
        content=error_body(unavailable.code, unavailable.detail),
        headers=unavailable.headers,
    )

async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception",
        extra={"path": request.url.path}
    )
    return JSONResponse(
        status_code=500,
        content=error_body("server_error", "Internal server error")
    )

def setup_exception_handlers(app: FastAPI):
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    for exc_class in (ConnectionFailure, ExecutionTimeout, WTimeoutError):
        app.add_exception_handler(exc_class, database_unavailable_handler)
    app.add_exception_handler(Exception, global_exception_handler)
    return app
