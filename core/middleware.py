import asyncio
from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from utils.logger import get_logger
from core.exceptions import ServiceUnavailable, error_body

logger = get_logger("Middleware")

class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """Abort requests that run longer than timeout_seconds with a retryable 503."""

    def __init__(self, app, timeout_seconds: float = 15.0):
        super().__init__(app)
        self.timeout = timeout_seconds

    async def dispatch(self, request: Request, call_next):
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Request timed out after {self.timeout}s", extra={"path": request.url.path})
            unavailable = ServiceUnavailable("Request timed out, please retry")
            return JSONResponse(
                status_code=unavailable.status_code,
                content=error_body(unavailable.code, unavailable.detail),
                headers=unavailable.headers,
            )
