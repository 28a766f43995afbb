"""Bounded request timeout middleware."""

import asyncio
from typing import Any

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = structlog.get_logger()


class TimeoutMiddleware(BaseHTTPMiddleware):
    """Answer 504 when a request runs past timeout_seconds."""

    def __init__(self, app: Any, timeout_seconds: float = 10.0) -> None:  # noqa: ANN401
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "request_timeout",
                path=request.url.path,
                method=request.method,
                timeout=self.timeout_seconds,
            )
            return JSONResponse(status_code=504, content={"detail": "Request timed out"})
