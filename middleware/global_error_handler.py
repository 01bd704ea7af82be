"""
Global error handler middleware that turns anything escaping the app into a JSON 500.
Added AFTER CORSMiddleware so error responses still carry CORS headers.
"""
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
import logging

from config import settings

logger = logging.getLogger(__name__)


def _add_cors_headers(request: Request, response: Response) -> None:
    origin = request.headers.get("Origin", "")
    if origin and origin in settings.cors_origins and "access-control-allow-origin" not in response.headers:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"


class GlobalErrorMiddleware(BaseHTTPMiddleware):
    """
    Ensures every error response includes:
    - JSON body
    - Access-Control-Allow-Origin header
    - X-Request-ID for tracing
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
            if response.status_code >= 400:
                _add_cors_headers(request, response)
            return response

        except Exception as e:
            logger.exception(f"[{request_id}] Unhandled exception in {request.url.path}: {e}")

            response = JSONResponse(
                content={
                    "error": "internal_server_error",
                    "detail": str(e) if settings.debug else "Internal server error",
                    "request_id": request_id,
                    "path": str(request.url.path),
                    "method": request.method,
                },
                status_code=500
            )
            _add_cors_headers(request, response)

            response.headers["X-Request-ID"] = request_id
            elapsed = (time.perf_counter() - start_time) * 1000
            response.headers["X-Response-Time"] = f"{elapsed:.2f}ms"
            response.headers["X-Error-Handler"] = "global"
            return response
