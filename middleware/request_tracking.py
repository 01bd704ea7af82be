"""
Request tracking middleware for X-Request-ID propagation and Server-Timing headers.
"""
import time
import uuid
from typing import Callable
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
import logging

logger = logging.getLogger(__name__)


class RequestTrackingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request with its id and timing.

    Routes can report named segments (e.g. a Supabase round trip) through
    add_timing_segment(); they are emitted in the Server-Timing header.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        total_start = time.perf_counter()

        request_id = getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID")
        if not request_id:
            request_id = str(uuid.uuid4())

        request.state.request_id = request_id
        request.state.timing_segments = {}

        logger.info(f"[{request_id}] {request.method} {request.url.path} - Started")

        try:
            response = await call_next(request)
        except Exception as e:
            total_duration_ms = (time.perf_counter() - total_start) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.url.path} - "
                f"Failed after {total_duration_ms:.2f}ms: {e}"
            )
            raise

        total_duration_ms = (time.perf_counter() - total_start) * 1000

        timings = [
            f"{name};dur={duration_ms:.2f}"
            for name, duration_ms in request.state.timing_segments.items()
        ]
        timings.append(f"total;dur={total_duration_ms:.2f}")

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{total_duration_ms:.2f}ms"
        response.headers["Server-Timing"] = ", ".join(timings)

        logger.info(
            f"[{request_id}] {request.method} {request.url.path} - "
            f"Completed with {response.status_code} in {total_duration_ms:.2f}ms"
        )
        return response


def add_timing_segment(request: Request, name: str, duration_ms: float):
    """
    Record a named timing segment for the Server-Timing header.

    Usage in routes:
        start = time.perf_counter()
        # ... do database operation ...
        add_timing_segment(request, "db", (time.perf_counter() - start) * 1000)
    """
    if hasattr(request.state, "timing_segments"):
        request.state.timing_segments[name] = duration_ms
