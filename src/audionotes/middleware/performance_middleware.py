"""
Request log middleware: one ``http_request`` event per request.

Uploads get their body size and, once queued, the job id so a request can be
matched to the ``job_completed``/``job_failed`` events of the worker.
"""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.structured_logger import elapsed_since, log_event

logger = logging.getLogger(__name__)

# Uploads are slower than the rest of the API by nature
SLOW_REQUEST_SECONDS = 1.0
SLOW_UPLOAD_SECONDS = 10.0
UPLOAD_PATHS = {"/transcribe", "/transcribe-to-notion"}


class PerformanceMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        latency = elapsed_since(start_time)

        path = request.url.path
        is_upload = path in UPLOAD_PATHS
        fields = {
            "method": request.method,
            "path": path,
            "status": response.status_code,
            "latency_ms": round(latency * 1000, 2),
            "request_id": getattr(request.state, "request_id", None),
        }
        if is_upload:
            fields["upload_bytes"] = int(request.headers.get("content-length") or 0)
            fields["job_id"] = getattr(request.state, "job_id", None)

        threshold = SLOW_UPLOAD_SECONDS if is_upload else SLOW_REQUEST_SECONDS
        slow = latency > threshold
        log_event(logger, "http_request", level=logging.WARNING if slow else logging.INFO, slow=slow, **fields)

        response.headers["X-Process-Time"] = str(fields["latency_ms"])
        return response
