# ============================================================================
# File: api/middleware.py
# ============================================================================

import logging
import re
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

logger = logging.getLogger(__name__)

# Caller-supplied ids end up in log lines
REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# Operator actions on the importer are logged at INFO, reads at DEBUG
CONTROL_METHODS = {"POST", "PUT", "DELETE"}


def resolve_request_id(header_value) -> str:
    """Reuse a well-formed X-Request-ID, otherwise mint one."""
    if header_value and REQUEST_ID_PATTERN.match(header_value):
        return header_value
    return uuid.uuid4().hex


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with an id that import-control routes and the
    pipeline error handler put into their log lines, and reports it back
    with the handling time:
    - X-Request-ID
    - X-API-Latency-ms
    """

    async def dispatch(self, request: Request, call_next):
        request_id = resolve_request_id(request.headers.get("X-Request-ID"))
        request.state.request_id = request_id
        started = time.perf_counter()

        response: Response = await call_next(request)

        latency_ms = int((time.perf_counter() - started) * 1000)
        response.headers["X-Request-ID"] = request_id
        response.headers["X-API-Latency-ms"] = str(latency_ms)

        level = logging.INFO if request.method in CONTROL_METHODS else logging.DEBUG
        logger.log(level, f"[{request_id}] {request.method} {request.url.path} -> {response.status_code} ({latency_ms}ms)")

        return response
