"""
FastAPI middleware for request transaction IDs.

This middleware reads or generates a transaction id for each request,
which is then included in all log entries for that request and carried on
any message forwarded as a result of it.
"""
import time
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from annotations_rw.utils.logging import (
    get_logger,
    set_transaction_id,
    generate_transaction_id,
)
from annotations_rw.utils.metrics import (
    http_requests_total,
    http_request_duration_seconds,
    http_request_size_bytes,
)

logger = get_logger(__name__)

TRANSACTION_ID_HEADER = "X-Request-Id"


def endpoint_label(request: Request) -> str:
    """Route template for metrics labels, so uuids don't explode cardinality."""
    route = request.scope.get("route")
    return getattr(route, "path", None) or request.url.path


class TransactionIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add transaction IDs to requests.

    Uses the caller's X-Request-Id (or generates one) and:
    1. Sets it in the context for logging
    2. Echoes it in the response headers
    3. Logs request/response information and records HTTP metrics
    """

    async def dispatch(self, request: Request, call_next):
        transaction_id = request.headers.get(TRANSACTION_ID_HEADER) or generate_transaction_id()
        set_transaction_id(transaction_id)

        start_time = time.time()
        request_body_size = 0

        if request.method in ["POST", "PUT", "PATCH"]:
            content_length = request.headers.get("content-length")
            if content_length:
                try:
                    request_body_size = int(content_length)
                except ValueError:
                    request_body_size = 0

        logger.debug(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_host=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration = time.time() - start_time
            endpoint = endpoint_label(request)
            http_requests_total.labels(method=request.method, endpoint=endpoint, status_code=500).inc()
            http_request_duration_seconds.labels(method=request.method, endpoint=endpoint).observe(duration)
            logger.error(
                "request_error",
                method=request.method,
                path=request.url.path,
                error_type=type(e).__name__,
                error_message=str(e),
                duration_seconds=round(duration, 3),
                exc_info=True,
            )
            raise

        duration = time.time() - start_time
        endpoint = endpoint_label(request)
        method = request.method
        http_requests_total.labels(method=method, endpoint=endpoint, status_code=response.status_code).inc()
        http_request_duration_seconds.labels(method=method, endpoint=endpoint).observe(duration)
        http_request_size_bytes.labels(method=method, endpoint=endpoint).observe(request_body_size)

        response.headers[TRANSACTION_ID_HEADER] = transaction_id

        logger.info(
            "request_completed",
            method=method,
            path=request.url.path,
            status_code=response.status_code,
            duration_seconds=round(duration, 3),
        )
        return response
