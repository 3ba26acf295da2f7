# app/middleware/activity_logger.py
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class ActivityLoggerMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()

        # Call actual endpoint
        response = await call_next(request)

        # Only log requests that modify the ledger
        if request.method in ["POST", "PUT", "PATCH", "DELETE"]:
            account_id = getattr(request.state, "account_id", None)
            elapsed_ms = (time.perf_counter() - started) * 1000
            logger.info(
                "%s %s -> %s (account=%s, %.1f ms)",
                request.method, request.url.path, response.status_code, account_id, elapsed_ms,
            )

        return response
