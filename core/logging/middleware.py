"""
Middleware for logging gateway requests.
"""
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from core.logging.providers import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and latency of every request."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        response_time_ms = (time.perf_counter() - start_time) * 1000

        provider_id = request.query_params.get("providerId")
        suffix = f" (providerId: {provider_id})" if provider_id else ""
        logger.info(
            f"{self._get_client_ip(request)} {request.method} {request.url.path}{suffix} "
            f"-> {response.status_code} in {response_time_ms:.1f}ms"
        )
        return response

    def _get_client_ip(self, request: Request) -> str:
        """Get client IP address from request."""
        # Check X-Forwarded-For header first (for proxies/load balancers)
        forwarded_for = request.headers.get('x-forwarded-for')
        if forwarded_for:
            return forwarded_for.split(',')[0].strip()

        real_ip = request.headers.get('x-real-ip')
        if real_ip:
            return real_ip.strip()

        if request.client:
            return request.client.host

        return "unknown"
