"""
Security middleware for the user service.
"""
import asyncio
from typing import Callable, Dict

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..logging_config import get_logger

logger = get_logger("api.security")

AUTH_PATH_PREFIX = "/api/v1/auth"
SIGNIN_PATH = AUTH_PATH_PREFIX + "/signin"
AUDITED_STATUS_CODES = frozenset({401, 403, 429})


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add the configured security headers; auth responses carry tokens and are never cached."""

    def __init__(self, app, headers: Dict[str, str]):
        super().__init__(app)
        self.headers = headers

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers.update(self.headers)
        if request.url.path.startswith(AUTH_PATH_PREFIX):
            response.headers["Cache-Control"] = "no-store"

        return response


class RequestTimeoutMiddleware(BaseHTTPMiddleware):
    """Answer 408 when a request takes longer than the configured timeout."""

    def __init__(self, app, timeout_seconds: float):
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "Request timed out",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "timeout_seconds": self.timeout_seconds,
                },
            )
            return JSONResponse(
                status_code=408,
                content={
                    "error_type": "timeout",
                    "user_message": "処理がタイムアウトしました。もう一度お試しください。",
                    "retry_available": True,
                },
            )


class AuditLogMiddleware(BaseHTTPMiddleware):
    """Record rejected requests (401/403/429) as security events."""

    def __init__(self, app, log_security_events: bool = True):
        super().__init__(app)
        self.log_security_events = log_security_events

    @staticmethod
    def _event_name(request: Request, status_code: int) -> str:
        if status_code == 401 and request.url.path == SIGNIN_PATH:
            return "signin_failed"
        return {401: "unauthenticated", 403: "forbidden", 429: "rate_limited"}[status_code]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if self.log_security_events and response.status_code in AUDITED_STATUS_CODES:
            logger.warning(
                "Security audit",
                extra={
                    "event": self._event_name(request, response.status_code),
                    "status_code": response.status_code,
                    "method": request.method,
                    "path": request.url.path,
                    "request_id": getattr(request.state, "request_id", None),
                    "client_ip": request.client.host if request.client else "unknown",
                    "user_agent": request.headers.get("User-Agent", "unknown"),
                },
            )

        return response


def setup_security_middleware(
    app: FastAPI,
    security_headers: Dict[str, str],
    timeout_seconds: float,
    log_security_events: bool = True
) -> None:
    """Register header, timeout and audit middleware (audit outermost)."""
    app.add_middleware(SecurityHeadersMiddleware, headers=security_headers)
    app.add_middleware(RequestTimeoutMiddleware, timeout_seconds=timeout_seconds)
    app.add_middleware(AuditLogMiddleware, log_security_events=log_security_events)

    logger.info(
        "Security middleware configured",
        extra={"timeout_seconds": timeout_seconds, "audit": log_security_events},
    )
