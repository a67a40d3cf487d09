"""
Response hardening and CSRF checks for browser sessions.

API clients authenticate with a Bearer token and are not subject to CSRF.
Browsers carry the session in the ``br_session`` cookie and must echo the
``br_csrf`` cookie value in the ``X-CSRF-Token`` header on unsafe requests.
"""

from __future__ import annotations

import secrets

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from bidroom.core.config import get_settings
from bidroom.core.errors import error_response

log = structlog.get_logger()
settings = get_settings()

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
CSRF_HEADER = "X-CSRF-Token"

# JSON API only: nothing is framed, scripted or embedded.
SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "camera=(), microphone=(), geolocation=()",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none';",
    "Strict-Transport-Security": "max-age=63072000; includeSubDomains",
    "Cache-Control": "no-store",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        return response


def _uses_cookie_session(request: Request) -> bool:
    auth = request.headers.get("Authorization", "")
    if auth.lower().startswith("bearer "):
        return False
    return settings.session_cookie_name in request.cookies


class CSRFMiddleware(BaseHTTPMiddleware):
    """Double-submit cookie check for unsafe requests on cookie sessions."""

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.method in SAFE_METHODS or not _uses_cookie_session(request):
            return await call_next(request)

        cookie_token = request.cookies.get(settings.csrf_cookie_name, "")
        header_token = request.headers.get(CSRF_HEADER, "")
        if cookie_token and header_token and secrets.compare_digest(cookie_token, header_token):
            return await call_next(request)

        log.info("csrf.rejected", path=request.url.path, method=request.method)
        return error_response(403, "CSRF_VALIDATION_FAILED", "Invalid or missing CSRF token.")
