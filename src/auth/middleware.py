"""
Authentication middleware for kind-based route protection.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from src.auth.jwt import ADMIN_KIND, get_token, verify_token

logger = logging.getLogger(__name__)

# Routes that don't require authentication
PUBLIC_ROUTES = {
    "/",
    "/api/health",
    "/api/health/ready",
    "/api/health/live",
    "/favicon.ico",
}

# Route prefixes that don't require authentication
PUBLIC_PREFIXES = (
    "/docs",
    "/redoc",
    "/openapi.json",
)


def _json_error(detail: str, status_code: int) -> Response:
    return JSONResponse({"detail": detail}, status_code=status_code)


class AuthMiddleware(BaseHTTPMiddleware):
    """
    Middleware that enforces kind-based access control.

    - /api/admin/* routes require an admin token
    - /api/panel/* routes require an agent, landlord or tenant token
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        path = request.url.path

        # Allow public routes
        if path in PUBLIC_ROUTES or path.startswith(PUBLIC_PREFIXES):
            return await call_next(request)

        is_admin_route = path.startswith("/api/admin")
        is_panel_route = path.startswith("/api/panel")

        if not (is_admin_route or is_panel_route):
            return await call_next(request)

        token = get_token(request)
        payload = verify_token(token) if token else None

        if not payload:
            return _json_error("Not authenticated", 401)

        kind = payload["kind"]

        if is_admin_route and kind != ADMIN_KIND:
            logger.warning(f"{kind}:{payload['id']} denied access to {path}")
            return _json_error("Admin access required", 403)

        if is_panel_route and kind == ADMIN_KIND:
            return _json_error("Access denied", 403)

        return await call_next(request)
