"""
Route guard for the server-rendered pages.

Unauthenticated visitors of a protected page are sent to /login, and
signed-in users opening /login are sent to /upload. API routes answer
401 on their own through the auth dependency and are left alone here.
"""
import logging
from typing import Sequence

from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from core.errors import AuthError
from dependencies.auth import extract_token, resolve_user

logger = logging.getLogger(__name__)

PROTECTED_ROUTES = ("/upload", "/chat")
AUTH_ROUTES = ("/login",)
SKIPPED_PREFIXES = ("/api", "/auth", "/static", "/docs", "/redoc", "/openapi.json", "/favicon.ico", "/health")


def matches_route(path: str, routes: Sequence[str]) -> bool:
    """True when path is one of routes or sits below one of them."""
    return any(path == route or path.startswith(route.rstrip("/") + "/") for route in routes)


class RouteGuardMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        protected_routes: Sequence[str] = PROTECTED_ROUTES,
        auth_routes: Sequence[str] = AUTH_ROUTES,
        login_path: str = "/login",
        home_path: str = "/upload",
    ):
        super().__init__(app)
        self.protected_routes = tuple(protected_routes)
        self.auth_routes = tuple(auth_routes)
        self.login_path = login_path
        self.home_path = home_path

    async def has_session(self, request: Request) -> bool:
        token = extract_token(request)
        if not token:
            return False
        try:
            await resolve_user(token)
        except AuthError:
            return False
        return True

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if matches_route(path, SKIPPED_PREFIXES):
            return await call_next(request)

        is_protected = matches_route(path, self.protected_routes)
        is_auth_route = matches_route(path, self.auth_routes)
        if not (is_protected or is_auth_route):
            return await call_next(request)

        session = await self.has_session(request)
        if is_protected and not session:
            logger.debug("Redirecting anonymous request for %s to login", path)
            return RedirectResponse(url=self.login_path, status_code=307)
        if is_auth_route and session:
            return RedirectResponse(url=self.home_path, status_code=307)
        return await call_next(request)
