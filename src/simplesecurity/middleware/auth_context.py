"""Authentication middleware — resolves the principal for every request.

Learn: This is the request-pipeline hook. Before any handler or
authorization dependency runs, it reads the ticket cookie and asks
the provider for the caller's principal. The resulting AuthContext
is stored on request.state.auth; after the handler returns, any
cookies that login/logout queued on it become Set-Cookie headers.

It also binds a request ID (from X-Request-ID or a fresh UUID) and
the user name to structlog's contextvars, so every log entry for the
request carries them.
"""

import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from simplesecurity.provider import AuthContext, SecurityProvider


class AuthContextMiddleware(BaseHTTPMiddleware):
    """Resolve the principal before the handler and emit auth cookies after it."""

    def __init__(self, app, provider: SecurityProvider, cookie_secure: bool = False):
        super().__init__(app)
        self.provider = provider
        self.cookie_secure = cookie_secure

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        token = request.cookies.get(self.provider.ticket_cookie_name)
        ctx = await self.provider.begin_request(token)
        request.state.auth = ctx
        if ctx.principal.is_authenticated:
            structlog.contextvars.bind_contextvars(user=ctx.principal.name)

        response: Response = await call_next(request)
        self._write_cookies(response, ctx)
        response.headers["X-Request-ID"] = request_id
        return response

    def _write_cookies(self, response: Response, ctx: AuthContext) -> None:
        for cookie in ctx.cookies:
            response.set_cookie(
                cookie.name,
                cookie.value,
                expires=cookie.expires,
                path="/",
                secure=self.cookie_secure,
                httponly=cookie.http_only,
                samesite="lax",
            )
