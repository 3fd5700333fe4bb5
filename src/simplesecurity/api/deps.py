"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers. The provider
comes from app.state (one instance per app), and the principal was
already resolved by AuthContextMiddleware, so these dependencies
never touch the ticket or the store themselves.
"""

from fastapi import Depends, HTTPException, Request

from simplesecurity.auth.identity import Principal
from simplesecurity.provider import AuthContext, SecurityProvider


def get_provider(request: Request) -> SecurityProvider:
    return request.app.state.security


def get_auth(request: Request) -> AuthContext:
    """The request's AuthContext, set up by the middleware."""
    ctx = getattr(request.state, "auth", None)
    if ctx is None:
        # Middleware not installed: every caller is anonymous
        ctx = AuthContext()
        request.state.auth = ctx
    return ctx


def get_principal(ctx: AuthContext = Depends(get_auth)) -> Principal:
    return ctx.principal


def require_authenticated(
    principal: Principal = Depends(get_principal),
) -> Principal:
    """Current principal (required — 401 if anonymous)."""
    if not principal.is_authenticated:
        raise HTTPException(status_code=401, detail="Authentication required")
    return principal


def require_role(role: str):
    """Dependency factory: 401 if anonymous, 403 if not in `role`."""

    def _dep(principal: Principal = Depends(require_authenticated)) -> Principal:
        if not principal.is_in_role(role):
            raise HTTPException(status_code=403, detail="Forbidden")
        return principal

    return _dep
