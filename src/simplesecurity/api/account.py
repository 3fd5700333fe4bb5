"""Account API — login, logout, registration.

Learn: Routes for the user lifecycle:
- POST /account/login → name/password → ticket + display-name cookies
- POST /account/logout → expired ticket cookie
- POST /account/register → create a user account (roles: admins only)
- POST /account/unregister → delete the caller's own account
- GET /account/me → current principal (anonymous allowed)

Failures never say which field was wrong.
"""

from fastapi import APIRouter, Depends, HTTPException

from simplesecurity.api.deps import (
    get_auth,
    get_principal,
    get_provider,
    require_authenticated,
)
from simplesecurity.api.schemas import (
    LoginRequest,
    PrincipalRead,
    RegisterRequest,
    RegisterResponse,
)
from simplesecurity.auth.identity import Principal
from simplesecurity.provider import AuthContext, SecurityProvider
from simplesecurity.store.credential_store import ADMIN_ROLE, parse_roles

router = APIRouter(prefix="/account")


# ─── Login / logout ─────────────────────────────────────


@router.post("/login", response_model=PrincipalRead)
async def login(
    body: LoginRequest,
    ctx: AuthContext = Depends(get_auth),
    provider: SecurityProvider = Depends(get_provider),
):
    """Login with name and password → ticket cookie."""
    ok = await provider.login(
        ctx,
        body.name,
        body.password,
        remember=body.remember_me,
        timeout_minutes=body.timeout_minutes,
    )
    if not ok:
        raise HTTPException(status_code=401, detail="Invalid username or password.")
    return PrincipalRead.from_principal(ctx.principal)


@router.post("/logout", response_model=PrincipalRead)
async def logout(
    ctx: AuthContext = Depends(get_auth),
    provider: SecurityProvider = Depends(get_provider),
):
    provider.logout(ctx)
    return PrincipalRead.from_principal(ctx.principal)


# ─── Register / unregister ──────────────────────────────


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    body: RegisterRequest,
    principal: Principal = Depends(get_principal),
    provider: SecurityProvider = Depends(get_provider),
):
    """Create a new user account.

    Self-registration creates a user without roles. Only an
    administrator may assign roles.
    """
    if parse_roles(body.roles) and not principal.is_in_role(ADMIN_ROLE):
        raise HTTPException(status_code=403, detail="Only administrators can assign roles.")
    if not await provider.register(body.name, body.password, body.roles):
        raise HTTPException(
            status_code=409, detail="User with such name already registered."
        )
    return RegisterResponse(name=body.name)


@router.post("/unregister", response_model=PrincipalRead)
async def unregister(
    principal: Principal = Depends(require_authenticated),
    ctx: AuthContext = Depends(get_auth),
    provider: SecurityProvider = Depends(get_provider),
):
    """Delete the caller's account and end their session."""
    await provider.unregister(principal.name)
    provider.logout(ctx)
    return PrincipalRead.from_principal(ctx.principal)


# ─── Current user ───────────────────────────────────────


@router.get("/me", response_model=PrincipalRead)
async def get_me(principal: Principal = Depends(get_principal)):
    return PrincipalRead.from_principal(principal)
