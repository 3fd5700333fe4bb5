"""Security provider — the façade the web layer talks to.

Learn: One configured SecurityProvider per application, created at
startup and handed to request handlers explicitly (FastAPI keeps it
on app.state). There is no global "current provider".

Per-request state lives in an AuthContext: the incoming ticket token,
the principal resolved for the request, and the cookies that must be
written to the response. login()/logout() mutate the context; the
middleware turns its cookies into Set-Cookie headers.

State per request:
    Unauthenticated ──login──▶ Authenticated ──logout / ticket expiry──▶ Unauthenticated
The only persisted session state is the ticket cookie itself.
"""

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional, Union

import structlog

from simplesecurity.auth.identity import ANONYMOUS, Principal
from simplesecurity.auth.password import DEFAULT_ROUNDS
from simplesecurity.auth.resolver import PrincipalResolver
from simplesecurity.auth.ticket import TicketCodec, utcnow
from simplesecurity.config import Settings
from simplesecurity.db.engine import build_engine
from simplesecurity.store.credential_store import CredentialStore, User

logger = structlog.get_logger()

DEFAULT_ADMIN_PASSWORD = "pass2app"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class ProviderNotInitializedError(RuntimeError):
    """Raised when the provider is used before initialize() completed."""


@dataclass(frozen=True)
class AuthCookie:
    name: str
    value: str
    expires: Optional[datetime] = None  # None = browser-session cookie
    http_only: bool = True


@dataclass
class AuthContext:
    """Authentication state of one request."""

    ticket_token: Optional[str] = None
    principal: Principal = ANONYMOUS
    cookies: list[AuthCookie] = field(default_factory=list)

    def set_cookie(self, cookie: AuthCookie) -> None:
        self.cookies = [c for c in self.cookies if c.name != cookie.name]
        self.cookies.append(cookie)


class SecurityProvider:
    """Forms authentication against a single user table."""

    def __init__(
        self,
        database_url: str,
        admin_password: str = DEFAULT_ADMIN_PASSWORD,
        *,
        ticket_secret: Optional[str] = None,
        ticket_algorithm: str = "HS256",
        default_timeout_minutes: int = 60,
        ticket_cookie_name: str = "auth.ticket",
        user_cookie_name: str = "auth.user",
        bcrypt_rounds: int = DEFAULT_ROUNDS,
        echo: bool = False,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not admin_password:
            raise ValueError("admin_password must not be empty")
        self.admin_password = admin_password
        self.default_timeout_minutes = default_timeout_minutes
        self.ticket_cookie_name = ticket_cookie_name
        self.user_cookie_name = user_cookie_name
        self.clock = clock or utcnow

        if not ticket_secret:
            # Process-local key: tickets do not survive a restart
            ticket_secret = secrets.token_urlsafe(32)
            logger.warning("provider.ephemeral_ticket_secret")

        self.engine = build_engine(database_url, echo=echo)
        self.store = CredentialStore(self.engine, bcrypt_rounds=bcrypt_rounds)
        self.codec = TicketCodec(ticket_secret, algorithm=ticket_algorithm)
        self.resolver = PrincipalResolver(self.store, self.codec, clock=self.clock)
        self._initialized = False

    @classmethod
    def from_settings(cls, settings: Settings, **overrides) -> "SecurityProvider":
        kwargs = dict(
            ticket_secret=settings.ticket_secret,
            ticket_algorithm=settings.ticket_algorithm,
            default_timeout_minutes=settings.ticket_timeout_minutes,
            ticket_cookie_name=settings.ticket_cookie_name,
            user_cookie_name=settings.user_cookie_name,
            bcrypt_rounds=settings.bcrypt_rounds,
            echo=settings.debug,
        )
        kwargs.update(overrides)
        return cls(settings.database_url, settings.admin_password, **kwargs)

    # ─── Lifecycle ──────────────────────────────────────

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Create the user table and admin account on first run. Idempotent."""
        if self._initialized:
            return
        created = await self.store.ensure_schema(self.admin_password)
        self._initialized = True
        logger.info("provider.initialized", schema_created=created)

    async def close(self) -> None:
        await self.engine.dispose()

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise ProviderNotInitializedError("SecurityProvider is not initialized.")

    # ─── Requests ───────────────────────────────────────

    async def resolve_principal_from_request(self, token: Optional[str]) -> Principal:
        """Principal for the ticket token sent with a request."""
        self._require_initialized()
        return await self.resolver.resolve(token)

    async def begin_request(self, token: Optional[str]) -> AuthContext:
        principal = await self.resolve_principal_from_request(token)
        return AuthContext(ticket_token=token, principal=principal)

    async def login(
        self,
        ctx: AuthContext,
        name: str,
        password: str,
        remember: bool = False,
        timeout_minutes: Optional[int] = None,
    ) -> bool:
        """Check credentials and, on success, issue a ticket for the response.

        remember=True makes both cookies outlive the browser session.
        """
        self._require_initialized()
        if not name or not password:
            return False

        user = await self.store.authenticate(name, password)
        if user is None:
            logger.info("provider.login_failed")
            return False

        if timeout_minutes is None:
            timeout_minutes = self.default_timeout_minutes
        now = self.clock().replace(microsecond=0)
        token = self.codec.issue(user.name, remember, timeout_minutes, now=now)
        expires = now + timedelta(minutes=timeout_minutes) if remember else None

        ctx.set_cookie(AuthCookie(self.ticket_cookie_name, token, expires, http_only=True))
        ctx.set_cookie(AuthCookie(self.user_cookie_name, user.name, expires, http_only=False))
        ctx.principal = Principal.authenticated(user.name, user.roles)

        logger.info(
            "provider.login_succeeded",
            user=user.name,
            persistent=remember,
            timeout_minutes=timeout_minutes,
        )
        return True

    def logout(self, ctx: AuthContext) -> None:
        """Overwrite the ticket with an expired one and drop the principal."""
        self._require_initialized()
        ctx.set_cookie(
            AuthCookie(self.ticket_cookie_name, self.codec.issue_expired(now=self.clock()), EPOCH)
        )
        ctx.set_cookie(AuthCookie(self.user_cookie_name, "", EPOCH, http_only=False))
        if ctx.principal.is_authenticated:
            logger.info("provider.logout", user=ctx.principal.name)
        ctx.principal = ANONYMOUS

    # ─── Users ──────────────────────────────────────────

    async def register(
        self, name: str, password: str, roles: Union[str, Iterable[str], None] = None
    ) -> bool:
        """Create a user. False if the name is already registered."""
        self._require_initialized()
        return await self.store.create(name, password, roles)

    async def unregister(self, name: str) -> None:
        self._require_initialized()
        await self.store.delete(name)

    async def list_users(self) -> list[User]:
        self._require_initialized()
        return await self.store.list_users()

    async def ping(self) -> None:
        self._require_initialized()
        await self.store.ping()
