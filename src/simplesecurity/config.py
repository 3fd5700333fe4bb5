"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with SIMPLESEC_ prefix.
No config files — just env vars (12-factor app style).

Learn: the connection string is the only thing the provider needs to
reach its store. Everything else has a working default for local use.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from simplesecurity.auth.ticket import MAX_TIMEOUT_MINUTES


class Settings(BaseSettings):
    """All app configuration. Set via SIMPLESEC_* env vars."""

    # Store
    database_url: str = "sqlite+aiosqlite:///./simplesecurity.db"

    # Seeded on first run only, when the user table is created
    admin_password: str = Field("pass2app", min_length=1)

    # Session ticket
    ticket_secret: str = ""  # empty = random per process
    ticket_algorithm: str = "HS256"
    ticket_timeout_minutes: int = Field(60, ge=0, le=MAX_TIMEOUT_MINUTES)
    ticket_cookie_name: str = "auth.ticket"
    user_cookie_name: str = "auth.user"
    cookie_secure: bool = False

    # Password hashing work factor
    bcrypt_rounds: int = 12

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # CORS
    cors_origins: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
    ]

    model_config = {"env_prefix": "SIMPLESEC_"}

    @model_validator(mode="after")
    def validate_production_settings(self):
        """Tickets must survive restarts and load balancers outside development."""
        if self.environment != "development" and not self.ticket_secret:
            raise ValueError(
                "SIMPLESEC_TICKET_SECRET must be set in non-development "
                "environments. Generate one with: "
                'python -c "import secrets; print(secrets.token_urlsafe(32))"'
            )
        return self


# Singleton — import this everywhere
settings = Settings()
