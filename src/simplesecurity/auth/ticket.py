"""Session ticket creation and parsing.

Learn: A ticket is a signed JWT asserting "this username logged in".
It carries its own issue time and expiry, so the server keeps no
session table: the only ways to invalidate a ticket are letting it
expire or overwriting the cookie (logout).

parse() only checks integrity. Whether a ticket is still valid is
decided by SessionTicket.is_expired against the caller's clock.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import jwt

TICKET_TYPE = "ticket"
MAX_TIMEOUT_MINUTES = 60 * 24 * 366 * 10  # ten years


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SessionTicket:
    username: str
    issued_at: datetime
    expires_at: datetime
    persistent: bool = False

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.expires_at


class TicketCodec:
    """Signs and verifies session tickets with one key."""

    def __init__(self, secret: str, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Ticket secret must not be empty")
        self._secret = secret
        self.algorithm = algorithm

    def issue(
        self,
        username: str,
        persistent: bool,
        timeout_minutes: int,
        now: Optional[datetime] = None,
    ) -> str:
        """Create a signed ticket valid for timeout_minutes from now."""
        if not 0 <= timeout_minutes <= MAX_TIMEOUT_MINUTES:
            raise ValueError(
                f"timeout_minutes must be between 0 and {MAX_TIMEOUT_MINUTES}"
            )
        issued = int((now or utcnow()).timestamp())
        payload = {
            "sub": username,
            "typ": TICKET_TYPE,
            "iat": issued,
            "exp": issued + timeout_minutes * 60,
            "persistent": bool(persistent),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def issue_expired(self, now: Optional[datetime] = None) -> str:
        """Create an anonymous ticket that is already expired."""
        return self.issue("", False, 0, now=now)

    def parse(self, token: Optional[str]) -> Optional[SessionTicket]:
        """Decode a ticket, or None if it is malformed or tampered with."""
        if not token:
            return None
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "require": ["sub", "iat", "exp"],
                },
            )
        except jwt.InvalidTokenError:
            return None

        if payload.get("typ") != TICKET_TYPE:
            return None
        try:
            issued_at = datetime.fromtimestamp(int(payload["iat"]), tz=timezone.utc)
            expires_at = datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc)
        except (TypeError, ValueError, OverflowError):
            return None
        return SessionTicket(
            username=str(payload["sub"]),
            issued_at=issued_at,
            expires_at=expires_at,
            persistent=bool(payload.get("persistent", False)),
        )
