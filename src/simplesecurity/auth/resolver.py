"""Ticket → principal resolution.

Learn: Roles are not stored in the ticket. They are re-read from the
store on every request, so a role change applies on the next request
and a deleted account stops resolving at once, even while its ticket
is still within its lifetime.
"""

from datetime import datetime
from typing import Callable, Optional

from simplesecurity.auth.identity import ANONYMOUS, Principal
from simplesecurity.auth.ticket import TicketCodec, utcnow
from simplesecurity.store.credential_store import CredentialStore


class PrincipalResolver:
    def __init__(
        self,
        store: CredentialStore,
        codec: TicketCodec,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.codec = codec
        self.clock = clock

    async def resolve(
        self, token: Optional[str], now: Optional[datetime] = None
    ) -> Principal:
        """Principal for an incoming ticket token; ANONYMOUS when it is unusable."""
        ticket = self.codec.parse(token)
        if ticket is None or not ticket.username:
            return ANONYMOUS
        if ticket.is_expired(now or self.clock()):
            return ANONYMOUS

        roles = await self.store.get_roles(ticket.username)
        if roles is None:
            return ANONYMOUS
        return Principal.authenticated(ticket.username, roles)
