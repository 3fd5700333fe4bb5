"""Identities and principals.

Learn: A principal is never None. A request without a valid ticket
gets ANONYMOUS, an identity with an empty name that is not
authenticated and holds no roles. Consumers check is_authenticated
instead of testing for a missing user.
"""

from dataclasses import dataclass, field
from typing import Iterable, Union


@dataclass(frozen=True)
class AnonymousIdentity:
    """Not authenticated, unknown user."""

    name: str = ""
    is_authenticated: bool = False
    authentication_type: str = ""


@dataclass(frozen=True)
class NamedIdentity:
    """A user who presented a valid ticket or credentials."""

    name: str
    is_authenticated: bool = True
    authentication_type: str = "Forms"


Identity = Union[AnonymousIdentity, NamedIdentity]


@dataclass(frozen=True)
class Principal:
    identity: Identity
    roles: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def authenticated(cls, name: str, roles: Iterable[str]) -> "Principal":
        return cls(identity=NamedIdentity(name), roles=frozenset(roles))

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def is_authenticated(self) -> bool:
        return self.identity.is_authenticated

    def is_in_role(self, role: str) -> bool:
        return role in self.roles


ANONYMOUS = Principal(identity=AnonymousIdentity())
