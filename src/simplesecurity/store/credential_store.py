"""Credential store — the single user table.

Learn: The store is the only code that touches user rows. Each
method opens its own session and releases it before returning, so a
store instance can be shared by concurrent requests without locking.
Correctness under concurrency relies on the database's per-statement
guarantees plus the unique index on lower(name).

Failures to verify or create are reported as False / None, never as
exceptions. Connectivity errors from SQLAlchemy propagate unchanged.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional, Union

import structlog
from sqlalchemy import delete, func, insert, inspect, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from simplesecurity.auth.password import (
    DEFAULT_ROUNDS,
    hash_password,
    needs_upgrade,
    password_fits,
    verify_password,
)
from simplesecurity.db.engine import build_session_factory
from simplesecurity.db.models import Base, UserRecord

logger = structlog.get_logger()

ADMIN_NAME = "admin"
ADMIN_ROLE = "Administrator"


@dataclass(frozen=True)
class User:
    id: int
    name: str
    password_hash: str
    roles: list[str] = field(default_factory=list)


# ─── Role encoding ──────────────────────────────────────


def encode_roles(roles: Iterable[str]) -> str:
    return ",".join(roles)


def decode_roles(value: Optional[str]) -> list[str]:
    return [r.strip() for r in (value or "").split(",") if r.strip()]


def parse_roles(roles: Union[str, Iterable[str], None]) -> list[str]:
    """Accept a role list or a comma-separated string, as posted by a form."""
    if roles is None:
        return []
    if isinstance(roles, str):
        return decode_roles(roles)
    return [r.strip() for r in roles if r and r.strip()]


def _to_user(row: UserRecord) -> User:
    return User(
        id=row.id,
        name=row.name,
        password_hash=row.password,
        roles=decode_roles(row.role),
    )


class CredentialStore:
    """Create, find, verify and delete users."""

    def __init__(self, engine: AsyncEngine, bcrypt_rounds: int = DEFAULT_ROUNDS):
        self.engine = engine
        self.bcrypt_rounds = bcrypt_rounds
        self._session_factory = build_session_factory(engine)

    # ─── Schema ─────────────────────────────────────────

    async def ensure_schema(self, admin_password: str) -> bool:
        """Create the user table and seed the admin account if missing.

        Returns True when the table was created by this call. The table
        and the admin row are written in one transaction, and the admin
        password is hashed first, so a bad password leaves no table
        behind. Assumes a single process runs first-time setup.
        """
        admin_hash = hash_password(admin_password, rounds=self.bcrypt_rounds)
        async with self.engine.begin() as conn:
            exists = await conn.run_sync(
                lambda sync_conn: inspect(sync_conn).has_table(UserRecord.__tablename__)
            )
            if exists:
                return False
            await conn.run_sync(Base.metadata.create_all)
            await conn.execute(
                insert(UserRecord).values(
                    name=ADMIN_NAME, password=admin_hash, role=encode_roles([ADMIN_ROLE])
                )
            )

        logger.info("credential_store.schema_created", table=UserRecord.__tablename__)
        return True

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    # ─── Lookups ────────────────────────────────────────

    async def find_by_name(self, name: str) -> Optional[User]:
        if not name:
            return None
        async with self._session_factory() as session:
            row = await self._find(session, name)
            return _to_user(row) if row else None

    async def get_roles(self, name: str) -> Optional[list[str]]:
        """Current roles of a user, or None if the user does not exist."""
        user = await self.find_by_name(name)
        return user.roles if user else None

    async def list_users(self) -> list[User]:
        async with self._session_factory() as session:
            result = await session.execute(select(UserRecord).order_by(UserRecord.id))
            return [_to_user(row) for row in result.scalars().all()]

    # ─── Credentials ────────────────────────────────────

    async def authenticate(self, name: str, password: str) -> Optional[User]:
        """Return the user if the password matches, else None.

        A legacy MD5 hash is replaced by a bcrypt hash on success.
        """
        if not name or not password:
            return None
        async with self._session_factory() as session:
            row = await self._find(session, name)
            if row is None or not verify_password(password, row.password):
                return None

            if needs_upgrade(row.password) and password_fits(password):
                row.password = hash_password(password, rounds=self.bcrypt_rounds)
                await session.commit()
                logger.info("credential_store.hash_upgraded", user_id=row.id)
            return _to_user(row)

    async def verify(self, name: str, password: str) -> bool:
        return await self.authenticate(name, password) is not None

    # ─── Lifecycle ──────────────────────────────────────

    async def create(
        self, name: str, password: str, roles: Union[str, Iterable[str], None] = None
    ) -> bool:
        """Insert a user. Returns False if the name is already registered."""
        if not name or not password:
            return False
        if not password_fits(password):
            logger.info("credential_store.password_too_long", name=name)
            return False
        async with self._session_factory() as session:
            if await self._find(session, name) is not None:
                logger.info("credential_store.duplicate_name", name=name)
                return False

            session.add(
                UserRecord(
                    name=name,
                    password=hash_password(password, rounds=self.bcrypt_rounds),
                    role=encode_roles(parse_roles(roles)),
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                # Lost a race with a concurrent registration of the same name
                await session.rollback()
                logger.info("credential_store.duplicate_name", name=name, race=True)
                return False

        logger.info("credential_store.user_created", name=name)
        return True

    async def delete(self, name: str) -> None:
        if not name:
            return
        async with self._session_factory() as session:
            result = await session.execute(
                delete(UserRecord)
                .where(func.lower(UserRecord.name) == func.lower(name))
                .execution_options(synchronize_session=False)
            )
            await session.commit()
        if result.rowcount:
            logger.info("credential_store.user_deleted", name=name)

    # ─── Helpers ────────────────────────────────────────

    @staticmethod
    async def _find(session: AsyncSession, name: str) -> Optional[UserRecord]:
        q = select(UserRecord).where(func.lower(UserRecord.name) == func.lower(name))
        result = await session.execute(q)
        return result.scalars().first()
