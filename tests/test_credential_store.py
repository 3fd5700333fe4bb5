"""Credential store tests.

Learn: Tests cover:
1. First-run schema creation + admin seed
2. Registration + duplicate prevention (pre-check and unique index)
3. Password verification, case-insensitive names, fail-closed inputs
4. Role encoding, deletion, legacy hash upgrade
"""

import pytest
from sqlalchemy import select

from simplesecurity.auth.password import legacy_hash
from simplesecurity.db.models import UserRecord
from simplesecurity.store.credential_store import (
    CredentialStore,
    decode_roles,
    encode_roles,
    parse_roles,
)


# ═══════════════════════════════════════════════════════════
# Schema
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_ensure_schema_seeds_admin(store):
    assert await store.ensure_schema("s3cret") is True

    admin = await store.find_by_name("admin")
    assert admin is not None
    assert admin.roles == ["Administrator"]
    assert await store.verify("admin", "s3cret") is True
    assert await store.verify("admin", "wrong") is False


@pytest.mark.asyncio
async def test_ensure_schema_is_idempotent(store):
    await store.ensure_schema("first")
    assert await store.ensure_schema("second") is False

    # Existing table untouched: admin keeps the first password
    assert await store.verify("admin", "first") is True
    assert await store.verify("admin", "second") is False
    assert [u.name for u in await store.list_users()] == ["admin"]


@pytest.mark.asyncio
async def test_ensure_schema_rejects_empty_admin_password(store):
    with pytest.raises(ValueError):
        await store.ensure_schema("")

    # Nothing was created, so a later run still seeds the admin
    assert await store.ensure_schema("s3cret") is True
    assert await store.verify("admin", "s3cret") is True


# ═══════════════════════════════════════════════════════════
# Registration
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_create_and_verify(store):
    await store.ensure_schema("s3cret")
    assert await store.create("alice", "pw1", "Member") is True
    assert await store.verify("alice", "pw1") is True
    assert await store.verify("alice", "pw2") is False


@pytest.mark.asyncio
async def test_create_duplicate_leaves_row_unchanged(store):
    await store.ensure_schema("s3cret")
    assert await store.create("alice", "pw1", "Member") is True
    assert await store.create("alice", "pw2", "Administrator") is False

    alice = await store.find_by_name("alice")
    assert alice.roles == ["Member"]
    assert await store.verify("alice", "pw1") is True
    assert await store.verify("alice", "pw2") is False


@pytest.mark.asyncio
async def test_names_are_case_insensitive(store):
    await store.ensure_schema("s3cret")
    assert await store.create("Alice", "pw1", "Member") is True
    assert await store.create("ALICE", "pw2", "Member") is False

    found = await store.find_by_name("alice")
    assert found.name == "Alice"
    assert await store.verify("aLiCe", "pw1") is True


@pytest.mark.asyncio
async def test_non_ascii_names(store):
    await store.ensure_schema("s3cret")
    assert await store.create("Élise", "pw1", "Member") is True
    assert await store.create("Élise", "pw2", "Member") is False

    assert (await store.find_by_name("Élise")).name == "Élise"
    assert await store.verify("Élise", "pw1") is True
    assert await store.verify("Élise", "pw2") is False

    await store.delete("Élise")
    assert await store.find_by_name("Élise") is None


@pytest.mark.asyncio
async def test_passwords_longer_than_bcrypt_limit(store):
    await store.ensure_schema("s3cret")
    assert await store.create("bob", "a" * 73) is False
    assert await store.find_by_name("bob") is None

    assert await store.create("bob", "a" * 72) is True
    assert await store.verify("bob", "a" * 72) is True
    assert await store.verify("bob", "a" * 72 + "WRONG") is False


@pytest.mark.asyncio
async def test_unique_index_catches_registration_race(store, monkeypatch):
    """Two registrations that both passed the existence check."""
    await store.ensure_schema("s3cret")
    assert await store.create("carol", "pw1", "Member") is True

    async def _never_found(session, name):
        return None

    monkeypatch.setattr(CredentialStore, "_find", staticmethod(_never_found))
    assert await store.create("Carol", "pw2", "Member") is False


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "name,password",
    [("", "pw"), ("alice", ""), (None, "pw"), ("nobody", "pw")],
)
async def test_verify_fails_closed(store, name, password):
    await store.ensure_schema("s3cret")
    await store.create("alice", "pw", "Member")
    assert await store.verify(name, password) is False


@pytest.mark.asyncio
async def test_create_rejects_empty_credentials(store):
    await store.ensure_schema("s3cret")
    assert await store.create("", "pw") is False
    assert await store.create("dave", "") is False
    assert await store.find_by_name("dave") is None


# ═══════════════════════════════════════════════════════════
# Roles
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_roles_are_stored_as_list(store):
    await store.ensure_schema("s3cret")
    await store.create("bob", "pw", ["Member", " Editor ", ""])
    await store.create("eve", "pw", "Member, Auditor")
    await store.create("zed", "pw")

    assert await store.get_roles("bob") == ["Member", "Editor"]
    assert await store.get_roles("eve") == ["Member", "Auditor"]
    assert await store.get_roles("zed") == []
    assert await store.get_roles("nobody") is None


def test_role_encoding():
    assert encode_roles(["Member", "Editor"]) == "Member,Editor"
    assert decode_roles(" Member , Editor,, ") == ["Member", "Editor"]
    assert decode_roles("") == []
    assert decode_roles(None) == []
    assert parse_roles("Member") == ["Member"]
    assert parse_roles(("A", "B")) == ["A", "B"]
    assert parse_roles(None) == []


# ═══════════════════════════════════════════════════════════
# Deletion
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_delete(store):
    await store.ensure_schema("s3cret")
    await store.create("alice", "pw1", "Member")

    await store.delete("ALICE")
    assert await store.find_by_name("alice") is None
    assert await store.verify("alice", "pw1") is False


@pytest.mark.asyncio
async def test_delete_unknown_is_noop(store):
    await store.ensure_schema("s3cret")
    await store.delete("nobody")
    await store.delete("")
    assert [u.name for u in await store.list_users()] == ["admin"]


# ═══════════════════════════════════════════════════════════
# Legacy hashes
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_legacy_hash_upgraded_on_login(store):
    """Rows written by the old provider hold an unsalted MD5 hash."""
    await store.ensure_schema("s3cret")
    async with store._session_factory() as session:
        session.add(UserRecord(name="legacy", password=legacy_hash("old-pw"), role="Member"))
        await session.commit()

    user = await store.authenticate("legacy", "old-pw")
    assert user is not None
    assert user.password_hash.startswith("$2")

    async with store._session_factory() as session:
        row = (
            await session.execute(select(UserRecord).where(UserRecord.name == "legacy"))
        ).scalars().one()
    assert row.password.startswith("$2")
    assert await store.verify("legacy", "old-pw") is True


@pytest.mark.asyncio
async def test_ping(store):
    await store.ping()


@pytest.mark.asyncio
async def test_long_legacy_password_is_kept_legacy(store):
    """bcrypt cannot hold it, so the MD5 hash stays in place."""
    await store.ensure_schema("s3cret")
    long_pw = "x" * 80
    async with store._session_factory() as session:
        session.add(UserRecord(name="legacy", password=legacy_hash(long_pw), role=""))
        await session.commit()

    user = await store.authenticate("legacy", long_pw)
    assert user is not None
    assert user.password_hash == legacy_hash(long_pw)
    assert await store.verify("legacy", "x" * 79) is False
