"""Password hashing tests."""

import pytest

from simplesecurity.auth.password import (
    MAX_PASSWORD_BYTES,
    hash_password,
    legacy_hash,
    needs_upgrade,
    verify_password,
)


def test_hash_then_verify():
    h = hash_password("correct horse", rounds=4)
    assert h.startswith("$2")
    assert verify_password("correct horse", h)
    assert not verify_password("wrong horse", h)


def test_hashes_are_salted():
    """Same password, different stored form — both verify."""
    a = hash_password("pw", rounds=4)
    b = hash_password("pw", rounds=4)
    assert a != b
    assert verify_password("pw", a) and verify_password("pw", b)


def test_empty_password_cannot_be_hashed():
    with pytest.raises(ValueError):
        hash_password("")


@pytest.mark.parametrize("password,stored", [("", "$2b$04$abc"), ("pw", ""), ("pw", "$2b$garbage")])
def test_verify_fails_closed(password, stored):
    assert verify_password(password, stored) is False


def test_legacy_hash_format():
    """MD5 digest bytes as unpadded uppercase hex (md5("abc") = 900150983cd2...)."""
    assert legacy_hash("abc") == "90150983CD24FB0D6963F7D28E17F72"


def test_legacy_hash_verifies_and_needs_upgrade():
    stored = legacy_hash("pass2app")
    assert verify_password("pass2app", stored)
    assert not verify_password("pass2ap", stored)
    assert needs_upgrade(stored)
    assert not needs_upgrade(hash_password("pass2app", rounds=4))


def test_password_over_bcrypt_limit_is_rejected():
    with pytest.raises(ValueError):
        hash_password("a" * (MAX_PASSWORD_BYTES + 1), rounds=4)
    # Multi-byte characters count by their UTF-8 length
    with pytest.raises(ValueError):
        hash_password("é" * 37, rounds=4)


def test_long_passwords_are_not_truncated():
    """Two passwords sharing their first 72 bytes are different passwords."""
    prefix = "a" * MAX_PASSWORD_BYTES
    h = hash_password(prefix, rounds=4)
    assert verify_password(prefix, h)
    assert not verify_password(prefix + "WRONG", h)
