"""Password hashing utilities.

Learn: Uses bcrypt for password hashing. bcrypt salts every hash and
is deliberately slow, so a leaked user table is expensive to attack.
The work factor defaults to 12 (~100ms per hash on modern hardware).

Tables created by the older provider stored an unsalted MD5 digest.
Those hashes are still verified so existing accounts keep working,
and needs_upgrade() tells the store to re-hash them with bcrypt.
"""

import hashlib
import secrets

import bcrypt

DEFAULT_ROUNDS = 12
MAX_PASSWORD_BYTES = 72  # bcrypt ignores anything longer


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with bcrypt.

    Passwords longer than 72 bytes (bcrypt's limit) are rejected rather
    than truncated.
    """
    if not password:
        raise ValueError("Password must not be empty")
    if not password_fits(password):
        raise ValueError(f"Password must not exceed {MAX_PASSWORD_BYTES} bytes")
    pw_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a bcrypt or legacy MD5 hash."""
    if not password or not password_hash:
        return False
    if _is_legacy_hash(password_hash):
        return secrets.compare_digest(legacy_hash(password), password_hash)
    if not password_fits(password):
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def password_fits(password: str) -> bool:
    return len(password.encode("utf-8")) <= MAX_PASSWORD_BYTES


def needs_upgrade(password_hash: str) -> bool:
    """Check if a stored hash should be replaced by a bcrypt one."""
    return _is_legacy_hash(password_hash)


def legacy_hash(password: str) -> str:
    """Legacy stored form: MD5 digest, each byte as unpadded uppercase hex."""
    digest = hashlib.md5(password.encode("utf-8")).digest()
    return "".join(format(b, "X") for b in digest)


def _is_legacy_hash(password_hash: str) -> bool:
    return not password_hash.startswith("$2")
