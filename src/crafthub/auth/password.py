"""Password hashing utilities.

Learn: Uses bcrypt for password hashing. bcrypt salts automatically
and produces hashes starting with "$2b$". The work factor comes from
settings.bcrypt_rounds (12 in production, the tests drop it to 4).
"""

import bcrypt

from crafthub.config import settings

# bcrypt ignores everything past 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password with bcrypt."""
    pw_bytes = password.encode("utf-8")[:MAX_PASSWORD_BYTES]
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str | None) -> bool:
    """Check a password against a stored hash. A missing hash never matches."""
    if not password_hash:
        return False
    try:
        pw_bytes = password.encode("utf-8")[:MAX_PASSWORD_BYTES]
        return bcrypt.checkpw(pw_bytes, password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
