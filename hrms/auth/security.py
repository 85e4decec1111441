"""Password hashing and one-time-code helpers."""

import hashlib
import secrets

import bcrypt


def _prepare_password(password: str) -> bytes:
    """
    Prepare password for bcrypt by encoding and truncating to 72 bytes.

    Args:
        password: Plain text password

    Returns:
        Password bytes truncated to 72 bytes (bcrypt limit)
    """
    return password.encode("utf-8")[:72]


def hash_password(password: str) -> str:
    """Return a bcrypt hash (utf-8 string) of *password*."""
    return bcrypt.hashpw(_prepare_password(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    """Check *plain_password* against a stored bcrypt hash; False if none is stored."""
    if not hashed_password:
        return False
    try:
        return bcrypt.checkpw(
            _prepare_password(plain_password),
            hashed_password.encode("utf-8"),
        )
    except ValueError:
        # Malformed hash in the database
        return False


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode()).hexdigest()


def generate_otp(length: int = 6) -> str:
    """Numeric one-time code, zero padded."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"
