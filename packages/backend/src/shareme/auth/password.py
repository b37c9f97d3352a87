"""Password hashing and password rules.

Learn: bcrypt salts every hash itself and is deliberately slow. The cost
factor is 12 in production; the test suite lowers it to 4 through
configure_rounds() so hashing does not dominate run time. bcrypt only
looks at the first 72 bytes of its input, so both hashing and checking
truncate there the same way.

password_problem() is the single place the new-password rule lives;
signup and password reset both ask it.
"""

from typing import Optional

import bcrypt

MIN_PASSWORD_LENGTH = 8
BCRYPT_MAX_BYTES = 72

_rounds = 12


def configure_rounds(rounds: int) -> None:
    """Override the bcrypt cost factor (tests use the minimum, 4)."""
    global _rounds
    _rounds = rounds


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    """Return a "$2b$..." bcrypt hash with a fresh salt."""
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=_rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Constant-time check; a corrupt stored hash counts as a mismatch."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
    except (ValueError, TypeError, UnicodeEncodeError):
        return False


def password_problem(password: str) -> Optional[str]:
    """Why a new password is unacceptable, or None if it is fine."""
    if len(password) < MIN_PASSWORD_LENGTH:
        return f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    if not password.strip():
        return "Password must not be blank"
    return None
