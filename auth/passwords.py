"""
auth/passwords.py -- Password hashing with bcrypt.

bcrypt is used directly (no passlib wrapper). checkpw compares in constant
time, and its cost factor makes offline brute force of a leaked hash
expensive.

DUMMY_HASH lets the login flow run one full bcrypt check even when the email
is unknown, so response time does not reveal whether an account exists.
"""

from __future__ import annotations

import bcrypt


def hash_password(plain: str, rounds: int = 12) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt silently truncates input beyond 72 bytes. rounds is the log2 cost
    factor; tests pass a low value to keep the suite fast.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash makes bcrypt raise ValueError; that counts as a
    mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Computed once at import so the first failed login is not measurably faster
# or slower than later ones.
DUMMY_HASH: str = hash_password("gatekeeper_timing_dummy")
