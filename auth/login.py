"""
auth/login.py -- The password login use case.

authenticate_user() checks credentials against a UserRepository and raises
InvalidCredentials on any mismatch. It never says which half was wrong: the
web layer shows one generic message for "no such email" and "wrong password".

Timing equalization: when the email is unknown, bcrypt still runs against
DUMMY_HASH so the response time of a failed login does not reveal whether an
account exists.

Both functions are blocking (bcrypt). Async callers run them through
starlette.concurrency.run_in_threadpool.
"""

from __future__ import annotations

import logging
from typing import Protocol

from starlette.requests import Request
from starlette.responses import Response

from auth.models import User
from auth.passwords import DUMMY_HASH, verify_password
from auth.session import Session

logger = logging.getLogger("gatekeeper.auth")


class AuthError(Exception):
    """Base class for login failures shown to the visitor."""


class InvalidCredentials(AuthError):
    """Unknown email or wrong password. Deliberately indistinguishable."""

    def __init__(self) -> None:
        super().__init__("Invalid email or password.")


class UserRepository(Protocol):
    """Anything that can look up a User by email."""

    def find_by_email(self, email: str) -> User | None: ...


def authenticate_user(users: UserRepository, email: str, password: str) -> User:
    """Return the User whose email and password match, or raise InvalidCredentials."""
    user = users.find_by_email(email.strip().lower())
    if user is None:
        verify_password(password, DUMMY_HASH)
        raise InvalidCredentials()
    if not verify_password(password, user.hashed_password):
        raise InvalidCredentials()
    return user


def log_in(
    session: Session,
    users: UserRepository,
    request: Request,
    response: Response,
    email: str,
    password: str,
) -> User:
    """Authenticate and store the user's sid in the session.

    Raises InvalidCredentials on bad credentials (the session is left
    untouched) and SessionWriteError when the sid cannot be persisted.
    """
    user = authenticate_user(users, email, password)
    session.set_user_id(request, response, user.sid)
    logger.info("User %s signed in", user.sid)
    return user
