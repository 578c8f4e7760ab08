"""
auth/session.py -- Typed access to a visitor's session.

Session wraps any SessionStore (a key-value store scoped to one visitor) and
exposes the few things the web layer cares about: who is signed in, sign in,
sign out, and one-shot flash messages.

Failure policy:
  Reads fail open to GUEST_ID. A store that cannot be read must never let a
  visitor through an authentication gate, and must never turn a page view
  into a server error. The failure is logged and swallowed.

  Writes fail loudly with SessionWriteError. Login and logout map it to a 500;
  silently losing a logout would leave the visitor signed in.

StarletteSessionStore is the production store. It rides on Starlette's
SessionMiddleware, which keeps request.session in a signed cookie (itsdangerous)
and writes the Set-Cookie header when the response starts.

Layer rule: no imports from web/.
"""

from __future__ import annotations

import logging
from typing import Protocol

from starlette.requests import Request
from starlette.responses import Response

from auth.models import GUEST_ID

logger = logging.getLogger("gatekeeper.auth")

USER_ID_KEY = "user_id"
_FLASH_PREFIX = "_flash."


class SessionWriteError(Exception):
    """The session store could not persist a change."""


class SessionStore(Protocol):
    """Key-value storage scoped to the visitor that sent the request."""

    def get(self, request: Request, key: str) -> str | None: ...

    def set(self, request: Request, key: str, value: str) -> None: ...

    def save(self, request: Request, response: Response) -> None: ...


class StarletteSessionStore:
    """SessionStore over request.session, as populated by SessionMiddleware.

    request.session raises AssertionError when SessionMiddleware is not
    installed; Session turns that into a guest read or a SessionWriteError.
    """

    def get(self, request: Request, key: str) -> str | None:
        value = request.session.get(key)
        return value if isinstance(value, str) else None

    def set(self, request: Request, key: str, value: str) -> None:
        request.session[key] = value

    def save(self, request: Request, response: Response) -> None:
        # SessionMiddleware serializes request.session into the cookie itself.
        return None


class Session:
    """The session operations used by middleware gates and the login flow."""

    def __init__(self, store: SessionStore) -> None:
        self.store = store

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    def current_user_id(self, request: Request) -> str:
        """Return the signed-in user's id, or GUEST_ID.

        Never raises: a store read failure is logged and treated as a guest.
        """
        try:
            value = self.store.get(request, USER_ID_KEY)
        except Exception as exc:
            logger.warning("Session read failed, treating visitor as guest: %s", exc)
            return GUEST_ID
        if not isinstance(value, str) or not value:
            return GUEST_ID
        return value

    def is_authenticated(self, request: Request) -> bool:
        return self.current_user_id(request) != GUEST_ID

    def set_user_id(self, request: Request, response: Response, user_id: str) -> None:
        """Record user_id as signed in. Raises SessionWriteError on failure."""
        self._write(request, USER_ID_KEY, user_id)
        self.save(request, response)

    def clear(self, request: Request, response: Response) -> None:
        """Sign the visitor out. Raises SessionWriteError on failure."""
        self._write(request, USER_ID_KEY, GUEST_ID)
        self.save(request, response)

    # ------------------------------------------------------------------
    # Flash messages
    # ------------------------------------------------------------------

    def flash(self, request: Request, key: str, value: str) -> None:
        """Stage a one-shot message. Persisted by the next save()."""
        self._write(request, _FLASH_PREFIX + key, value)

    def pop_flash(self, request: Request, key: str) -> str | None:
        """Return a flash message and clear it, or None when there is none.

        The clearing write is only persisted by a following save(). A store
        that cannot be read yields None.
        """
        try:
            value = self.store.get(request, _FLASH_PREFIX + key)
        except Exception as exc:
            logger.warning("Session read failed for flash %r: %s", key, exc)
            return None
        if not value:
            return None
        self._write(request, _FLASH_PREFIX + key, "")
        return value

    def save(self, request: Request, response: Response) -> None:
        try:
            self.store.save(request, response)
        except Exception as exc:
            raise SessionWriteError(f"could not save session: {exc}") from exc

    def _write(self, request: Request, key: str, value: str) -> None:
        try:
            self.store.set(request, key, value)
        except Exception as exc:
            raise SessionWriteError(f"could not write session key {key!r}: {exc}") from exc
