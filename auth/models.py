"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The repository in
auth/store.py and the login flow in auth/login.py do the work.

Layer rule: no imports from web/.
"""

from __future__ import annotations

from dataclasses import dataclass

# The one value a session holds when nobody is signed in. A missing session
# entry reads as this same value, so there is no second "guest" state.
GUEST_ID = ""


@dataclass
class User:
    """An authenticatable principal.

    sid is the stable identifier written into the session on login. email is
    stored lower-cased so lookups are case-insensitive.
    """

    email: str
    hashed_password: str
    sid: str = ""
    name: str = ""
    created_at: str | None = None
