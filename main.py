#!/usr/bin/env python3
"""
Gatekeeper -- Session-authenticated web server.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py serve --reload
  python main.py create-user --email ada@example.com --name "Ada Lovelace"

Environment variables (see core/config.py for the full list):
  SECRET_KEY     Signs the session cookie. Required unless DEBUG=true.
  DEBUG          Set to true for local development (auto-generated SECRET_KEY).
  USERS_DB_URL   SQLAlchemy URL of the user database.
"""

from __future__ import annotations

import argparse
import getpass
import logging
import sys

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.passwords import hash_password
from auth.store import UserStore
from core.config import get_settings

logger = logging.getLogger("gatekeeper.cli")

_MIN_PASSWORD_LENGTH = 8


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("asgi:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _create_user(args: argparse.Namespace) -> int:
    password = getpass.getpass("Password: ")
    if len(password) < _MIN_PASSWORD_LENGTH:
        print(f"  [!] Password must be at least {_MIN_PASSWORD_LENGTH} characters.")
        return 1
    if password != getpass.getpass("Confirm password: "):
        print("  [!] Passwords do not match.")
        return 1

    store = UserStore(get_settings().users_db_url)
    try:
        sid = store.create_user(User(email=args.email, hashed_password=hash_password(password), name=args.name))
    except IntegrityError:
        print(f"  [!] A user with email '{args.email}' already exists.")
        return 1
    finally:
        store.close()

    logger.info("Created user %s", sid)
    print(f"  Created user {args.email} ({sid})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gatekeeper",
        description="Session-authenticated web server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --port 8080
  DEBUG=true python main.py serve --reload
  python main.py create-user --email ada@example.com
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the web server with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Add a user who can sign in with a password")
    create.add_argument("--email", required=True, help="Login email address")
    create.add_argument("--name", default="", help="Display name")
    create.set_defaults(func=_create_user)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
