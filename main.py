#!/usr/bin/env python3
"""
ResourceMap -- location-tagged resources with ownership and role based access.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py create-user alice alice@example.com
  python main.py create-user root root@example.com --admin

Admin accounts can only be created here. The HTTP registration endpoint
always creates standard accounts, whatever the request body says.

Environment variables (see core/config.py):
  SECRET_KEY     JWT signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL. Defaults to a SQLite file next to this script.
"""

import argparse
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from auth.models import User
from auth.store import UserStore
from auth.tokens import HashingConfig, hash_password
from core.access import Role
from core.config import get_settings


def _create_user(args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    if not password:
        print("  [!] Password must not be empty.")
        return 1
    if len(password.encode("utf-8")) > 72:
        print("  [!] Password must be at most 72 bytes.")
        return 1

    settings = get_settings()
    hashing = HashingConfig.generate(settings.bcrypt_rounds)
    store = UserStore(settings.database_url)
    role = Role.PRIVILEGED if args.admin else Role.STANDARD
    try:
        user_id = store.create_user(
            User(
                user_name=args.user_name,
                email=args.email,
                password=hash_password(password, hashing),
                role=role.value,
            )
        )
    except IntegrityError:
        print(f"  [!] A user named '{args.user_name}' or with email '{args.email}' already exists.")
        return 1
    finally:
        store.close()
    print(f"  Created {role.value} '{args.user_name}' (id {user_id}).")
    return 0


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="resourcemap",
        description="Location-tagged resource API with ownership and admin access control.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py create-user root root@example.com --admin
  SECRET_KEY=... DATABASE_URL=sqlite:///./prod.db python main.py serve
        """,
    )
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    serve.set_defaults(func=_serve)

    create = sub.add_parser("create-user", help="Create an account, optionally with the admin role")
    create.add_argument("user_name", help="Unique user name")
    create.add_argument("email", help="Unique email address")
    create.add_argument("--password", help="Password (prompted for if omitted)")
    create.add_argument("--admin", action="store_true", help="Grant the admin role")
    create.set_defaults(func=_create_user)

    args = parser.parse_args()
    if not getattr(args, "func", None):
        parser.print_help()
        return
    sys.exit(args.func(args))


if __name__ == "__main__":
    main()
