#!/usr/bin/env python3
"""
CarStore -- admin command line.

Every user endpoint except login sits behind the session gate, so the first
user has to be created from here.

Usage:
  python main.py init-db
  python main.py create-user --fullname "Ana Souza" --username ana --email ana@example.com
  python main.py create-user --fullname "Root" --username root --email root@example.com --admin

Environment variables:
  DATABASE_URL   SQLAlchemy URL of the database (default: sqlite file carstore.db)
  BCRYPT_ROUNDS  bcrypt cost factor for stored passwords (default: 12)
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.schemas import build_user_flow
from auth.store import UserStore
from core.config import get_settings
from core.errors import ConflictError, ValidationError
from inventory.store import InventoryStore


def _init_db(db_url: Optional[str]) -> int:
    """Create every table. Safe to run repeatedly."""
    users = UserStore(db_url)
    inventory = InventoryStore(db_url)
    users.close()
    inventory.close()
    print(f"  Database ready: {db_url or get_settings().database_url}")
    return 0


def _read_password() -> str:
    password = getpass.getpass("  Password: ")
    confirm = getpass.getpass("  Confirm password: ")
    if password != confirm:
        print("  [!] Passwords do not match.")
        return ""
    return password


def _create_user(db_url: Optional[str], args: argparse.Namespace) -> int:
    password = _read_password()
    if not password:
        return 1

    store = UserStore(db_url)
    try:
        user_id = build_user_flow(store).create(
            {
                "fullname": args.fullname,
                "username": args.username,
                "email": args.email,
                "password": password,
                "is_admin": args.admin,
            }
        )
    except ValidationError as exc:
        for field, message in exc.by_field().items():
            print(f"  [!] {field}: {message}")
        return 1
    except ConflictError:
        print("  [!] A user with that username or e-mail already exists.")
        return 1
    finally:
        store.close()

    print(f"  Created user {args.username!r} (id {user_id}).")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="carstore",
        description="CarStore administration.",
    )
    parser.add_argument(
        "--database-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy database URL (default: DATABASE_URL or the local SQLite file)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    sub.add_parser("init-db", help="Create all tables")

    create = sub.add_parser("create-user", help="Create a user (prompts for the password)")
    create.add_argument("--fullname", required=True)
    create.add_argument("--username", required=True)
    create.add_argument("--email", required=True)
    create.add_argument("--admin", action="store_true", help="Mark the user as administrator")

    args = parser.parse_args(argv)

    if args.command == "init-db":
        return _init_db(args.database_url)
    if args.command == "create-user":
        return _create_user(args.database_url, args)

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
