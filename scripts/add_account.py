#!/usr/bin/env python3
"""
Register an account directly in the JSON store.

Usage:
  python scripts/add_account.py --name "Ada" --email ada@example.com [--role admin] [--db ./db/db.json]
"""
from __future__ import annotations

import argparse
import sys

from postboard.core.config import get_settings
from postboard.core.errors import RepositoryError
from postboard.repositories import AccountRepository, JsonStorage


def main() -> None:
    ap = argparse.ArgumentParser(description="Register an account in the JSON store")
    ap.add_argument("--name", required=True, help="Display name")
    ap.add_argument("--email", required=True, help="Email (unique, case-insensitive)")
    ap.add_argument("--role", action="append", default=[], help="Role name (repeatable)")
    ap.add_argument("--db", help="Store path (default: DB_PATH or ./db/db.json)")
    args = ap.parse_args()

    storage = JsonStorage(args.db or get_settings().db_path)
    repo = AccountRepository(storage)
    account = repo.create({"name": args.name, "email": args.email, "roles": args.role})

    print("OK: account registered")
    print(f"  Id: {account.id}")
    print(f"  Email: {account.email}")
    if account.roles:
        print(f"  Roles: {', '.join(account.roles)}")


if __name__ == "__main__":
    try:
        main()
    except RepositoryError as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc.message}\n")
        raise SystemExit(1)
