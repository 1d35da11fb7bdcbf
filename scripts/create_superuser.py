#!/usr/bin/env python3
"""
Create (or promote) a super admin account directly in the database.

Usage:
  python scripts/create_superuser.py --email admin@example.com --first-name Ada --last-name Admin
  (the password is prompted for unless --password is given)
"""
from __future__ import annotations

import argparse
import getpass
import sys

from accounts.core.errors import Failure
from accounts.db.create_tables import create_all
from accounts.domain.accounts import Role, password_problem
from accounts.repositories.account_repository import AccountRepository


def main() -> None:
    ap = argparse.ArgumentParser(description="Create a super admin account")
    ap.add_argument("--email", required=True)
    ap.add_argument("--first-name", required=True)
    ap.add_argument("--last-name", required=True)
    ap.add_argument("--password", help="Password (default: prompt)")
    ap.add_argument("--promote", action="store_true", help="Promote the account if the email already exists")
    args = ap.parse_args()

    create_all()
    repo = AccountRepository()
    existing = repo.find_by_email(args.email)
    if existing:
        if not args.promote:
            raise SystemExit(f"Account '{existing.email}' already exists (use --promote)")
        result = repo.update(existing.id, {"role": Role.SUPER_ADMIN.value, "is_active": True})
        if isinstance(result, Failure):
            raise SystemExit(result.message)
        print(f"OK: {existing.email} promoted to super_admin")
        return

    password = args.password or getpass.getpass("Password: ")
    reason = password_problem(password)
    if reason:
        raise SystemExit(reason)
    result = repo.create(
        {
            "email": args.email,
            "password": password,
            "first_name": args.first_name,
            "last_name": args.last_name,
            "role": Role.SUPER_ADMIN.value,
            "email_verified": True,
        }
    )
    if isinstance(result, Failure):
        details = "; ".join(f"{d['field']}: {d['message']}" for d in result.details)
        raise SystemExit(f"{result.message}{': ' + details if details else ''}")
    print("OK: super admin created")
    print(f"  ID: {result.value.id}")
    print(f"  Email: {result.value.email}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover - CLI usage
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
