#!/usr/bin/env python3
"""
Reset a user's password in the PetSitters SQLite database.

Existing passwords are never read or shown; the script only stores a new
hash, in the same format the API uses, for the given email.

Usage:
    python reset_password.py --email client@example.com --password "NewStrongPass!234"

If --password is omitted, you will be prompted to enter it securely.
The database is the one configured by ``DATABASE_URL`` unless --db is given.
"""

import argparse
import getpass
import os
import sys

from petsitters_api.app.core.config import settings
from petsitters_api.app.core.db import get_connection, utcnow_iso
from petsitters_api.app.core.security import hash_password

MIN_PASSWORD_LENGTH = 6


def main() -> None:
    ap = argparse.ArgumentParser(description="Reset a PetSitters user password.")
    ap.add_argument("--db", help="Path to the SQLite database (defaults to DATABASE_URL)")
    ap.add_argument("--email", required=True, help="User email to update")
    ap.add_argument("--password", help="New password. If omitted, you'll be prompted securely.")
    args = ap.parse_args()

    if args.db:
        if not os.path.exists(args.db):
            print(f"[!] DB not found: {args.db}", file=sys.stderr)
            sys.exit(1)
        settings.database_url = os.path.abspath(args.db)

    new_password = args.password or getpass.getpass("Enter NEW password: ")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        print(f"[!] Password must be at least {MIN_PASSWORD_LENGTH} characters.", file=sys.stderr)
        sys.exit(1)

    conn = get_connection()
    try:
        cur = conn.execute(
            "UPDATE users SET password = ?, updated_at = ? WHERE email = ?",
            (hash_password(new_password), utcnow_iso(), args.email.lower()),
        )
        if cur.rowcount == 0:
            print(f"[!] No user found with email: {args.email}", file=sys.stderr)
            sys.exit(2)
        conn.commit()
        print(f"[+] Password updated for user: {args.email}")
    finally:
        conn.close()


if __name__ == "__main__":
    main()
