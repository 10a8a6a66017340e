#!/usr/bin/env python3
"""
Issue a long-lived access token for an existing user.

Handy for scripts and manual testing against a running API.  The token
is signed with the configured ``SECRET_KEY`` so it is only valid for a
server sharing that key.

Usage:
    python create_token.py --email sitter@example.com --days 365
"""

import argparse
import sys

from petsitters_api.app.core.db import get_connection, init_db
from petsitters_api.app.core.security import create_access_token


def main() -> None:
    ap = argparse.ArgumentParser(description="Issue an access token for a PetSitters user.")
    ap.add_argument("--email", required=True, help="Email of the user")
    ap.add_argument("--days", type=int, default=365, help="Token lifetime in days")
    args = ap.parse_args()

    init_db()
    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id, role, is_active FROM users WHERE email = ?", (args.email.lower(),)
        ).fetchone()
    finally:
        conn.close()
    if not row:
        print(f"[!] No user found with email: {args.email}", file=sys.stderr)
        sys.exit(2)
    if not row["is_active"]:
        print(f"[!] Account is deactivated: {args.email}", file=sys.stderr)
        sys.exit(3)

    token = create_access_token(
        {"sub": str(row["id"]), "role": row["role"]},
        expires_delta=args.days * 24 * 60 * 60,
    )
    print(token)


if __name__ == "__main__":
    main()
