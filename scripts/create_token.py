#!/usr/bin/env python3
"""
Hookups — print a signed access token for local testing.

Usage examples
--------------
  # Token for a random regular user
  python scripts/create_token.py

  # Admin token for a known user id, valid for a day
  python scripts/create_token.py --user-id 6f1c... --role admin --minutes 1440
"""

from __future__ import annotations

import argparse
import sys
import uuid

# Ensure the project root is importable
sys.path.insert(0, ".")

from app.utils.tokens import create_access_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a hookups access token")
    parser.add_argument(
        "--user-id",
        type=uuid.UUID,
        default=None,
        help="User id for the token subject (default: random)",
    )
    parser.add_argument(
        "--role",
        type=str,
        default="user",
        help="Role claim, e.g. 'user' or 'admin'",
    )
    parser.add_argument(
        "--minutes",
        type=int,
        default=60,
        help="Minutes until the token expires",
    )
    args = parser.parse_args()

    user_id = args.user_id or uuid.uuid4()
    token = create_access_token(user_id, role=args.role, expires_minutes=args.minutes)

    print(f"user_id: {user_id}", file=sys.stderr)
    print(token)


if __name__ == "__main__":
    main()
