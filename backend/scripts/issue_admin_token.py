#!/usr/bin/env python3
"""
Mint a session token for local admin calls.

Production sessions come from the magic-link login; this is for dev only and
refuses to run with ENV=prod.

Usage:
    python scripts/issue_admin_token.py admin@example.com
    python scripts/issue_admin_token.py viewer@example.com --role viewer --minutes 5

    curl -H "Authorization: Bearer $(python scripts/issue_admin_token.py admin@example.com)" \\
         -d '{"countryCode":"AU","mode":"increment","value":3}' \\
         http://localhost:8000/v1/admin/update-country
"""
import argparse
import os
import sys
from datetime import timedelta

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from dotenv import load_dotenv

load_dotenv()

from globalunlock.core.config import settings  # noqa: E402
from globalunlock.core.env import is_production_env  # noqa: E402
from globalunlock.core.security import create_access_token  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Issue a dev session token")
    parser.add_argument("email")
    parser.add_argument("--role", default=settings.ADMIN_ROLE)
    parser.add_argument("--minutes", type=int, default=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    args = parser.parse_args()

    if is_production_env():
        print("Refusing to mint tokens with ENV=prod", file=sys.stderr)
        return 1

    token = create_access_token(
        subject=args.email,
        email=args.email,
        role=args.role,
        expires_delta=timedelta(minutes=args.minutes),
    )
    print(token)
    return 0


if __name__ == "__main__":
    sys.exit(main())
