#!/usr/bin/env python3
"""
Seed the locker singleton and one country row per ISO 3166-1 alpha-2 code.

Idempotent: existing rows keep their counts.

Usage:
    python scripts/seed_state.py
    python scripts/seed_state.py --migrate     # alembic upgrade head first
"""
import argparse
import logging
import os
import sys

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from dotenv import load_dotenv

load_dotenv()

from globalunlock.db import get_session_local  # noqa: E402
from globalunlock.run_migrations import run_migrations  # noqa: E402
from globalunlock.services.seed import seed_initial_state  # noqa: E402

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger("seed_state")


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed initial global unlock state")
    parser.add_argument("--migrate", action="store_true", help="Run alembic upgrade head before seeding")
    args = parser.parse_args()

    if args.migrate:
        run_migrations()

    db = get_session_local()()
    try:
        result = seed_initial_state(db)
    finally:
        db.close()

    logger.info(f"Seed complete: {result}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
