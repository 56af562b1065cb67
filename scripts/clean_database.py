"""Wipe every comment, post and user from the configured database."""
import asyncio
import logging
import sys

from app.database import engine
from app.maintenance import clean_database


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    ok = asyncio.run(clean_database(engine))
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
