#!/usr/bin/env python
"""Verify the analytics service can read the commerce database.

Checks, with the same engine settings the API uses:
  - the database answers
  - sessions are read-only
  - every platform table analytics maps exists

Usage:
    python scripts/check_db.py
"""

import asyncio
import sys

from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from commerce_insights.core.config import get_settings
from commerce_insights.core.database import Base, dispose_engine, get_engine
from commerce_insights.features.analytics import models  # noqa: F401


async def run_checks() -> int:
    settings = get_settings()
    host = settings.database_url.rsplit("@", 1)[-1]
    print(f"commerce database: {host}")

    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
            print("  reachable ............ ok")

            read_only = (await conn.execute(text("SHOW transaction_read_only"))).scalar()
            print(f"  read-only ............ {'ok' if read_only == 'on' else 'NO'}")

            tables = set(await conn.run_sync(lambda c: inspect(c).get_table_names()))
    except (SQLAlchemyError, OSError) as e:
        print(f"  reachable ............ FAILED ({type(e).__name__}: {e})")
        print("check DATABASE_URL and that the analytics role may connect")
        return 2
    finally:
        await dispose_engine()

    missing = sorted(set(Base.metadata.tables) - tables)
    for name in sorted(Base.metadata.tables):
        print(f"  table {name:<24} {'MISSING' if name in missing else 'ok'}")

    if missing:
        print("analytics endpoints will fail until these tables exist")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run_checks()))
