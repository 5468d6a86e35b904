#!/usr/bin/env python3
"""
Create (or drop) the PostgreSQL database used by the test suite.

The server and credentials come from DATABASE_URL; the test database name
defaults to ``test_booking``. Run the tests against it with

    TEST_DATABASE_URL=<printed url> pytest

so that the branch row lock taken while booking is exercised for real.
"""

import asyncio
import os
import sys

import asyncpg
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine

from app import models  # noqa: F401  registers tables on Base.metadata
from app.core.config import settings
from app.core.database import Base

TEST_DB_NAME = os.getenv("TEST_DB_NAME", "test_booking")

server_url = make_url(settings.DATABASE_URL)
test_url = server_url.set(database=TEST_DB_NAME)


async def _connect_server() -> asyncpg.Connection:
    return await asyncpg.connect(
        host=server_url.host,
        port=server_url.port or 5432,
        user=server_url.username,
        password=server_url.password,
        database=server_url.database,
    )


async def setup_test_database() -> bool:
    """Recreate the test database and its tables."""
    print(f"Setting up test database: {TEST_DB_NAME}")

    try:
        conn = await _connect_server()
        await conn.execute(f'DROP DATABASE IF EXISTS "{TEST_DB_NAME}"')
        await conn.execute(f'CREATE DATABASE "{TEST_DB_NAME}"')
        await conn.close()

        engine = create_async_engine(test_url, echo=False)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        await engine.dispose()

    except (OSError, asyncpg.PostgresError) as e:
        print(f"Error setting up test database: {e}")
        print(f"Check that PostgreSQL is reachable at {server_url.host}:{server_url.port}")
        return False

    print("Created tables: " + ", ".join(sorted(Base.metadata.tables)))
    print(f"TEST_DATABASE_URL={test_url.render_as_string(hide_password=False)}")
    return True


async def cleanup_test_database() -> bool:
    """Drop the test database."""
    try:
        conn = await _connect_server()
        await conn.execute(f'DROP DATABASE IF EXISTS "{TEST_DB_NAME}"')
        await conn.close()
    except (OSError, asyncpg.PostgresError) as e:
        print(f"Error dropping test database: {e}")
        return False

    print(f"Dropped test database: {TEST_DB_NAME}")
    return True


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "cleanup":
        ok = asyncio.run(cleanup_test_database())
    else:
        ok = asyncio.run(setup_test_database())
    sys.exit(0 if ok else 1)
