import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

import psycopg


def get_database_url() -> str:
    """Get the database URL from environment variables."""
    url = os.environ["DATABASE_URL"]
    return url


def get_sqlalchemy_database_url() -> str:
    """Get the database URL formatted for SQLAlchemy (used by alembic).

    Automatically converts postgresql:// to postgresql+psycopg://
    to ensure psycopg3 is used instead of psycopg2.
    """
    url = get_database_url()
    if url.startswith("postgresql://"):
        url = url.replace("postgresql://", "postgresql+psycopg://", 1)
    return url


@asynccontextmanager
async def get_db_connection() -> AsyncIterator[psycopg.AsyncConnection]:
    """Get a database connection context manager.

    Explicitly closes the connection so each helper holds it only for its own
    round-trips.
    """
    url = get_database_url()
    conn = await psycopg.AsyncConnection.connect(url)
    try:
        yield conn
    finally:
        await conn.close()


@asynccontextmanager
async def get_db_cursor() -> AsyncIterator[psycopg.AsyncCursor]:
    """Get a database cursor context manager.

    Automatically commits the transaction on successful completion,
    or rolls back on exception.
    """
    async with get_db_connection() as conn:
        async with conn.cursor() as cursor:
            try:
                yield cursor
                await conn.commit()
            except Exception:
                await conn.rollback()
                raise
