# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Async SQLAlchemy engine factory.

The engine owns the connection pool. It is built once at application start,
handed to the repositories, and disposed on shutdown.
"""
import asyncio
from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from urgent.core.config import settings

# What a storage call can raise: wrapped driver errors plus raw socket
# failures and timeouts the driver lets through.
STORE_ERRORS = (SQLAlchemyError, OSError, asyncio.TimeoutError)


def build_engine(url: Optional[str] = None, **overrides: Any) -> AsyncEngine:
    url = url or settings.DATABASE_URL
    options: dict = {"pool_pre_ping": True}
    if not url.startswith("sqlite"):
        options.update(
            pool_size=settings.POOL_SIZE,
            max_overflow=settings.MAX_OVERFLOW,
            pool_recycle=settings.POOL_RECYCLE,
        )
    options.update(overrides)
    return create_async_engine(url, **options)


async def verify_connection(engine: AsyncEngine) -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
