# /app/db/session.py
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncEngine, AsyncSession
from app.core.config import settings
import logging
import threading
from typing import Optional
from fastapi import HTTPException, status
import asyncio
from sqlalchemy import text

logger = logging.getLogger(__name__)

# Process-wide engine, created on first use and disposed at shutdown
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker] = None
_engine_lock = threading.Lock()


def _create_engine() -> AsyncEngine:
    uri = settings.SQLALCHEMY_DATABASE_URI
    connect_args = {}
    if uri.startswith("postgresql+asyncpg://"):
        connect_args = {"server_settings": {"application_name": "munjiz"}}

    return create_async_engine(
        uri,
        echo=False,
        pool_pre_ping=True,  # drops stale connections so a restarted server is picked up again
        connect_args=connect_args,
    )


def get_engine() -> AsyncEngine:
    global _engine, _session_factory
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                engine = _create_engine()
                _session_factory = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
                _engine = engine
                logger.info("Database engine created")
    return _engine


def get_session_factory() -> async_sessionmaker:
    get_engine()
    return _session_factory


async def dispose_engine() -> None:
    global _engine, _session_factory
    with _engine_lock:
        engine, _engine, _session_factory = _engine, None, None
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")


async def get_db():
    db = get_session_factory()()
    try:
        retry_count = 3
        retry_delay = 0.5  # seconds

        for attempt in range(retry_count + 1):
            try:
                await db.execute(text("SELECT 1"))
                break
            except Exception as e:
                await db.rollback()
                if attempt == retry_count:
                    logger.error(f"All {retry_count} database reconnection attempts failed: {str(e)}")
                    raise HTTPException(
                        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                        detail="Database is temporarily unavailable. Please try again later.",
                    )
                logger.warning(f"Database connection failed (attempt {attempt + 1}), retrying: {str(e)}")
                await asyncio.sleep(retry_delay)
                retry_delay *= 2  # exponential backoff

        yield db
    finally:
        await db.close()
