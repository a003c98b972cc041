"""
Database engine and session factory (SQLAlchemy async)
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Async engine for the import database.
    
    Connections are not pooled between sessions.
    """
    url = database_url or settings.DATABASE_URL
    logger.debug(f"Creating engine for {url.split('@')[-1]}")
    return create_async_engine(url, echo=False, poolclass=NullPool, future=True)


engine = build_engine()

# Session factory shared by the orchestrator and the API
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)
