"""Process-wide backend handle: database engine, sessions and storage."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

from academy.backend.storage import HttpObjectStorage
from academy.config import Settings

logger = logging.getLogger("backend")


@dataclass(frozen=True)
class BackendHandle:
    engine: Any
    session_factory: Any
    storage: Any


_handle: Optional[BackendHandle] = None
_initialized = False


def create_backend_handle(settings: Settings) -> Optional[BackendHandle]:
    """Build a handle from settings; ``None`` when no database is configured."""
    if not settings.database_url:
        logger.info("No database credentials configured, backend handle is absent")
        return None

    engine = create_async_engine(settings.database_url, echo=settings.db_echo)
    session_factory = sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    storage = None
    if settings.storage_url:
        storage = HttpObjectStorage(settings.storage_url, settings.storage_bucket, settings.storage_key)
    return BackendHandle(engine=engine, session_factory=session_factory, storage=storage)


def get_backend_handle(settings: Optional[Settings] = None) -> Optional[BackendHandle]:
    global _handle, _initialized
    if not _initialized:
        _handle = create_backend_handle(settings or Settings.from_env())
        _initialized = True
    return _handle


async def dispose_backend_handle():
    global _handle, _initialized
    if _handle is not None:
        await _handle.engine.dispose()
    _handle = None
    _initialized = False
