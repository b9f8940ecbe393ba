"""Build the configured ``PolicyStore``."""

import logging

from sqlalchemy.ext.asyncio import AsyncEngine

from ..core.config import Settings
from ..core.database import create_engine, create_session_factory
from .base import PolicyStore
from .memory import InMemoryStore
from .sql import SqlAlchemyStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> tuple[PolicyStore, AsyncEngine | None]:
    """
    Returns:
        (store, engine) where engine is None for the in-memory backend.
        The caller owns the engine and must dispose of it.
    """
    if settings.store_backend == "memory":
        logger.info("Using in-memory policy store")
        return InMemoryStore(), None

    engine = create_engine(settings)
    logger.info("Using SQL policy store")
    return SqlAlchemyStore(create_session_factory(engine)), engine
