"""Core application utilities."""

from .config import (
    DEFAULT_TRUST_LEVELS,
    Settings,
    TrustLevel,
    TrustPointsPolicy,
    get_settings,
)
from .database import (
    close_db,
    create_engine,
    create_session_factory,
    create_sqlite_engine,
    init_db,
)
from .locks import KeyedLocks
from .security import TokenPayload, create_access_token, decode_token

__all__ = [
    # Config
    "Settings",
    "get_settings",
    "TrustPointsPolicy",
    "TrustLevel",
    "DEFAULT_TRUST_LEVELS",
    # Database
    "create_engine",
    "create_sqlite_engine",
    "create_session_factory",
    "init_db",
    "close_db",
    # Concurrency
    "KeyedLocks",
    # Security
    "create_access_token",
    "decode_token",
    "TokenPayload",
]
