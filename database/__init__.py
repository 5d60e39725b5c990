"""
Database Package for the impostor word game.

Provides clean imports for all database functionality.
"""

# Models
from .models import (
    Base,
    Game,
    Player,
    Clue,
    Vote
)

# Configuration and session management
from .config import (
    engine,
    SessionLocal,
    make_engine,
    make_session_factory,
    get_db_session,
    init_database
)

# Store implementation
from .store import SqlGameStore, SqlStoreTransaction

__all__ = [
    # Models
    "Base",
    "Game",
    "Player",
    "Clue",
    "Vote",

    # Configuration
    "engine",
    "SessionLocal",
    "make_engine",
    "make_session_factory",
    "get_db_session",
    "init_database",

    # Store
    "SqlGameStore",
    "SqlStoreTransaction",
]
