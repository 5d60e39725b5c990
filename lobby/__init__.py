"""
Lobby Module for the impostor word game.

Handles game creation, joining and leaving, and the host's settings.
"""

from .manager import LobbyManager
from .settings import validate_settings_changes

__all__ = [
    'LobbyManager',
    'validate_settings_changes'
]
