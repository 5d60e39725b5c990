"""
Local Module for the impostor word game.

Pass-and-play mode: one device, one game, the same rules as online play.
"""

from .session import LocalGameSession

__all__ = [
    'LocalGameSession'
]
