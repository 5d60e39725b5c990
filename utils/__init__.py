"""
Utilities module for the impostor word game.

This module contains constants, helper functions, and the word bank
used throughout the application.
"""

from .constants import GAME_CONFIG, SCORING, WINNER_TYPES
from .helpers import generate_game_code, validate_username, normalize_letter
from .words import WORDS, get_categories, pick_word

__all__ = [
    'GAME_CONFIG',
    'SCORING',
    'WINNER_TYPES',
    'WORDS',
    'generate_game_code',
    'validate_username',
    'normalize_letter',
    'get_categories',
    'pick_word'
]
