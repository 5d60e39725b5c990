"""
Helper utilities for the impostor word game.

This module contains utility functions used throughout the application
for validation, generation, and text normalization.
"""

import random
import re
import unicodedata
import uuid
from typing import List, Optional, Tuple
from .constants import CODE_ALPHABET, CODE_LENGTH, MAX_NAME_LENGTH, MAX_CLUE_LENGTH

NAME_PATTERN = re.compile(r"^[\w\s\-\.']+$")


def generate_game_code(rng: Optional[random.Random] = None, length: int = CODE_LENGTH) -> str:
    """Generate a random lowercase alphanumeric join code."""
    rng = rng or random
    return ''.join(rng.choice(CODE_ALPHABET) for _ in range(length))


def generate_session_id() -> str:
    """Generate a device session identity for players without one."""
    return uuid.uuid4().hex


def normalize_code(code: str) -> str:
    """Normalize a join code typed by a user."""
    return (code or '').strip().lower()


def validate_username(username: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a player name.

    Returns:
        tuple: (is_valid, error_message)
    """
    if not username or not username.strip():
        return False, "Name cannot be empty"

    if len(username.strip()) > MAX_NAME_LENGTH:
        return False, f"Name must be {MAX_NAME_LENGTH} characters or less"

    if not NAME_PATTERN.match(username.strip()):
        return False, "Name contains invalid characters"

    return True, None


def validate_session_id(session_id: str) -> Tuple[bool, Optional[str]]:
    """Validate a device session identity."""
    if not session_id or not session_id.strip():
        return False, "Session id cannot be empty"
    if len(session_id) > 100:
        return False, "Session id is too long"
    return True, None


def sanitize_clue(clue: str) -> str:
    """
    Clean up a clue typed by a player.

    Collapses whitespace and strips HTML-like tags.
    """
    clue = re.sub(r'<[^>]*>', '', clue or '')
    return re.sub(r'\s+', ' ', clue.strip())


def validate_clue(clue: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a sanitized clue.

    Returns:
        tuple: (is_valid, error_message)
    """
    if not clue:
        return False, "Clue cannot be empty"
    if len(clue) > MAX_CLUE_LENGTH:
        return False, f"Clue must be {MAX_CLUE_LENGTH} characters or less"
    return True, None


def normalize_letter(char: str) -> str:
    """
    Normalize a single character for chained-clue comparison.

    Strips diacritics and upper-cases, so 'á', 'A' and 'a' all compare equal.
    """
    decomposed = unicodedata.normalize('NFD', char)
    stripped = ''.join(c for c in decomposed if not unicodedata.combining(c))
    return stripped.upper()


def first_letter(text: str) -> str:
    """Normalized first character of a clue."""
    text = (text or '').strip()
    return normalize_letter(text[0]) if text else ''


def last_letter(text: str) -> str:
    """Normalized last character of a clue."""
    text = (text or '').strip()
    return normalize_letter(text[-1]) if text else ''


def shuffle_ids(ids: List[int], rng: Optional[random.Random] = None) -> List[int]:
    """
    Return a uniformly shuffled copy of a list (Fisher-Yates).

    Args:
        ids: Items to shuffle
        rng: Random source; the module-level generator when omitted

    Returns:
        Shuffled copy; the input is left untouched
    """
    rng = rng or random
    shuffled = list(ids)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled
