"""
Game constants for the impostor word game.

This module contains all constant values used throughout the game,
including player limits, scoring values, and default settings.
"""

import string

# Lobby constants
MAX_PLAYERS_PER_GAME = 20
MIN_PLAYERS_TO_START = 3

# Join codes
CODE_LENGTH = 6
CODE_ALPHABET = string.ascii_lowercase + string.digits
MAX_CODE_ATTEMPTS = 100

# Input limits
MAX_NAME_LENGTH = 20
MAX_CLUE_LENGTH = 40

# Game configuration
GAME_CONFIG = {
    'MIN_PLAYERS': MIN_PLAYERS_TO_START,
    'MAX_PLAYERS': MAX_PLAYERS_PER_GAME,
    'DEFAULT_CATEGORY': 'animales',
    'DEFAULT_IMPOSTOR_COUNT': 1,
}

# Scoring
SCORING = {
    'CAUGHT_IMPOSTOR_VOTE': 10,  # crew member who voted for an eliminated impostor
    'CAUGHT_IMPOSTOR_TEAM': 5,   # every other surviving crew member
    'DECEPTION': 15,             # surviving impostors when an innocent is eliminated
    'SURVIVAL_BONUS': 20         # surviving impostors when max rounds run out
}

# Winner types
WINNER_TYPES = {
    'CREW': 'crew',
    'IMPOSTORS': 'impostors'
}

# End reasons
END_REASONS = {
    'IMPOSTORS_ELIMINATED': 'All impostors were eliminated',
    'IMPOSTORS_OUTNUMBER': 'Impostors equal or outnumber the crew',
    'MAX_ROUNDS': 'Impostors survived every round'
}

# Display text for clue sentinels
CLUE_DISPLAY = {
    'CONFIRMED': '✓',
    'TIMED_OUT': '⏱️'
}
