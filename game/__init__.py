"""
Game Module for the impostor word game.

Contains the round state machine and everything it is built from:
data models, turn order, vote tallying, scoring, the store port and
per-player views.
"""

from .errors import (
    GameError, NotFound, PermissionDenied, InvalidPhase, OutOfTurn,
    DuplicateAction, CapacityExceeded, ValidationFailed
)
from .models import (
    GameStatus, TurnMode, TieBreaker, ClueKind, ClueContent, GameSettings,
    GameData, PlayerData, ClueData, VoteData, VoteTally, RoundResults, RoundOutcome
)
from .store import GameStore, StoreTransaction, MemoryGameStore
from .manager import GameManager

__all__ = [
    # Errors
    'GameError',
    'NotFound',
    'PermissionDenied',
    'InvalidPhase',
    'OutOfTurn',
    'DuplicateAction',
    'CapacityExceeded',
    'ValidationFailed',

    # Data models
    'GameStatus',
    'TurnMode',
    'TieBreaker',
    'ClueKind',
    'ClueContent',
    'GameSettings',
    'GameData',
    'PlayerData',
    'ClueData',
    'VoteData',
    'VoteTally',
    'RoundResults',
    'RoundOutcome',

    # Store
    'GameStore',
    'StoreTransaction',
    'MemoryGameStore',

    # Managers
    'GameManager'
]
