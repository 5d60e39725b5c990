"""
Turn order for the clue phase.

The stored turn order keeps eliminated players; they are filtered out
every time it is read, and the current turn index always points into
that filtered sequence.
"""

import random
from typing import Iterable, List, Optional, Sequence

from utils.helpers import shuffle_ids
from .models import GameData, PlayerData, TurnMode


def shuffle(ids: Sequence[int], rng: Optional[random.Random] = None) -> List[int]:
    """Uniform random permutation of player ids."""
    return shuffle_ids(list(ids), rng)


def fixed_rotate(players: Iterable[PlayerData], round_offset: int) -> List[int]:
    """
    Stable join order rotated left by round_offset.

    Each round starts with a different player while relative order is kept.

    Args:
        players: Players taking part in the round
        round_offset: Number of positions to rotate (taken modulo player count)

    Returns:
        Ordered player ids
    """
    base = [p.id for p in sorted(players, key=lambda p: (p.joined_at, p.id))]
    if not base:
        return []
    shift = round_offset % len(base)
    return base[shift:] + base[:shift]


def build_turn_order(players: List[PlayerData], turn_mode: TurnMode, round_number: int,
                     rng: Optional[random.Random] = None) -> List[int]:
    """
    Turn order for a round.

    Args:
        players: Non-eliminated players
        turn_mode: Random shuffle or fixed rotation
        round_number: Round about to start (1-based); round 1 is not rotated
        rng: Random source for the shuffle

    Returns:
        Ordered player ids
    """
    if turn_mode == TurnMode.FIXED:
        return fixed_rotate(players, round_number - 1)
    return shuffle([p.id for p in players], rng)


def active_turn_order(turn_order: Sequence[int], players: Iterable[PlayerData]) -> List[int]:
    """Stored turn order restricted to players still in the game and not eliminated."""
    active_ids = {p.id for p in players if not p.is_eliminated}
    return [pid for pid in turn_order if pid in active_ids]


def current_turn_player_id(game: GameData, players: Iterable[PlayerData]) -> Optional[int]:
    """Id of the player whose turn it is, or None past the end of the order."""
    order = active_turn_order(game.turn_order, players)
    if 0 <= game.current_turn_index < len(order):
        return order[game.current_turn_index]
    return None
