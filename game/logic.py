"""
Scoring and win conditions for the impostor word game.

Pure functions over player snapshots. Callers apply eliminations first,
then score them, then check whether the game is over.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from utils.constants import SCORING, WINNER_TYPES, END_REASONS
from .models import PlayerData, VoteData


@dataclass
class WinCheck:
    """Result of a win-condition evaluation."""
    winner: str
    reason: str
    survival_bonus: bool = False


def apply_eliminations(players: List[PlayerData], eliminated_ids: Iterable[int]) -> List[PlayerData]:
    """Mark players eliminated in place and return the newly eliminated ones."""
    targets = set(eliminated_ids)
    newly_eliminated = []
    for player in players:
        if player.id in targets and not player.is_eliminated:
            player.is_eliminated = True
            newly_eliminated.append(player)
    return newly_eliminated


def score_eliminations(players: List[PlayerData], eliminated: Iterable[PlayerData],
                       votes: Iterable[VoteData]) -> Dict[int, int]:
    """
    Points earned from this round's eliminations.

    A caught impostor gives each crew member who voted for them the vote
    bonus and every other surviving crew member the team bonus. An
    innocent elimination rewards every surviving impostor.

    Args:
        players: All players of the game, eliminations already applied
        eliminated: Players eliminated this round
        votes: Votes of this round

    Returns:
        Mapping of player id to points gained
    """
    votes = list(votes)
    changes: Dict[int, int] = defaultdict(int)

    for target in eliminated:
        if target.is_impostor:
            voters = {v.voter_id for v in votes if v.target_id == target.id}
            for player in players:
                if player.is_impostor:
                    continue
                if player.id in voters:
                    changes[player.id] += SCORING['CAUGHT_IMPOSTOR_VOTE']
                elif not player.is_eliminated:
                    changes[player.id] += SCORING['CAUGHT_IMPOSTOR_TEAM']
        else:
            for player in players:
                if player.is_impostor and not player.is_eliminated:
                    changes[player.id] += SCORING['DECEPTION']

    return dict(changes)


def check_win_condition(players: Iterable[PlayerData], current_round: int,
                        max_rounds: Optional[int]) -> Optional[WinCheck]:
    """
    Check if the game has ended after a round's eliminations.

    Returns:
        WinCheck when the game is over, None if another round follows
    """
    remaining = [p for p in players if not p.is_eliminated]
    impostors = [p for p in remaining if p.is_impostor]
    innocents = [p for p in remaining if not p.is_impostor]

    if not impostors:
        return WinCheck(WINNER_TYPES['CREW'], END_REASONS['IMPOSTORS_ELIMINATED'])
    if len(impostors) >= len(innocents):
        return WinCheck(WINNER_TYPES['IMPOSTORS'], END_REASONS['IMPOSTORS_OUTNUMBER'])
    if max_rounds is not None and current_round + 1 > max_rounds:
        return WinCheck(WINNER_TYPES['IMPOSTORS'], END_REASONS['MAX_ROUNDS'], survival_bonus=True)
    return None


def survival_bonus(players: Iterable[PlayerData]) -> Dict[int, int]:
    """Bonus for impostors still standing when the rounds run out."""
    return {p.id: SCORING['SURVIVAL_BONUS']
            for p in players if p.is_impostor and not p.is_eliminated}


def merge_score_changes(*changes: Dict[int, int]) -> Dict[int, int]:
    merged: Dict[int, int] = defaultdict(int)
    for change in changes:
        for player_id, points in change.items():
            merged[player_id] += points
    return dict(merged)


def impostor_count_for(player_count: int, impostor_count: int, all_impostors: bool) -> int:
    """How many impostors a game of player_count gets; at least one crew member unless all_impostors."""
    if all_impostors:
        return player_count
    return max(0, min(impostor_count, player_count - 1))
