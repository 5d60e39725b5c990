"""
Per-player projections of game state.

Nothing leaves the server without passing through here: the secret word
is withheld from impostors, roles stay hidden until the game is over,
and per-voter detail is withheld while a secret vote is running.
"""

from typing import Any, Dict, List, Optional

from .models import ClueData, GameData, GameStatus, PlayerData, RoundResults, VoteData
from .turns import active_turn_order, current_turn_player_id


def can_see_category(game: GameData) -> bool:
    return game.is_lobby or game.is_finished or game.settings.show_category


def votes_are_public(game: GameData) -> bool:
    """Whether per-voter detail may be shown for the current round."""
    if game.status in (GameStatus.RESULTS, GameStatus.FINISHED):
        return True
    return game.status == GameStatus.VOTING and not game.settings.secret_voting


def visible_votes(game: GameData, votes: List[VoteData]) -> List[VoteData]:
    return list(votes) if votes_are_public(game) else []


def vote_count(votes: List[VoteData], players: List[PlayerData]) -> Dict[str, int]:
    """Aggregate progress of a vote; always visible."""
    return {
        'count': len(votes),
        'total': len([p for p in players if not p.is_eliminated])
    }


def role_card(game: GameData, player: PlayerData) -> Dict[str, Any]:
    """
    What a player is shown on their role screen.

    Args:
        game: Game the player belongs to
        player: The player

    Returns:
        Dictionary with is_impostor, secret_word, taboo_words and category
    """
    in_round = not game.is_lobby
    knows_word = in_round and not player.is_impostor
    return {
        'is_impostor': player.is_impostor if in_round else False,
        'secret_word': game.secret_word if knows_word else None,
        'taboo_words': list(game.taboo_words) if knows_word else [],
        'category': game.settings.category if can_see_category(game) else None
    }


def game_view(game: GameData, players: List[PlayerData]) -> Dict[str, Any]:
    """
    Public part of a game: no secret word before the end, category only when allowed.

    The turn order lists only players still in the round.
    """
    data = game.to_dict(include_secret=game.is_finished)
    data['turn_order'] = active_turn_order(game.turn_order, players)
    if not can_see_category(game):
        data['settings']['category'] = None
    return data


def results_view(game: GameData, results: Optional[RoundResults]) -> Optional[Dict[str, Any]]:
    if results is None:
        return None
    data = results.to_dict()
    if not game.is_finished:
        data['secret_word'] = None
    return data


def build_game_view(game: GameData, players: List[PlayerData], clues: List[ClueData],
                    votes: List[VoteData], viewer: Optional[PlayerData],
                    required_letter: Optional[str] = None,
                    results: Optional[RoundResults] = None) -> Dict[str, Any]:
    """
    Full view of a game for one device.

    Args:
        game: Game to project
        players: Players in join order
        clues: Clues of the current round
        votes: Votes of the current round
        viewer: Player owning the device, or None for a spectator
        required_letter: Letter the next chained clue must start with
        results: Results preview when the game is in results or finished

    Returns:
        JSON-ready dictionary
    """
    reveal_roles = game.is_finished
    my_vote = None
    if viewer:
        own = [v for v in votes if v.voter_id == viewer.id]
        my_vote = own[0].to_dict() if own else None

    return {
        'game': game_view(game, players),
        'me': viewer.to_dict(include_role=True) if viewer else None,
        'is_host': bool(viewer and viewer.id == game.host_id),
        'role': role_card(game, viewer) if viewer else None,
        'players': [p.to_dict(include_role=reveal_roles) for p in players],
        'turn_order': active_turn_order(game.turn_order, players),
        'current_turn_player_id': current_turn_player_id(game, players),
        'required_letter': required_letter,
        'clues': [c.to_dict() for c in clues],
        'votes': [v.to_dict() for v in visible_votes(game, votes)],
        'vote_count': vote_count(votes, players),
        'my_vote': my_vote,
        'results': results_view(game, results)
    }
