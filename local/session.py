"""
Pass-and-play game session.

Runs a whole game on a single device. The device is handed from player
to player to reveal roles; clues are said out loud, so each turn is only
confirmed. Rules come from the same LobbyManager and GameManager used
online, over a private in-memory store.
"""

import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Set

from game.errors import GameError, InvalidPhase, NotFound, ValidationFailed
from game.models import GameData, GameStatus, PlayerData, RoundOutcome, RoundResults
from game.store import MemoryGameStore
from lobby.manager import LobbyManager
from lobby.settings import validate_settings_changes
from utils.constants import MIN_PLAYERS_TO_START
from utils.helpers import generate_session_id

logger = logging.getLogger(__name__)


class LocalGameSession:
    """A single local game driven from one device."""

    def __init__(self, rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = MemoryGameStore()
        self.lobby = LobbyManager(self.store, rng=rng, clock=clock)
        self.games = self.lobby.game_manager
        self.game_id: Optional[int] = None
        self.host_id: Optional[int] = None
        self.seen: Set[int] = set()

    # Setup

    def create(self, player_names: List[str], **settings: Any) -> GameData:
        """
        Create and start a local game.

        Args:
            player_names: At least three names; the first one hosts
            **settings: Game settings; the word changes every round unless
                change_word_each_round is given

        Returns:
            The started game, in reveal
        """
        if len(player_names) < MIN_PLAYERS_TO_START:
            raise ValidationFailed(f"Need at least {MIN_PLAYERS_TO_START} players")

        settings.setdefault('change_word_each_round', True)
        validate_settings_changes(settings)

        game, host = self.lobby.create_game(player_names[0], generate_session_id())
        try:
            for name in player_names[1:]:
                self.lobby.join_game(game.code, name, generate_session_id())
            self.lobby.update_settings(game.id, host.id, **settings)
        except GameError:
            with self.store.transaction() as tx:
                tx.delete_game(game.id)
            raise

        self.game_id = game.id
        self.host_id = host.id
        self.seen = set()
        game = self.games.start_game(game.id, host.id)

        logger.info(f"Local game {game.code} started with {len(player_names)} players")
        return game

    def _require_game(self) -> int:
        if self.game_id is None:
            raise NotFound("No local game in progress")
        return self.game_id

    @property
    def game(self) -> Optional[GameData]:
        if self.game_id is None:
            return None
        return self.lobby.get_game(self.game_id)

    @property
    def players(self) -> List[PlayerData]:
        if self.game_id is None:
            return []
        return self.lobby.get_players(self.game_id)

    def _player(self, player_id: int) -> PlayerData:
        for player in self.players:
            if player.id == player_id:
                return player
        raise NotFound("Player not found")

    # Reveal

    def role_for(self, player_id: int) -> Optional[Dict[str, Any]]:
        """Role card to show when the device is handed to player_id."""
        game_id = self._require_game()
        return self.games.get_my_role(game_id, self._player(player_id).session_id)

    def mark_role_seen(self, player_id: int) -> GameData:
        """Record that a player saw their role; the last one starts the clues."""
        game_id = self._require_game()
        game = self.game
        if game.status != GameStatus.REVEAL:
            raise InvalidPhase("Not in reveal phase")
        player = self._player(player_id)
        if player.is_eliminated:
            raise ValidationFailed("Eliminated players have no role to see")

        self.seen.add(player_id)
        active_ids = {p.id for p in self.players if not p.is_eliminated}
        if active_ids <= self.seen:
            game = self.games.ready_for_clues(game_id, self.host_id)
        return game

    # Clues

    def current_player(self) -> Optional[PlayerData]:
        return self.games.get_current_turn_player(self._require_game())

    def next_turn(self) -> GameData:
        """Confirm the current player's spoken clue; after the last one voting starts."""
        game_id = self._require_game()
        current = self.current_player()
        if current is None:
            raise InvalidPhase("No turn in progress")
        self.games.mark_turn_done(game_id, current.id)

        clues = self.games.get_clues(game_id)
        active = [p for p in self.players if not p.is_eliminated]
        if len(clues) >= len(active):
            return self.games.start_voting(game_id, self.host_id)
        return self.game

    def start_voting(self) -> GameData:
        return self.games.start_voting(self._require_game(), self.host_id)

    # Voting

    def submit_vote(self, voter_id: int, target_id: Optional[int]) -> GameData:
        return self.games.submit_vote(self._require_game(), voter_id, target_id)

    def submit_all_votes(self, votes: Dict[int, Optional[int]]) -> GameData:
        """
        Submit the votes collected around the table in one go.

        Args:
            votes: Voter id to target id (None for skip); every active
                player must be present. Nothing is stored if any vote is rejected

        Returns:
            The game, in results
        """
        game_id = self._require_game()
        active_ids = {p.id for p in self.players if not p.is_eliminated}
        missing = active_ids - set(votes)
        if missing:
            raise ValidationFailed(f"Missing votes from players {sorted(missing)}")

        return self.games.submit_votes(game_id, votes)

    def results(self) -> Optional[RoundResults]:
        return self.games.get_round_results(self._require_game())

    def next_round(self) -> RoundOutcome:
        outcome = self.games.next_round(self._require_game(), self.host_id)
        self.seen = set()
        return outcome

    def reset(self) -> None:
        """Forget the local game."""
        if self.game_id is not None:
            with self.store.transaction() as tx:
                tx.delete_game(self.game_id)
            logger.info(f"Local game {self.game_id} discarded")
        self.game_id = None
        self.host_id = None
        self.seen = set()
