"""
Main lobby management system.

Handles game creation, joining, leaving, kicking and settings. Once a
game is past the lobby, departures are handed to the GameManager so the
running round stays consistent.
"""

import logging
import random
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, List, Optional, Tuple

from game.errors import (
    CapacityExceeded, InvalidPhase, NotFound, ValidationFailed
)
from game.manager import GameManager, utc_now
from game.models import GameData, GameStatus, PlayerData
from game.store import GameStore
from game.turns import active_turn_order
from utils.constants import MAX_CODE_ATTEMPTS, MAX_PLAYERS_PER_GAME
from utils.helpers import (
    generate_game_code, normalize_code, validate_session_id, validate_username
)
from .settings import validate_settings_changes

logger = logging.getLogger(__name__)


def _validate_identity(name: str, session_id: str) -> str:
    is_valid, error = validate_username(name)
    if not is_valid:
        raise ValidationFailed(error)
    is_valid, error = validate_session_id(session_id)
    if not is_valid:
        raise ValidationFailed(error)
    return name.strip()


class LobbyManager:
    """Main lobby management coordinator."""

    def __init__(self, store: GameStore, game_manager: Optional[GameManager] = None,
                 rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the lobby manager.

        Args:
            store: Store shared with the game manager
            game_manager: Round state machine, used to settle departures mid-game
            rng: Random source for join codes
            clock: Returns the current time
        """
        self.store = store
        self.rng = rng or random.Random()
        self.clock = clock or utc_now
        self.game_manager = game_manager or GameManager(store, rng=self.rng, clock=self.clock)

    def create_game(self, host_name: str, session_id: str) -> Tuple[GameData, PlayerData]:
        """
        Create a game with a fresh join code and its host.

        Args:
            host_name: Display name of the host
            session_id: Device identity of the host

        Returns:
            tuple: (game, host player)
        """
        name = _validate_identity(host_name, session_id)

        with self.store.transaction() as tx:
            code = None
            for _ in range(MAX_CODE_ATTEMPTS):
                candidate = generate_game_code(self.rng)
                if not tx.code_exists(candidate):
                    code = candidate
                    break
            if code is None:
                raise CapacityExceeded("Could not allocate a game code")

            now = self.clock()
            game = tx.insert_game(GameData(code=code, created_at=now))
            host = tx.insert_player(PlayerData(game_id=game.id, name=name,
                                               session_id=session_id, joined_at=now))
            game = tx.patch_game(game.id, host_id=host.id)

        logger.info(f"Created game {game.code} hosted by {host.name}")
        return game, host

    def join_game(self, code: str, player_name: str, session_id: str) -> Tuple[GameData, PlayerData]:
        """
        Join a game by code, or rejoin it from the same device.

        Only possible in the lobby. A device that already has a player in
        the game gets that player back.

        Returns:
            tuple: (game, player)
        """
        name = _validate_identity(player_name, session_id)

        with self.store.transaction() as tx:
            game = tx.get_game_by_code(normalize_code(code))
            if game is None:
                raise NotFound("Game not found")
            game = GameManager.load_game(tx, game.id)
            if game.status != GameStatus.LOBBY:
                raise InvalidPhase("Game already started")

            existing = tx.get_player_by_session(game.id, session_id)
            if existing:
                logger.info(f"Session rejoined game {game.code} as {existing.name}")
                return game, existing

            if len(tx.get_players(game.id)) >= MAX_PLAYERS_PER_GAME:
                raise CapacityExceeded(f"Game is full ({MAX_PLAYERS_PER_GAME} players)")

            player = tx.insert_player(PlayerData(game_id=game.id, name=name,
                                                 session_id=session_id, joined_at=self.clock()))

        logger.info(f"Player {player.name} joined game {game.code}")
        return game, player

    def leave_game(self, game_id: int, session_id: str) -> bool:
        """
        Remove the device's player from a game.

        The host leaving a lobby closes the game. Outside the lobby the
        host role passes to the earliest-joined remaining player.

        Returns:
            True if a player was removed
        """
        with self.store.transaction() as tx:
            game = GameManager.load_game(tx, game_id)
            player = tx.get_player_by_session(game_id, session_id)
            if player is None:
                return False

            if game.is_lobby and player.id == game.host_id:
                tx.delete_game(game_id)
                logger.info(f"Host left game {game.code}; game closed")
                return True

            players = tx.get_players(game_id)
            order = active_turn_order(game.turn_order, players)
            position = order.index(player.id) if player.id in order else None

            tx.delete_player(player.id)
            remaining = [p for p in players if p.id != player.id]
            if not remaining:
                tx.delete_game(game_id)
                logger.info(f"Last player left game {game.code}; game closed")
                return True

            if player.id == game.host_id:
                game = tx.patch_game(game_id, host_id=remaining[0].id)
                logger.info(f"Host of game {game.code} passed to {remaining[0].name}")

            if not game.is_lobby:
                game = self.game_manager.settle_after_departure(tx, game, position)

        logger.info(f"Player {player.name} left game {game.code}")
        return True

    def kick_player(self, game_id: int, host_id: int, target_id: int) -> None:
        """Host removes a player from the lobby."""
        with self.store.transaction() as tx:
            game = GameManager.load_game(tx, game_id)
            GameManager.require_host(game, host_id, "Only the host can kick players")
            GameManager.require_status(game, GameStatus.LOBBY, "Players can only be kicked in the lobby")
            if target_id == host_id:
                raise ValidationFailed("The host cannot kick themself")
            target = GameManager.load_member(tx, game, target_id)
            tx.delete_player(target.id)

        logger.info(f"Player {target.name} kicked from game {game.code}")

    def update_settings(self, game_id: int, player_id: int, **changes: Any) -> GameData:
        """
        Change game settings while in the lobby.

        Args:
            game_id: Game to configure
            player_id: Must be the host
            **changes: Setting name to new value

        Returns:
            The updated game
        """
        validated = validate_settings_changes(changes)

        with self.store.transaction() as tx:
            game = GameManager.load_game(tx, game_id)
            GameManager.require_host(game, player_id, "Only the host can change settings")
            GameManager.require_status(game, GameStatus.LOBBY, "Settings can only change in the lobby")
            game = tx.patch_game(game_id, settings=replace(game.settings, **validated))

        logger.info(f"Game {game.code} settings updated: {sorted(validated)}")
        return game

    # Queries

    def get_game(self, game_id: int) -> Optional[GameData]:
        with self.store.transaction() as tx:
            return tx.get_game(game_id)

    def get_game_by_code(self, code: str) -> Optional[GameData]:
        with self.store.transaction() as tx:
            return tx.get_game_by_code(normalize_code(code))

    def get_players(self, game_id: int) -> List[PlayerData]:
        with self.store.transaction() as tx:
            return tx.get_players(game_id)

    def get_me(self, game_id: int, session_id: str) -> Optional[PlayerData]:
        with self.store.transaction() as tx:
            return tx.get_player_by_session(game_id, session_id)
