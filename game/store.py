"""
Game session store.

The state machine reads and writes games, players, clues and votes only
through a StoreTransaction. Everything done inside one transaction is
committed together or not at all, and transactions touching the same
game never interleave.

MemoryGameStore keeps everything in process memory; it backs the local
pass-and-play mode and the test suite. SqlGameStore (database package)
is the shared, persistent implementation.
"""

import copy
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from .errors import DuplicateAction, NotFound
from .models import ClueData, GameData, PlayerData, VoteData

logger = logging.getLogger(__name__)


class StoreTransaction(ABC):
    """Unit of work over one consistent view of the store."""

    # Games
    @abstractmethod
    def get_game(self, game_id: int, for_update: bool = False) -> Optional[GameData]: ...

    @abstractmethod
    def get_game_by_code(self, code: str) -> Optional[GameData]: ...

    def code_exists(self, code: str) -> bool:
        return self.get_game_by_code(code) is not None

    @abstractmethod
    def insert_game(self, game: GameData) -> GameData: ...

    @abstractmethod
    def patch_game(self, game_id: int, **changes) -> GameData: ...

    @abstractmethod
    def delete_game(self, game_id: int) -> None:
        """Delete a game with all of its players, clues and votes."""

    # Players
    @abstractmethod
    def get_player(self, player_id: int) -> Optional[PlayerData]: ...

    @abstractmethod
    def get_players(self, game_id: int) -> List[PlayerData]:
        """Players of a game in join order."""

    @abstractmethod
    def get_player_by_session(self, game_id: int, session_id: str) -> Optional[PlayerData]: ...

    @abstractmethod
    def insert_player(self, player: PlayerData) -> PlayerData: ...

    @abstractmethod
    def patch_player(self, player_id: int, **changes) -> PlayerData: ...

    @abstractmethod
    def delete_player(self, player_id: int) -> None:
        """Delete a player together with their clues and any vote cast by or against them."""

    # Clues
    @abstractmethod
    def get_clues(self, game_id: int, round: Optional[int] = None) -> List[ClueData]:
        """Clues of a game (optionally one round) sorted by turn order."""

    @abstractmethod
    def insert_clue(self, clue: ClueData) -> ClueData: ...

    @abstractmethod
    def delete_clues(self, game_id: int) -> int: ...

    # Votes
    @abstractmethod
    def get_votes(self, game_id: int, round: Optional[int] = None) -> List[VoteData]: ...

    @abstractmethod
    def get_vote(self, game_id: int, round: int, voter_id: int) -> Optional[VoteData]: ...

    @abstractmethod
    def insert_vote(self, vote: VoteData) -> VoteData: ...

    @abstractmethod
    def patch_vote(self, vote_id: int, **changes) -> VoteData: ...

    @abstractmethod
    def delete_votes(self, game_id: int) -> int: ...


class GameStore(ABC):
    """Factory of transactions."""

    @abstractmethod
    def transaction(self) -> Iterator[StoreTransaction]:
        """Context manager yielding a StoreTransaction."""


def _patch(entity, changes: Dict):
    for name, value in changes.items():
        if not hasattr(entity, name) or name == 'id':
            raise AttributeError(f"{type(entity).__name__} has no patchable field '{name}'")
        setattr(entity, name, value)
    return entity


class _MemoryTables:
    """Raw tables of the memory store."""

    def __init__(self):
        self.games: Dict[int, GameData] = {}
        self.players: Dict[int, PlayerData] = {}
        self.clues: Dict[int, ClueData] = {}
        self.votes: Dict[int, VoteData] = {}
        self.next_id = 1

    def allocate_id(self) -> int:
        new_id = self.next_id
        self.next_id += 1
        return new_id


class MemoryStoreTransaction(StoreTransaction):
    """Transaction over the memory store's tables. Entities are copied in and out."""

    def __init__(self, tables: _MemoryTables):
        self.tables = tables

    # Games
    def get_game(self, game_id, for_update=False):
        return copy.deepcopy(self.tables.games.get(game_id))

    def get_game_by_code(self, code):
        for game in self.tables.games.values():
            if game.code == code:
                return copy.deepcopy(game)
        return None

    def insert_game(self, game):
        if self.code_exists(game.code):
            raise DuplicateAction(f"Game code '{game.code}' already exists")
        game = copy.deepcopy(game)
        game.id = self.tables.allocate_id()
        self.tables.games[game.id] = game
        return copy.deepcopy(game)

    def patch_game(self, game_id, **changes):
        game = self.tables.games.get(game_id)
        if game is None:
            raise NotFound("Game not found")
        return copy.deepcopy(_patch(game, copy.deepcopy(changes)))

    def delete_game(self, game_id):
        self.tables.games.pop(game_id, None)
        for table in (self.tables.players, self.tables.clues, self.tables.votes):
            for entity_id in [k for k, v in table.items() if v.game_id == game_id]:
                del table[entity_id]

    # Players
    def get_player(self, player_id):
        return copy.deepcopy(self.tables.players.get(player_id))

    def get_players(self, game_id):
        players = [p for p in self.tables.players.values() if p.game_id == game_id]
        players.sort(key=lambda p: (p.joined_at is None, p.joined_at, p.id))
        return copy.deepcopy(players)

    def get_player_by_session(self, game_id, session_id):
        for player in self.tables.players.values():
            if player.game_id == game_id and player.session_id == session_id:
                return copy.deepcopy(player)
        return None

    def insert_player(self, player):
        if player.game_id not in self.tables.games:
            raise NotFound("Game not found")
        if self.get_player_by_session(player.game_id, player.session_id):
            raise DuplicateAction("Session already has a player in this game")
        player = copy.deepcopy(player)
        player.id = self.tables.allocate_id()
        self.tables.players[player.id] = player
        return copy.deepcopy(player)

    def patch_player(self, player_id, **changes):
        player = self.tables.players.get(player_id)
        if player is None:
            raise NotFound("Player not found")
        return copy.deepcopy(_patch(player, changes))

    def delete_player(self, player_id):
        self.tables.players.pop(player_id, None)
        for clue_id in [k for k, c in self.tables.clues.items() if c.player_id == player_id]:
            del self.tables.clues[clue_id]
        for vote_id in [k for k, v in self.tables.votes.items()
                        if player_id in (v.voter_id, v.target_id)]:
            del self.tables.votes[vote_id]

    # Clues
    def get_clues(self, game_id, round=None):
        clues = [c for c in self.tables.clues.values()
                 if c.game_id == game_id and (round is None or c.round == round)]
        clues.sort(key=lambda c: (c.round, c.order, c.id))
        return copy.deepcopy(clues)

    def insert_clue(self, clue):
        for existing in self.tables.clues.values():
            if (existing.game_id, existing.round, existing.player_id) == (clue.game_id, clue.round, clue.player_id):
                raise DuplicateAction("Already gave a clue this round")
        clue = copy.deepcopy(clue)
        clue.id = self.tables.allocate_id()
        self.tables.clues[clue.id] = clue
        return copy.deepcopy(clue)

    def delete_clues(self, game_id):
        doomed = [k for k, c in self.tables.clues.items() if c.game_id == game_id]
        for clue_id in doomed:
            del self.tables.clues[clue_id]
        return len(doomed)

    # Votes
    def get_votes(self, game_id, round=None):
        votes = [v for v in self.tables.votes.values()
                 if v.game_id == game_id and (round is None or v.round == round)]
        votes.sort(key=lambda v: v.id)
        return copy.deepcopy(votes)

    def get_vote(self, game_id, round, voter_id):
        for vote in self.tables.votes.values():
            if (vote.game_id, vote.round, vote.voter_id) == (game_id, round, voter_id):
                return copy.deepcopy(vote)
        return None

    def insert_vote(self, vote):
        if self.get_vote(vote.game_id, vote.round, vote.voter_id):
            raise DuplicateAction("Voter already has a vote this round")
        vote = copy.deepcopy(vote)
        vote.id = self.tables.allocate_id()
        self.tables.votes[vote.id] = vote
        return copy.deepcopy(vote)

    def patch_vote(self, vote_id, **changes):
        vote = self.tables.votes.get(vote_id)
        if vote is None:
            raise NotFound("Vote not found")
        return copy.deepcopy(_patch(vote, changes))

    def delete_votes(self, game_id):
        doomed = [k for k, v in self.tables.votes.items() if v.game_id == game_id]
        for vote_id in doomed:
            del self.tables.votes[vote_id]
        return len(doomed)


class MemoryGameStore(GameStore):
    """
    Process-local store.

    A single re-entrant lock serializes transactions; the tables are
    snapshotted on entry and restored if the transaction raises.
    """

    def __init__(self):
        self._tables = _MemoryTables()
        self._lock = threading.RLock()

    @contextmanager
    def transaction(self):
        with self._lock:
            snapshot = copy.deepcopy(self._tables)
            try:
                yield MemoryStoreTransaction(self._tables)
            except Exception:
                self._tables.__dict__.update(snapshot.__dict__)
                logger.debug("Memory store transaction rolled back")
                raise
