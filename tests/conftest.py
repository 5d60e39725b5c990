"""
Pytest fixtures for impostor game tests.
"""

import random
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

import pytest

from game import GameManager, GameStatus, MemoryGameStore, PlayerData
from lobby import LobbyManager

NAMES = ['Ana', 'Bruno', 'Carla', 'Diego', 'Elena', 'Fede', 'Gabi', 'Hugo']


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class Table:
    """A game with seated players, driven through the managers."""

    def __init__(self, lobby: LobbyManager, games: GameManager, clock: FakeClock):
        self.lobby = lobby
        self.games = games
        self.clock = clock
        self.game_id: Optional[int] = None
        self.host_id: Optional[int] = None
        self.code: Optional[str] = None

    def seat(self, count: int = 4, **settings) -> 'Table':
        names = [NAMES[i] if i < len(NAMES) else f"Jugador {i}" for i in range(count)]
        game, host = self.lobby.create_game(names[0], 'session-0')
        for i, name in enumerate(names[1:], start=1):
            self.clock.advance(1)
            self.lobby.join_game(game.code, name, f'session-{i}')
        if settings:
            self.lobby.update_settings(game.id, host.id, **settings)
        self.game_id, self.host_id, self.code = game.id, host.id, game.code
        return self

    @property
    def game(self):
        return self.lobby.get_game(self.game_id)

    @property
    def players(self) -> List[PlayerData]:
        return self.lobby.get_players(self.game_id)

    def player(self, player_id: int) -> PlayerData:
        return next(p for p in self.players if p.id == player_id)

    @property
    def impostors(self) -> List[PlayerData]:
        return [p for p in self.players if p.is_impostor]

    @property
    def crew(self) -> List[PlayerData]:
        return [p for p in self.players if not p.is_impostor]

    def active(self) -> List[PlayerData]:
        return [p for p in self.players if not p.is_eliminated]

    def start(self) -> 'Table':
        self.games.start_game(self.game_id, self.host_id)
        self.games.ready_for_clues(self.game_id, self.host_id)
        return self

    def current(self) -> Optional[PlayerData]:
        return self.games.get_current_turn_player(self.game_id)

    def give_clues(self) -> None:
        """Every active player gives a text clue, in turn."""
        for _ in range(len(self.active())):
            if self.game.status != GameStatus.CLUES:
                break
            self.games.submit_clue(self.game_id, self.current().id, 'pista')

    def confirm_turns_and_vote(self) -> None:
        for _ in range(len(self.active())):
            self.games.mark_turn_done(self.game_id, self.current().id)
        self.games.start_voting(self.game_id, self.host_id)

    def vote(self, ballots: Dict[int, Optional[int]]) -> None:
        for voter_id, target_id in ballots.items():
            self.games.submit_vote(self.game_id, voter_id, target_id)

    def everyone_votes_for(self, target_id: int) -> None:
        """Every active player votes for target_id; the target votes for someone else."""
        active = self.active()
        fallback = next(p.id for p in active if p.id != target_id)
        self.vote({p.id: (target_id if p.id != target_id else fallback) for p in active})


@pytest.fixture
def rng():
    """Seeded random source."""
    return random.Random(1234)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return MemoryGameStore()


@pytest.fixture
def game_manager(store, rng, clock):
    return GameManager(store, rng=rng, clock=clock)


@pytest.fixture
def lobby_manager(store, game_manager, rng, clock):
    return LobbyManager(store, game_manager=game_manager, rng=rng, clock=clock)


@pytest.fixture
def table(lobby_manager, game_manager, clock) -> Table:
    """Empty table; call seat() to create a game."""
    return Table(lobby_manager, game_manager, clock)


@pytest.fixture
def sql_store():
    """SqlGameStore over an in-memory SQLite database."""
    from database import SqlGameStore, init_database, make_engine, make_session_factory

    engine = make_engine('sqlite://', echo=False)
    init_database(engine)
    yield SqlGameStore(make_session_factory(engine))
    engine.dispose()


@pytest.fixture
def server(rng, clock):
    """(app, socketio) over a memory store."""
    from app import create_app

    app, socketio = create_app(store=MemoryGameStore(), rng=rng, clock=clock)
    app.config['TESTING'] = True
    return app, socketio


@pytest.fixture
def app_client(server):
    """Flask test client."""
    app, _ = server
    return app.test_client()
