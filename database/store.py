"""
SQL implementation of the game store.

One SQLAlchemy session per transaction: committed when the block
finishes, rolled back if it raises. get_game(for_update=True) locks the
game row so concurrent actions on the same game run one after another.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from game.errors import DuplicateAction, NotFound
from game.models import (
    ClueContent, ClueData, ClueKind, GameData, GameSettings, GameStatus, PlayerData,
    SETTING_FIELDS, TieBreaker, TurnMode, VoteData
)
from game.store import GameStore, StoreTransaction
from .config import SessionLocal, get_db_session
from .models import Game, Player, Clue, Vote

logger = logging.getLogger(__name__)

GAME_FIELDS = (
    'code', 'status', 'host_id', 'current_round', 'secret_word', 'taboo_words',
    'turn_order', 'current_turn_index', 'turn_started_at', 'winner', 'end_reason', 'created_at'
)
PLAYER_FIELDS = ('name', 'session_id', 'is_impostor', 'is_eliminated', 'score', 'joined_at')


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored is UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _settings_columns(settings: GameSettings) -> dict:
    columns = {name: getattr(settings, name) for name in SETTING_FIELDS}
    columns['turn_mode'] = settings.turn_mode.value
    columns['tie_breaker'] = settings.tie_breaker.value
    return columns


def _game_data(row: Game) -> GameData:
    settings = GameSettings(**{name: getattr(row, name) for name in SETTING_FIELDS})
    settings.turn_mode = TurnMode(row.turn_mode)
    settings.tie_breaker = TieBreaker(row.tie_breaker)
    return GameData(
        id=row.id,
        code=row.code,
        status=GameStatus(row.status),
        host_id=row.host_id,
        settings=settings,
        current_round=row.current_round,
        secret_word=row.secret_word,
        taboo_words=list(row.taboo_words or []),
        turn_order=list(row.turn_order or []),
        current_turn_index=row.current_turn_index,
        turn_started_at=_aware(row.turn_started_at),
        winner=row.winner,
        end_reason=row.end_reason,
        created_at=_aware(row.created_at)
    )


def _player_data(row: Player) -> PlayerData:
    return PlayerData(
        id=row.id,
        game_id=row.game_id,
        name=row.name,
        session_id=row.session_id,
        is_impostor=row.is_impostor,
        is_eliminated=row.is_eliminated,
        score=row.score,
        joined_at=_aware(row.joined_at)
    )


def _clue_data(row: Clue) -> ClueData:
    return ClueData(
        id=row.id,
        game_id=row.game_id,
        round=row.round,
        player_id=row.player_id,
        content=ClueContent(ClueKind(row.kind), row.text),
        order=row.order
    )


def _vote_data(row: Vote) -> VoteData:
    return VoteData(
        id=row.id,
        game_id=row.game_id,
        round=row.round,
        voter_id=row.voter_id,
        target_id=row.target_id
    )


class SqlStoreTransaction(StoreTransaction):
    """StoreTransaction bound to one SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    def _flush(self, message: str) -> None:
        try:
            self.session.flush()
        except IntegrityError as e:
            logger.warning(f"Integrity error: {e.orig}")
            raise DuplicateAction(message)

    def _game_row(self, game_id: int) -> Game:
        row = self.session.get(Game, game_id)
        if row is None:
            raise NotFound("Game not found")
        return row

    # Games
    def get_game(self, game_id, for_update=False):
        query = self.session.query(Game).filter(Game.id == game_id)
        if for_update:
            query = query.with_for_update()
        row = query.first()
        return _game_data(row) if row else None

    def get_game_by_code(self, code):
        row = self.session.query(Game).filter(Game.code == code).first()
        return _game_data(row) if row else None

    def insert_game(self, game):
        row = Game(**_settings_columns(game.settings))
        for name in GAME_FIELDS:
            setattr(row, name, getattr(game, name))
        row.status = game.status.value
        self.session.add(row)
        self._flush(f"Game code '{game.code}' already exists")
        return _game_data(row)

    def patch_game(self, game_id, **changes):
        row = self._game_row(game_id)
        for name, value in changes.items():
            if name == 'settings':
                for column, column_value in _settings_columns(value).items():
                    setattr(row, column, column_value)
            elif name == 'status':
                row.status = value.value
            elif name in ('taboo_words', 'turn_order'):
                setattr(row, name, list(value))
            elif name in GAME_FIELDS:
                setattr(row, name, value)
            else:
                raise AttributeError(f"GameData has no patchable field '{name}'")
        self._flush("Game update conflicts with an existing game")
        return _game_data(row)

    def delete_game(self, game_id):
        for model in (Vote, Clue, Player):
            self.session.query(model).filter(model.game_id == game_id).delete()
        self.session.query(Game).filter(Game.id == game_id).delete()

    # Players
    def get_player(self, player_id):
        row = self.session.get(Player, player_id)
        return _player_data(row) if row else None

    def get_players(self, game_id):
        rows = (self.session.query(Player)
                .filter(Player.game_id == game_id)
                .order_by(Player.joined_at, Player.id)
                .all())
        return [_player_data(row) for row in rows]

    def get_player_by_session(self, game_id, session_id):
        row = (self.session.query(Player)
               .filter(Player.game_id == game_id, Player.session_id == session_id)
               .first())
        return _player_data(row) if row else None

    def insert_player(self, player):
        self._game_row(player.game_id)
        row = Player(game_id=player.game_id)
        for name in PLAYER_FIELDS:
            setattr(row, name, getattr(player, name))
        self.session.add(row)
        self._flush("Session already has a player in this game")
        return _player_data(row)

    def patch_player(self, player_id, **changes):
        row = self.session.get(Player, player_id)
        if row is None:
            raise NotFound("Player not found")
        for name, value in changes.items():
            if name not in PLAYER_FIELDS:
                raise AttributeError(f"PlayerData has no patchable field '{name}'")
            setattr(row, name, value)
        self._flush("Player update conflicts with an existing player")
        return _player_data(row)

    def delete_player(self, player_id):
        (self.session.query(Vote)
         .filter(or_(Vote.voter_id == player_id, Vote.target_id == player_id))
         .delete())
        self.session.query(Clue).filter(Clue.player_id == player_id).delete()
        self.session.query(Player).filter(Player.id == player_id).delete()

    # Clues
    def get_clues(self, game_id, round=None):
        query = self.session.query(Clue).filter(Clue.game_id == game_id)
        if round is not None:
            query = query.filter(Clue.round == round)
        rows = query.order_by(Clue.round, Clue.order, Clue.id).all()
        return [_clue_data(row) for row in rows]

    def insert_clue(self, clue):
        row = Clue(
            game_id=clue.game_id,
            player_id=clue.player_id,
            round=clue.round,
            kind=clue.content.kind.value,
            text=clue.content.text,
            order=clue.order
        )
        self.session.add(row)
        self._flush("Already gave a clue this round")
        return _clue_data(row)

    def delete_clues(self, game_id):
        return self.session.query(Clue).filter(Clue.game_id == game_id).delete()

    # Votes
    def get_votes(self, game_id, round=None):
        query = self.session.query(Vote).filter(Vote.game_id == game_id)
        if round is not None:
            query = query.filter(Vote.round == round)
        return [_vote_data(row) for row in query.order_by(Vote.id).all()]

    def get_vote(self, game_id, round, voter_id):
        row = (self.session.query(Vote)
               .filter(Vote.game_id == game_id, Vote.round == round, Vote.voter_id == voter_id)
               .first())
        return _vote_data(row) if row else None

    def insert_vote(self, vote):
        row = Vote(game_id=vote.game_id, round=vote.round, voter_id=vote.voter_id,
                   target_id=vote.target_id)
        self.session.add(row)
        self._flush("Voter already has a vote this round")
        return _vote_data(row)

    def patch_vote(self, vote_id, **changes):
        row = self.session.get(Vote, vote_id)
        if row is None:
            raise NotFound("Vote not found")
        for name, value in changes.items():
            if name != 'target_id':
                raise AttributeError(f"VoteData has no patchable field '{name}'")
            row.target_id = value
        self._flush("Vote update conflicts with an existing vote")
        return _vote_data(row)

    def delete_votes(self, game_id):
        return self.session.query(Vote).filter(Vote.game_id == game_id).delete()


class SqlGameStore(GameStore):
    """Shared, persistent store backed by SQLAlchemy."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory or SessionLocal

    @contextmanager
    def transaction(self):
        with get_db_session(self.session_factory) as session:
            yield SqlStoreTransaction(session)
