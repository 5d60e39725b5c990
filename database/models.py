"""
Database Models for the impostor word game.

Contains all SQLAlchemy model definitions for the game.
Pure data models with no business logic.
"""

from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Boolean, ForeignKey, DateTime, JSON, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship, declarative_base

# Create the base class for models
Base = declarative_base()


def _utcnow():
    return datetime.now(timezone.utc)


class Game(Base):
    """Represents one game session, its settings and round state."""

    __tablename__ = 'games'

    id = Column(Integer, primary_key=True)
    code = Column(String(16), unique=True, nullable=False, index=True)
    status = Column(String(20), nullable=False, default='lobby')  # lobby, reveal, clues, voting, results, finished
    host_id = Column(Integer, nullable=True)  # Set right after the host player row exists

    # Settings
    category = Column(String(50), nullable=False, default='animales')
    impostor_count = Column(Integer, nullable=False, default=1)
    all_impostors = Column(Boolean, nullable=False, default=False)
    max_rounds = Column(Integer, nullable=True)
    turn_time_limit = Column(Integer, nullable=True)  # seconds
    turn_mode = Column(String(10), nullable=False, default='random')
    require_clue_text = Column(Boolean, nullable=False, default=False)
    show_category = Column(Boolean, nullable=False, default=False)
    secret_voting = Column(Boolean, nullable=False, default=False)
    allow_skip_vote = Column(Boolean, nullable=False, default=False)
    tie_breaker = Column(String(10), nullable=False, default='none')
    chained_clues = Column(Boolean, nullable=False, default=False)
    change_word_each_round = Column(Boolean, nullable=False, default=False)

    # Round state
    current_round = Column(Integer, nullable=False, default=0)
    secret_word = Column(String(100), nullable=True)
    taboo_words = Column(JSON, nullable=False, default=list)
    turn_order = Column(JSON, nullable=False, default=list)  # player ids, eliminated kept
    current_turn_index = Column(Integer, nullable=False, default=0)
    turn_started_at = Column(DateTime(timezone=True), nullable=True)
    winner = Column(String(20), nullable=True)  # crew, impostors
    end_reason = Column(String(50), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    # Relationships
    players = relationship('Player', back_populates='game', cascade='all, delete-orphan',
                           passive_deletes=True)
    clues = relationship('Clue', back_populates='game', cascade='all, delete-orphan',
                         passive_deletes=True)
    votes = relationship('Vote', back_populates='game', cascade='all, delete-orphan',
                         passive_deletes=True)

    __table_args__ = (
        Index('idx_game_status', 'status'),
    )

    def __repr__(self):
        return f"<Game(code='{self.code}', status='{self.status}')>"


class Player(Base):
    """Represents a participant in one game."""

    __tablename__ = 'players'

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey('games.id', ondelete='CASCADE'), nullable=False)
    session_id = Column(String(100), nullable=False)  # Device identity
    name = Column(String(50), nullable=False)

    is_impostor = Column(Boolean, nullable=False, default=False)
    is_eliminated = Column(Boolean, nullable=False, default=False)
    score = Column(Integer, nullable=False, default=0)

    joined_at = Column(DateTime(timezone=True), default=_utcnow)

    # Relationships
    game = relationship('Game', back_populates='players')

    __table_args__ = (
        UniqueConstraint('game_id', 'session_id', name='uq_player_game_session'),
        Index('idx_player_game_joined', 'game_id', 'joined_at'),
    )

    def __repr__(self):
        return f"<Player(name='{self.name}', game_id={self.game_id})>"


class Clue(Base):
    """One player's turn in one round."""

    __tablename__ = 'clues'

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey('games.id', ondelete='CASCADE'), nullable=False)
    player_id = Column(Integer, ForeignKey('players.id', ondelete='CASCADE'), nullable=False)
    round = Column(Integer, nullable=False)
    kind = Column(String(20), nullable=False, default='text')  # text, confirmed, timed_out
    text = Column(String(100), nullable=True)
    order = Column('turn_order', Integer, nullable=False)

    created_at = Column(DateTime(timezone=True), default=_utcnow)

    # Relationships
    game = relationship('Game', back_populates='clues')

    __table_args__ = (
        UniqueConstraint('game_id', 'round', 'player_id', name='uq_clue_game_round_player'),
        Index('idx_clue_game_round', 'game_id', 'round'),
    )

    def __repr__(self):
        return f"<Clue(round={self.round}, player_id={self.player_id}, kind='{self.kind}')>"


class Vote(Base):
    """Represents a voter's current choice in one round; no target means skip."""

    __tablename__ = 'votes'

    id = Column(Integer, primary_key=True)
    game_id = Column(Integer, ForeignKey('games.id', ondelete='CASCADE'), nullable=False)
    voter_id = Column(Integer, ForeignKey('players.id', ondelete='CASCADE'), nullable=False)
    target_id = Column(Integer, ForeignKey('players.id', ondelete='CASCADE'), nullable=True)
    round = Column(Integer, nullable=False)

    cast_at = Column(DateTime(timezone=True), default=_utcnow)

    # Relationships
    game = relationship('Game', back_populates='votes')

    __table_args__ = (
        UniqueConstraint('game_id', 'round', 'voter_id', name='uq_vote_game_round_voter'),
        Index('idx_vote_game_round', 'game_id', 'round'),
    )

    def __repr__(self):
        return f"<Vote(round={self.round}, voter_id={self.voter_id}, target_id={self.target_id})>"
