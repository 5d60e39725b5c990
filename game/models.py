"""
Data models for game management.

These represent the game entities that cross the store boundary:
games, players, clues and votes, plus the round results built from them.
"""

from dataclasses import dataclass, field, fields
from typing import List, Optional, Dict, Any
from datetime import datetime, timedelta
from enum import Enum

from utils.constants import CLUE_DISPLAY


class GameStatus(Enum):
    """Game phase enumeration."""
    LOBBY = "lobby"
    REVEAL = "reveal"
    CLUES = "clues"
    VOTING = "voting"
    RESULTS = "results"
    FINISHED = "finished"


class TurnMode(Enum):
    """How turn order is built each round."""
    RANDOM = "random"
    FIXED = "fixed"


class TieBreaker(Enum):
    """Policy for a voting tie among top-voted players."""
    NONE = "none"
    ALL = "all"
    RANDOM = "random"


class ClueKind(Enum):
    """What a recorded turn contains."""
    TEXT = "text"
    CONFIRMED = "confirmed"
    TIMED_OUT = "timed_out"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class ClueContent:
    """
    Content of a single turn.

    Either free text, a confirmation that the clue was said out loud,
    or a marker that the turn timer ran out.
    """
    kind: ClueKind
    text: Optional[str] = None

    @classmethod
    def from_text(cls, text: str) -> 'ClueContent':
        return cls(ClueKind.TEXT, text)

    @classmethod
    def confirmed(cls) -> 'ClueContent':
        return cls(ClueKind.CONFIRMED)

    @classmethod
    def timed_out(cls) -> 'ClueContent':
        return cls(ClueKind.TIMED_OUT)

    @property
    def is_text(self) -> bool:
        return self.kind == ClueKind.TEXT

    def display(self) -> str:
        """Text shown to players for this turn."""
        if self.kind == ClueKind.CONFIRMED:
            return CLUE_DISPLAY['CONFIRMED']
        if self.kind == ClueKind.TIMED_OUT:
            return CLUE_DISPLAY['TIMED_OUT']
        return self.text or ''


@dataclass
class GameSettings:
    """Host-configurable settings, editable only in the lobby."""
    category: str = "animales"
    impostor_count: int = 1
    all_impostors: bool = False
    max_rounds: Optional[int] = None
    turn_time_limit: Optional[int] = None  # seconds
    turn_mode: TurnMode = TurnMode.RANDOM
    require_clue_text: bool = False
    show_category: bool = False
    secret_voting: bool = False
    allow_skip_vote: bool = False
    tie_breaker: TieBreaker = TieBreaker.NONE
    chained_clues: bool = False
    change_word_each_round: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data['turn_mode'] = self.turn_mode.value
        data['tie_breaker'] = self.tie_breaker.value
        return data


SETTING_FIELDS = tuple(f.name for f in fields(GameSettings))


@dataclass
class GameData:
    """Represents one game session."""
    code: str
    id: Optional[int] = None
    status: GameStatus = GameStatus.LOBBY
    host_id: Optional[int] = None
    settings: GameSettings = field(default_factory=GameSettings)
    current_round: int = 0
    secret_word: Optional[str] = None
    taboo_words: List[str] = field(default_factory=list)
    turn_order: List[int] = field(default_factory=list)
    current_turn_index: int = 0
    turn_started_at: Optional[datetime] = None
    winner: Optional[str] = None
    end_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_lobby(self) -> bool:
        return self.status == GameStatus.LOBBY

    @property
    def is_finished(self) -> bool:
        return self.status == GameStatus.FINISHED

    @property
    def turn_deadline(self) -> Optional[datetime]:
        """When the current turn times out, if a timer is running."""
        if self.turn_started_at is None or not self.settings.turn_time_limit:
            return None
        return self.turn_started_at + timedelta(seconds=self.settings.turn_time_limit)

    def to_dict(self, include_secret: bool = False) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Args:
            include_secret: Whether to include the secret word and taboo list
        """
        data = {
            'id': self.id,
            'code': self.code,
            'status': self.status.value,
            'host_id': self.host_id,
            'settings': self.settings.to_dict(),
            'current_round': self.current_round,
            'turn_order': list(self.turn_order),
            'current_turn_index': self.current_turn_index,
            'turn_started_at': _iso(self.turn_started_at),
            'turn_deadline': _iso(self.turn_deadline),
            'winner': self.winner,
            'end_reason': self.end_reason,
            'created_at': _iso(self.created_at)
        }
        if include_secret:
            data.update({
                'secret_word': self.secret_word,
                'taboo_words': list(self.taboo_words)
            })
        return data


@dataclass
class PlayerData:
    """Represents a participant in one game."""
    game_id: int
    name: str
    session_id: str
    id: Optional[int] = None
    is_impostor: bool = False
    is_eliminated: bool = False
    score: int = 0
    joined_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return not self.is_eliminated

    def to_dict(self, include_role: bool = False) -> Dict[str, Any]:
        """
        Convert to dictionary for JSON serialization.

        Args:
            include_role: Whether to reveal if this player is an impostor
        """
        data = {
            'id': self.id,
            'game_id': self.game_id,
            'name': self.name,
            'is_eliminated': self.is_eliminated,
            'score': self.score,
            'joined_at': _iso(self.joined_at)
        }
        if include_role:
            data['is_impostor'] = self.is_impostor
        return data


@dataclass
class ClueData:
    """One player's turn in one round."""
    game_id: int
    round: int
    player_id: int
    content: ClueContent
    order: int
    id: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'round': self.round,
            'player_id': self.player_id,
            'kind': self.content.kind.value,
            'clue': self.content.display(),
            'order': self.order
        }


@dataclass
class VoteData:
    """A voter's current choice for one round; no target means skip."""
    game_id: int
    round: int
    voter_id: int
    target_id: Optional[int] = None
    id: Optional[int] = None

    @property
    def is_skip(self) -> bool:
        return self.target_id is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'round': self.round,
            'voter_id': self.voter_id,
            'target_id': self.target_id
        }


@dataclass
class VoteTally:
    """
    Vote counts for a round and the elimination they resolve to.

    For the random tie-breaker a preview lists the whole tied set in
    eliminated_ids and sets pending_random; the binding draw happens
    when the round is advanced.
    """
    vote_counts: Dict[int, int] = field(default_factory=dict)
    skip_votes: int = 0
    max_votes: int = 0
    top_ids: List[int] = field(default_factory=list)
    eliminated_ids: List[int] = field(default_factory=list)
    is_tie: bool = False
    was_skipped: bool = False
    tie_breaker: TieBreaker = TieBreaker.NONE
    pending_random: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'vote_counts': {str(k): v for k, v in self.vote_counts.items()},
            'skip_votes': self.skip_votes,
            'max_votes': self.max_votes,
            'top_ids': list(self.top_ids),
            'eliminated_ids': list(self.eliminated_ids),
            'is_tie': self.is_tie,
            'was_skipped': self.was_skipped,
            'tie_breaker': self.tie_breaker.value,
            'pending_random': self.pending_random
        }


@dataclass
class RoundResults:
    """Result preview served while a game is in results or finished."""
    round: int
    tally: VoteTally
    eliminated_players: List[PlayerData] = field(default_factory=list)
    max_rounds: Optional[int] = None
    secret_word: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = self.tally.to_dict()
        data.update({
            'round': self.round,
            'eliminated_players': [p.to_dict() for p in self.eliminated_players],
            'max_rounds': self.max_rounds,
            'secret_word': self.secret_word
        })
        return data


@dataclass
class RoundOutcome:
    """Binding record of an advanced round."""
    round: int
    tally: VoteTally
    eliminated_ids: List[int] = field(default_factory=list)
    score_changes: Dict[int, int] = field(default_factory=dict)
    finished: bool = False
    winner: Optional[str] = None
    end_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'round': self.round,
            'tally': self.tally.to_dict(),
            'eliminated_ids': list(self.eliminated_ids),
            'score_changes': {str(k): v for k, v in self.score_changes.items()},
            'finished': self.finished,
            'winner': self.winner,
            'end_reason': self.end_reason
        }
