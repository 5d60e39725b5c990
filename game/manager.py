"""
Game Manager - the round state machine.

Owns every phase transition after the lobby: role assignment, the clue
turns, voting, elimination, scoring and the win check. Each operation
runs inside one store transaction, so a rejected action leaves no trace
and concurrent actions on the same game never interleave.

Phases: lobby -> reveal -> clues -> voting -> results -> (reveal | finished),
and finished -> lobby through play_again.
"""

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from utils.constants import MIN_PLAYERS_TO_START
from utils.helpers import sanitize_clue, validate_clue, first_letter, last_letter
from utils.words import pick_word
from . import views
from .errors import (
    NotFound, PermissionDenied, InvalidPhase, OutOfTurn, DuplicateAction, ValidationFailed
)
from .logic import (
    apply_eliminations, score_eliminations, check_win_condition, survival_bonus,
    merge_score_changes, impostor_count_for
)
from .models import (
    ClueContent, ClueData, GameData, GameStatus, PlayerData, RoundOutcome, RoundResults,
    VoteData
)
from .store import GameStore, StoreTransaction
from .turns import active_turn_order, build_turn_order, current_turn_player_id, shuffle
from .voting import resolve_elimination

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class GameManager:
    """Runs rounds of a game against a GameStore."""

    def __init__(self, store: GameStore, rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize the game manager.

        Args:
            store: Store holding games, players, clues and votes
            rng: Random source for roles, words, turn order and tie-breaks
            clock: Returns the current time; timezone-aware UTC by default
        """
        self.store = store
        self.rng = rng or random.Random()
        self.clock = clock or utc_now

    # ------------------------------------------------------------------
    # Shared checks
    # ------------------------------------------------------------------

    @staticmethod
    def load_game(tx: StoreTransaction, game_id: int) -> GameData:
        game = tx.get_game(game_id, for_update=True)
        if game is None:
            raise NotFound("Game not found")
        return game

    @staticmethod
    def require_host(game: GameData, player_id: int, message: str) -> None:
        if game.host_id != player_id:
            raise PermissionDenied(message)

    @staticmethod
    def require_status(game: GameData, status: GameStatus, message: str) -> None:
        if game.status != status:
            raise InvalidPhase(message)

    @staticmethod
    def load_member(tx: StoreTransaction, game: GameData, player_id: int,
                    message: str = "Player not found") -> PlayerData:
        player = tx.get_player(player_id)
        if player is None or player.game_id != game.id:
            raise NotFound(message)
        return player

    def _timer_start(self, game: GameData) -> Optional[datetime]:
        return self.clock() if game.settings.turn_time_limit else None

    # ------------------------------------------------------------------
    # Lobby -> reveal -> clues
    # ------------------------------------------------------------------

    def start_game(self, game_id: int, player_id: int) -> GameData:
        """
        Assign roles, pick the secret word and build the first turn order.

        Args:
            game_id: Game to start
            player_id: Must be the host

        Returns:
            The game, now in reveal
        """
        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_host(game, player_id, "Only the host can start the game")
            self.require_status(game, GameStatus.LOBBY, "Game already started")

            players = tx.get_players(game_id)
            if len(players) < MIN_PLAYERS_TO_START:
                raise ValidationFailed(f"Need at least {MIN_PLAYERS_TO_START} players")

            settings = game.settings
            count = impostor_count_for(len(players), settings.impostor_count, settings.all_impostors)
            impostor_ids = set(shuffle([p.id for p in players], self.rng)[:count])
            for player in players:
                player.is_impostor = player.id in impostor_ids
                player.is_eliminated = False
                tx.patch_player(player.id, is_impostor=player.is_impostor, is_eliminated=False)

            secret_word, taboo_words = pick_word(settings.category, self.rng)
            turn_order = build_turn_order(players, settings.turn_mode, 1, self.rng)

            game = tx.patch_game(
                game_id,
                status=GameStatus.REVEAL,
                current_round=1,
                secret_word=secret_word,
                taboo_words=taboo_words,
                turn_order=turn_order,
                current_turn_index=0,
                turn_started_at=None,
                winner=None,
                end_reason=None
            )

        logger.info(f"Started game {game.code}: {len(players)} players, {count} impostor(s)")
        return game

    def ready_for_clues(self, game_id: int, player_id: int) -> GameData:
        """Host moves the game from reveal to clues; starts the turn timer if configured."""
        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_host(game, player_id, "Only the host can advance")
            self.require_status(game, GameStatus.REVEAL, "Not in reveal phase")
            game = tx.patch_game(game_id, status=GameStatus.CLUES,
                                 turn_started_at=self._timer_start(game))

        logger.info(f"Game {game.code} round {game.current_round}: clues started")
        return game

    # ------------------------------------------------------------------
    # Clue turns
    # ------------------------------------------------------------------

    def _validate_turn(self, tx: StoreTransaction, game: GameData, player_id: int) -> List[int]:
        """Check that player_id holds the current turn; returns the active turn order."""
        player = self.load_member(tx, game, player_id)
        if player.is_eliminated:
            raise OutOfTurn("Eliminated players cannot give clues")

        order = active_turn_order(game.turn_order, tx.get_players(game.id))
        if not order:
            raise InvalidPhase("Turn order not set")
        if game.current_turn_index >= len(order) or order[game.current_turn_index] != player_id:
            raise OutOfTurn("Not your turn")
        return order

    @staticmethod
    def _has_clue(clues: List[ClueData], player_id: int) -> bool:
        return any(c.player_id == player_id for c in clues)

    def _advance_turn(self, tx: StoreTransaction, game: GameData, order: List[int],
                      auto_voting: bool) -> GameData:
        """
        Move past the current turn.

        After the last active player the game goes to voting only when
        auto_voting is set and clue text is required; otherwise it stays in
        clues on the last index until the host starts voting.
        """
        next_index = game.current_turn_index + 1
        if next_index < len(order):
            return tx.patch_game(game.id, current_turn_index=next_index,
                                 turn_started_at=self._timer_start(game))

        if auto_voting and game.settings.require_clue_text:
            logger.info(f"Game {game.code} round {game.current_round}: all clues in, voting")
            return tx.patch_game(game.id, status=GameStatus.VOTING, current_turn_index=0,
                                 turn_started_at=None)

        return tx.patch_game(game.id, turn_started_at=None)

    @staticmethod
    def required_letter(game: GameData, round_clues: List[ClueData]) -> Optional[str]:
        """
        Letter the next clue must start with under chained clues.

        Taken from the last character of the latest clue; a confirmed or
        timed-out turn breaks the chain.
        """
        if not game.settings.chained_clues or not round_clues:
            return None
        latest = max(round_clues, key=lambda c: c.order)
        if not latest.content.is_text:
            return None
        return last_letter(latest.content.text) or None

    def submit_clue(self, game_id: int, player_id: int, clue: str) -> GameData:
        """
        Record the current player's clue and advance the turn.

        Args:
            game_id: Game in the clues phase
            player_id: Must hold the current turn
            clue: Clue text

        Returns:
            The updated game
        """
        text = sanitize_clue(clue)
        is_valid, error = validate_clue(text)
        if not is_valid:
            raise ValidationFailed(error)

        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_status(game, GameStatus.CLUES, "Not in clues phase")
            order = self._validate_turn(tx, game, player_id)

            round_clues = tx.get_clues(game_id, game.current_round)
            if self._has_clue(round_clues, player_id):
                raise DuplicateAction("Already gave a clue this round")

            letter = self.required_letter(game, round_clues)
            if letter and first_letter(text) != letter:
                raise ValidationFailed(f'Clue must start with "{letter}"')

            tx.insert_clue(ClueData(
                game_id=game_id,
                round=game.current_round,
                player_id=player_id,
                content=ClueContent.from_text(text),
                order=game.current_turn_index
            ))
            game = self._advance_turn(tx, game, order, auto_voting=True)

        logger.info(f"Game {game.code} round {game.current_round}: clue from player {player_id}")
        return game

    def mark_turn_done(self, game_id: int, player_id: int) -> GameData:
        """Confirm a clue said out loud; never moves to voting by itself."""
        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_status(game, GameStatus.CLUES, "Not in clues phase")
            order = self._validate_turn(tx, game, player_id)

            if self._has_clue(tx.get_clues(game_id, game.current_round), player_id):
                raise DuplicateAction("Already marked done this round")

            tx.insert_clue(ClueData(
                game_id=game_id,
                round=game.current_round,
                player_id=player_id,
                content=ClueContent.confirmed(),
                order=game.current_turn_index
            ))
            game = self._advance_turn(tx, game, order, auto_voting=False)

        logger.info(f"Game {game.code} round {game.current_round}: player {player_id} done")
        return game

    def timeout_turn(self, game_id: int) -> bool:
        """
        Close the current turn after its timer ran out.

        Safe to call from any number of clients: nothing happens while the
        deadline is still ahead or once the current player has a clue.

        Returns:
            True if a timed-out turn was recorded
        """
        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_status(game, GameStatus.CLUES, "Not in clues phase")
            if not game.settings.turn_time_limit:
                raise ValidationFailed("No time limit configured")

            order = active_turn_order(game.turn_order, tx.get_players(game_id))
            if game.current_turn_index >= len(order):
                return False

            deadline = game.turn_deadline
            if deadline is not None and self.clock() < deadline:
                return False

            current_id = order[game.current_turn_index]
            if self._has_clue(tx.get_clues(game_id, game.current_round), current_id):
                return False

            tx.insert_clue(ClueData(
                game_id=game_id,
                round=game.current_round,
                player_id=current_id,
                content=ClueContent.timed_out(),
                order=game.current_turn_index
            ))
            game = self._advance_turn(tx, game, order, auto_voting=True)

        logger.info(f"Game {game.code} round {game.current_round}: player {current_id} timed out")
        return True

    def start_voting(self, game_id: int, player_id: int) -> GameData:
        """Host ends the clue phase."""
        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_host(game, player_id, "Only the host can start voting")
            self.require_status(game, GameStatus.CLUES, "Not in clues phase")
            game = tx.patch_game(game_id, status=GameStatus.VOTING, current_turn_index=0,
                                 turn_started_at=None)

        logger.info(f"Game {game.code} round {game.current_round}: voting started by host")
        return game

    # ------------------------------------------------------------------
    # Voting and results
    # ------------------------------------------------------------------

    def submit_vote(self, game_id: int, voter_id: int, target_id: Optional[int] = None) -> GameData:
        """
        Cast or change a vote for the current round.

        Args:
            game_id: Game in the voting phase
            voter_id: Non-eliminated player voting
            target_id: Player to eliminate; None to skip (if allowed)

        Returns:
            The game, in results once every active player has voted
        """
        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_status(game, GameStatus.VOTING, "Not in voting phase")
            self._record_vote(tx, game, voter_id, target_id)
            game = self._close_voting_if_complete(tx, game)

        logger.info(f"Game {game.code} round {game.current_round}: vote from player {voter_id}")
        return game

    def submit_votes(self, game_id: int, votes: Dict[int, Optional[int]]) -> GameData:
        """
        Cast several votes at once; either all of them are stored or none.

        Args:
            game_id: Game in the voting phase
            votes: Voter id to target id (None for skip)

        Returns:
            The game, in results once every active player has voted
        """
        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_status(game, GameStatus.VOTING, "Not in voting phase")
            for voter_id, target_id in votes.items():
                self._record_vote(tx, game, voter_id, target_id)
            game = self._close_voting_if_complete(tx, game)

        logger.info(f"Game {game.code} round {game.current_round}: {len(votes)} votes recorded")
        return game

    def _record_vote(self, tx: StoreTransaction, game: GameData, voter_id: int,
                     target_id: Optional[int]) -> None:
        voter = self.load_member(tx, game, voter_id, "Voter not found")
        if voter.is_eliminated:
            raise OutOfTurn("Eliminated players cannot vote")

        if target_id is None:
            if not game.settings.allow_skip_vote:
                raise ValidationFailed("Skip vote is not allowed")
        else:
            target = self.load_member(tx, game, target_id, "Target not found")
            if target.is_eliminated:
                raise ValidationFailed("Cannot vote for an eliminated player")

        existing = tx.get_vote(game.id, game.current_round, voter_id)
        if existing:
            tx.patch_vote(existing.id, target_id=target_id)
        else:
            tx.insert_vote(VoteData(game_id=game.id, round=game.current_round,
                                    voter_id=voter_id, target_id=target_id))

    @staticmethod
    def _close_voting_if_complete(tx: StoreTransaction, game: GameData) -> GameData:
        active = [p for p in tx.get_players(game.id) if not p.is_eliminated]
        votes = tx.get_votes(game.id, game.current_round)
        if active and len(votes) >= len(active):
            logger.info(f"Game {game.code} round {game.current_round}: all votes in")
            return tx.patch_game(game.id, status=GameStatus.RESULTS)
        return game

    def get_round_results(self, game_id: int) -> Optional[RoundResults]:
        """
        Tally preview for the current round.

        Only available in results or finished. With the random tie-breaker
        the whole tied set is reported as pending; the draw that counts is
        made by next_round.
        """
        with self.store.transaction() as tx:
            game = tx.get_game(game_id)
            if game is None:
                raise NotFound("Game not found")
            if game.status not in (GameStatus.RESULTS, GameStatus.FINISHED):
                return None

            votes = tx.get_votes(game_id, game.current_round)
            tally = resolve_elimination(votes, game.settings.tie_breaker, preview=True)
            eliminated = [p for p in (tx.get_player(pid) for pid in tally.eliminated_ids) if p]

            return RoundResults(
                round=game.current_round,
                tally=tally,
                eliminated_players=eliminated,
                max_rounds=game.settings.max_rounds,
                secret_word=game.secret_word
            )

    def next_round(self, game_id: int, player_id: int) -> RoundOutcome:
        """
        Apply the round's elimination and scores, then finish or start the next round.

        Args:
            game_id: Game in results
            player_id: Must be the host

        Returns:
            RoundOutcome describing what was applied
        """
        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_host(game, player_id, "Only the host can advance")
            self.require_status(game, GameStatus.RESULTS, "Not in results phase")

            votes = tx.get_votes(game_id, game.current_round)
            tally = resolve_elimination(votes, game.settings.tie_breaker, rng=self.rng)

            players = tx.get_players(game_id)
            eliminated = apply_eliminations(players, tally.eliminated_ids)
            changes = score_eliminations(players, eliminated, votes)
            win = check_win_condition(players, game.current_round, game.settings.max_rounds)
            if win and win.survival_bonus:
                changes = merge_score_changes(changes, survival_bonus(players))

            eliminated_ids = {p.id for p in eliminated}
            for player in players:
                patch: Dict[str, Any] = {}
                if player.id in eliminated_ids:
                    patch['is_eliminated'] = True
                if changes.get(player.id):
                    player.score += changes[player.id]
                    patch['score'] = player.score
                if patch:
                    tx.patch_player(player.id, **patch)

            outcome = RoundOutcome(
                round=game.current_round,
                tally=tally,
                eliminated_ids=[p.id for p in eliminated],
                score_changes=changes
            )

            if win:
                game = tx.patch_game(game_id, status=GameStatus.FINISHED, winner=win.winner,
                                     end_reason=win.reason, turn_started_at=None)
                outcome.finished = True
                outcome.winner = win.winner
                outcome.end_reason = win.reason
                logger.info(f"Game {game.code} finished after round {game.current_round}: "
                            f"{win.winner} win ({win.reason})")
                return outcome

            secret_word, taboo_words = game.secret_word, game.taboo_words
            if game.settings.change_word_each_round:
                secret_word, taboo_words = pick_word(game.settings.category, self.rng)

            remaining = [p for p in players if not p.is_eliminated]
            next_number = game.current_round + 1
            game = tx.patch_game(
                game_id,
                status=GameStatus.REVEAL,
                current_round=next_number,
                secret_word=secret_word,
                taboo_words=taboo_words,
                turn_order=build_turn_order(remaining, game.settings.turn_mode, next_number, self.rng),
                current_turn_index=0,
                turn_started_at=None
            )

        logger.info(f"Game {game.code}: round {outcome.round} closed, "
                    f"eliminated {outcome.eliminated_ids}, round {game.current_round} begins")
        return outcome

    def play_again(self, game_id: int, player_id: int) -> GameData:
        """Rewind a finished game to the lobby. Scores are kept."""
        with self.store.transaction() as tx:
            game = self.load_game(tx, game_id)
            self.require_host(game, player_id, "Only the host can restart")
            self.require_status(game, GameStatus.FINISHED, "Game not finished")

            for player in tx.get_players(game_id):
                tx.patch_player(player.id, is_impostor=False, is_eliminated=False)
            removed_clues = tx.delete_clues(game_id)
            removed_votes = tx.delete_votes(game_id)

            game = tx.patch_game(
                game_id,
                status=GameStatus.LOBBY,
                current_round=0,
                secret_word=None,
                taboo_words=[],
                turn_order=[],
                current_turn_index=0,
                turn_started_at=None,
                winner=None,
                end_reason=None
            )

        logger.info(f"Game {game.code} reset to lobby ({removed_clues} clues, {removed_votes} votes removed)")
        return game

    # ------------------------------------------------------------------
    # Departures
    # ------------------------------------------------------------------

    def settle_after_departure(self, tx: StoreTransaction, game: GameData,
                               departed_position: Optional[int]) -> GameData:
        """
        Keep a running round consistent after a player left.

        Must run in the transaction that removed the player. The clue turn
        pointer keeps pointing at the same player (or the next one if the
        current player left); a vote count that is now complete closes voting.

        Args:
            tx: Open transaction
            game: Game as it was before the departure
            departed_position: Index the player had in the active turn order
        """
        if game.status == GameStatus.CLUES:
            index = game.current_turn_index
            if departed_position is not None and departed_position < index:
                index -= 1
            order = active_turn_order(game.turn_order, tx.get_players(game.id))
            if index < len(order):
                timer = game.turn_started_at
                if departed_position == game.current_turn_index:
                    timer = self._timer_start(game)
                return tx.patch_game(game.id, current_turn_index=index, turn_started_at=timer)
            if game.settings.require_clue_text:
                return tx.patch_game(game.id, status=GameStatus.VOTING, current_turn_index=0,
                                     turn_started_at=None)
            return tx.patch_game(game.id, current_turn_index=max(len(order) - 1, 0),
                                 turn_started_at=None)

        if game.status == GameStatus.VOTING:
            return self._close_voting_if_complete(tx, game)

        return game

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_my_role(self, game_id: int, session_id: str) -> Optional[Dict[str, Any]]:
        """Role card for a device: impostors get no secret word."""
        with self.store.transaction() as tx:
            game = tx.get_game(game_id)
            player = tx.get_player_by_session(game_id, session_id) if game else None
            if not game or not player:
                return None
            return views.role_card(game, player)

    def get_clues(self, game_id: int, round: Optional[int] = None) -> List[ClueData]:
        """Clues of a round; the current round when round is omitted."""
        with self.store.transaction() as tx:
            game = tx.get_game(game_id)
            if game is None:
                return []
            return tx.get_clues(game_id, game.current_round if round is None else round)

    def get_current_turn_player(self, game_id: int) -> Optional[PlayerData]:
        with self.store.transaction() as tx:
            game = tx.get_game(game_id)
            if game is None:
                return None
            player_id = current_turn_player_id(game, tx.get_players(game_id))
            return tx.get_player(player_id) if player_id is not None else None

    def get_required_letter(self, game_id: int) -> Optional[str]:
        with self.store.transaction() as tx:
            game = tx.get_game(game_id)
            if game is None:
                return None
            return self.required_letter(game, tx.get_clues(game_id, game.current_round))

    def get_votes(self, game_id: int, round: Optional[int] = None) -> List[VoteData]:
        """Votes a client may see; hidden during secret voting."""
        with self.store.transaction() as tx:
            game = tx.get_game(game_id)
            if game is None:
                return []
            votes = tx.get_votes(game_id, game.current_round if round is None else round)
            return views.visible_votes(game, votes)

    def get_vote_count(self, game_id: int) -> Dict[str, int]:
        with self.store.transaction() as tx:
            game = tx.get_game(game_id)
            if game is None:
                return {'count': 0, 'total': 0}
            return views.vote_count(tx.get_votes(game_id, game.current_round),
                                    tx.get_players(game_id))

    def get_view(self, game_id: int, session_id: Optional[str] = None) -> Dict[str, Any]:
        """
        Everything one device may see about a game, from one consistent read.

        Args:
            game_id: Game to project
            session_id: Device identity; None gives a spectator view

        Returns:
            Projected view dictionary
        """
        with self.store.transaction() as tx:
            game = tx.get_game(game_id)
            if game is None:
                raise NotFound("Game not found")
            players = tx.get_players(game_id)
            viewer = tx.get_player_by_session(game_id, session_id) if session_id else None
            clues = tx.get_clues(game_id, game.current_round)
            votes = tx.get_votes(game_id, game.current_round)

            results = None
            if game.status in (GameStatus.RESULTS, GameStatus.FINISHED):
                tally = resolve_elimination(votes, game.settings.tie_breaker, preview=True)
                results = RoundResults(
                    round=game.current_round,
                    tally=tally,
                    eliminated_players=[p for p in players if p.id in tally.eliminated_ids],
                    max_rounds=game.settings.max_rounds,
                    secret_word=game.secret_word
                )

            return views.build_game_view(
                game, players, clues, votes, viewer,
                required_letter=self.required_letter(game, clues),
                results=results
            )
