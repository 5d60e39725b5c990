"""
Vote tallying for the impostor word game.

This module turns the votes of a round into an elimination decision.
The same tally serves the results preview and the binding elimination
when the host advances the round.
"""

import logging
import random
from typing import Iterable, List, Optional

from .models import TieBreaker, VoteData, VoteTally

logger = logging.getLogger(__name__)


def count_votes(votes: Iterable[VoteData]) -> VoteTally:
    """
    Count votes per target plus skip votes.

    Args:
        votes: Votes of a single round

    Returns:
        Tally with counts, max and the set of top-voted targets
    """
    tally = VoteTally()
    for vote in votes:
        if vote.is_skip:
            tally.skip_votes += 1
        else:
            tally.vote_counts[vote.target_id] = tally.vote_counts.get(vote.target_id, 0) + 1

    if tally.vote_counts:
        tally.max_votes = max(tally.vote_counts.values())
        tally.top_ids = sorted(pid for pid, count in tally.vote_counts.items()
                               if count == tally.max_votes)
    tally.is_tie = len(tally.top_ids) > 1
    return tally


def resolve_elimination(votes: Iterable[VoteData], tie_breaker: TieBreaker,
                        rng: Optional[random.Random] = None,
                        preview: bool = False) -> VoteTally:
    """
    Decide who is eliminated by a round of votes.

    Skip votes beating every target eliminate nobody, and this is checked
    before ties. A tie is settled by the tie-breaker; a unique maximum
    eliminates that player.

    Args:
        votes: Votes of a single round
        tie_breaker: Tie policy of the game
        rng: Random source for the random tie-breaker
        preview: When True the random tie-breaker is not drawn; the whole
            tied set is reported as pending

    Returns:
        Tally with eliminated_ids filled in
    """
    tally = count_votes(votes)
    tally.tie_breaker = tie_breaker

    if tally.skip_votes > tally.max_votes:
        tally.was_skipped = True
        tally.eliminated_ids = []
    elif tally.is_tie:
        tally.eliminated_ids = _break_tie(tally.top_ids, tie_breaker, rng, preview)
        tally.pending_random = preview and tie_breaker == TieBreaker.RANDOM
    else:
        tally.eliminated_ids = list(tally.top_ids)

    return tally


def _break_tie(tied_ids: List[int], tie_breaker: TieBreaker,
               rng: Optional[random.Random], preview: bool) -> List[int]:
    if tie_breaker == TieBreaker.ALL:
        return list(tied_ids)
    if tie_breaker == TieBreaker.RANDOM:
        if preview:
            return list(tied_ids)
        chosen = (rng or random).choice(tied_ids)
        logger.info(f"Random tie-breaker picked player {chosen} among {tied_ids}")
        return [chosen]
    return []
