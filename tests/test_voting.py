"""
Tests for vote tallying and elimination resolution.
"""

import random

import pytest

from game import TieBreaker, VoteData
from game.voting import count_votes, resolve_elimination


def ballots(*targets):
    """One vote per target, voters numbered from 100; None is a skip."""
    return [VoteData(game_id=1, round=1, voter_id=100 + i, target_id=t) for i, t in enumerate(targets)]


def test_count_votes():
    tally = count_votes(ballots(2, 2, 3, None))
    assert tally.vote_counts == {2: 2, 3: 1}
    assert tally.skip_votes == 1
    assert tally.max_votes == 2
    assert tally.top_ids == [2]
    assert not tally.is_tie


def test_unique_maximum_is_eliminated():
    tally = resolve_elimination(ballots(2, 2, 3), TieBreaker.NONE)
    assert tally.eliminated_ids == [2]


@pytest.mark.parametrize("tie_breaker", list(TieBreaker))
def test_skip_majority_eliminates_nobody(tie_breaker):
    tally = resolve_elimination(ballots(2, 3, None, None, None), tie_breaker, random.Random(1))
    assert tally.was_skipped
    assert tally.eliminated_ids == []


def test_skip_equal_to_maximum_does_not_win():
    tally = resolve_elimination(ballots(2, 2, None, None), TieBreaker.NONE)
    assert not tally.was_skipped
    assert tally.eliminated_ids == [2]


def test_tie_none_and_all():
    votes = ballots(2, 3, 3, 2, 4)
    assert resolve_elimination(votes, TieBreaker.NONE).eliminated_ids == []
    assert resolve_elimination(votes, TieBreaker.ALL).eliminated_ids == [2, 3]


def test_tie_random_preview_lists_tied_set():
    tally = resolve_elimination(ballots(2, 3), TieBreaker.RANDOM, preview=True)
    assert tally.pending_random
    assert tally.eliminated_ids == [2, 3]


def test_tie_random_draw_uses_given_rng():
    tally = resolve_elimination(ballots(2, 3, 5), TieBreaker.RANDOM, random.Random(11))
    assert not tally.pending_random
    assert tally.eliminated_ids == [random.Random(11).choice([2, 3, 5])]


def test_no_votes():
    tally = resolve_elimination([], TieBreaker.ALL)
    assert tally.eliminated_ids == []
    assert not tally.was_skipped
    assert not tally.is_tie
