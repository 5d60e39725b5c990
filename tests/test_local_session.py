"""
Tests for the pass-and-play session.
"""

import pytest

from game import GameError, GameStatus, InvalidPhase, NotFound, ValidationFailed
from local import LocalGameSession


@pytest.fixture
def session(rng, clock):
    return LocalGameSession(rng=rng, clock=clock)


def reveal_all(session):
    for player in session.players:
        if not player.is_eliminated:
            session.mark_role_seen(player.id)


def test_create_starts_in_reveal(session):
    game = session.create(['Ana', 'Bruno', 'Carla', 'Diego'])

    assert game.status == GameStatus.REVEAL
    assert game.settings.change_word_each_round is True
    assert [p.name for p in session.players] == ['Ana', 'Bruno', 'Carla', 'Diego']
    assert sum(p.is_impostor for p in session.players) == 1


def test_create_needs_three_players(session):
    with pytest.raises(ValidationFailed):
        session.create(['Ana', 'Bruno'])


def test_no_game_yet(session):
    assert session.game is None
    assert session.players == []
    with pytest.raises(NotFound):
        session.current_player()


def test_role_cards(session):
    session.create(['Ana', 'Bruno', 'Carla'])
    for player in session.players:
        card = session.role_for(player.id)
        assert card['is_impostor'] == player.is_impostor
        assert (card['secret_word'] is None) == player.is_impostor


def test_clues_start_once_everyone_saw_their_role(session):
    session.create(['Ana', 'Bruno', 'Carla'])
    first, *rest = session.players
    session.mark_role_seen(first.id)
    session.mark_role_seen(first.id)
    assert session.game.status == GameStatus.REVEAL

    for player in rest:
        session.mark_role_seen(player.id)
    assert session.game.status == GameStatus.CLUES
    assert session.current_player() is not None


def test_mark_role_seen_outside_reveal(session):
    session.create(['Ana', 'Bruno', 'Carla'])
    reveal_all(session)
    with pytest.raises(InvalidPhase):
        session.mark_role_seen(session.players[0].id)


def test_last_turn_opens_voting(session):
    session.create(['Ana', 'Bruno', 'Carla', 'Diego'])
    reveal_all(session)

    for _ in range(3):
        assert session.next_turn().status == GameStatus.CLUES
    assert session.next_turn().status == GameStatus.VOTING


def test_submit_all_votes_requires_every_player(session):
    session.create(['Ana', 'Bruno', 'Carla', 'Diego'])
    reveal_all(session)
    for _ in range(4):
        session.next_turn()
    a, b, c, d = session.players

    with pytest.raises(ValidationFailed):
        session.submit_all_votes({a.id: b.id, b.id: a.id})
    assert session.game.status == GameStatus.VOTING

    game = session.submit_all_votes({a.id: b.id, b.id: a.id, c.id: b.id, d.id: b.id})
    assert game.status == GameStatus.RESULTS
    assert session.results().tally.eliminated_ids == [b.id]


def test_full_local_game_changes_word_and_clears_seen(session):
    session.create(['Ana', 'Bruno', 'Carla', 'Diego', 'Elena'])
    reveal_all(session)
    for _ in range(5):
        session.next_turn()

    innocent = next(p for p in session.players if not p.is_impostor)
    votes = {p.id: innocent.id for p in session.players if p.id != innocent.id}
    votes[innocent.id] = next(p.id for p in session.players if p.id != innocent.id)
    session.submit_all_votes(votes)

    outcome = session.next_round()

    assert outcome.eliminated_ids == [innocent.id]
    assert not outcome.finished
    assert session.game.status == GameStatus.REVEAL
    assert session.game.current_round == 2
    assert session.seen == set()
    with pytest.raises(ValidationFailed):
        session.mark_role_seen(innocent.id)


def test_reset_discards_the_game(session):
    session.create(['Ana', 'Bruno', 'Carla'])
    store = session.store
    game_id = session.game_id

    session.reset()

    assert session.game is None
    with store.transaction() as tx:
        assert tx.get_game(game_id) is None


def to_voting(session, names=('Ana', 'Bruno', 'Carla', 'Diego')):
    session.create(list(names))
    reveal_all(session)
    for _ in range(len(names)):
        session.next_turn()
    return session.players


@pytest.mark.parametrize("bad_entry", ['unknown_target', 'skip', 'extra_voter'])
def test_rejected_batch_stores_no_votes(session, bad_entry):
    a, b, c, d = to_voting(session)
    votes = {a.id: b.id, b.id: c.id, c.id: a.id, d.id: a.id}
    if bad_entry == 'unknown_target':
        votes[b.id] = 999
    elif bad_entry == 'skip':
        votes[c.id] = None
    else:
        votes[999] = a.id

    with pytest.raises(GameError):
        session.submit_all_votes(votes)

    assert session.games.get_votes(session.game_id) == []
    assert session.game.status == GameStatus.VOTING


def test_rejected_settings_leave_no_game_behind(session):
    with pytest.raises(ValidationFailed):
        session.create(['Ana', 'Bruno', 'Carla'], category='planetas')

    assert session.game_id is None
    with session.store.transaction() as tx:
        assert not tx.tables.games


def test_rejected_player_name_leaves_no_game_behind(session):
    with pytest.raises(ValidationFailed):
        session.create(['Ana', 'Bruno', '<b>Carla</b>'])

    assert session.game_id is None
    with session.store.transaction() as tx:
        assert not tx.tables.games
        assert not tx.tables.players
