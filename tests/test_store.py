"""
Tests for the game store implementations.

Every test runs against both the in-memory store and the SQL store.
"""

from datetime import datetime, timezone

import pytest

from game import (
    ClueContent, ClueData, ClueKind, DuplicateAction, GameData, GameSettings,
    GameStatus, MemoryGameStore, PlayerData, TieBreaker, TurnMode, VoteData
)

WHEN = datetime(2024, 3, 1, 20, 0, tzinfo=timezone.utc)


@pytest.fixture(params=['memory', 'sql'])
def any_store(request):
    if request.param == 'memory':
        return MemoryGameStore()
    return request.getfixturevalue('sql_store')


def _seed(store, players=3, code='abc123'):
    """Insert a game with players; returns (game_id, [player ids])."""
    with store.transaction() as tx:
        game = tx.insert_game(GameData(code=code, created_at=WHEN))
        ids = [
            tx.insert_player(PlayerData(game_id=game.id, name=f'P{i}', session_id=f's{i}',
                                        joined_at=WHEN)).id
            for i in range(players)
        ]
        tx.patch_game(game.id, host_id=ids[0])
    return game.id, ids


def test_insert_and_read_back(any_store):
    game_id, ids = _seed(any_store)

    with any_store.transaction() as tx:
        game = tx.get_game(game_id)
        assert game.code == 'abc123'
        assert game.host_id == ids[0]
        assert game.status == GameStatus.LOBBY
        assert tx.get_game_by_code('abc123').id == game_id
        assert tx.code_exists('abc123')
        assert not tx.code_exists('zzz999')
        assert [p.id for p in tx.get_players(game_id)] == ids
        assert tx.get_player_by_session(game_id, 's1').id == ids[1]


def test_settings_and_round_state_round_trip(any_store):
    game_id, ids = _seed(any_store)
    settings = GameSettings(category='comida', impostor_count=2, max_rounds=3,
                            turn_time_limit=30, turn_mode=TurnMode.FIXED,
                            tie_breaker=TieBreaker.ALL, chained_clues=True)

    with any_store.transaction() as tx:
        tx.patch_game(game_id, settings=settings, status=GameStatus.CLUES,
                      secret_word='Pizza', taboo_words=['queso', 'horno'],
                      turn_order=list(reversed(ids)), current_round=1,
                      turn_started_at=WHEN)

    with any_store.transaction() as tx:
        game = tx.get_game(game_id)
    assert game.settings == settings
    assert game.status == GameStatus.CLUES
    assert game.secret_word == 'Pizza'
    assert game.taboo_words == ['queso', 'horno']
    assert game.turn_order == list(reversed(ids))
    assert game.turn_started_at == WHEN
    assert game.turn_started_at.tzinfo is not None


def test_duplicate_code_is_rejected(any_store):
    _seed(any_store)
    with pytest.raises(DuplicateAction):
        with any_store.transaction() as tx:
            tx.insert_game(GameData(code='abc123', created_at=WHEN))


def test_duplicate_session_in_game_is_rejected(any_store):
    game_id, _ = _seed(any_store)
    with pytest.raises(DuplicateAction):
        with any_store.transaction() as tx:
            tx.insert_player(PlayerData(game_id=game_id, name='Copia', session_id='s1',
                                        joined_at=WHEN))
    with any_store.transaction() as tx:
        assert len(tx.get_players(game_id)) == 3


def test_one_clue_per_player_and_round(any_store):
    game_id, ids = _seed(any_store)
    with any_store.transaction() as tx:
        tx.insert_clue(ClueData(game_id=game_id, round=1, player_id=ids[0],
                                content=ClueContent.from_text('pista'), order=0))
    with pytest.raises(DuplicateAction):
        with any_store.transaction() as tx:
            tx.insert_clue(ClueData(game_id=game_id, round=1, player_id=ids[0],
                                    content=ClueContent.confirmed(), order=1))
    with any_store.transaction() as tx:
        clues = tx.get_clues(game_id, 1)
    assert len(clues) == 1
    assert clues[0].content == ClueContent.from_text('pista')


def test_one_vote_per_voter_and_round(any_store):
    game_id, ids = _seed(any_store)
    with any_store.transaction() as tx:
        vote = tx.insert_vote(VoteData(game_id=game_id, round=1, voter_id=ids[0], target_id=ids[1]))
    with pytest.raises(DuplicateAction):
        with any_store.transaction() as tx:
            tx.insert_vote(VoteData(game_id=game_id, round=1, voter_id=ids[0], target_id=ids[2]))

    with any_store.transaction() as tx:
        tx.patch_vote(vote.id, target_id=None)
        stored = tx.get_vote(game_id, 1, ids[0])
    assert stored.is_skip


def test_clue_sentinels_round_trip(any_store):
    game_id, ids = _seed(any_store)
    with any_store.transaction() as tx:
        tx.insert_clue(ClueData(game_id=game_id, round=1, player_id=ids[1],
                                content=ClueContent.timed_out(), order=1))
        tx.insert_clue(ClueData(game_id=game_id, round=1, player_id=ids[0],
                                content=ClueContent.confirmed(), order=0))
        clues = tx.get_clues(game_id)
    assert [c.content.kind for c in clues] == [ClueKind.CONFIRMED, ClueKind.TIMED_OUT]
    assert all(c.content.text is None for c in clues)


def test_failed_transaction_leaves_no_trace(any_store):
    game_id, ids = _seed(any_store)

    with pytest.raises(RuntimeError):
        with any_store.transaction() as tx:
            tx.patch_game(game_id, status=GameStatus.REVEAL, current_round=1)
            tx.patch_player(ids[0], is_impostor=True, score=50)
            tx.insert_vote(VoteData(game_id=game_id, round=1, voter_id=ids[1], target_id=ids[2]))
            raise RuntimeError("boom")

    with any_store.transaction() as tx:
        game = tx.get_game(game_id)
        player = tx.get_player(ids[0])
        votes = tx.get_votes(game_id)
    assert game.status == GameStatus.LOBBY
    assert game.current_round == 0
    assert not player.is_impostor
    assert player.score == 0
    assert votes == []


def test_delete_player_removes_their_clues_and_votes(any_store):
    game_id, ids = _seed(any_store)
    a, b, c = ids
    with any_store.transaction() as tx:
        tx.insert_clue(ClueData(game_id=game_id, round=1, player_id=b,
                                content=ClueContent.from_text('hola'), order=0))
        tx.insert_vote(VoteData(game_id=game_id, round=1, voter_id=a, target_id=b))
        tx.insert_vote(VoteData(game_id=game_id, round=1, voter_id=b, target_id=c))
        tx.insert_vote(VoteData(game_id=game_id, round=1, voter_id=c, target_id=a))

    with any_store.transaction() as tx:
        tx.delete_player(b)

    with any_store.transaction() as tx:
        assert tx.get_player(b) is None
        assert tx.get_clues(game_id) == []
        votes = tx.get_votes(game_id)
    assert [(v.voter_id, v.target_id) for v in votes] == [(c, a)]


def test_delete_game_cascades(any_store):
    game_id, ids = _seed(any_store)
    other_id, _ = _seed(any_store, code='xyz789')
    with any_store.transaction() as tx:
        tx.insert_clue(ClueData(game_id=game_id, round=1, player_id=ids[0],
                                content=ClueContent.from_text('hola'), order=0))
        tx.insert_vote(VoteData(game_id=game_id, round=1, voter_id=ids[0], target_id=ids[1]))

    with any_store.transaction() as tx:
        tx.delete_game(game_id)

    with any_store.transaction() as tx:
        assert tx.get_game(game_id) is None
        assert tx.get_players(game_id) == []
        assert tx.get_clues(game_id) == []
        assert tx.get_votes(game_id) == []
        assert len(tx.get_players(other_id)) == 3


def test_delete_clues_and_votes_report_counts(any_store):
    game_id, ids = _seed(any_store)
    with any_store.transaction() as tx:
        for order, player_id in enumerate(ids):
            tx.insert_clue(ClueData(game_id=game_id, round=1, player_id=player_id,
                                    content=ClueContent.confirmed(), order=order))
        tx.insert_vote(VoteData(game_id=game_id, round=1, voter_id=ids[0]))

    with any_store.transaction() as tx:
        assert tx.delete_clues(game_id) == 3
        assert tx.delete_votes(game_id) == 1


def test_memory_store_hands_out_copies():
    store = MemoryGameStore()
    game_id, _ = _seed(store)
    with store.transaction() as tx:
        game = tx.get_game(game_id)
    game.status = GameStatus.FINISHED
    with store.transaction() as tx:
        assert tx.get_game(game_id).status == GameStatus.LOBBY


def test_game_flow_over_sql_store(sql_store, rng, clock):
    """A full round through the managers on the SQL store."""
    from game import GameManager
    from lobby import LobbyManager

    games = GameManager(sql_store, rng=rng, clock=clock)
    lobby = LobbyManager(sql_store, game_manager=games, rng=rng, clock=clock)
    game, host = lobby.create_game('Ana', 'd0')
    for i, name in enumerate(['Bruno', 'Carla', 'Diego'], start=1):
        clock.advance(1)
        lobby.join_game(game.code, name, f'd{i}')

    lobby.update_settings(game.id, host.id, require_clue_text=True, turn_time_limit=30)
    games.start_game(game.id, host.id)
    games.ready_for_clues(game.id, host.id)
    for word in ('uno', 'dos', 'tres'):
        games.submit_clue(game.id, games.get_current_turn_player(game.id).id, word)
    clock.advance(31)
    assert games.timeout_turn(game.id) is True
    assert lobby.get_game(game.id).status == GameStatus.VOTING

    players = lobby.get_players(game.id)
    impostor = next(p for p in players if p.is_impostor)
    for player in players:
        target = impostor.id if player.id != impostor.id else players[0].id
        if target == player.id:
            target = players[1].id
        games.submit_vote(game.id, player.id, target)

    outcome = games.next_round(game.id, host.id)
    assert outcome.eliminated_ids == [impostor.id]
    assert lobby.get_game(game.id).status == GameStatus.FINISHED


def test_vote_batch_is_all_or_nothing(any_store, rng, clock):
    from game import GameManager, ValidationFailed
    from lobby import LobbyManager

    games = GameManager(any_store, rng=rng, clock=clock)
    lobby = LobbyManager(any_store, game_manager=games, rng=rng, clock=clock)
    game, host = lobby.create_game('Ana', 'd0')
    for i, name in enumerate(['Bruno', 'Carla'], start=1):
        clock.advance(1)
        lobby.join_game(game.code, name, f'd{i}')
    games.start_game(game.id, host.id)
    games.ready_for_clues(game.id, host.id)
    for _ in range(3):
        games.mark_turn_done(game.id, games.get_current_turn_player(game.id).id)
    games.start_voting(game.id, host.id)
    a, b, c = [p.id for p in lobby.get_players(game.id)]

    with pytest.raises(ValidationFailed):
        games.submit_votes(game.id, {a: b, b: a, c: None})
    assert games.get_vote_count(game.id) == {'count': 0, 'total': 3}

    assert games.submit_votes(game.id, {a: b, b: a, c: b}).status == GameStatus.RESULTS
