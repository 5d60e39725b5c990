"""
Tests for the Socket.IO subscription flow.
"""

import pytest


@pytest.fixture
def game(app_client):
    data = app_client.post('/api/games', json={'name': 'Ana', 'session_id': 'device-0'}).get_json()
    return data['game']


def received(client, name):
    return [event for event in client.get_received() if event['name'] == name]


def test_connect_greets_client(server):
    app, socketio = server
    client = socketio.test_client(app)
    assert client.is_connected()
    assert received(client, 'connected')


def test_subscribe_sends_callers_view(server, game):
    app, socketio = server
    client = socketio.test_client(app)
    client.get_received()

    client.emit('subscribe', {'gameId': game['id'], 'sessionId': 'device-0'})

    states = received(client, 'game_state')
    assert len(states) == 1
    view = states[0]['args'][0]
    assert view['game']['id'] == game['id']
    assert view['is_host'] is True


def test_subscribe_requires_game_id(server):
    app, socketio = server
    client = socketio.test_client(app)
    client.get_received()

    client.emit('subscribe', {'sessionId': 'device-0'})

    errors = received(client, 'error')
    assert errors[0]['args'][0]['error'] == 'validation_failed'


def test_unknown_game_reports_error(server):
    app, socketio = server
    client = socketio.test_client(app)
    client.get_received()

    client.emit('get_state', {'gameId': 4242})

    assert received(client, 'error')[0]['args'][0]['error'] == 'not_found'


def test_rest_mutation_notifies_room(server, app_client, game):
    app, socketio = server
    client = socketio.test_client(app)
    client.emit('subscribe', {'gameId': game['id'], 'sessionId': 'device-0'})
    client.get_received()

    app_client.post('/api/games/join', json={'code': game['code'], 'name': 'Bruno',
                                             'session_id': 'device-1'})

    updates = received(client, 'game_updated')
    assert updates[0]['args'][0] == {'gameId': game['id'], 'status': 'lobby'}


def test_unsubscribed_client_is_not_notified(server, app_client, game):
    app, socketio = server
    client = socketio.test_client(app)
    client.emit('subscribe', {'gameId': game['id']})
    client.emit('unsubscribe', {'gameId': game['id']})
    client.get_received()

    app_client.post('/api/games/join', json={'code': game['code'], 'name': 'Bruno',
                                             'session_id': 'device-1'})

    assert received(client, 'game_updated') == []
