"""
Socket.IO Event Handlers for the impostor word game.

Pure routing layer: clients subscribe to a game's room, receive their
own view of the game, and are told to re-read whenever a REST mutation
changes the game. Contains no business logic.
"""

import logging
from flask import request
from flask_socketio import emit, join_room, leave_room

from game.errors import GameError
from .api_handlers import game_room

logger = logging.getLogger(__name__)


def register_socket_handlers(socketio, lobby_manager, game_manager):
    """
    Register all Socket.IO event handlers.

    Args:
        socketio: SocketIO instance
        lobby_manager: Lobby management instance
        game_manager: Game management instance
    """

    def parse_subscription(data):
        data = data or {}
        game_id = data.get('gameId')
        if not isinstance(game_id, int) or isinstance(game_id, bool):
            return None, None
        return game_id, data.get('sessionId')

    def emit_state(game_id, session_id):
        try:
            emit('game_state', game_manager.get_view(game_id, session_id))
        except GameError as e:
            emit('error', e.to_dict())

    @socketio.on('connect')
    def handle_connect():
        """Handle client connection."""
        logger.info(f"Client connected: {request.sid}")
        emit('connected', {'message': 'Connected to server successfully'})

    @socketio.on('disconnect')
    def handle_disconnect():
        """Handle client disconnection. Players stay in their games."""
        logger.info(f"Client disconnected: {request.sid}")

    @socketio.on('subscribe')
    def handle_subscribe(data):
        """Join a game's room and send the caller its view."""
        game_id, session_id = parse_subscription(data)
        if game_id is None:
            emit('error', {'error': 'validation_failed', 'message': 'gameId is required'})
            return

        join_room(game_room(game_id))
        logger.info(f"Client {request.sid} subscribed to game {game_id}")
        emit_state(game_id, session_id)

    @socketio.on('unsubscribe')
    def handle_unsubscribe(data):
        game_id, _ = parse_subscription(data)
        if game_id is None:
            return
        leave_room(game_room(game_id))
        logger.info(f"Client {request.sid} unsubscribed from game {game_id}")

    @socketio.on('get_state')
    def handle_get_state(data):
        """Re-read the caller's view after a game_updated notice."""
        game_id, session_id = parse_subscription(data)
        if game_id is None:
            emit('error', {'error': 'validation_failed', 'message': 'gameId is required'})
            return
        emit_state(game_id, session_id)

    logger.info("Socket handlers registered successfully")
