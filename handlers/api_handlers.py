"""
API Route Handlers for the impostor word game.

Pure routing layer that delegates to the lobby and game managers.
Contains no business logic - only request/response handling.

Every mutating route identifies the acting device by its session_id and,
on success, tells the game's Socket.IO room that the state changed.
"""

import logging
from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from game import views
from game.errors import GameError, NotFound, ValidationFailed
from utils.helpers import generate_session_id
from utils.words import get_categories

logger = logging.getLogger(__name__)


def game_room(game_id: int) -> str:
    return f"game:{game_id}"


def register_api_handlers(app, lobby_manager, game_manager, socketio=None):
    """
    Register all API route handlers.

    Args:
        app: Flask application instance
        lobby_manager: Lobby management instance
        game_manager: Game management instance
        socketio: SocketIO instance used to announce state changes (optional)
    """

    def payload():
        return request.get_json(silent=True) or {}

    def session_from(data):
        session_id = data.get('session_id') or request.args.get('session_id')
        if not session_id:
            raise ValidationFailed("session_id is required")
        return session_id

    def acting_player(game_id, data):
        player = lobby_manager.get_me(game_id, session_from(data))
        if player is None:
            raise NotFound("You are not in this game")
        return player

    def optional_int(name, value):
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ValidationFailed(f"{name} must be an integer")

    def announce(game_id):
        game = lobby_manager.get_game(game_id)
        if socketio is not None:
            socketio.emit('game_updated', {
                'gameId': game_id,
                'status': game.status.value if game else None
            }, room=game_room(game_id))

    def public_game(game):
        return views.game_view(game, lobby_manager.get_players(game.id))

    def state_response(game_id):
        game = lobby_manager.get_game(game_id)
        if game is None:
            return jsonify({'game': None, 'closed': True})
        return jsonify({'game': public_game(game)})

    # ------------------------------------------------------------------
    # Meta
    # ------------------------------------------------------------------

    @app.route('/api/health')
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'message': 'Impostor game server is running',
            'version': '1.0.0'
        })

    @app.route('/api/categories')
    def list_categories():
        return jsonify({'categories': get_categories()})

    # ------------------------------------------------------------------
    # Lobby
    # ------------------------------------------------------------------

    @app.route('/api/games', methods=['POST'])
    def create_game():
        """Create a game; the caller becomes its host."""
        data = payload()
        session_id = data.get('session_id') or generate_session_id()
        game, host = lobby_manager.create_game(data.get('name', ''), session_id)
        return jsonify({
            'game': public_game(game),
            'player': host.to_dict(include_role=True),
            'session_id': session_id
        }), 201

    @app.route('/api/games/join', methods=['POST'])
    def join_game():
        """Join a game by code, or rejoin from the same device."""
        data = payload()
        session_id = data.get('session_id') or generate_session_id()
        game, player = lobby_manager.join_game(data.get('code', ''), data.get('name', ''), session_id)
        announce(game.id)
        return jsonify({
            'game': public_game(game),
            'player': player.to_dict(include_role=True),
            'session_id': session_id
        })

    @app.route('/api/games/code/<code>')
    def get_game_by_code(code):
        game = lobby_manager.get_game_by_code(code)
        if game is None:
            raise NotFound("Game not found")
        return jsonify({'game': public_game(game)})

    @app.route('/api/games/<int:game_id>')
    def get_game(game_id):
        game = lobby_manager.get_game(game_id)
        if game is None:
            raise NotFound("Game not found")
        return jsonify({'game': public_game(game)})

    @app.route('/api/games/<int:game_id>/players')
    def get_players(game_id):
        players = lobby_manager.get_players(game_id)
        return jsonify({'players': [p.to_dict() for p in players]})

    @app.route('/api/games/<int:game_id>/me')
    def get_me(game_id):
        player = lobby_manager.get_me(game_id, session_from({}))
        return jsonify({'player': player.to_dict(include_role=True) if player else None})

    @app.route('/api/games/<int:game_id>/leave', methods=['POST'])
    def leave_game(game_id):
        data = payload()
        left = lobby_manager.leave_game(game_id, session_from(data))
        if left:
            announce(game_id)
        return jsonify({'left': left})

    @app.route('/api/games/<int:game_id>/kick', methods=['POST'])
    def kick_player(game_id):
        data = payload()
        host = acting_player(game_id, data)
        target_id = optional_int('target_id', data.get('target_id'))
        if target_id is None:
            raise ValidationFailed("target_id is required")
        lobby_manager.kick_player(game_id, host.id, target_id)
        announce(game_id)
        return state_response(game_id)

    @app.route('/api/games/<int:game_id>/settings', methods=['PATCH', 'POST'])
    def update_settings(game_id):
        data = payload()
        host = acting_player(game_id, data)
        changes = data.get('settings')
        if not isinstance(changes, dict):
            raise ValidationFailed("settings must be an object")
        lobby_manager.update_settings(game_id, host.id, **changes)
        announce(game_id)
        return state_response(game_id)

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    @app.route('/api/games/<int:game_id>/start', methods=['POST'])
    def start_game(game_id):
        player = acting_player(game_id, payload())
        game_manager.start_game(game_id, player.id)
        announce(game_id)
        return state_response(game_id)

    @app.route('/api/games/<int:game_id>/ready', methods=['POST'])
    def ready_for_clues(game_id):
        player = acting_player(game_id, payload())
        game_manager.ready_for_clues(game_id, player.id)
        announce(game_id)
        return state_response(game_id)

    @app.route('/api/games/<int:game_id>/clues', methods=['POST'])
    def submit_clue(game_id):
        data = payload()
        player = acting_player(game_id, data)
        game_manager.submit_clue(game_id, player.id, data.get('clue', ''))
        announce(game_id)
        return state_response(game_id)

    @app.route('/api/games/<int:game_id>/turn-done', methods=['POST'])
    def mark_turn_done(game_id):
        player = acting_player(game_id, payload())
        game_manager.mark_turn_done(game_id, player.id)
        announce(game_id)
        return state_response(game_id)

    @app.route('/api/games/<int:game_id>/timeout', methods=['POST'])
    def timeout_turn(game_id):
        timed_out = game_manager.timeout_turn(game_id)
        if timed_out:
            announce(game_id)
        return jsonify({'timed_out': timed_out})

    @app.route('/api/games/<int:game_id>/start-voting', methods=['POST'])
    def start_voting(game_id):
        player = acting_player(game_id, payload())
        game_manager.start_voting(game_id, player.id)
        announce(game_id)
        return state_response(game_id)

    @app.route('/api/games/<int:game_id>/votes', methods=['POST'])
    def submit_vote(game_id):
        data = payload()
        voter = acting_player(game_id, data)
        target_id = optional_int('target_id', data.get('target_id'))
        game_manager.submit_vote(game_id, voter.id, target_id)
        announce(game_id)
        return state_response(game_id)

    @app.route('/api/games/<int:game_id>/next-round', methods=['POST'])
    def next_round(game_id):
        player = acting_player(game_id, payload())
        outcome = game_manager.next_round(game_id, player.id)
        announce(game_id)
        return jsonify({'outcome': outcome.to_dict(), 'game': public_game(lobby_manager.get_game(game_id))})

    @app.route('/api/games/<int:game_id>/play-again', methods=['POST'])
    def play_again(game_id):
        player = acting_player(game_id, payload())
        game_manager.play_again(game_id, player.id)
        announce(game_id)
        return state_response(game_id)

    # ------------------------------------------------------------------
    # Round queries
    # ------------------------------------------------------------------

    @app.route('/api/games/<int:game_id>/view')
    def get_view(game_id):
        return jsonify(game_manager.get_view(game_id, request.args.get('session_id')))

    @app.route('/api/games/<int:game_id>/role')
    def get_my_role(game_id):
        return jsonify({'role': game_manager.get_my_role(game_id, session_from({}))})

    @app.route('/api/games/<int:game_id>/clues')
    def get_clues(game_id):
        round_number = optional_int('round', request.args.get('round'))
        clues = game_manager.get_clues(game_id, round_number)
        return jsonify({'clues': [c.to_dict() for c in clues]})

    @app.route('/api/games/<int:game_id>/turn')
    def get_current_turn_player(game_id):
        player = game_manager.get_current_turn_player(game_id)
        return jsonify({'player': player.to_dict() if player else None})

    @app.route('/api/games/<int:game_id>/required-letter')
    def get_required_letter(game_id):
        return jsonify({'letter': game_manager.get_required_letter(game_id)})

    @app.route('/api/games/<int:game_id>/votes')
    def get_votes(game_id):
        round_number = optional_int('round', request.args.get('round'))
        votes = game_manager.get_votes(game_id, round_number)
        return jsonify({'votes': [v.to_dict() for v in votes]})

    @app.route('/api/games/<int:game_id>/vote-count')
    def get_vote_count(game_id):
        return jsonify(game_manager.get_vote_count(game_id))

    @app.route('/api/games/<int:game_id>/results')
    def get_round_results(game_id):
        results = game_manager.get_round_results(game_id)
        game = lobby_manager.get_game(game_id)
        return jsonify({'results': views.results_view(game, results)})

    # Error handlers
    @app.errorhandler(GameError)
    def game_error(error):
        """Rejected game action."""
        logger.warning(f"{request.method} {request.path} rejected: {error.code} - {error.message}")
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'error': error.name, 'message': error.description}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        """Handle unexpected errors."""
        logger.error(f"Unhandled error on {request.method} {request.path}: {error}", exc_info=True)
        return jsonify({'error': 'internal_error', 'message': 'Internal server error'}), 500

    logger.info("API handlers registered successfully")
