"""
Impostor - A Social Deduction Word Game Backend

Flask-SocketIO backend API that serves a web frontend.
Players receive a secret word, except the impostors, give one-word clues
in turn and vote out whoever they think is bluffing.

app.py is pure server setup and handler registration.
"""

import logging
from flask import Flask
from flask_socketio import SocketIO
from flask_cors import CORS
from werkzeug.middleware.proxy_fix import ProxyFix

from config.settings import (
    SECRET_KEY, CORS_ORIGINS, LOG_LEVEL, PORT, DEBUG, SOCKETIO_ASYNC_MODE
)
from game import GameManager
from lobby import LobbyManager
from handlers import register_socket_handlers, register_api_handlers

# Configure logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def create_app(store=None, rng=None, clock=None):
    """
    Application factory that creates and configures the Flask app.

    Args:
        store: GameStore to use; the SQL store from DATABASE_URL by default
        rng: Random source shared by the managers
        clock: Time source shared by the managers

    Returns:
        tuple: (Flask app, SocketIO instance)
    """

    # Flask configuration
    app = Flask(__name__)
    app.config['SECRET_KEY'] = SECRET_KEY

    # CORS configuration for the frontend
    CORS(app, origins=CORS_ORIGINS.split(','))

    # ProxyFix for deployment behind reverse proxy
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1)

    # SocketIO configuration
    socketio = SocketIO(
        app,
        cors_allowed_origins=CORS_ORIGINS.split(','),
        async_mode=SOCKETIO_ASYNC_MODE,
        ping_timeout=60,
        ping_interval=25
    )

    if store is None:
        from database import SqlGameStore, init_database

        logger.info("Initializing database...")
        init_database()
        store = SqlGameStore()

    # Initialize business logic managers
    logger.info("Initializing business logic managers...")
    game_manager = GameManager(store, rng=rng, clock=clock)
    lobby_manager = LobbyManager(store, game_manager=game_manager, rng=rng, clock=clock)

    # Register handlers (pure routing layer)
    logger.info("Registering handlers...")
    register_api_handlers(app, lobby_manager, game_manager, socketio)
    register_socket_handlers(socketio, lobby_manager, game_manager)

    logger.info("Application initialization complete")

    return app, socketio


def main():
    """Main entry point for development server."""

    # Create the application
    app, socketio = create_app()

    logger.info(f"Starting Impostor game server on port {PORT}")
    logger.info(f"Debug mode: {DEBUG}")
    logger.info(f"CORS origins: {CORS_ORIGINS}")

    # Run the server
    socketio.run(app, debug=DEBUG, port=PORT, host='0.0.0.0', allow_unsafe_werkzeug=True)


if __name__ == '__main__':
    main()
