"""
Error taxonomy for game actions.

Every rejected action raises one of these. Handlers turn them into
responses; the game core never catches them.
"""


class GameError(Exception):
    """Base class for rejected game actions."""

    status_code = 400
    code = 'game_error'

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'error': self.code, 'message': self.message}


class NotFound(GameError):
    """Game, player or vote target is missing."""
    status_code = 404
    code = 'not_found'


class PermissionDenied(GameError):
    """A non-host attempted a host-only action."""
    status_code = 403
    code = 'permission_denied'


class InvalidPhase(GameError):
    """Action attempted outside the status it requires."""
    status_code = 409
    code = 'invalid_phase'


class OutOfTurn(GameError):
    """Clue or vote from the wrong player, or from an eliminated one."""
    status_code = 409
    code = 'out_of_turn'


class DuplicateAction(GameError):
    """Second clue in a round, or a uniqueness violation in the store."""
    status_code = 409
    code = 'duplicate_action'


class CapacityExceeded(GameError):
    """Game already holds the maximum number of players."""
    status_code = 409
    code = 'capacity_exceeded'


class ValidationFailed(GameError):
    """Input rejected: bad settings, chained-clue mismatch, skip vote disallowed."""
    status_code = 400
    code = 'validation_failed'
