"""
Validation of host-configurable game settings.

Turns a partial settings update (as received from a client) into typed
values for GameSettings, or rejects it with ValidationFailed.
"""

from typing import Any, Dict

from game.errors import ValidationFailed
from game.models import SETTING_FIELDS, TieBreaker, TurnMode
from utils.words import is_valid_category

BOOL_FIELDS = (
    'all_impostors', 'require_clue_text', 'show_category', 'secret_voting',
    'allow_skip_vote', 'chained_clues', 'change_word_each_round'
)


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _enum_value(enum_cls, value, name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValidationFailed(f"{name} must be one of: {allowed}")


def validate_settings_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate a partial settings update.

    Args:
        changes: Field name to new value

    Returns:
        Validated values ready for dataclasses.replace on GameSettings
    """
    validated: Dict[str, Any] = {}

    for name, value in changes.items():
        if name not in SETTING_FIELDS:
            raise ValidationFailed(f"Unknown setting '{name}'")

        if name == 'category':
            if not isinstance(value, str) or not is_valid_category(value):
                raise ValidationFailed(f"Unknown category '{value}'")
        elif name == 'impostor_count':
            if not _is_int(value) or value < 1:
                raise ValidationFailed("impostor_count must be an integer of at least 1")
        elif name == 'max_rounds':
            if value is not None and (not _is_int(value) or value < 1):
                raise ValidationFailed("max_rounds must be empty or an integer of at least 1")
        elif name == 'turn_time_limit':
            if _is_int(value) and value == 0:
                value = None
            if value is not None and (not _is_int(value) or value < 0):
                raise ValidationFailed("turn_time_limit must be empty or a positive number of seconds")
        elif name == 'turn_mode':
            value = _enum_value(TurnMode, value, name)
        elif name == 'tie_breaker':
            value = _enum_value(TieBreaker, value, name)
        elif name in BOOL_FIELDS:
            if not isinstance(value, bool):
                raise ValidationFailed(f"{name} must be true or false")

        validated[name] = value

    return validated
