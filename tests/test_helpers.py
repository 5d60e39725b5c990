"""
Tests for helper utilities and the word bank.
"""

import random
import re

import pytest

from utils.constants import MAX_CLUE_LENGTH
from utils.helpers import (
    first_letter, generate_game_code, last_letter, normalize_code, normalize_letter,
    sanitize_clue, shuffle_ids, validate_clue, validate_username
)
from utils.words import WORDS, get_categories, is_valid_category, pick_word


def test_game_code_shape():
    code = generate_game_code(random.Random(7))
    assert re.fullmatch(r'[a-z0-9]{6}', code)
    assert generate_game_code(random.Random(7)) == code


def test_normalize_code():
    assert normalize_code('  AbC123 ') == 'abc123'
    assert normalize_code(None) == ''


@pytest.mark.parametrize("name, ok", [
    ('Ana', True),
    ("María José", True),
    ('O\'Neil-2', True),
    ('   ', False),
    ('a' * 21, False),
    ('Ana<b>', False),
])
def test_validate_username(name, ok):
    assert validate_username(name)[0] is ok


def test_sanitize_and_validate_clue():
    assert sanitize_clue('  <b>muy</b>   grande ') == 'muy grande'
    assert validate_clue('') == (False, "Clue cannot be empty")
    assert validate_clue('x' * (MAX_CLUE_LENGTH + 1))[0] is False
    assert validate_clue('rayas') == (True, None)


def test_letters_ignore_case_and_accents():
    assert normalize_letter('á') == 'A'
    assert normalize_letter('Ñ') == 'N'
    assert first_letter('  Árbol') == 'A'
    assert last_letter('camión ') == 'N'
    assert first_letter('') == ''
    assert last_letter('   ') == ''


def test_shuffle_ids_is_a_copy():
    ids = list(range(10))
    shuffled = shuffle_ids(ids, random.Random(2))
    assert sorted(shuffled) == ids
    assert ids == list(range(10))


def test_categories():
    categories = get_categories()
    assert 'animales' in categories
    assert all(is_valid_category(c) for c in categories)
    assert not is_valid_category('planetas')


def test_pick_word_returns_taboo_list():
    word, taboo = pick_word('comida', random.Random(3))
    assert word in [entry.word for entry in WORDS['comida']]
    assert isinstance(taboo, list) and taboo


def test_pick_word_unknown_category_falls_back():
    word, _ = pick_word('planetas', random.Random(3))
    assert word in [entry.word for entry in WORDS['animales']]
