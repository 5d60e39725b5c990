"""
Word bank for the impostor word game.

Maps each category to its secret words. Every entry carries the taboo
words that crew members should avoid saying when giving clues.
"""

import random
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .constants import GAME_CONFIG


@dataclass(frozen=True)
class WordEntry:
    """A secret word and its taboo list."""
    word: str
    taboo: Tuple[str, ...] = field(default_factory=tuple)


def _entries(*rows: Tuple[str, Tuple[str, ...]]) -> List[WordEntry]:
    return [WordEntry(word=word, taboo=taboo) for word, taboo in rows]


WORDS: Dict[str, List[WordEntry]] = {
    'animales': _entries(
        ('Perro', ('ladrar', 'mascota', 'hueso')),
        ('Gato', ('maullar', 'bigotes', 'ratón')),
        ('Elefante', ('trompa', 'colmillos', 'gris')),
        ('Jirafa', ('cuello', 'manchas', 'alta')),
        ('Pingüino', ('hielo', 'frac', 'polo')),
        ('Tiburón', ('aleta', 'dientes', 'mar')),
        ('Águila', ('volar', 'garras', 'pico')),
        ('Caballo', ('montar', 'crin', 'galope')),
        ('Delfín', ('inteligente', 'nadar', 'saltar')),
        ('Serpiente', ('veneno', 'escamas', 'reptar')),
    ),
    'comida': _entries(
        ('Pizza', ('queso', 'italiana', 'horno')),
        ('Sushi', ('arroz', 'pescado', 'japón')),
        ('Hamburguesa', ('carne', 'pan', 'papas')),
        ('Helado', ('frío', 'cono', 'postre')),
        ('Paella', ('arroz', 'mariscos', 'sartén')),
        ('Taco', ('tortilla', 'méxico', 'salsa')),
        ('Chocolate', ('cacao', 'dulce', 'tableta')),
        ('Empanada', ('masa', 'relleno', 'horno')),
    ),
    'lugares': _entries(
        ('Playa', ('arena', 'mar', 'sol')),
        ('Hospital', ('médico', 'enfermo', 'camilla')),
        ('Aeropuerto', ('avión', 'vuelo', 'maleta')),
        ('Biblioteca', ('libros', 'silencio', 'leer')),
        ('Cine', ('película', 'pantalla', 'palomitas')),
        ('Escuela', ('maestro', 'clase', 'alumnos')),
        ('Museo', ('arte', 'cuadros', 'exposición')),
        ('Estadio', ('partido', 'gradas', 'fútbol')),
    ),
    'objetos': _entries(
        ('Paraguas', ('lluvia', 'abrir', 'mojarse')),
        ('Reloj', ('hora', 'tiempo', 'muñeca')),
        ('Espejo', ('reflejo', 'vidrio', 'mirarse')),
        ('Llave', ('puerta', 'cerradura', 'abrir')),
        ('Tijeras', ('cortar', 'papel', 'filo')),
        ('Guitarra', ('cuerdas', 'música', 'tocar')),
        ('Lámpara', ('luz', 'bombilla', 'encender')),
        ('Mochila', ('espalda', 'escuela', 'cargar')),
    ),
    'profesiones': _entries(
        ('Bombero', ('fuego', 'manguera', 'camión')),
        ('Médico', ('hospital', 'curar', 'bata')),
        ('Cocinero', ('cocina', 'comida', 'receta')),
        ('Piloto', ('avión', 'volar', 'cabina')),
        ('Profesor', ('escuela', 'enseñar', 'alumnos')),
        ('Astronauta', ('espacio', 'cohete', 'luna')),
        ('Policía', ('ley', 'patrulla', 'arresto')),
    ),
    'deportes': _entries(
        ('Fútbol', ('gol', 'pelota', 'cancha')),
        ('Tenis', ('raqueta', 'red', 'saque')),
        ('Natación', ('piscina', 'nadar', 'agua')),
        ('Baloncesto', ('canasta', 'aro', 'rebote')),
        ('Ciclismo', ('bicicleta', 'pedalear', 'ruedas')),
        ('Boxeo', ('guantes', 'ring', 'golpe')),
        ('Ajedrez', ('tablero', 'rey', 'jaque')),
    ),
}

DEFAULT_CATEGORY = GAME_CONFIG['DEFAULT_CATEGORY']


def get_categories() -> List[str]:
    """List every category that has at least one word."""
    return [name for name, entries in WORDS.items() if entries]


def is_valid_category(category: str) -> bool:
    """Check that a category exists and is not empty."""
    return bool(WORDS.get(category))


def pick_word(category: str, rng: Optional[random.Random] = None) -> Tuple[str, List[str]]:
    """
    Pick a random secret word from a category.

    Args:
        category: Category name; unknown names fall back to the default category
        rng: Random source; the module-level generator when omitted

    Returns:
        tuple: (word, taboo_words)
    """
    rng = rng or random
    entries = WORDS.get(category) or WORDS[DEFAULT_CATEGORY]
    entry = rng.choice(entries)
    return entry.word, list(entry.taboo)
