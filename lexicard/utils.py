"""Utility functions for file I/O, card import and database persistence."""

import json
import sqlite3
from pathlib import Path
from typing import Any, Dict, Iterable, List, Tuple, Union

import structlog
from pydantic import ValidationError

from .cache import normalize_word
from .config import HISTORY_DB
from .models import Card, CardSource, ReviewState, TrashEntry

log = structlog.get_logger()

# Keys used by exported card JSON -> Card fields
CARD_KEY_ALIASES = {
    "pos": "part_of_speech",
    "ipa": "pronunciation",
    "bengali": "translation",
    "family": "word_family",
    "context": "example_context",
}

SAVED, TRASH, HISTORY = "saved", "trash", "history"


def load_words_from_file(file_path: Path) -> List[str]:
    """Load words from a text file, one word per line."""
    if not file_path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")

    words = []
    with open(file_path, 'r', encoding='utf-8') as f:
        for line in f:
            word = line.strip()
            if word and not word.startswith('#'):
                words.append(word)

    log.info("Loaded words from file", count=len(words), file=str(file_path))
    return words


def card_from_record(item: Dict[str, Any]) -> Card:
    """Build a Card from an import record, accepting the short key names."""
    data = {}
    for key, value in item.items():
        field = CARD_KEY_ALIASES.get(key, key)
        if field in Card.model_fields and field != "source" and value is not None:
            data[field] = value
    data["source"] = CardSource.CACHE
    return Card(**data)


def import_cards_json(source: Union[str, Path]) -> List[Tuple[str, Card]]:
    """Parse a bulk import: a JSON array of card objects with a ``word`` key.

    Entries without a word are skipped. Raises ValueError when the input is
    not a JSON array.
    """
    text = source.read_text(encoding="utf-8") if isinstance(source, Path) else source
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON: {e}") from e
    if not isinstance(parsed, list):
        raise ValueError("Input must be a JSON array.")

    cards = []
    for item in parsed:
        if not isinstance(item, dict) or not str(item.get("word") or "").strip():
            continue
        try:
            card = card_from_record({**item, "word": str(item["word"]).strip()})
        except ValidationError as e:
            log.warning("Skipping invalid card record", word=item.get("word"), error=str(e))
            continue
        cards.append((card.word, card))

    log.info("Cards parsed for import", count=len(cards))
    return cards


def init_database(db_path: Path = HISTORY_DB):
    """Initialize the SQLite database holding cards, review states and the library."""
    db_path = Path(db_path)
    db_exists = db_path.exists()
    db_path.parent.mkdir(parents=True, exist_ok=True)

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS cards(
            word_key TEXT PRIMARY KEY,
            word TEXT NOT NULL,
            card TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS review_states(
            word_key TEXT PRIMARY KEY,
            word TEXT NOT NULL,
            state TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS library(
            kind TEXT NOT NULL,
            position INTEGER NOT NULL,
            word TEXT NOT NULL,
            payload TEXT,
            PRIMARY KEY (kind, position)
        )
    """)

    conn.commit()
    conn.close()

    if db_exists:
        log.info("Database connected", db_path=str(db_path))
    else:
        log.info("Database created", db_path=str(db_path))


def load_cards(db_path: Path = HISTORY_DB) -> List[Tuple[str, Card]]:
    """Read every cached card, in insertion order."""
    conn = sqlite3.connect(db_path)
    rows = conn.execute("SELECT word, card FROM cards ORDER BY rowid").fetchall()
    conn.close()
    return [(word, Card.model_validate_json(card)) for word, card in rows]


def save_cards(cards: Iterable[Tuple[str, Card]], db_path: Path = HISTORY_DB):
    """Replace the stored cards with the given ones."""
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    cursor.execute("DELETE FROM cards")
    cursor.executemany(
        "INSERT OR REPLACE INTO cards (word_key, word, card, updated_at) "
        "VALUES (?, ?, ?, CURRENT_TIMESTAMP)",
        [(normalize_word(word), word, card.model_dump_json()) for word, card in cards],
    )
    conn.commit()
    conn.close()


def load_review_states(db_path: Path = HISTORY_DB) -> List[ReviewState]:
    conn = sqlite3.connect(db_path)
    rows = conn.execute("SELECT state FROM review_states ORDER BY rowid").fetchall()
    conn.close()
    return [ReviewState.model_validate_json(state) for (state,) in rows]


def save_review_states(states: Iterable[ReviewState], db_path: Path = HISTORY_DB):
    """Replace the stored review states with the given ones."""
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    cursor.execute("DELETE FROM review_states")
    cursor.executemany(
        "INSERT OR REPLACE INTO review_states (word_key, word, state, updated_at) "
        "VALUES (?, ?, ?, CURRENT_TIMESTAMP)",
        [(normalize_word(s.word), s.word, s.model_dump_json()) for s in states],
    )
    conn.commit()
    conn.close()


def load_library(db_path: Path = HISTORY_DB) -> Tuple[List[str], List[TrashEntry], List[str]]:
    """Return ``(saved words, trash, view history)`` in stored order."""
    conn = sqlite3.connect(db_path)
    rows = conn.execute(
        "SELECT kind, word, payload FROM library ORDER BY kind, position"
    ).fetchall()
    conn.close()

    saved, trash, history = [], [], []
    for kind, word, payload in rows:
        if kind == SAVED:
            saved.append(word)
        elif kind == TRASH:
            trash.append(TrashEntry.model_validate_json(payload))
        elif kind == HISTORY:
            history.append(word)
    return saved, trash, history


def save_library(saved: Iterable[str], trash: Iterable[TrashEntry], history: Iterable[str],
                 db_path: Path = HISTORY_DB):
    rows = [(SAVED, i, word, None) for i, word in enumerate(saved)]
    rows += [(TRASH, i, entry.word, entry.model_dump_json()) for i, entry in enumerate(trash)]
    rows += [(HISTORY, i, word, None) for i, word in enumerate(history)]

    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    cursor.execute("DELETE FROM library")
    cursor.executemany(
        "INSERT INTO library (kind, position, word, payload) VALUES (?, ?, ?, ?)", rows
    )
    conn.commit()
    conn.close()
