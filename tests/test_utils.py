"""Tests for file import and SQLite persistence."""

import asyncio
import json
import random
import sqlite3

import pytest

from lexicard.models import Card, CardSource, Grade, StatusLabel
from lexicard.utils import (
    import_cards_json,
    init_database,
    load_cards,
    load_library,
    load_words_from_file,
    save_cards,
)
from lexicard.workspace import Workspace
from tests.conftest import EPHEMERAL_TEXT, NOW, FakeTextGenerator


def test_load_words_from_file(tmp_path):
    path = tmp_path / "words.txt"
    path.write_text("# saved words\nSerendipity\n\n  Laconic  \n", encoding="utf-8")

    assert load_words_from_file(path) == ["Serendipity", "Laconic"]


def test_load_words_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_words_from_file(tmp_path / "missing.txt")


def test_import_cards_json_accepts_short_keys():
    text = json.dumps([
        {
            "word": " Serendipity ",
            "pos": "noun",
            "ipa": "/ˌserənˈdipədē/",
            "definition": "A happy accident.",
            "bengali": "আকস্মিক সৌভাগ্য",
            "family": ["serendipitous (adj)"],
            "context": "Meeting her was pure serendipity.",
            "synonyms": ["luck", "fluke"],
            "unknown": "ignored",
        },
        {"definition": "no word"},
        {"word": "   "},
        "not an object",
    ])

    cards = import_cards_json(text)

    assert len(cards) == 1
    word, card = cards[0]
    assert word == "Serendipity"
    assert card.part_of_speech == "noun"
    assert card.translation == "আকস্মিক সৌভাগ্য"
    assert card.word_family == "serendipitous (adj)"
    assert card.example_context == "Meeting her was pure serendipity."
    assert card.synonyms == "luck, fluke"
    assert card.source is CardSource.CACHE


def test_import_cards_json_from_path(tmp_path):
    path = tmp_path / "cards.json"
    path.write_text(json.dumps([{"word": "Stoic", "definition": "Calm."}]), encoding="utf-8")

    assert import_cards_json(path)[0][1].definition == "Calm."


@pytest.mark.parametrize("text,message", [
    ('{"word": "Stoic"}', "Input must be a JSON array."),
    ("not json", "Invalid JSON"),
])
def test_import_cards_json_rejects_bad_input(text, message):
    with pytest.raises(ValueError, match=message):
        import_cards_json(text)


def test_init_database_creates_tables(tmp_db):
    init_database(tmp_db)
    init_database(tmp_db)

    conn = sqlite3.connect(tmp_db)
    tables = {row[0] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
    conn.close()

    assert {"cards", "review_states", "library"} <= tables


def test_save_cards_replaces_contents(tmp_db):
    init_database(tmp_db)
    save_cards([("Stoic", Card(word="Stoic")), ("Zenith", Card(word="Zenith"))], tmp_db)
    save_cards([("Zenith", Card(word="Zenith", definition="Peak."))], tmp_db)

    cards = load_cards(tmp_db)

    assert [word for word, _ in cards] == ["Zenith"]
    assert cards[0][1].definition == "Peak."


def test_workspace_round_trip(tmp_db, sample_words):
    """Cards, review states, saved list, trash and history survive a reload."""
    generator = FakeTextGenerator(chunks=[EPHEMERAL_TEXT])
    workspace = Workspace.open(tmp_db, generator=generator, rng=random.Random(1))
    for word in sample_words:
        workspace.library.save(word)
    asyncio.run(workspace.show("Ephemeral"))
    workspace.grade("Ephemeral", Grade.KNOW, now=NOW)
    workspace.grade("Laconic", Grade.DONT_KNOW, now=NOW)
    workspace.library.unsave("Pernicious", now=NOW)
    workspace.flush()

    reloaded = Workspace.open(tmp_db, generator=FakeTextGenerator(), rng=random.Random(1))

    assert reloaded.library.saved_words == ["Serendipity", "Ephemeral", "Laconic"]
    assert reloaded.cache.get("ephemeral").definition == "Lasting for a very short time."
    assert reloaded.scheduler.store.get("Ephemeral").due_at == workspace.scheduler.store.get(
        "Ephemeral").due_at
    assert reloaded.scheduler.store.status("Laconic") is StatusLabel.RELEARNING
    assert [e.word for e in reloaded.library.trash] == ["Pernicious"]
    assert reloaded.library.trash[0].state.word == "Pernicious"
    assert reloaded.library.history == ["Ephemeral"]

    saved, trash, history = load_library(tmp_db)
    assert saved == reloaded.library.saved_words


def test_workspace_show_picks_a_word(tmp_db):
    workspace = Workspace(generator=FakeTextGenerator(), rng=random.Random(1))

    word, card = asyncio.run(workspace.show(is_online=False))

    assert word
    assert card.source is CardSource.LOCAL_FALLBACK
    assert workspace.library.history == [word]


def test_workspace_without_db_does_not_flush(tmp_db):
    workspace = Workspace(generator=FakeTextGenerator())
    workspace.library.save("Stoic")
    workspace.flush()

    assert not tmp_db.exists()
