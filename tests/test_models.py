"""Tests for data models."""

import pytest
from datetime import datetime, timezone
from pydantic import ValidationError

from lexicard.models import (
    Card,
    CardSource,
    Grade,
    QuotaState,
    ReviewState,
    StatusLabel,
    StudySettings,
    TrashEntry,
)


def test_card_creation():
    """Test Card creation and default values."""
    card = Card(word="Ephemeral")

    assert card.word == "Ephemeral"
    assert card.part_of_speech == ""
    assert card.pronunciation == ""
    assert card.definition == ""
    assert card.translation == ""
    assert card.word_family == ""
    assert card.example_context == ""
    assert card.synonyms == ""
    assert card.antonyms == ""
    assert card.difficulty == ""
    assert card.usage_notes == ""
    assert card.etymology == ""
    assert card.source is CardSource.GENERATED


def test_card_joins_list_fields():
    """List input for the comma-joined fields is flattened."""
    card = Card(
        word="Serendipity",
        synonyms=["luck", " fluke ", ""],
        antonyms=None,
        word_family=("serendipitous (adj)", "serendipitously (adv)"),
    )

    assert card.synonyms == "luck, fluke"
    assert card.antonyms == ""
    assert card.word_family == "serendipitous (adj), serendipitously (adv)"


def test_card_json_round_trip():
    card = Card(word="Laconic", definition="Using very few words.", source=CardSource.CACHE)
    restored = Card.model_validate_json(card.model_dump_json())

    assert restored == card
    assert restored.source is CardSource.CACHE


def test_review_state_defaults():
    """Test ReviewState default values."""
    state = ReviewState(word="Laconic")

    assert state.review_count == 0
    assert state.mastery_level == 0
    assert state.last_grade is None
    assert state.due_at is None
    assert state.status is StatusLabel.NEW


@pytest.mark.parametrize("count,mastery,expected", [
    (0, 0, StatusLabel.NEW),
    (0, 3, StatusLabel.NEW),
    (1, 0, StatusLabel.RELEARNING),
    (4, 0, StatusLabel.RELEARNING),
    (1, 1, StatusLabel.LEARNING),
    (9, 4, StatusLabel.LEARNING),
    (5, 5, StatusLabel.MASTERED),
])
def test_review_state_status(count, mastery, expected):
    """The status label is derived from review count and mastery."""
    state = ReviewState(word="Laconic", review_count=count, mastery_level=mastery)
    assert state.status is expected


def test_review_state_clamps_mastery():
    assert ReviewState(word="a", mastery_level=12).mastery_level == 5
    assert ReviewState(word="a", mastery_level=-3).mastery_level == 0


def test_review_state_rejects_negative_count():
    with pytest.raises(ValidationError):
        ReviewState(word="a", review_count=-1)


def test_review_state_naive_due_at_is_utc():
    state = ReviewState(word="a", due_at=datetime(2026, 1, 1, 9, 0))
    assert state.due_at == datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)


def test_review_state_json_round_trip():
    state = ReviewState(
        word="Pernicious",
        review_count=3,
        mastery_level=2,
        last_grade=Grade.KNOW,
        due_at=datetime(2026, 2, 1, tzinfo=timezone.utc),
    )
    assert ReviewState.model_validate_json(state.model_dump_json()) == state


def test_study_settings_bounds():
    """Test StudySettings defaults and validation."""
    settings = StudySettings()
    assert settings.discovery_mix == 30
    assert settings.explore_pack_size == 10

    with pytest.raises(ValidationError):
        StudySettings(discovery_mix=101)
    with pytest.raises(ValidationError):
        StudySettings(explore_pack_size=0)


def test_quota_state_defaults():
    quota = QuotaState()

    assert quota.exceeded is False
    assert quota.version == 0
    assert quota.tripped_at is None


def test_trash_entry_keeps_state():
    state = ReviewState(word="Stoic", review_count=2, mastery_level=2)
    entry = TrashEntry(word="Stoic", state=state)

    assert entry.state == state
    assert entry.trashed_at is None
