"""Data models for the lexicard core."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .config import DISCOVERY_MIX, EXPLORE_PACK_SIZE, MAX_MASTERY


class CardSource(str, Enum):
    """Where a card came from."""

    GENERATED = "generated"
    CACHE = "cache"
    LOCAL_FALLBACK = "local-fallback"


class Grade(str, Enum):
    """User self-report of recall after revealing a card."""

    KNOW = "know"
    DONT_KNOW = "dont_know"


class StatusLabel(str, Enum):
    """Learning status derived from a ReviewState."""

    NEW = "NEW"
    RELEARNING = "RE-LEARNING"
    LEARNING = "LEARNING"
    MASTERED = "MASTERED"


class Card(BaseModel):
    """Structured definition of one word."""

    word: str
    part_of_speech: str = ""
    pronunciation: str = ""
    definition: str = ""
    translation: str = ""
    word_family: str = ""  # "serendipitous (adj), serendipitously (adv)"
    example_context: str = ""
    synonyms: str = ""
    antonyms: str = ""
    difficulty: str = ""
    usage_notes: str = ""
    etymology: str = ""
    source: CardSource = CardSource.GENERATED

    @field_validator("word_family", "synonyms", "antonyms", mode="before")
    @classmethod
    def _join_list(cls, value: Union[str, List[str], None]) -> str:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(item).strip() for item in value if str(item).strip())
        return value


class ReviewState(BaseModel):
    """Per-word spaced repetition state."""

    word: str
    review_count: int = Field(default=0, ge=0)
    mastery_level: int = 0
    last_grade: Optional[Grade] = None
    due_at: Optional[datetime] = None  # None = never reviewed, due now

    @field_validator("mastery_level")
    @classmethod
    def _clamp_mastery(cls, value: int) -> int:
        return max(0, min(value, MAX_MASTERY))

    @field_validator("due_at")
    @classmethod
    def _aware_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def status(self) -> StatusLabel:
        """Status label, recomputed on every read."""
        if self.review_count == 0:
            return StatusLabel.NEW
        if self.mastery_level == 0:
            return StatusLabel.RELEARNING
        if self.mastery_level >= MAX_MASTERY:
            return StatusLabel.MASTERED
        return StatusLabel.LEARNING


class StudySettings(BaseModel):
    """User tunables read by the scheduler."""

    discovery_mix: int = Field(default=DISCOVERY_MIX, ge=0, le=100)
    explore_pack_size: int = Field(default=EXPLORE_PACK_SIZE, ge=1)


class QuotaState(BaseModel):
    """Process-wide degradation switch for the text generator."""

    exceeded: bool = False
    version: int = 0
    tripped_at: Optional[datetime] = None
    reason: str = ""


class TrashEntry(BaseModel):
    """An un-saved word kept with its review state so it can be restored."""

    word: str
    state: Optional[ReviewState] = None
    trashed_at: Optional[datetime] = None
