"""Grading state machine and the per-word review state store."""

from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import structlog

from .cache import normalize_word
from .config import INTERVAL_DAYS, MAX_MASTERY
from .models import Grade, ReviewState, StatusLabel

log = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def interval_for(mastery_level: int, ladder: Sequence[int] = INTERVAL_DAYS) -> timedelta:
    """Time until the next review for a mastery level.

    Levels past the end of a short ladder reuse its last step, and a step is
    never shorter than the one before it.
    """
    if not ladder:
        return timedelta(0)
    level = max(0, min(mastery_level, MAX_MASTERY))
    days = max(ladder[: level + 1]) if level < len(ladder) else max(ladder)
    return timedelta(days=max(days, 0))


def new_state(word: str) -> ReviewState:
    """State of a saved word that has never been reviewed."""
    return ReviewState(word=word)


def apply_grade(
    state: ReviewState,
    grade: Grade,
    now: Optional[datetime] = None,
    ladder: Sequence[int] = INTERVAL_DAYS,
) -> ReviewState:
    """Return the state after one grade. The input state is not modified.

    ``know`` raises mastery by one (capped) and pushes ``due_at`` out by the
    interval for the new level, never earlier than it already was.
    ``dont_know`` drops mastery to 0 and makes the word due immediately.
    """
    now = now or utcnow()
    grade = Grade(grade)

    if grade is Grade.KNOW:
        mastery = min(state.mastery_level + 1, MAX_MASTERY)
        due_at = now + interval_for(mastery, ladder)
        if state.due_at is not None and state.due_at > due_at:
            due_at = state.due_at
    else:
        mastery = 0
        due_at = now

    return state.model_copy(
        update={
            "review_count": state.review_count + 1,
            "mastery_level": mastery,
            "last_grade": grade,
            "due_at": due_at,
        }
    )


class ReviewStateStore:
    """Word -> ReviewState map.

    Keys are case-insensitive. Entries are only changed through ``grade``;
    ``ensure`` creates default entries and ``remove`` drops them when a word
    is un-saved.
    """

    def __init__(self, states: Optional[Iterable[ReviewState]] = None,
                 ladder: Sequence[int] = INTERVAL_DAYS):
        self._states: Dict[str, ReviewState] = {}
        self.ladder = list(ladder)
        for state in states or ():
            self._states[normalize_word(state.word)] = state

    def get(self, word: str) -> Optional[ReviewState]:
        return self._states.get(normalize_word(word))

    def ensure(self, word: str) -> ReviewState:
        """Return the state for ``word``, creating a NEW one if missing."""
        key = normalize_word(word)
        state = self._states.get(key)
        if state is None:
            state = new_state(word.strip())
            self._states[key] = state
        return state

    def grade(self, word: str, grade: Grade, now: Optional[datetime] = None) -> ReviewState:
        """Apply a grade to one word and store the result."""
        previous = self.ensure(word)
        updated = apply_grade(previous, grade, now=now, ladder=self.ladder)
        self._states[normalize_word(word)] = updated
        log.info(
            "Word graded",
            word=updated.word,
            grade=updated.last_grade.value,
            mastery=updated.mastery_level,
            reviews=updated.review_count,
            due_at=updated.due_at.isoformat(),
        )
        return updated

    def adopt(self, state: ReviewState) -> None:
        """Put back a previously removed state (restore from trash, import)."""
        self._states[normalize_word(state.word)] = state

    def remove(self, word: str) -> Optional[ReviewState]:
        return self._states.pop(normalize_word(word), None)

    def status(self, word: str) -> StatusLabel:
        state = self.get(word)
        return state.status if state else StatusLabel.NEW

    def states(self) -> List[ReviewState]:
        return list(self._states.values())

    def as_mapping(self) -> Dict[str, ReviewState]:
        """Snapshot keyed by normalized word, for read-only consumers."""
        return dict(self._states)

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and normalize_word(word) in self._states

    def __len__(self) -> int:
        return len(self._states)
