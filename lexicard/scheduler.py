"""Due-set computation and next-word selection."""

import random
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union

import structlog

from .cache import normalize_word
from .models import Grade, ReviewState
from .review import ReviewStateStore, utcnow
from .word_supply import WordSupply

log = structlog.get_logger()

_NEVER = datetime.min.replace(tzinfo=timezone.utc)

StateSource = Union[ReviewStateStore, Mapping[str, ReviewState]]


def _state_lookup(states: StateSource) -> Dict[str, ReviewState]:
    if isinstance(states, ReviewStateStore):
        return states.as_mapping()
    return {normalize_word(word): state for word, state in states.items()}


def _unique(words: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for word in words:
        key = normalize_word(word)
        if key and key not in seen:
            seen.add(key)
            result.append(word)
    return result


def get_due_words(saved_words: Sequence[str], states: StateSource,
                  now: Optional[datetime] = None) -> List[str]:
    """Saved words that are due, most overdue first.

    A word is due when it has no ``due_at`` (never reviewed) or its
    ``due_at`` has passed. Never-reviewed words come first, then ascending
    ``due_at``; ties keep the order of ``saved_words``.
    """
    now = now or utcnow()
    lookup = _state_lookup(states)

    due = []
    for index, word in enumerate(_unique(saved_words)):
        state = lookup.get(normalize_word(word))
        due_at = state.due_at if state else None
        if due_at is None or due_at <= now:
            due.append((due_at or _NEVER, index, word))

    due.sort(key=lambda item: (item[0], item[1]))
    return [word for _, _, word in due]


class ReviewScheduler:
    """Chooses what to show next and owns the review state store."""

    def __init__(self, store: ReviewStateStore, supply: WordSupply,
                 rng: Optional[random.Random] = None):
        self.store = store
        self.supply = supply
        self.rng = rng or random.Random()

    def grade(self, word: str, grade: Grade, now: Optional[datetime] = None) -> ReviewState:
        return self.store.grade(word, grade, now=now)

    def due_words(self, saved_words: Sequence[str], now: Optional[datetime] = None) -> List[str]:
        return get_due_words(saved_words, self.store, now=now)

    def wants_novel(self, discovery_mix: int) -> bool:
        """Draw r in [0, 100); a novel word is wanted when r < discovery_mix."""
        return self.rng.random() * 100 < discovery_mix

    async def next_word(self, saved_words: Sequence[str], discovery_mix: int,
                        now: Optional[datetime] = None, is_online: bool = True) -> str:
        """Pick the next word to show.

        This is a stateless random draw: calling it twice with the same
        inputs may return different words.
        """
        saved = _unique(saved_words)
        if not saved or self.wants_novel(discovery_mix):
            word = await self.supply.random_word(exclude=saved, is_online=is_online)
            log.info("Next word selected", word=word, origin="novel")
            return word

        due = self.due_words(saved, now=now)
        if due:
            log.info("Next word selected", word=due[0], origin="due", due_count=len(due))
            return due[0]

        word = self.rng.choice(saved)
        log.info("Next word selected", word=word, origin="saved")
        return word

    async def start_explore(self, pack_size: int, saved_words: Sequence[str] = (),
                            is_online: bool = True) -> "ExploreSession":
        session = ExploreSession(self.supply, pack_size, exclude=saved_words)
        await session.start(is_online=is_online)
        return session


class ExploreSession:
    """A finite, pre-generated run of novel words with a cursor.

    ``current`` is 1-based and stays within ``[1, total]`` once the first
    batch exists. At the last word, ``generate_more`` appends another batch
    and moves the cursor onto its first word.
    """

    def __init__(self, supply: WordSupply, batch_size: int, exclude: Iterable[str] = ()):
        self.supply = supply
        self.batch_size = max(1, batch_size)
        self.exclude = list(exclude)
        self.words: List[str] = []
        self._index = 0

    @property
    def total(self) -> int:
        return len(self.words)

    @property
    def current(self) -> int:
        return self._index + 1 if self.words else 0

    @property
    def current_word(self) -> Optional[str]:
        return self.words[self._index] if self.words else None

    @property
    def at_end(self) -> bool:
        return bool(self.words) and self.current == self.total

    async def _next_batch(self, is_online: bool) -> List[str]:
        return await self.supply.random_words(
            self.batch_size, exclude=self.exclude + self.words, is_online=is_online,
        )

    async def start(self, is_online: bool = True) -> List[str]:
        self.words = await self._next_batch(is_online)
        self._index = 0
        log.info("Explore session started", total=self.total)
        return list(self.words)

    def forward(self) -> bool:
        if not self.words or self.at_end:
            return False
        self._index += 1
        return True

    def back(self) -> bool:
        if self._index == 0:
            return False
        self._index -= 1
        return True

    async def generate_more(self, is_online: bool = True) -> List[str]:
        """Append a batch; only available at the end of the sequence."""
        if self.words and not self.at_end:
            return []
        batch = await self._next_batch(is_online)
        if not batch:
            return []
        boundary = len(self.words)
        self.words.extend(batch)
        self._index = boundary
        log.info("Explore batch appended", added=len(batch), total=self.total)
        return batch
