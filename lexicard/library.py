"""Saved word list, trash bin and view history."""

from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from .cache import normalize_word
from .errors import UnknownWordError, WordExistsError
from .models import ReviewState, StatusLabel, TrashEntry
from .review import utcnow
from .scheduler import ReviewScheduler

log = structlog.get_logger()


class VocabularyLibrary:
    """The user's saved words.

    Saved words keep their save order, which the scheduler uses to break
    ties. Every saved word has a review state; un-saving moves the word and
    a snapshot of its state to the trash, from where it can be restored.
    """

    def __init__(self, scheduler: ReviewScheduler, saved_words: Iterable[str] = (),
                 trash: Iterable[TrashEntry] = (), history: Iterable[str] = ()):
        self.scheduler = scheduler
        self._saved: List[str] = []
        self._trash: List[TrashEntry] = list(trash)
        self._history: List[str] = list(history)
        for word in saved_words:
            self._add(word)

    @property
    def store(self):
        return self.scheduler.store

    @property
    def saved_words(self) -> List[str]:
        return list(self._saved)

    @property
    def trash(self) -> List[TrashEntry]:
        return list(self._trash)

    @property
    def history(self) -> List[str]:
        return list(self._history)

    def _index(self, word: str) -> Optional[int]:
        key = normalize_word(word)
        for i, saved in enumerate(self._saved):
            if normalize_word(saved) == key:
                return i
        return None

    def _trash_index(self, word: str) -> Optional[int]:
        key = normalize_word(word)
        for i, entry in enumerate(self._trash):
            if normalize_word(entry.word) == key:
                return i
        return None

    def _add(self, word: str) -> bool:
        word = word.strip()
        if not word or self._index(word) is not None:
            return False
        self._saved.append(word)
        self.store.ensure(word)
        return True

    def is_saved(self, word: str) -> bool:
        return self._index(word) is not None

    def save(self, word: str) -> bool:
        """Add a word. Returns False if it was already saved."""
        added = self._add(word)
        if added:
            trashed = self._trash_index(word)
            if trashed is not None:
                del self._trash[trashed]
            log.info("Word saved", word=word.strip(), saved=len(self._saved))
        return added

    def unsave(self, word: str, now: Optional[datetime] = None) -> Optional[TrashEntry]:
        """Remove a word, keeping its review state in the trash."""
        index = self._index(word)
        if index is None:
            return None
        saved = self._saved.pop(index)
        entry = TrashEntry(word=saved, state=self.store.remove(saved), trashed_at=now or utcnow())
        existing = self._trash_index(saved)
        if existing is not None:
            del self._trash[existing]
        self._trash.insert(0, entry)
        log.info("Word moved to trash", word=saved)
        return entry

    def toggle(self, word: str) -> bool:
        """Save or un-save a word; returns True when it ends up saved."""
        if self.is_saved(word):
            self.unsave(word)
            return False
        self.save(word)
        return True

    def restore(self, word: str) -> ReviewState:
        """Bring a word back from the trash with its previous review state."""
        index = self._trash_index(word)
        if index is None:
            raise UnknownWordError(f"'{word}' is not in the trash")
        entry = self._trash.pop(index)
        if self._index(entry.word) is None:
            self._saved.append(entry.word)
        if entry.state is not None:
            self.store.adopt(entry.state)
        log.info("Word restored", word=entry.word)
        return self.store.ensure(entry.word)

    def purge(self, word: str) -> bool:
        index = self._trash_index(word)
        if index is None:
            return False
        del self._trash[index]
        return True

    def empty_trash(self) -> int:
        count = len(self._trash)
        self._trash.clear()
        log.info("Trash emptied", count=count)
        return count

    def rename(self, old: str, new: str) -> ReviewState:
        """Rename a saved word, carrying its review state along."""
        new = new.strip()
        index = self._index(old)
        if index is None:
            raise UnknownWordError(f"'{old}' is not saved")
        if not new:
            raise ValueError("new word must not be empty")
        other = self._index(new)
        if other is not None and other != index:
            raise WordExistsError(f"'{new}' is already saved")

        state = self.store.remove(self._saved[index]) or self.store.ensure(new)
        renamed = state.model_copy(update={"word": new})
        self.store.adopt(renamed)
        self._saved[index] = new
        log.info("Word renamed", old=old, new=new)
        return renamed

    def import_words(self, words: Iterable[str],
                     states: Optional[Mapping[str, ReviewState]] = None) -> List[str]:
        """Merge words from an import; existing words and states are kept."""
        imported = {normalize_word(k): v for k, v in (states or {}).items()}
        added = []
        for word in words:
            if not self._add(word):
                continue
            state = imported.get(normalize_word(word))
            if state is not None:
                self.store.adopt(state.model_copy(update={"word": word.strip()}))
            added.append(word.strip())
        log.info("Words imported", added=len(added))
        return added

    def record_view(self, word: str) -> None:
        """Move a word to the front of the view history."""
        word = word.strip()
        if not word:
            return
        key = normalize_word(word)
        self._history = [word] + [w for w in self._history if normalize_word(w) != key]

    def forget_view(self, word: str) -> None:
        key = normalize_word(word)
        self._history = [w for w in self._history if normalize_word(w) != key]

    def filter_by_status(self, label: StatusLabel) -> List[str]:
        return [w for w in self._saved if self.store.status(w) is label]

    def counts(self) -> Dict[StatusLabel, int]:
        counts = {label: 0 for label in StatusLabel}
        for word in self._saved:
            counts[self.store.status(word)] += 1
        return counts
