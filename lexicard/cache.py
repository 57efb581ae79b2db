"""In-memory word -> Card store with case-insensitive keys."""

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

import structlog

from .models import Card

log = structlog.get_logger()


def normalize_word(word: str) -> str:
    """Key used for case-insensitive lookups."""
    return word.strip().casefold()


class DefinitionCache:
    """Word -> Card map.

    Keys compare case-insensitively. The spelling used on first insert is
    kept as the display key; later writes under a different case replace the
    card but not the spelling. Cards are returned exactly as stored.
    """

    def __init__(self, cards: Optional[Iterable[Tuple[str, Card]]] = None):
        self._entries: Dict[str, Tuple[str, Card]] = {}
        for word, card in cards or ():
            self.put(word, card)

    def get(self, word: str) -> Optional[Card]:
        entry = self._entries.get(normalize_word(word))
        return entry[1] if entry else None

    def put(self, word: str, card: Card) -> None:
        key = normalize_word(word)
        existing = self._entries.get(key)
        display = existing[0] if existing else word.strip()
        self._entries[key] = (display, card)

    def invalidate(self, word: str) -> bool:
        """Drop a cached card so the next lookup refetches it."""
        removed = self._entries.pop(normalize_word(word), None) is not None
        if removed:
            log.info("Cache entry invalidated", word=word)
        return removed

    def display_key(self, word: str) -> Optional[str]:
        entry = self._entries.get(normalize_word(word))
        return entry[0] if entry else None

    def items(self) -> List[Tuple[str, Card]]:
        return list(self._entries.values())

    def __contains__(self, word: object) -> bool:
        return isinstance(word, str) and normalize_word(word) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return (display for display, _ in self._entries.values())
