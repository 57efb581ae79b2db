"""Card acquisition: cache, offline and quota short-circuits, streamed generation."""

from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, Optional, Tuple

import structlog

from . import prompts
from .cache import DefinitionCache
from .config import QUOTA_COOLDOWN, TRANSLATION_LANGUAGE
from .dictionary_client import fetch_short_definition
from .errors import GenerationError, QuotaExceededError
from .models import Card, CardSource, QuotaState
from .openai_client import TextGenerator
from .parser import parse_card
from .review import utcnow

log = structlog.get_logger()

OFFLINE_MARKER = "Offline: this word is not cached yet. Connect to load its definition."
QUOTA_MARKER = "Temporarily unavailable: the definition service is over its quota. Try again later."
FAILURE_MARKER = "Failed to load definition."
SHORT_DEFINITION_UNAVAILABLE = "Definition unavailable."

# Fields that must carry something for a generated card to count as usable
_CONTENT_FIELDS = ("definition", "part_of_speech", "example_context", "synonyms")

PartialCallback = Callable[[Card], None]
DictionaryLookup = Callable[[str], Awaitable[Optional[str]]]


def sentinel_card(word: str, message: str) -> Card:
    """Renderable stand-in used when the real definition cannot be fetched."""
    return Card(word=word, definition=message, source=CardSource.LOCAL_FALLBACK)


def is_sentinel(card: Card) -> bool:
    return card.source is CardSource.LOCAL_FALLBACK and card.definition in (
        OFFLINE_MARKER, QUOTA_MARKER, FAILURE_MARKER,
    )


class AcquisitionPipeline:
    """Resolves words to cards for one display surface.

    Only the most recent ``resolve_card`` call is authoritative. Every call
    takes a new epoch; a call whose epoch has been superseded drops the rest
    of its stream, leaves the cache and ``active_card`` alone and returns
    None.
    """

    def __init__(
        self,
        cache: DefinitionCache,
        generator: TextGenerator,
        quota: Optional[QuotaState] = None,
        quota_cooldown: float = QUOTA_COOLDOWN,
        translation_language: str = TRANSLATION_LANGUAGE,
        dictionary_lookup: DictionaryLookup = fetch_short_definition,
    ):
        self.cache = cache
        self.generator = generator
        self.quota_cooldown = quota_cooldown
        self.translation_language = translation_language
        self.dictionary_lookup = dictionary_lookup
        self._quota = quota or QuotaState()
        self._epoch = 0
        self.active_word: Optional[str] = None
        self.active_card: Optional[Card] = None

    # Quota state

    def get_quota_state(self, now: Optional[datetime] = None) -> QuotaState:
        """Current quota state, clearing it first if the cooldown has elapsed."""
        quota = self._quota
        if quota.exceeded and self.quota_cooldown > 0 and quota.tripped_at is not None:
            now = now or utcnow()
            if now - quota.tripped_at >= timedelta(seconds=self.quota_cooldown):
                log.info("Quota cooldown elapsed", tripped_at=quota.tripped_at.isoformat())
                self.set_quota_state(False, now=now)
        return self._quota

    def set_quota_state(self, exceeded: bool, reason: str = "",
                        now: Optional[datetime] = None) -> QuotaState:
        self._quota = QuotaState(
            exceeded=exceeded,
            version=self._quota.version + 1,
            tripped_at=(now or utcnow()) if exceeded else None,
            reason=reason if exceeded else "",
        )
        return self._quota

    def reset_quota(self) -> QuotaState:
        return self.set_quota_state(False)

    def quota_exceeded(self, now: Optional[datetime] = None) -> bool:
        return self.get_quota_state(now).exceeded

    # Request epochs

    def _begin(self, word: str) -> int:
        self._epoch += 1
        self.active_word = word
        self.active_card = None
        return self._epoch

    def is_current(self, token: int) -> bool:
        return token == self._epoch

    def _publish(self, token: int, card: Card) -> Optional[Card]:
        if not self.is_current(token):
            return None
        self.active_card = card
        return card

    def cancel(self) -> None:
        """Abandon any in-flight request without starting a new one."""
        self._begin(None)

    # Card resolution

    async def resolve_card(
        self,
        word: str,
        is_online: bool = True,
        on_partial: Optional[PartialCallback] = None,
        refresh: bool = False,
    ) -> Optional[Card]:
        """Resolve a word to a card.

        Args:
            word: The requested word; the cache entry is written under this
                exact spelling.
            is_online: False short-circuits to an offline card on a cache miss.
            on_partial: Called with a freshly parsed card after every chunk.
            refresh: Skip the cached card and generate a new one. The cached
                card is only replaced when generation succeeds.

        Returns:
            The card, or None if a newer request superseded this one.
        """
        word = word.strip()
        token = self._begin(word)

        # a refresh keeps the old card until a new one has been generated
        cached = None if refresh else self.cache.get(word)
        if cached is not None:
            log.info("Cache hit", word=word)
            return self._publish(token, cached.model_copy(update={"source": CardSource.CACHE}))

        if not is_online:
            log.info("Offline and not cached", word=word)
            return self._publish(token, sentinel_card(word, OFFLINE_MARKER))

        if self.quota_exceeded():
            log.warning("Quota exceeded, skipping generation", word=word,
                        quota_version=self._quota.version)
            return self._publish(token, sentinel_card(word, QUOTA_MARKER))

        return await self._generate(word, token, on_partial)

    async def _generate(self, word: str, token: int,
                        on_partial: Optional[PartialCallback]) -> Optional[Card]:
        prompt = prompts.PROMPT_CARD_DEFINITION.format(
            word=word, translation_language=self.translation_language,
        )
        buffer = ""
        stream = self.generator.stream(prompt)
        log.info("Generating card", word=word)

        try:
            async for chunk in stream:
                if not self.is_current(token):
                    log.info("Discarding stale stream", word=word)
                    return None
                buffer += chunk
                partial = parse_card(buffer, word)
                self._publish(token, partial)
                if on_partial is not None:
                    on_partial(partial)
        except QuotaExceededError as e:
            self.set_quota_state(True, reason=str(e))
            log.warning("Generator quota exhausted", word=word, error=str(e),
                        quota_version=self._quota.version)
            return self._publish(token, sentinel_card(word, QUOTA_MARKER))
        except Exception as e:
            log.error("Card generation failed", word=word, error=str(e))
            return self._publish(token, sentinel_card(word, FAILURE_MARKER))
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

        if not self.is_current(token):
            log.info("Discarding stale result", word=word)
            return None

        card = parse_card(buffer, word, complete=True)
        if not any(getattr(card, field) for field in _CONTENT_FIELDS):
            log.error("Generator returned no usable fields", word=word, length=len(buffer))
            return self._publish(token, sentinel_card(word, FAILURE_MARKER))

        self.cache.put(word, card)
        log.info("Card generated", word=word, length=len(buffer))
        return self._publish(token, card)

    def store_cards(self, cards: Iterable[Tuple[str, Card]]) -> int:
        """Write externally supplied cards (bulk import) into the cache."""
        count = 0
        for word, card in cards:
            self.cache.put(word, card)
            count += 1
        log.info("Cards stored", count=count)
        return count

    # Single-shot lookups

    async def short_definition(self, word: str, is_online: bool = True) -> str:
        """One-line ``(pos) definition`` for tooltips and lists."""
        cached = self.cache.get(word)
        if cached is not None and cached.definition and not is_sentinel(cached):
            pos = cached.part_of_speech or "word"
            return f"({pos}) {cached.definition}"
        if not is_online:
            return SHORT_DEFINITION_UNAVAILABLE

        definition = await self.dictionary_lookup(word)
        if definition:
            return definition

        if self.quota_exceeded():
            return SHORT_DEFINITION_UNAVAILABLE
        try:
            text = await self.generator.complete(prompts.PROMPT_SHORT_DEFINITION.format(word=word))
        except QuotaExceededError as e:
            self.set_quota_state(True, reason=str(e))
            return SHORT_DEFINITION_UNAVAILABLE
        except GenerationError as e:
            log.warning("Short definition failed", word=word, error=str(e))
            return SHORT_DEFINITION_UNAVAILABLE
        return text.strip() or SHORT_DEFINITION_UNAVAILABLE

    async def regenerate_example(self, word: str, is_online: bool = True) -> Optional[Card]:
        """Replace the cached card's example sentence with a fresh one.

        Returns the updated card, the unchanged card when no new sentence
        could be produced, or None when the word is not cached.
        """
        cached = self.cache.get(word)
        if cached is None:
            return None
        if not is_online or self.quota_exceeded():
            return cached

        try:
            text = await self.generator.complete(prompts.PROMPT_USAGE_EXAMPLE.format(word=word))
        except QuotaExceededError as e:
            self.set_quota_state(True, reason=str(e))
            return cached
        except GenerationError as e:
            log.warning("Example regeneration failed", word=word, error=str(e))
            return cached

        sentence = text.strip().strip('"').strip()
        if not sentence:
            return cached

        updated = cached.model_copy(update={"example_context": sentence})
        self.cache.put(word, updated)
        if self.active_word is not None and self.active_word.casefold() == word.strip().casefold():
            self.active_card = updated
        return updated
