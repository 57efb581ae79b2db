"""Source of novel words: the text generator, backed by a static local list."""

import random
import re
from typing import Iterable, List, Optional, Protocol, Set

import structlog

from . import prompts
from .errors import GenerationError, QuotaExceededError
from .openai_client import TextGenerator

log = structlog.get_logger()

LOCAL_WORDS = [
    "Aberration", "Abstruse", "Acquiesce", "Alacrity", "Ambivalent", "Anachronism",
    "Antithesis", "Apocryphal", "Arcane", "Assiduous", "Audacious", "Austere",
    "Benevolent", "Cacophony", "Capricious", "Catharsis", "Circumspect", "Cogent",
    "Conundrum", "Copious", "Cynosure", "Dearth", "Deleterious", "Diaphanous",
    "Didactic", "Ebullient", "Eclectic", "Efficacious", "Egregious", "Eloquent",
    "Enigmatic", "Ephemeral", "Equanimity", "Esoteric", "Euphemism", "Exacerbate",
    "Fastidious", "Fortuitous", "Garrulous", "Gregarious", "Hackneyed", "Iconoclast",
    "Idiosyncratic", "Ignominious", "Impetuous", "Incandescent", "Ineffable", "Insidious",
    "Intransigent", "Juxtaposition", "Laconic", "Languid", "Lethargic", "Loquacious",
    "Lugubrious", "Magnanimous", "Malleable", "Mellifluous", "Meticulous", "Mundane",
    "Nefarious", "Obfuscate", "Obsequious", "Ostentatious", "Panacea", "Paradigm",
    "Paragon", "Pernicious", "Perspicacious", "Petulant", "Placate", "Pragmatic",
    "Precocious", "Prodigious", "Quixotic", "Recalcitrant", "Reticent", "Sagacious",
    "Sanguine", "Scrupulous", "Serendipity", "Solipsism", "Spurious", "Stoic",
    "Sycophant", "Taciturn", "Tenacious", "Trepidation", "Ubiquitous", "Vacillate",
    "Venerate", "Verbose", "Vicarious", "Vindicate", "Vociferous", "Wistful",
    "Zealous", "Zenith",
]

_WORD_RE = re.compile(r"^[A-Za-z][A-Za-z'\- ]{0,40}$")


class QuotaHolder(Protocol):
    """The part of the pipeline that owns the shared quota flag."""

    def quota_exceeded(self) -> bool:
        ...

    def set_quota_state(self, exceeded: bool, reason: str = "") -> object:
        ...


def _clean_word(line: str) -> Optional[str]:
    word = re.sub(r"^\s*(?:\d+[.)]|[-*•])\s*", "", line).strip().strip(".,;:!?\"'*`").strip()
    return word if word and _WORD_RE.match(word) else None


class WordSupply:
    """Hands out words the user has not saved yet."""

    def __init__(self, generator: Optional[TextGenerator] = None,
                 quota: Optional[QuotaHolder] = None,
                 rng: Optional[random.Random] = None,
                 local_words: Iterable[str] = LOCAL_WORDS):
        self.generator = generator
        self.quota = quota
        self.rng = rng or random.Random()
        self.local_words = list(local_words)

    def _can_generate(self, is_online: bool) -> bool:
        if self.generator is None or not is_online:
            return False
        return not (self.quota is not None and self.quota.quota_exceeded())

    def _report_quota(self, error: QuotaExceededError) -> None:
        if self.quota is not None:
            self.quota.set_quota_state(True, reason=str(error))

    def local_words_excluding(self, exclude: Set[str]) -> List[str]:
        return [w for w in self.local_words if w.casefold() not in exclude]

    def local_word(self, exclude: Iterable[str] = ()) -> str:
        """Pick from the static list with zero network dependency."""
        excluded = {w.casefold() for w in exclude}
        pool = self.local_words_excluding(excluded)
        if not pool:
            log.warning("Every local word is excluded, repeating one")
            pool = self.local_words
        return self.rng.choice(pool)

    async def random_word(self, exclude: Iterable[str] = (), is_online: bool = True) -> str:
        excluded = {w.casefold() for w in exclude}
        if self._can_generate(is_online):
            prompt = prompts.PROMPT_RANDOM_WORD.format(exclude=", ".join(sorted(excluded)[:50]) or "none")
            try:
                text = await self.generator.complete(prompt)
            except QuotaExceededError as e:
                self._report_quota(e)
            except GenerationError as e:
                log.warning("Random word generation failed, using local list", error=str(e))
            else:
                for line in text.splitlines():
                    word = _clean_word(line)
                    if word and word.casefold() not in excluded:
                        return word
                log.warning("Generator suggested no usable word", response=text[:80])
        return self.local_word(excluded)

    async def random_words(self, count: int, exclude: Iterable[str] = (),
                           is_online: bool = True) -> List[str]:
        """A batch of distinct novel words, topped up from the local list."""
        excluded = {w.casefold() for w in exclude}
        words: List[str] = []

        if count > 0 and self._can_generate(is_online):
            prompt = prompts.PROMPT_RANDOM_WORDS.format(
                count=count, exclude=", ".join(sorted(excluded)[:50]) or "none",
            )
            try:
                text = await self.generator.complete(prompt)
            except QuotaExceededError as e:
                self._report_quota(e)
            except GenerationError as e:
                log.warning("Word batch generation failed, using local list", error=str(e))
            else:
                for line in text.splitlines():
                    word = _clean_word(line)
                    if word and word.casefold() not in excluded:
                        words.append(word)
                        excluded.add(word.casefold())
                    if len(words) == count:
                        break

        pool = self.local_words_excluding(excluded)
        self.rng.shuffle(pool)
        while len(words) < count and pool:
            words.append(pool.pop())
        if len(words) < count:
            log.warning("Word supply exhausted", requested=count, supplied=len(words))
        return words
