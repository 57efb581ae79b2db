"""Wires the core components together and persists them."""

import random
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Tuple

import structlog

from .cache import DefinitionCache
from .config import HISTORY_DB
from .library import VocabularyLibrary
from .models import Card, Grade, ReviewState, StudySettings, TrashEntry
from .openai_client import OpenAITextGenerator, TextGenerator
from .pipeline import AcquisitionPipeline, PartialCallback
from .review import ReviewStateStore
from .scheduler import ExploreSession, ReviewScheduler
from .utils import (
    init_database,
    load_cards,
    load_library,
    load_review_states,
    save_cards,
    save_library,
    save_review_states,
)
from .word_supply import WordSupply

log = structlog.get_logger()


class Workspace:
    """One user's cards, review states and saved list."""

    def __init__(
        self,
        generator: Optional[TextGenerator] = None,
        settings: Optional[StudySettings] = None,
        db_path: Optional[Path] = None,
        rng: Optional[random.Random] = None,
        cards: Iterable[Tuple[str, Card]] = (),
        states: Iterable[ReviewState] = (),
        saved_words: Iterable[str] = (),
        trash: Iterable[TrashEntry] = (),
        history: Iterable[str] = (),
    ):
        self.db_path = Path(db_path) if db_path is not None else None
        self.settings = settings or StudySettings()
        self.generator = generator if generator is not None else OpenAITextGenerator()
        self.cache = DefinitionCache(cards)
        self.pipeline = AcquisitionPipeline(self.cache, self.generator)
        self.supply = WordSupply(self.generator, quota=self.pipeline, rng=rng)
        self.scheduler = ReviewScheduler(ReviewStateStore(states), self.supply, rng=rng)
        self.library = VocabularyLibrary(self.scheduler, saved_words, trash, history)

    @classmethod
    def open(cls, db_path: Path = HISTORY_DB, generator: Optional[TextGenerator] = None,
             settings: Optional[StudySettings] = None,
             rng: Optional[random.Random] = None) -> "Workspace":
        """Hydrate a workspace from the SQLite database."""
        init_database(db_path)
        saved, trash, history = load_library(db_path)
        workspace = cls(
            generator=generator,
            settings=settings,
            db_path=db_path,
            rng=rng,
            cards=load_cards(db_path),
            states=load_review_states(db_path),
            saved_words=saved,
            trash=trash,
            history=history,
        )
        log.info("Workspace loaded", cards=len(workspace.cache), saved=len(saved))
        return workspace

    def flush(self) -> None:
        """Write everything back to the database, if there is one."""
        if self.db_path is None:
            return
        save_cards(self.cache.items(), self.db_path)
        save_review_states(self.scheduler.store.states(), self.db_path)
        save_library(self.library.saved_words, self.library.trash, self.library.history,
                     self.db_path)
        log.info("Workspace flushed", db_path=str(self.db_path))

    async def show(self, word: Optional[str] = None, is_online: bool = True,
                   on_partial: Optional[PartialCallback] = None,
                   refresh: bool = False) -> Tuple[str, Optional[Card]]:
        """Resolve the card to display, picking a word when none is given."""
        if not word:
            word = await self.scheduler.next_word(
                self.library.saved_words, self.settings.discovery_mix, is_online=is_online,
            )
        self.library.record_view(word)
        card = await self.pipeline.resolve_card(
            word, is_online=is_online, on_partial=on_partial, refresh=refresh,
        )
        return word, card

    def grade(self, word: str, grade: Grade, now: Optional[datetime] = None) -> ReviewState:
        return self.scheduler.grade(word, grade, now=now)

    def due_words(self, now: Optional[datetime] = None):
        return self.scheduler.due_words(self.library.saved_words, now=now)

    async def explore(self, is_online: bool = True) -> ExploreSession:
        return await self.scheduler.start_explore(
            self.settings.explore_pack_size, self.library.saved_words, is_online=is_online,
        )

    async def close(self) -> None:
        close = getattr(self.generator, "close", None)
        if close is not None:
            await close()
