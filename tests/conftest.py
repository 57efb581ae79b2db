"""Pytest configuration and fixtures."""

import asyncio
import hashlib
import os
import pathlib
import random
from datetime import datetime, timezone

import pytest
import vcr

from lexicard.cache import DefinitionCache
from lexicard.pipeline import AcquisitionPipeline

# Calculate hash of prompts.py for cassette invalidation
PROMPTS_HASH = hashlib.sha256(
    (pathlib.Path(__file__).parent.parent / "lexicard" / "prompts.py").read_bytes()
).hexdigest()[:8]

NOW = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

EPHEMERAL_TEXT = """POS: adjective
IPA: /əˈfem(ə)rəl/
DEFINITION: Lasting for a very short time.
TRANSLATION: ক্ষণস্থায়ী
WORD FAMILY: ephemerality (noun), ephemerally (adv)
CONTEXT: "Fame in the digital age is often ephemeral."
SYNONYMS: fleeting, transient, momentary
ANTONYMS: N/A
DIFFICULTY: Advanced
ETYMOLOGY: From Greek ephemeros, lasting only a day.
USAGE NOTES: Common in literary and formal registers.
"""


def cassette(name: str) -> str:
    """Generate cassette filename with prompt hash."""
    return f"fixtures/{name}_{PROMPTS_HASH}.yaml"


@pytest.fixture
def my_vcr():
    """VCR fixture for recording/replaying HTTP interactions."""
    return vcr.VCR(
        cassette_library_dir="tests/fixtures",
        filter_headers=[("authorization", "DUMMY")],
        record_mode="once",
    )


def live_guard():
    """Check if live testing is enabled."""
    if not os.getenv("LEXICARD_LIVE"):
        pytest.skip("Live LLM disabled (set LEXICARD_LIVE=1)")


def split_chunks(text: str, size: int):
    return [text[i:i + size] for i in range(0, len(text), size)]


class FakeTextGenerator:
    """Scripted TextGenerator that records every call."""

    def __init__(self, chunks=None, completion="", error=None, complete_error=None):
        self.chunks = list(chunks or [])
        self.completion = completion
        self.error = error
        self.complete_error = complete_error
        self.stream_calls = []
        self.complete_calls = []

    async def stream(self, prompt):
        self.stream_calls.append(prompt)
        for chunk in self.chunks:
            await asyncio.sleep(0)
            yield chunk
        if self.error is not None:
            raise self.error

    async def complete(self, prompt):
        self.complete_calls.append(prompt)
        if self.complete_error is not None:
            raise self.complete_error
        return self.completion

    @property
    def calls(self):
        return len(self.stream_calls) + len(self.complete_calls)


async def no_dictionary(word):
    return None


@pytest.fixture
def sample_text():
    return EPHEMERAL_TEXT


@pytest.fixture
def fake_generator():
    return FakeTextGenerator(chunks=split_chunks(EPHEMERAL_TEXT, 17))


@pytest.fixture
def pipeline(fake_generator):
    return AcquisitionPipeline(DefinitionCache(), fake_generator, dictionary_lookup=no_dictionary)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def sample_words():
    """Sample saved words for testing."""
    return ["Serendipity", "Ephemeral", "Pernicious", "Laconic"]


@pytest.fixture
def tmp_db(tmp_path):
    """Provide a temporary SQLite database path for tests."""
    return tmp_path / "data" / "lexicard.sqlite"
