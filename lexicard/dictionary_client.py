"""Free Dictionary API client for one-line definitions."""

import asyncio
from typing import Optional
from urllib.parse import quote

import aiohttp
import structlog

from .config import DICTIONARY_API_URL, REQUEST_TIMEOUT

log = structlog.get_logger()


async def fetch_short_definition(word: str, base_url: str = DICTIONARY_API_URL) -> Optional[str]:
    """Return ``"(pos) definition"`` for a word, or None when unavailable."""
    word = word.strip()
    if not word:
        return None

    url = f"{base_url.rstrip('/')}/{quote(word.lower())}"
    timeout = aiohttp.ClientTimeout(total=REQUEST_TIMEOUT)

    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.get(url) as response:
                if response.status != 200:
                    log.info("Dictionary lookup missed", word=word, status=response.status)
                    return None
                data = await response.json()
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        log.warning("Dictionary lookup failed", word=word, error=str(e))
        return None

    try:
        meaning = data[0]["meanings"][0]
        definition = meaning["definitions"][0]["definition"]
    except (KeyError, IndexError, TypeError):
        log.warning("Unexpected dictionary response", word=word)
        return None

    part_of_speech = meaning.get("partOfSpeech") or "word"
    log.info("Dictionary lookup completed", word=word)
    return f"({part_of_speech}) {definition}"
