"""Configuration and runtime constants."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# API Keys
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# Model Configuration
MODEL_NAME = os.getenv("MODEL_NAME", "gpt-4o-mini")
TEMPERATURE = float(os.getenv("TEMPERATURE", "0.7"))
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "60"))
TRANSLATION_LANGUAGE = os.getenv("TRANSLATION_LANGUAGE", "Bengali")

# Study Configuration
DISCOVERY_MIX = int(os.getenv("DISCOVERY_MIX", "30"))  # 0 = only saved words, 100 = only new words
EXPLORE_PACK_SIZE = int(os.getenv("EXPLORE_PACK_SIZE", "10"))
MAX_MASTERY = 5

# Days until the next review, indexed by mastery level 0..MAX_MASTERY
INTERVAL_DAYS = [
    int(step) for step in os.getenv("LEXICARD_INTERVAL_DAYS", "0,1,3,7,14,30").split(",")
]

# Seconds after which a tripped quota flag clears itself (0 = sticky until reset)
QUOTA_COOLDOWN = float(os.getenv("LEXICARD_QUOTA_COOLDOWN", "0"))

# Directory Configuration
DATA_DIR = Path(os.getenv("LEXICARD_HOME", str(Path.home() / ".lexicard")))

# File paths
HISTORY_DB = Path(os.getenv("HISTORY_DB", str(DATA_DIR / "lexicard.sqlite")))

# Dictionary API for one-line lookups
DICTIONARY_API_URL = os.getenv("DICTIONARY_API_URL", "https://api.dictionaryapi.dev/api/v2/entries/en")

# Testing Configuration
LIVE_TESTING = os.getenv("LEXICARD_LIVE", "0") == "1"
