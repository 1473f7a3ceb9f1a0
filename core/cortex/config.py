"""Configuration settings for Cortex Core."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Paths
DATA_DIR = Path(os.environ.get("CORTEX_DATA_DIR", Path.home() / ".cortex"))
WORKSPACE_DB = DATA_DIR / "workspace.db"
CONVERSATIONS_DB = DATA_DIR / "conversations.db"

# Logging
LOG_LEVEL = os.environ.get("CORTEX_LOG_LEVEL", "INFO")

# Server
HOST = "127.0.0.1"
PORT = 7879

# API
API_PREFIX = "/api"
API_VERSION = "0.1.0"
CORS_ORIGINS = [o.strip() for o in os.environ.get("CORTEX_CORS_ORIGINS", "*").split(",") if o.strip()]
USER_HEADER = "X-User-Id"

# Mentions
MENTION_TRIGGER = "@"
MAX_MENTION_QUERY = 20  # Longest query scanned back from the caret

# Context
SUGGESTION_LIMIT = 8  # Per entity type
SUBTITLE_LENGTH = 120
FALLBACK_NOTE_COUNT = 5

# Conversations
CHAT_PAGE_SIZE = 3
CHAT_PAGE_LIMIT = 10
TITLE_PREFIX_LENGTH = 60
DEFAULT_CHAT_TITLE = "New chat"


@dataclass
class GenerationSettings:
    """Settings for the text-generation backend."""

    api_key: Optional[str] = field(default_factory=lambda: os.environ.get("GEMINI_API_KEY"))
    model_id: str = field(
        default_factory=lambda: os.environ.get("CORTEX_MODEL_ID", "gemini-2.0-flash")
    )
    base_url: str = field(
        default_factory=lambda: os.environ.get(
            "CORTEX_GENERATION_URL",
            "https://generativelanguage.googleapis.com/v1beta",
        )
    )
    timeout: float = field(
        default_factory=lambda: float(os.environ.get("CORTEX_GENERATION_TIMEOUT", "60"))
    )
