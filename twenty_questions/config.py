"""Runtime settings read from the environment.

The app factory calls load_dotenv() first, so values from a local .env file
are visible here as well.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

MAX_QUESTIONS = 20
MAX_HINTS = 3


class Settings(BaseModel):
    data_dir: Path = DEFAULT_DATA_DIR
    max_questions: int = MAX_QUESTIONS
    max_hints: int = MAX_HINTS
    llm_request_timeout: float = 10.0  # per HTTP request, not per turn
    turn_timeout: float = 45.0
    search_timeout: float = 10.0
    purge_after_hours: float = 24.0  # finished sessions older than this go at startup

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        return cls(
            data_dir=Path(env.get("DATA_DIR", str(DEFAULT_DATA_DIR))),
            llm_request_timeout=float(env.get("LLM_REQUEST_TIMEOUT", "10")),
            turn_timeout=float(env.get("TURN_TIMEOUT", "45")),
            search_timeout=float(env.get("SEARCH_TIMEOUT", "10")),
            purge_after_hours=float(env.get("PURGE_AFTER_HOURS", "24")),
        )
