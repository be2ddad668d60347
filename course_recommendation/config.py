from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


# -----------------------------------------
#  Environment (.env next to the working dir, or COURSE_RECO_ENV_FILE)
# -----------------------------------------
_ENV_PATH = Path(os.getenv("COURSE_RECO_ENV_FILE", ".env"))
load_dotenv(_ENV_PATH)

# -----------------------------------------
#  MongoDB
# -----------------------------------------
MONGO_URI = os.getenv("MONGO_URI")
MONGO_HOST = os.getenv("MONGO_HOST", "127.0.0.1")
MONGO_PORT = int(os.getenv("MONGO_PORT", "27017"))
MONGO_USER = os.getenv("MONGO_USER")
MONGO_PASSWORD = os.getenv("MONGO_PASSWORD")
MONGO_AUTH_SOURCE = os.getenv("MONGO_AUTH_SOURCE", "admin")
MONGO_DB_NAME = os.getenv("MONGO_DB", "lms")

# SSH tunnel is only opened when MONGO_SSH_HOST is set
MONGO_SSH_HOST = os.getenv("MONGO_SSH_HOST")
MONGO_SSH_PORT = int(os.getenv("MONGO_SSH_PORT", "22"))
MONGO_SSH_USER = os.getenv("MONGO_SSH_USER", "ubuntu")
MONGO_SSH_PEM = os.getenv("MONGO_SSH_PEM")

# -----------------------------------------
#  Redis / backends
# -----------------------------------------
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

CATALOG_BACKEND = os.getenv("CATALOG_BACKEND", "mongo")  # "mongo" | "memory"
CACHE_BACKEND = os.getenv("CACHE_BACKEND", "redis")  # "redis" | "memory"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


@dataclass
class EngineSettings:
    recommendation_cache_ttl: int = 3600
    personalized_candidate_limit: int = 100
    recent_view_limit: int = 50
    because_viewed_window: int = 5
    query_timeout_seconds: float = 2.0
    request_timeout_seconds: Optional[float] = 5.0
    max_page_size: int = 100
    fanout_workers: int = 8

    @classmethod
    def from_env(cls) -> "EngineSettings":
        return cls(
            recommendation_cache_ttl=_env_int("RECOMMENDATION_CACHE_TTL", 3600),
            personalized_candidate_limit=_env_int("PERSONALIZED_CANDIDATE_LIMIT", 100),
            recent_view_limit=_env_int("RECENT_VIEW_LIMIT", 50),
            because_viewed_window=_env_int("BECAUSE_VIEWED_WINDOW", 5),
            query_timeout_seconds=_env_float("QUERY_TIMEOUT_SECONDS", 2.0),
            request_timeout_seconds=_env_float("REQUEST_TIMEOUT_SECONDS", 5.0),
            max_page_size=_env_int("MAX_PAGE_SIZE", 100),
            fanout_workers=_env_int("FANOUT_WORKERS", 8),
        )
