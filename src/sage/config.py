from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path

DEFAULT_TRIGGER_WORDS: tuple[str, ...] = (
    "search",
    "latest",
    "current",
    "today",
    "news",
    "real-time",
)
DEFAULT_SEARCH_URL = "https://api.duckduckgo.com/"


def env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_words(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.getenv(name)
    if raw is None:
        return default
    words = tuple(item.strip().lower() for item in raw.split(",") if item.strip())
    return words or default


@dataclass(frozen=True, slots=True)
class SearchSettings:
    url: str = DEFAULT_SEARCH_URL
    timeout_s: float = 10.0
    abstract_chars: int = 500
    max_results: int = 4
    result_chars: int = 120


@dataclass(frozen=True, slots=True)
class Settings:
    data_root: Path = Path("data")
    backend: str = "fake"
    max_passes: int = 2
    max_tokens: int = 512
    min_request_interval_s: float = 3.0
    trigger_words: tuple[str, ...] = DEFAULT_TRIGGER_WORDS
    search: SearchSettings = field(default_factory=SearchSettings)
    trace: bool = False

    def with_data_root(self, data_root: Path) -> "Settings":
        return replace(self, data_root=data_root)


def load_settings() -> Settings:
    search = SearchSettings(
        url=os.getenv("SAGE_SEARCH_URL", DEFAULT_SEARCH_URL),
        timeout_s=env_float("SAGE_SEARCH_TIMEOUT_S", 10.0),
    )
    return Settings(
        data_root=Path(os.getenv("SAGE_DATA_ROOT", "data")),
        backend=os.getenv("SAGE_BACKEND", "fake"),
        max_passes=max(1, env_int("SAGE_MAX_PASSES", 2)),
        max_tokens=env_int("SAGE_MAX_TOKENS", 512),
        min_request_interval_s=env_float("SAGE_MIN_REQUEST_INTERVAL_S", 3.0),
        trigger_words=_env_words("SAGE_TRIGGER_WORDS", DEFAULT_TRIGGER_WORDS),
        search=search,
        trace=env_bool("SAGE_TRACE", False),
    )
