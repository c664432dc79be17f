"""Application settings and environment loading utilities."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Tuple

from review_ranker.utils import DEFAULT_RANKINGS, Ranking, parse_rankings


def _load_dotenv() -> None:
    env_path = Path(".env")
    if not env_path.exists():
        return
    for line in env_path.read_text().splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


_load_dotenv()


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw!r}") from exc


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """Runtime configuration derived from environment variables.

    A missing API key or prompt template does not stop the service from
    starting; only review classification fails until they are set. A sweep
    interval of zero or less disables the idle-key sweeper.
    """

    openai_api_key: str = ""
    base_prompt_template: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"
    request_timeout_seconds: int = 30
    rate_limit_requests: int = 5
    rate_limit_window_seconds: int = 60
    rate_limit_sweep_interval_seconds: float = 300
    rankings: Tuple[Ranking, ...] = field(default=DEFAULT_RANKINGS)

    @property
    def chat_completions_url(self) -> str:
        return f"{self.openai_base_url.rstrip('/')}/chat/completions"

    @classmethod
    def from_env(cls) -> "Settings":
        raw_rankings = os.getenv("REVIEW_RANKINGS", "").strip()
        try:
            rankings = tuple(parse_rankings(raw_rankings)) if raw_rankings else DEFAULT_RANKINGS
        except ValueError as exc:
            raise RuntimeError(f"Invalid REVIEW_RANKINGS: {exc}") from exc

        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
            base_prompt_template=os.getenv("BASE_PROMPT_TEMPLATE", ""),
            openai_model=os.getenv("OPENAI_MODEL", "").strip() or cls.openai_model,
            openai_base_url=os.getenv("OPENAI_BASE_URL", "").strip() or cls.openai_base_url,
            request_timeout_seconds=_int_env("OPENAI_TIMEOUT_SECONDS", 30),
            rate_limit_requests=_int_env("REVIEW_RATE_LIMIT_REQUESTS", 5),
            rate_limit_window_seconds=_int_env("REVIEW_RATE_LIMIT_WINDOW_SECONDS", 60),
            rate_limit_sweep_interval_seconds=_float_env("REVIEW_RATE_LIMIT_SWEEP_SECONDS", 300.0),
            rankings=rankings,
        )


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings.from_env()
