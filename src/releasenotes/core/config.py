"""Environment-driven settings for the release-notes service.

Settings are read once and handed to the background job, so nothing below
the API layer touches ``os.environ`` directly. Passing an explicit ``env``
mapping keeps tests independent of the process environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

DEFAULT_BASE_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4-turbo"


def _optional_float(raw: Optional[str]) -> Optional[float]:
    if raw is None or not raw.strip():
        return None
    value = float(raw)
    return value if value > 0 else None


def _optional_int(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    value = int(raw)
    return value if value > 0 else None


@dataclass(frozen=True)
class Settings:
    api_key: Optional[str] = None
    base_url: str = DEFAULT_BASE_URL
    model: str = DEFAULT_MODEL
    max_tokens: int = 2048
    temperature: float = 1.0
    connect_timeout: float = 5.0
    read_timeout: float = 120.0
    repos_dir: Path = Path("./repos")
    max_commits: Optional[int] = None
    job_timeout: Optional[float] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        api_key = (env.get("OPENAI_API_KEY") or "").strip() or None
        return cls(
            api_key=api_key,
            base_url=(env.get("OPENAI_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
            model=env.get("RELEASENOTES_MODEL") or DEFAULT_MODEL,
            max_tokens=int(env.get("RELEASENOTES_MAX_TOKENS", "2048")),
            temperature=float(env.get("RELEASENOTES_TEMPERATURE", "1.0")),
            connect_timeout=float(env.get("RELEASENOTES_CONNECT_TIMEOUT", "5")),
            read_timeout=float(env.get("RELEASENOTES_READ_TIMEOUT", "120")),
            repos_dir=Path(env.get("RELEASENOTES_REPOS_DIR") or "./repos"),
            max_commits=_optional_int(env.get("RELEASENOTES_MAX_COMMITS")),
            job_timeout=_optional_float(env.get("RELEASENOTES_JOB_TIMEOUT")),
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
