"""Environment and runtime settings."""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv


def load_environment() -> None:
    load_dotenv(override=False)


def get_openai_api_key() -> str:
    return os.getenv("OPENAI_API_KEY", "").strip()


def get_openai_model() -> str:
    return os.getenv("OPENAI_MODEL", "gpt-4.1-mini").strip()


def get_anthropic_api_key() -> str:
    return os.getenv("ANTHROPIC_API_KEY", "").strip()


def get_anthropic_model() -> str:
    return os.getenv("ANTHROPIC_MODEL", "claude-3-haiku-20240307").strip()


def default_data_dir() -> Path:
    raw = os.getenv("RELIEF_NEEDS_HOME", "").strip()
    return Path(raw) if raw else Path.home() / ".relief-needs"


def default_db_path() -> Path:
    return default_data_dir() / "decisions.db"
