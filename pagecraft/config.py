"""
Pagecraft configuration: all environment variables in one place.

Read from environment at import time. The kernel never touches os.environ
itself; it reads the values from the `settings` singleton below.
"""

from __future__ import annotations

import os


def _int_env(name: str, default: int) -> int:
    raw = os.environ.get(name, "")
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


class Settings:
    """Application settings from environment variables."""

    # History
    MAX_HISTORY: int = _int_env("PAGECRAFT_MAX_HISTORY", 100)

    # Message surfaced when an edit targets a locked section
    LOCKED_MESSAGE: str = os.environ.get(
        "PAGECRAFT_LOCKED_MESSAGE", "ロック中のため編集できません。"
    )

    # Application
    ENVIRONMENT: str = os.environ.get("PAGECRAFT_ENVIRONMENT", "development")


# Singleton instance
settings = Settings()
