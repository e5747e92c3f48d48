"""Configuration settings for the dojo engine."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

RC_FILENAME = ".dojorc"
DEFAULT_PACKS_DIR = ".dojo/ryu"
DEFAULT_KATAS_DIR = "katas"
DEFAULT_CHECK_TIMEOUT = 60.0


def _env_float(name: str, default: float) -> float:
    """Read a float environment variable."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class Settings:
    """Engine settings read from the environment."""

    default_pack: str = field(default_factory=lambda: os.getenv("DOJO_DEFAULT_PACK", "").strip())
    packs_dir: str = field(default_factory=lambda: os.getenv("DOJO_PACKS_DIR", DEFAULT_PACKS_DIR))
    check_timeout: float = field(default_factory=lambda: _env_float("DOJO_CHECK_TIMEOUT", DEFAULT_CHECK_TIMEOUT))
    log_level: str = field(default_factory=lambda: os.getenv("DOJO_LOG_LEVEL", "WARNING").upper())

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if self.check_timeout <= 0:
            raise ValueError("DOJO_CHECK_TIMEOUT must be positive")
        if not isinstance(logging.getLevelName(self.log_level), int):
            raise ValueError(f"DOJO_LOG_LEVEL is not a logging level: {self.log_level}")
        if not self.packs_dir.strip():
            raise ValueError("DOJO_PACKS_DIR cannot be empty")


def load_settings(root: Path | None = None) -> Settings:
    """Load `.env` from the project root (if any) and build validated settings."""
    if root is not None:
        load_dotenv(root / ".env")
    settings = Settings()
    settings.validate()
    return settings


def find_project_root(start: Path | None = None) -> Path:
    """Walk up from `start` to the directory holding `.dojorc`, else return `start`."""
    origin = (start or Path.cwd()).resolve()
    for candidate in (origin, *origin.parents):
        if (candidate / RC_FILENAME).exists():
            return candidate
    return origin
