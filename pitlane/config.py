"""Configuration loaded from environment variables."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from dotenv import dotenv_values
from platformdirs import user_config_dir

logger = logging.getLogger(__name__)


def config_dir() -> Path:
    """Return the Pitlane configuration directory.

    Override with PITLANE_CONFIG_DIR env var. Platform defaults:
    - macOS: ~/Library/Application Support/pitlane
    - Linux: ~/.config/pitlane (or $XDG_CONFIG_HOME/pitlane)
    - Windows: %APPDATA%/pitlane
    """
    override = os.environ.get("PITLANE_CONFIG_DIR")
    if override:
        return Path(override)
    return Path(user_config_dir("pitlane", appauthor=False))


def settings_file() -> Path:
    """Return the path to Pitlane's own settings file."""
    return config_dir() / "settings.env"


VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR"}
DEFAULT_BASE_URL = "http://localhost:3000"


def _validate_log_level(value: str) -> str:
    level = value.upper()
    if level not in VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid LOG_LEVEL '{value}'. "
            f"Must be one of: {', '.join(sorted(VALID_LOG_LEVELS))}"
        )
    return level


def _validate_base_url(value: str) -> str:
    parts = urlsplit(value)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ValueError(
            f"Invalid PITLANE_BASE_URL '{value}'. "
            "Must be an http:// or https:// URL, e.g. http://localhost:3000"
        )
    return value


def _load_settings() -> dict[str, str]:
    """Merge the settings file with the process environment (env wins).

    The settings file is read, never loaded into os.environ.
    """
    path = settings_file()
    values: dict[str, str] = {}
    if path.exists():
        values.update({k: v for k, v in dotenv_values(path).items() if v is not None})
        logger.debug("Loaded settings from %s", path)
    values.update(os.environ)
    return values


@dataclass(frozen=True)
class Config:
    stripe_bin: str = "stripe"
    env_filename: str = ".env"
    base_url: str = DEFAULT_BASE_URL

    # Optional
    log_level: str = "WARNING"
    log_dir: Path | None = None

    def env_path(self, cwd: Path | None = None) -> Path:
        """Return the project .env path inside *cwd* (default: current directory)."""
        return (cwd if cwd is not None else Path.cwd()) / self.env_filename

    @classmethod
    def from_env(cls) -> "Config":
        env = _load_settings()

        stripe_bin = env.get("PITLANE_STRIPE_BIN", "").strip() or "stripe"

        env_filename = env.get("PITLANE_ENV_FILE", "").strip() or ".env"
        if Path(env_filename).name != env_filename:
            raise ValueError(
                f"Invalid PITLANE_ENV_FILE '{env_filename}'. "
                "Must be a bare filename, not a path."
            )

        base_url = _validate_base_url(
            env.get("PITLANE_BASE_URL", "").strip() or DEFAULT_BASE_URL
        )
        log_dir = env.get("LOG_DIR")

        return cls(
            stripe_bin=stripe_bin,
            env_filename=env_filename,
            base_url=base_url,
            log_level=_validate_log_level(env.get("LOG_LEVEL", "WARNING")),
            log_dir=Path(log_dir) if log_dir else None,
        )
